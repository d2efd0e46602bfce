"""Shared test helpers and stub classes.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

from playmark.playground.client import FormatResponse


class FakePlaygroundClient:
    """In-memory stand-in for :class:`playmark.playground.client.PlaygroundClient`.

    Each endpoint returns the configured value or raises the configured
    error. ``before_return`` runs after the request is "sent" so tests can
    mutate the document while an action is awaiting.
    """

    def __init__(
        self,
        *,
        run_output: str = "",
        format_body: str = "",
        format_error: str = "",
        snippet_id: str = "abc123",
        snippet_code: str = "package main\n",
        error: Optional[BaseException] = None,
        before_return: Optional[Callable[[], Any]] = None,
        base_url: str = "https://play.example.test",
    ) -> None:
        self.run_output = run_output
        self.format_body = format_body
        self.format_error = format_error
        self.snippet_id = snippet_id
        self.snippet_code = snippet_code
        self.error = error
        self.before_return = before_return
        self.base_url = base_url
        self.calls: List[tuple[str, Any]] = []
        self.closed = False

    async def run(self, code: str) -> str:
        await self._roundtrip("run", code)
        return self.run_output

    async def format(self, code: str, fix_imports: bool = False) -> FormatResponse:
        await self._roundtrip("format", (code, fix_imports))
        return FormatResponse(body=self.format_body, error=self.format_error)

    async def share(self, code: str) -> str:
        await self._roundtrip("share", code)
        return self.snippet_id

    def share_url(self, snippet_id: str) -> str:
        return f"{self.base_url}/p/{snippet_id}"

    async def view(self, snippet_id: str) -> str:
        await self._roundtrip("view", snippet_id)
        return self.snippet_code

    async def aclose(self) -> None:
        self.closed = True

    async def _roundtrip(self, name: str, payload: Any) -> None:
        self.calls.append((name, payload))
        await asyncio.sleep(0)
        if self.before_return is not None:
            self.before_return()
        if self.error is not None:
            raise self.error
