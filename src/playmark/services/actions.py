"""Format, run, share, copy and insert actions bound to a single code block.

Every action follows the same sequence: read the document text, locate the
addressed block, await at most one playground request, then re-scan the
current text before writing anything back. Failures never escape; they are
turned into an :class:`ActionOutcome` and a user-facing notification.
"""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, List, Literal, Optional

import httpx

from ..editor.document_model import DocumentState
from ..editor.fences import (
    CodeBlock,
    block_code,
    build_fenced_block_text,
    find_code_block_in_range,
    replace_block_code,
)
from ..editor.result_blocks import ResultBlockUpdate, upsert_result_block
from ..i18n import translator
from ..playground.client import PlaygroundClient, PlaygroundError
from ..playground.snippets import build_snippet_fence, extract_snippet_id
from .settings import Settings

__all__ = ["ActionGate", "ActionOutcome", "CodeBlockActions"]

LOGGER = logging.getLogger(__name__)

ActionKind = Literal["format", "run", "share", "copy", "insert"]
ActionStatus = Literal["ok", "not_found", "failed", "busy"]
SettingsGetter = Callable[[], Settings]
Notifier = Callable[[str], None]
Clipboard = Callable[[str], Optional[Awaitable[None]]]

_NOT_FOUND_KEYS: Dict[str, str] = {
    "format": "NOTICE_NO_FORMATTABLE_BLOCK",
    "run": "NOTICE_NO_RUNNABLE_BLOCK",
    "share": "NOTICE_NO_SHAREABLE_BLOCK",
    "copy": "NOTICE_NO_COPYABLE_BLOCK",
}
_FAILURE_KEYS: Dict[str, str] = {
    "format": "ERROR_FORMAT_FAILED",
    "run": "ERROR_RUN_FAILED",
    "share": "ERROR_SHARE_FAILED",
    "copy": "ERROR_COPY_FAILED",
    "insert": "ERROR_INSERT_FAILED",
}
_DEFAULT_SNIPPET_LANGUAGE = "go"


@dataclass(slots=True)
class ActionOutcome:
    """Result of one user-triggered action."""

    kind: ActionKind
    status: ActionStatus
    message: str
    block: Optional[CodeBlock] = None
    update: Optional[ResultBlockUpdate] = None
    share_url: Optional[str] = None
    text: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"


class ActionGate:
    """Refuses overlapping actions on the same key and rate-limits restarts."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._active: set[Hashable] = set()
        self._last_started: Dict[Hashable, float] = {}

    def try_acquire(self, key: Hashable, *, min_interval: float = 0.0) -> bool:
        now = self._clock()
        if key in self._active:
            return False
        last = self._last_started.get(key)
        if last is not None and now - last < min_interval:
            return False
        self._active.add(key)
        self._last_started[key] = now
        return True

    def release(self, key: Hashable) -> None:
        self._active.discard(key)

    def is_active(self, key: Hashable) -> bool:
        return key in self._active


class CodeBlockActions:
    """Operation boundary between the host editor and the playground client."""

    def __init__(
        self,
        client: PlaygroundClient,
        settings: SettingsGetter,
        *,
        notifier: Notifier | None = None,
        clipboard: Clipboard | None = None,
        translate: Callable[[str], str] | None = None,
        gate: ActionGate | None = None,
    ) -> None:
        self._client = client
        self._get_settings = settings
        self._notify = notifier or _log_notice
        self._clipboard = clipboard
        self._translate = translate
        self._gate = gate or ActionGate()

    @property
    def gate(self) -> ActionGate:
        return self._gate

    async def format_block(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        """Replace the addressed block's code with the service's formatted version."""

        return await self._guarded(
            "format", (document.document_id, "format", line_start), lambda: self._format(document, line_start, line_end)
        )

    async def run_block(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        """Execute the addressed block and upsert its output below it."""

        return await self._guarded(
            "run", (document.document_id, "run", line_start), lambda: self._run(document, line_start, line_end)
        )

    async def share_block(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        return await self._guarded(
            "share", (document.document_id, "share", line_start), lambda: self._share(document, line_start, line_end)
        )

    async def copy_block(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        return await self._guarded(
            "copy", (document.document_id, "copy", line_start), lambda: self._copy(document, line_start, line_end)
        )

    async def insert_snippet(self, document: DocumentState, reference: str) -> ActionOutcome:
        """Fetch a shared snippet and put it in place of the current selection."""

        interval = max(0.0, float(self._get_settings().insert_interval_seconds))
        return await self._guarded(
            "insert", ("insert",), lambda: self._insert(document, reference), min_interval=interval
        )

    async def _format(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        settings = self._get_settings()
        lines = document.lines()
        block = self._locate(lines, line_start, line_end, settings)
        if block is None:
            return self._not_found("format")
        code = block_code(lines, block)
        response = await self._client.format(code, settings.format_fix_imports)
        if response.error:
            return ActionOutcome("format", "failed", response.error, block=block)

        lines = document.lines()
        block = self._locate(lines, line_start, line_end, settings)
        if block is None:
            return self._not_found("format")
        if block_code(lines, block) != code:
            return ActionOutcome("format", "failed", self._t("NOTICE_BLOCK_CHANGED"), block=block)
        replace_block_code(lines, block, response.body)
        document.commit_lines(lines)
        return ActionOutcome("format", "ok", self._t("NOTICE_FORMAT_DONE"), block=block, text=response.body)

    async def _run(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        settings = self._get_settings()
        lines = document.lines()
        block = self._locate(lines, line_start, line_end, settings)
        if block is None:
            return self._not_found("run")
        output = await self._client.run(block_code(lines, block))

        lines = document.lines()
        block = self._locate(lines, line_start, line_end, settings)
        if block is None:
            return self._not_found("run")
        update = upsert_result_block(lines, block, output, settings.run_result_language)
        document.commit_lines(lines)
        LOGGER.debug("Run result for block at line %s: %s", block.start_line, update.summary)
        return ActionOutcome("run", "ok", self._t("NOTICE_RUN_DONE"), block=block, update=update, text=output)

    async def _share(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        lines = document.lines()
        block = self._locate(lines, line_start, line_end, self._get_settings())
        if block is None:
            return self._not_found("share")
        snippet_id = await self._client.share(block_code(lines, block))
        url = self._client.share_url(snippet_id)
        copied = await self._copy_to_clipboard(url)
        message = self._t("NOTICE_SHARE_COPIED" if copied else "NOTICE_SHARE_READY")
        return ActionOutcome("share", "ok", message, block=block, share_url=url, text=url)

    async def _copy(self, document: DocumentState, line_start: int, line_end: int) -> ActionOutcome:
        lines = document.lines()
        block = self._locate(lines, line_start, line_end, self._get_settings())
        if block is None:
            return self._not_found("copy")
        text = build_fenced_block_text(lines, block)
        await self._copy_to_clipboard(text)
        return ActionOutcome("copy", "ok", self._t("NOTICE_COPY_SUCCESS"), block=block, text=text)

    async def _insert(self, document: DocumentState, reference: str) -> ActionOutcome:
        snippet_id = extract_snippet_id(reference)
        if not snippet_id:
            return ActionOutcome("insert", "failed", self._t("NOTICE_BAD_SNIPPET"))
        code = await self._client.view(snippet_id)
        languages = self._get_settings().code_block_languages
        language = languages[0] if languages else _DEFAULT_SNIPPET_LANGUAGE
        fence = build_snippet_fence(code, language)
        caret = min(document.selection.start, document.selection.end)
        if caret > 0 and document.text[caret - 1 : caret] != "\n":
            fence = "\n" + fence
        document.replace_selection(fence)
        return ActionOutcome("insert", "ok", self._t("NOTICE_INSERT_DONE"), text=fence)

    async def _guarded(
        self,
        kind: ActionKind,
        key: Hashable,
        operation: Callable[[], Awaitable[ActionOutcome]],
        *,
        min_interval: float = 0.0,
    ) -> ActionOutcome:
        if not self._gate.try_acquire(key, min_interval=min_interval):
            return self._publish(ActionOutcome(kind, "busy", self._t("NOTICE_TOO_FAST")))
        try:
            outcome = await operation()
        except (PlaygroundError, httpx.HTTPError) as exc:
            LOGGER.warning("%s action failed: %s", kind, exc)
            outcome = ActionOutcome(kind, "failed", str(exc) or self._t(_FAILURE_KEYS[kind]))
        except Exception:
            LOGGER.exception("Unexpected error during %s action", kind)
            outcome = ActionOutcome(kind, "failed", self._t(_FAILURE_KEYS[kind]))
        finally:
            self._gate.release(key)
        return self._publish(outcome)

    def _locate(self, lines: List[str], line_start: int, line_end: int, settings: Settings) -> Optional[CodeBlock]:
        return find_code_block_in_range(lines, line_start, line_end, settings.code_block_languages)

    def _not_found(self, kind: ActionKind) -> ActionOutcome:
        return ActionOutcome(kind, "not_found", self._t(_NOT_FOUND_KEYS[kind]))

    async def _copy_to_clipboard(self, text: str) -> bool:
        if self._clipboard is None:
            return False
        result: Any = self._clipboard(text)
        if inspect.isawaitable(result):
            await result
        return True

    def _publish(self, outcome: ActionOutcome) -> ActionOutcome:
        if outcome.status == "failed":
            LOGGER.debug("%s action reported failure: %s", outcome.kind, outcome.message)
        self._notify(outcome.message)
        return outcome

    def _t(self, key: str) -> str:
        resolve = self._translate or translator(self._get_settings().locale)
        return resolve(key)


def _log_notice(message: str) -> None:
    LOGGER.info("%s", message)
