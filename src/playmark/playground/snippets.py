"""Helpers for pulling shared playground snippets into a document."""

from __future__ import annotations

import re
from typing import Optional

__all__ = ["extract_snippet_id", "build_snippet_fence"]

_SHARE_PATH_RE = re.compile(r"/p/(?P<snippet>[a-zA-Z0-9_-]+)(?:[/?#]|$)")
_BARE_ID_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


def extract_snippet_id(value: str) -> Optional[str]:
    """Return the snippet id from a share URL or a bare id, else ``None``.

    >>> extract_snippet_id("https://go.dev/play/p/abc123?v=goprev")
    'abc123'
    """

    trimmed = (value or "").strip()
    if not trimmed:
        return None
    match = _SHARE_PATH_RE.search(trimmed)
    if match:
        return match.group("snippet")
    return trimmed if _BARE_ID_RE.match(trimmed) else None


def build_snippet_fence(code: str, language: str) -> str:
    body = code.replace("\r\n", "\n")
    if body.endswith("\n"):
        body = body[:-1]
    return f"```{language}\n{body}\n```\n"
