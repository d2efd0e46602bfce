"""Insertion and in-place refresh of run result blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence, Tuple

from .fences import CodeBlock, fence_language, is_fence_line, normalize_language

__all__ = [
    "ResultBlockUpdate",
    "sanitize_result",
    "locate_result_block",
    "upsert_result_block",
]

_FENCE = "```"
_ESCAPED_FENCE = "``\\`"

UpdateAction = Literal["inserted", "replaced", "repaired"]


@dataclass(slots=True, frozen=True)
class ResultBlockUpdate:
    """Summary of a result block write, expressed in post-edit line indices."""

    action: UpdateAction
    fence_line: int
    closing_line: int
    payload: Tuple[str, ...]

    @property
    def summary(self) -> str:
        return f"result {self.action}: {len(self.payload)} line(s) at {self.fence_line}"


def sanitize_result(result: str) -> str:
    """Normalize newlines and defuse backtick runs that could close the fence."""

    text = result.replace("\r\n", "\n").replace("\r", "\n")
    return text.replace(_FENCE, _ESCAPED_FENCE)


def locate_result_block(
    lines: Sequence[str],
    block: CodeBlock,
    result_language: str,
) -> Optional[Tuple[int, Optional[int]]]:
    """Return ``(opening, closing)`` of the result block following ``block``.

    Blank lines between the source and the result fence are skipped. The
    fence tag must match ``result_language`` after normalization. ``closing``
    is ``None`` when the result block runs to the end of the document.
    """

    scan = block.end_line + 1
    while scan < len(lines) and lines[scan].strip() == "":
        scan += 1
    if scan >= len(lines):
        return None
    candidate = lines[scan]
    if not is_fence_line(candidate):
        return None
    if normalize_language(fence_language(candidate)) != normalize_language(result_language):
        return None

    closing = scan + 1
    while closing < len(lines) and not is_fence_line(lines[closing]):
        closing += 1
    return scan, (closing if closing < len(lines) else None)


def upsert_result_block(
    lines: List[str],
    block: CodeBlock,
    result: str,
    result_language: str,
) -> ResultBlockUpdate:
    """Write ``result`` into the result block after ``block``, mutating ``lines``.

    An existing result block keeps both fence lines and only has its payload
    swapped. Otherwise a new block is inserted after the source block with
    exactly one blank separator line. Empty output still produces a fence
    pair so later runs find and refresh it.
    """

    sanitized = sanitize_result(result)
    payload = sanitized.split("\n") if sanitized else []

    located = locate_result_block(lines, block, result_language)
    if located is not None:
        opening, closing = located
        if closing is None:
            lines[opening + 1 :] = [*payload, _FENCE]
            action: UpdateAction = "repaired"
        else:
            lines[opening + 1 : closing] = payload
            action = "replaced"
        return ResultBlockUpdate(
            action=action,
            fence_line=opening,
            closing_line=opening + len(payload) + 1,
            payload=tuple(payload),
        )

    insert_at = block.end_line + 1
    inserted: List[str] = []
    if insert_at < len(lines) and lines[insert_at].strip() == "":
        insert_at += 1
    else:
        inserted.append("")
    fence_line = insert_at + len(inserted)
    inserted.extend([f"{_FENCE}{result_language}", *payload, _FENCE])
    lines[insert_at:insert_at] = inserted
    return ResultBlockUpdate(
        action="inserted",
        fence_line=fence_line,
        closing_line=fence_line + len(payload) + 1,
        payload=tuple(payload),
    )
