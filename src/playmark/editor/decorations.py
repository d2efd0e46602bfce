"""Toolbar placement for code blocks inside the visible part of an editor."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .fences import find_code_blocks_in_range

__all__ = ["ToolbarAnchor", "build_toolbar_anchors"]


@dataclass(slots=True, frozen=True)
class ToolbarAnchor:
    """Line bounds a toolbar widget uses to address its block later on."""

    start_line: int
    end_line: int
    language: str


def build_toolbar_anchors(
    text: str,
    visible_ranges: Iterable[Tuple[int, int]],
    languages: Iterable[str],
) -> List[ToolbarAnchor]:
    """Return one anchor per matching block fully inside a visible range.

    ``visible_ranges`` holds inclusive ``(first_line, last_line)`` pairs, as
    reported by the editor viewport. Blocks seen through several ranges are
    reported once, in first-seen order.
    """

    lines: Sequence[str] = text.split("\n")
    wanted = list(languages)
    seen: set[int] = set()
    anchors: List[ToolbarAnchor] = []
    for first_line, last_line in visible_ranges:
        for block in find_code_blocks_in_range(lines, first_line, last_line, wanted):
            if block.start_line in seen:
                continue
            seen.add(block.start_line)
            anchors.append(ToolbarAnchor(block.start_line, block.end_line, block.language))
    return anchors
