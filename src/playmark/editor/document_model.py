"""Dataclasses representing the host document handed to code block actions."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence


@dataclass(slots=True)
class SelectionRange:
    """Character offsets of the current selection (``start <= end``)."""

    start: int = 0
    end: int = 0

    def as_tuple(self) -> tuple[int, int]:
        """Return the selection as a tuple for serialization."""

        return (self.start, self.end)


@dataclass(slots=True)
class DocumentState:
    """Mutable text owned by the caller with a single commit path.

    Code block helpers never hold on to the line list returned by
    :meth:`lines`; every action splits the text again, edits the fresh list
    and hands it back through :meth:`commit_lines`.
    """

    text: str = ""
    path: Optional[Path] = None
    selection: SelectionRange = field(default_factory=SelectionRange)
    dirty: bool = False
    document_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    version_id: int = 1

    def lines(self) -> List[str]:
        """Return a fresh line array for the current text."""

        return self.text.split("\n")

    def update_text(self, new_text: str) -> bool:
        """Replace the document text, returning ``False`` when nothing changed."""

        if new_text == self.text:
            return False
        self.text = new_text
        self.dirty = True
        self.version_id += 1
        length = len(new_text)
        self.selection = SelectionRange(min(self.selection.start, length), min(self.selection.end, length))
        return True

    def commit_lines(self, lines: Sequence[str]) -> bool:
        return self.update_text("\n".join(lines))

    def replace_selection(self, replacement: str) -> bool:
        """Replace the selected span with ``replacement`` and collapse the caret after it."""

        start, end = sorted(self.selection.as_tuple())
        start = max(0, min(start, len(self.text)))
        end = max(start, min(end, len(self.text)))
        changed = self.update_text(self.text[:start] + replacement + self.text[end:])
        caret = start + len(replacement)
        self.selection = SelectionRange(caret, caret)
        return changed

    def select_line_start(self, line: int) -> None:
        """Collapse the selection to the beginning of ``line`` (clamped)."""

        lines = self.lines()
        index = max(0, min(line, len(lines)))
        offset = sum(len(item) + 1 for item in lines[:index])
        offset = min(offset, len(self.text))
        self.selection = SelectionRange(offset, offset)

