"""Fenced code block scanning over a markdown line array."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

__all__ = [
    "CodeBlock",
    "is_fence_line",
    "fence_language",
    "normalize_language",
    "normalize_languages",
    "parse_code_blocks",
    "find_code_blocks_in_range",
    "find_code_block_in_range",
    "block_code",
    "replace_block_code",
    "build_fenced_block_text",
]

_FENCE_RE = re.compile(r"^```+")
_FENCE_LANGUAGE_RE = re.compile(r"^```+\s*(?P<language>[^\s`]+)?")


@dataclass(slots=True, frozen=True)
class CodeBlock:
    """Positional descriptor of a fenced block inside a line array.

    ``start_line`` and ``end_line`` point at the opening and closing fence
    lines. The descriptor is only meaningful for the exact line array it was
    computed from; any insertion or removal shifts the indices.
    """

    language: str
    start_line: int
    end_line: int

    @property
    def code_start_line(self) -> int:
        return self.start_line + 1

    @property
    def code_end_line(self) -> int:
        return self.end_line

    @property
    def normalized_language(self) -> str:
        return normalize_language(self.language)


def normalize_language(language: str | None) -> str:
    """Return the comparison form of a fence tag."""

    return (language or "").strip().lower()


def normalize_languages(languages: Iterable[str]) -> frozenset[str]:
    return frozenset(normalize_language(item) for item in languages)


def is_fence_line(line: str | None) -> bool:
    """Return ``True`` when ``line`` opens or closes a fenced block."""

    return isinstance(line, str) and _FENCE_RE.match(line.strip()) is not None


def fence_language(line: str | None) -> str:
    """Return the raw tag written after the backtick run of ``line``."""

    if not isinstance(line, str):
        return ""
    match = _FENCE_LANGUAGE_RE.match(line.strip())
    if match is None:
        return ""
    return match.group("language") or ""


def parse_code_blocks(lines: Sequence[str]) -> List[CodeBlock]:
    """Return every terminated fenced block in document order.

    A closing fence never opens another block and an opening fence without
    a closing partner before the end of ``lines`` is dropped, so the result
    is non-overlapping and strictly increasing.
    """

    blocks: List[CodeBlock] = []
    total = len(lines)
    index = 0
    while index < total:
        line = lines[index]
        if not is_fence_line(line):
            index += 1
            continue

        closing = index + 1
        while closing < total and not is_fence_line(lines[closing]):
            closing += 1
        if closing >= total:
            break

        blocks.append(CodeBlock(language=fence_language(line), start_line=index, end_line=closing))
        index = closing + 1
    return blocks


def find_code_blocks_in_range(
    lines: Sequence[str],
    line_start: int,
    line_end: int,
    languages: Iterable[str],
) -> List[CodeBlock]:
    """Return blocks tagged with one of ``languages`` lying inside the range.

    The range is inclusive on both ends and the block must fit entirely
    within it.
    """

    wanted = normalize_languages(languages)
    return [
        block
        for block in parse_code_blocks(lines)
        if block.normalized_language in wanted
        and block.start_line >= line_start
        and block.end_line <= line_end
    ]


def find_code_block_in_range(
    lines: Sequence[str],
    line_start: int,
    line_end: int,
    languages: Iterable[str],
) -> Optional[CodeBlock]:
    blocks = find_code_blocks_in_range(lines, line_start, line_end, languages)
    return blocks[0] if blocks else None


def block_code(lines: Sequence[str], block: CodeBlock) -> str:
    """Return the payload of ``block`` exactly as written."""

    return "\n".join(lines[block.code_start_line : block.code_end_line])


def replace_block_code(lines: List[str], block: CodeBlock, new_code: str) -> None:
    """Swap the payload lines of ``block`` for ``new_code`` in place.

    A single trailing newline (as emitted by gofmt) is dropped so the
    closing fence stays directly after the last code line.
    """

    normalized = new_code.replace("\r\n", "\n")
    if normalized.endswith("\n"):
        normalized = normalized[:-1]
    replacement = normalized.split("\n") if normalized else []
    lines[block.code_start_line : block.code_end_line] = replacement


def build_fenced_block_text(lines: Sequence[str], block: CodeBlock) -> str:
    language = (block.language or "").strip()
    return f"```{language}\n{block_code(lines, block)}\n```"
