"""Load markdown files for editing and write them back in their original shape."""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

__all__ = ["MarkdownFile", "read_markdown", "write_markdown"]

_BOM_ENCODINGS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


@dataclass(slots=True, frozen=True)
class MarkdownFile:
    """Text of a file with ``\\n`` newlines plus what it takes to write it back.

    ``encoding`` keeps a byte order mark when the file had one, ``newline``
    is the convention found on disk and ``final_newline`` records whether
    the last line was terminated.
    """

    path: Path
    text: str
    encoding: str = "utf-8"
    newline: str = "\n"
    final_newline: bool = True


def read_markdown(path: Path | str) -> MarkdownFile:
    """Read ``path`` and normalize its newlines to ``\\n``."""

    target = Path(path)
    raw = target.read_bytes()
    encoding = _sniff_encoding(raw)
    text = raw.decode(encoding)
    if "\r\n" in text:
        newline = "\r\n"
    elif "\r" in text:
        newline = "\r"
    else:
        newline = "\n"
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return MarkdownFile(
        path=target,
        text=text,
        encoding=encoding,
        newline=newline,
        final_newline=text.endswith("\n") or not text,
    )


def write_markdown(path: Path | str, text: str, *, like: MarkdownFile | None = None) -> Path:
    """Atomically write ``text``, matching the encoding and newlines of ``like``.

    Result blocks appended at the end of a document land after its final
    newline, so the terminator is restored when ``like`` had one.
    """

    target = Path(path)
    source = like or MarkdownFile(path=target, text="")
    body = text.replace("\r\n", "\n")
    if source.final_newline and body and not body.endswith("\n"):
        body += "\n"
    if source.newline != "\n":
        body = body.replace("\n", source.newline)

    target.parent.mkdir(parents=True, exist_ok=True)
    descriptor, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
    try:
        with os.fdopen(descriptor, "w", encoding=source.encoding, newline="") as handle:
            handle.write(body)
        os.replace(tmp_name, target)
    except BaseException:
        os.unlink(tmp_name)
        raise
    return target


def _sniff_encoding(raw: bytes) -> str:
    for bom, encoding in _BOM_ENCODINGS:
        if raw.startswith(bom):
            return encoding
    try:
        raw.decode("utf-8")
    except UnicodeDecodeError:
        return "latin-1"
    return "utf-8"
