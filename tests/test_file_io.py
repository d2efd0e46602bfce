"""Tests for markdown file helpers."""

from __future__ import annotations

import codecs
from pathlib import Path

from playmark.utils.file_io import MarkdownFile, read_markdown, write_markdown


def test_read_normalizes_crlf_and_remembers_it(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(codecs.BOM_UTF8 + b"```go\r\nx\r\n```\r\n")

    source = read_markdown(target)

    assert source.text == "```go\nx\n```\n"
    assert source.newline == "\r\n"
    assert source.encoding == "utf-8-sig"
    assert source.final_newline is True


def test_write_keeps_bom_and_crlf(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(codecs.BOM_UTF8 + b"a\r\nb\r\n")
    source = read_markdown(target)

    write_markdown(target, source.text + "c\n", like=source)

    assert target.read_bytes() == codecs.BOM_UTF8 + b"a\r\nb\r\nc\r\n"


def test_write_restores_final_newline(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(b"# Notes\n")
    source = read_markdown(target)

    write_markdown(target, "# Notes\n```go\nx\n```", like=source)

    assert target.read_bytes() == b"# Notes\n```go\nx\n```\n"


def test_write_leaves_unterminated_file_unterminated(tmp_path: Path) -> None:
    target = tmp_path / "notes.md"
    target.write_bytes(b"# Notes")
    source = read_markdown(target)

    write_markdown(target, "# Notes\ntail", like=source)

    assert source.final_newline is False
    assert target.read_bytes() == b"# Notes\ntail"


def test_read_falls_back_to_latin1(tmp_path: Path) -> None:
    target = tmp_path / "latin.md"
    target.write_bytes(b"caf\xe9\n")

    source = read_markdown(target)

    assert source.encoding == "latin-1"
    assert source.text == "caf\xe9\n"


def test_write_creates_parent_without_leftovers(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "preview.html"

    result = write_markdown(target, "<p>x</p>")

    assert result == target
    assert target.read_bytes() == b"<p>x</p>\n"
    assert [item.name for item in target.parent.iterdir()] == ["preview.html"]


def test_default_shape_is_plain_utf8() -> None:
    shape = MarkdownFile(path=Path("x.md"), text="")

    assert (shape.encoding, shape.newline, shape.final_newline) == ("utf-8", "\n", True)
