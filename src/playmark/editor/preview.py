"""HTML preview that decorates runnable code blocks and their results."""

from __future__ import annotations

import html
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from markdown_it import MarkdownIt
from markdown_it.token import Token

from ..i18n import translate as _default_translate
from .decorations import ToolbarAnchor
from .fences import CodeBlock, normalize_language, normalize_languages, parse_code_blocks

__all__ = ["PreviewDocument", "render_preview"]

_ENV_KEY = "playmark"
_BUTTONS: tuple[tuple[str, str], ...] = (
    ("format", "BUTTON_FORMAT"),
    ("run", "BUTTON_RUN"),
    ("share", "BUTTON_SHARE"),
)


@dataclass(slots=True)
class PreviewDocument:
    """Rendered HTML plus the source blocks that received a toolbar."""

    html: str
    blocks: List[ToolbarAnchor] = field(default_factory=list)


@dataclass(slots=True)
class _RenderContext:
    languages: frozenset[str]
    result_language: str
    translate: Callable[[str], str]
    scanned: Mapping[int, CodeBlock]
    blocks: List[ToolbarAnchor]


def render_preview(
    text: str,
    *,
    languages: Iterable[str],
    result_language: str,
    translate: Optional[Callable[[str], str]] = None,
) -> PreviewDocument:
    """Render ``text`` and attach toolbars to source blocks.

    Toolbars carry the 0-indexed fence lines of their block as
    ``data-line-start``/``data-line-end`` so an action can re-locate the
    block in the current document text.

    markdown-it and the line scanner do not always agree on fences. CommonMark
    closes an unterminated fence at the end of the document and never treats
    a tagged line such as ```` ```go ```` as a closing fence, while the scanner
    drops unterminated blocks and closes on any fence line. Only fences the
    scanner also pairs get a toolbar, and the toolbar uses the scanner's
    closing line, so every button addresses a block the actions can find.
    """

    source = (text or "").replace("\r\n", "\n")
    context = _RenderContext(
        languages=normalize_languages(languages),
        result_language=normalize_language(result_language),
        translate=translate or _default_translate,
        scanned={block.start_line: block for block in parse_code_blocks(source.split("\n"))},
        blocks=[],
    )
    env: Dict[str, Any] = {_ENV_KEY: context}
    body = _build_renderer().render(source, env)
    return PreviewDocument(html=f'<div class="go-playground-preview">{body}</div>', blocks=context.blocks)


_MARKDOWN_RENDERER: Optional[MarkdownIt] = None


def _build_renderer() -> MarkdownIt:
    global _MARKDOWN_RENDERER
    if _MARKDOWN_RENDERER is None:
        renderer = MarkdownIt("commonmark", {"html": False})
        renderer.enable("table")
        renderer.enable("strikethrough")
        renderer.add_render_rule("fence", _render_fence)
        _MARKDOWN_RENDERER = renderer
    return _MARKDOWN_RENDERER


def _render_fence(self: Any, tokens: Sequence[Token], idx: int, options: Any, env: Dict[str, Any]) -> str:
    token = tokens[idx]
    default = self.fence(tokens, idx, options, env)
    context: _RenderContext | None = env.get(_ENV_KEY)
    if context is None:
        return default

    info = (token.info or "").strip()
    language = info.split(maxsplit=1)[0] if info else ""
    normalized = normalize_language(language)

    if normalized == context.result_language:
        payload = html.escape(token.content)
        return f'<div class="go-playground-run-result"><pre>{payload}</pre></div>\n'

    if normalized not in context.languages or token.map is None:
        return default
    scanned = context.scanned.get(token.map[0])
    if scanned is None or scanned.normalized_language != normalized:
        return default

    anchor = ToolbarAnchor(start_line=scanned.start_line, end_line=scanned.end_line, language=language)
    context.blocks.append(anchor)
    return (
        '<div class="go-playground-codeblock">'
        f"{_toolbar_html(anchor, context.translate)}{default}</div>\n"
    )


def _toolbar_html(anchor: ToolbarAnchor, translate: Callable[[str], str]) -> str:
    buttons = "".join(
        f'<button type="button" class="go-playground-button mod-{action}" data-action="{action}">'
        f"{html.escape(translate(key))}</button>"
        for action, key in _BUTTONS
    )
    return (
        f'<div class="go-playground-toolbar" data-line-start="{anchor.start_line}" '
        f'data-line-end="{anchor.end_line}">{buttons}</div>'
    )
