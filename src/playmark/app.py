"""Command line entry point for running Go code blocks inside markdown files."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, TextIO

from .editor.document_model import DocumentState
from .editor.fences import find_code_blocks_in_range
from .editor.preview import render_preview
from .i18n import translator
from .playground.client import ClientSettings, PlaygroundClient
from .services.actions import ActionOutcome, CodeBlockActions
from .services.settings import Settings, SettingsStore, coerce_setting, parse_bool, redact_secret
from .utils import file_io
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)
_EXIT_OK = 0
_EXIT_FAILED = 1
_EXIT_USAGE = 2

BlockAction = Callable[[DocumentState, int, int], Awaitable[ActionOutcome]]


def configure_logging(debug: bool = False) -> None:
    """Route notices and diagnostics to stderr, with debug records when ``debug`` is set."""

    level = logging.DEBUG if debug else logging.WARNING
    logging_utils.setup_logging(level)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def load_settings(
    path: Optional[Path] = None,
    *,
    store: SettingsStore | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Load persisted settings or fall back to defaults."""

    active_store = store or SettingsStore(path)
    try:
        settings = active_store.load(overrides=overrides)
    except OSError as exc:
        _LOGGER.warning("Failed to load settings from %s: %s", active_store.path, exc)
        settings = Settings()
    return settings


def build_client(settings: Settings, *, debug_logging: bool = False) -> PlaygroundClient:
    """Construct the playground client from the current settings."""

    client_settings = ClientSettings(
        base_url=settings.base_url,
        request_timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        retry_min_seconds=settings.retry_min_seconds,
        retry_max_seconds=settings.retry_max_seconds,
        api_key=settings.api_key,
        default_headers=settings.default_headers,
        debug_logging=debug_logging or settings.debug_logging,
    )
    return PlaygroundClient(client_settings)


def main(argv: Sequence[str] | None = None, *, client: PlaygroundClient | None = None) -> int:
    """Parse ``argv``, run the requested command and return the exit status."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    debug = _env_flag("PLAYMARK_DEBUG", default=False)
    configure_logging(debug)

    settings_path = args.settings_path or os.environ.get("PLAYMARK_SETTINGS_PATH")
    resolved_path = Path(settings_path).expanduser() if settings_path else None
    settings_store = SettingsStore(resolved_path)
    try:
        cli_overrides = _coerce_cli_overrides(args.overrides or [])
    except ValueError as exc:
        print(f"Invalid --set override: {exc}", file=sys.stderr)
        return _EXIT_USAGE

    settings = load_settings(resolved_path, store=settings_store, overrides=cli_overrides or None)

    if args.dump_settings:
        _dump_settings(settings, settings_store, overrides=cli_overrides)
        return _EXIT_OK
    if args.command is None:
        parser.print_help(sys.stderr)
        return _EXIT_USAGE

    if settings.debug_logging and not debug:
        configure_logging(True)
        debug = True

    try:
        line_range = _parse_line_range(getattr(args, "lines", None))
    except ValueError as exc:
        print(f"Invalid --lines value: {exc}", file=sys.stderr)
        return _EXIT_USAGE

    try:
        if args.command == "blocks":
            return _list_blocks(Path(args.file), settings, line_range)
        if args.command == "preview":
            return _write_preview(Path(args.file), settings, args.output)

        active_client = client or build_client(settings, debug_logging=debug)
        return asyncio.run(_dispatch(args, settings, active_client, line_range, owns_client=client is None))
    except OSError as exc:
        _LOGGER.info("Unable to process %s: %s", args.file, exc)
        print(f"Unable to process {args.file}: {exc}", file=sys.stderr)
        return _EXIT_FAILED


def cli() -> None:
    """Console script wrapper around :func:`main`."""

    raise SystemExit(main())


async def _dispatch(
    args: argparse.Namespace,
    settings: Settings,
    client: PlaygroundClient,
    line_range: tuple[int, Optional[int]],
    *,
    owns_client: bool,
) -> int:
    actions = CodeBlockActions(
        client,
        lambda: settings,
        notifier=logging_utils.notify,
        translate=translator(settings.locale),
    )
    path = Path(args.file)
    try:
        document, source = _open_document(path)
        if args.command == "run":
            outcomes = await _apply_to_blocks(document, settings, line_range, actions.run_block)
        elif args.command == "format":
            outcomes = await _apply_to_blocks(document, settings, line_range, actions.format_block)
        elif args.command in {"share", "copy"}:
            action = actions.share_block if args.command == "share" else actions.copy_block
            start, end = _resolve_range(document, line_range)
            outcome = await action(document, start, end)
            if outcome.ok and outcome.text:
                print(outcome.text)
            outcomes = [outcome]
        else:
            target_line = args.line if args.line is not None else len(document.lines())
            document.select_line_start(target_line)
            outcomes = [await actions.insert_snippet(document, args.reference)]
        _save_document(document, source)
    finally:
        if owns_client:
            await _shutdown_client(client)
    return _EXIT_OK if outcomes and all(outcome.ok for outcome in outcomes) else _EXIT_FAILED


async def _apply_to_blocks(
    document: DocumentState,
    settings: Settings,
    line_range: tuple[int, Optional[int]],
    action: BlockAction,
) -> List[ActionOutcome]:
    """Apply ``action`` to every matching block, re-scanning after each write.

    Writes only ever touch the addressed block and the lines below it, so the
    remaining blocks keep their order and shift by the change in line count.
    """

    start, end = _resolve_range(document, line_range)
    languages = settings.code_block_languages
    total = len(find_code_blocks_in_range(document.lines(), start, end, languages))
    if total == 0:
        return [await action(document, start, end)]

    outcomes: List[ActionOutcome] = []
    for ordinal in range(total):
        before = len(document.lines())
        blocks = find_code_blocks_in_range(document.lines(), start, end, languages)
        if ordinal >= len(blocks):
            break
        block = blocks[ordinal]
        outcomes.append(await action(document, block.start_line, block.end_line))
        end += len(document.lines()) - before
    return outcomes


def _list_blocks(path: Path, settings: Settings, line_range: tuple[int, Optional[int]]) -> int:
    document, _ = _open_document(path)
    start, end = _resolve_range(document, line_range)
    for block in find_code_blocks_in_range(document.lines(), start, end, settings.code_block_languages):
        print(f"{block.start_line}-{block.end_line}\t{block.language}")
    return _EXIT_OK


def _write_preview(path: Path, settings: Settings, output: Optional[str]) -> int:
    preview = render_preview(
        file_io.read_markdown(path).text,
        languages=settings.code_block_languages,
        result_language=settings.run_result_language,
        translate=translator(settings.locale),
    )
    if output:
        target = file_io.write_markdown(Path(output), preview.html)
        _LOGGER.info("Preview written to %s (%s toolbar(s))", target, len(preview.blocks))
    else:
        sys.stdout.write(preview.html)
        sys.stdout.write("\n")
    return _EXIT_OK


def _open_document(path: Path) -> tuple[DocumentState, file_io.MarkdownFile]:
    source = file_io.read_markdown(path)
    return DocumentState(text=source.text, path=path), source


def _save_document(document: DocumentState, source: file_io.MarkdownFile) -> None:
    if not document.dirty:
        return
    file_io.write_markdown(source.path, document.text, like=source)
    _LOGGER.info("Saved %s (version %s)", document.path or source.path, document.version_id)


def _resolve_range(document: DocumentState, line_range: tuple[int, Optional[int]]) -> tuple[int, int]:
    start, end = line_range
    last_line = len(document.lines()) - 1
    return start, last_line if end is None else end


def _parse_line_range(value: Optional[str]) -> tuple[int, Optional[int]]:
    if not value:
        return 0, None
    if ":" not in value:
        raise ValueError(f"'{value}' must use START:END syntax.")
    raw_start, raw_end = value.split(":", 1)
    start = int(raw_start, 10) if raw_start.strip() else 0
    end = int(raw_end, 10) if raw_end.strip() else None
    if start < 0 or (end is not None and end < start):
        raise ValueError(f"'{value}' is not a valid line range.")
    return start, end


async def _shutdown_client(client: PlaygroundClient | None) -> None:
    """Close the playground client to release network resources."""

    if client is None:
        return
    try:
        await client.aclose()
    except RuntimeError as exc:  # pragma: no cover - loop already closing
        _LOGGER.debug("Playground client shutdown failed: %s", exc)


def _env_flag(name: str, *, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return parse_bool(value)
    except ValueError:
        return default


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="playmark",
        description="Format, run and share Go code blocks inside markdown documents.",
    )
    parser.add_argument(
        "--dump-settings",
        action="store_true",
        help="Print the effective settings payload (with secrets redacted) and exit.",
    )
    parser.add_argument(
        "--settings-path",
        metavar="PATH",
        help="Override the default ~/.playmark/settings.json path.",
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        metavar="KEY=VALUE",
        action="append",
        default=[],
        help="Override persisted settings for this invocation (repeatable).",
    )
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")

    lines_help = "Inclusive 0-indexed line range START:END (defaults to the whole document)."
    for name, help_text in (
        ("blocks", "List matching code blocks."),
        ("run", "Run matching code blocks and write their output below them."),
        ("format", "Format matching code blocks in place."),
        ("share", "Share the first matching code block and print its URL."),
        ("copy", "Print the first matching code block as fenced text."),
    ):
        command = commands.add_parser(name, help=help_text)
        command.add_argument("file", metavar="FILE")
        command.add_argument("--lines", metavar="START:END", help=lines_help)

    insert = commands.add_parser("insert", help="Insert a shared snippet as a code block.")
    insert.add_argument("file", metavar="FILE")
    insert.add_argument("reference", metavar="URL_OR_ID")
    insert.add_argument("--line", type=int, help="0-indexed line to insert before (defaults to the end).")

    preview = commands.add_parser("preview", help="Render an HTML preview with code block toolbars.")
    preview.add_argument("file", metavar="FILE")
    preview.add_argument("-o", "--output", metavar="PATH", help="Write the HTML here instead of stdout.")
    return parser


def _coerce_cli_overrides(items: Sequence[str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if not items:
        return overrides

    for entry in items:
        if "=" not in entry:
            raise ValueError(f"Override '{entry}' must use KEY=VALUE syntax.")
        key, raw_value = entry.split("=", 1)
        key = key.strip()
        if not key:
            raise ValueError("Override is missing a field name.")
        overrides[key] = coerce_setting(key, raw_value)
    return overrides


def _dump_settings(
    settings: Settings,
    store: SettingsStore,
    *,
    overrides: Mapping[str, Any],
    stream: TextIO | None = None,
) -> None:
    destination = stream or sys.stdout
    payload = asdict(settings)
    payload["api_key"] = redact_secret(settings.api_key)
    metadata = {
        "path": str(store.path),
        "key_file": str(store.cipher.key_path),
        "cli_overrides": sorted(overrides.keys()),
        "environment_variables": _active_env_overrides(),
    }
    json.dump({"settings": payload, "meta": metadata}, destination, indent=2, ensure_ascii=False)
    destination.write("\n")


def _active_env_overrides() -> list[str]:
    return sorted(name for name in os.environ if name.startswith("PLAYMARK_"))
