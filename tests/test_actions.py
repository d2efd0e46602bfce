"""Tests for the code block actions service."""

from __future__ import annotations

from typing import Any, List, cast

import pytest

from playmark.editor.document_model import DocumentState
from playmark.playground.client import PlaygroundClient, PlaygroundHTTPError
from playmark.services.actions import ActionGate, CodeBlockActions
from playmark.services.settings import Settings
from tests.helpers import FakePlaygroundClient


def _actions(
    client: FakePlaygroundClient,
    settings: Settings,
    **kwargs: Any,
) -> tuple[CodeBlockActions, List[str]]:
    notices: List[str] = []
    actions = CodeBlockActions(
        cast(PlaygroundClient, client),
        lambda: settings,
        notifier=notices.append,
        **kwargs,
    )
    return actions, notices


@pytest.mark.asyncio
async def test_run_inserts_then_refreshes_result(settings: Settings) -> None:
    document = DocumentState(text="```go\nfmt.Println(1)\n```")
    client = FakePlaygroundClient(run_output="1")
    actions, notices = _actions(client, settings)

    outcome = await actions.run_block(document, 0, 2)

    assert outcome.ok
    assert document.text == "```go\nfmt.Println(1)\n```\n\n```go-run-result\n1\n```"
    assert client.calls == [("run", "fmt.Println(1)")]
    assert notices == ["Run result updated."]

    client.run_output = "2"
    await actions.run_block(document, 0, 2)

    assert document.text == "```go\nfmt.Println(1)\n```\n\n```go-run-result\n2\n```"


@pytest.mark.asyncio
async def test_run_writes_compile_errors_into_result(settings: Settings) -> None:
    document = DocumentState(text="```go\nbad\n```")
    client = FakePlaygroundClient(run_output="Compilation Error:\nprog.go:1: syntax error")
    actions, _ = _actions(client, settings)

    outcome = await actions.run_block(document, 0, 2)

    assert outcome.ok
    assert document.lines()[4:] == ["```go-run-result", "Compilation Error:", "prog.go:1: syntax error", "```"]


@pytest.mark.asyncio
async def test_missing_block_reports_not_found_without_request(settings: Settings) -> None:
    document = DocumentState(text="```python\nprint(1)\n```")
    client = FakePlaygroundClient()
    actions, notices = _actions(client, settings)

    outcome = await actions.run_block(document, 0, 2)

    assert outcome.status == "not_found"
    assert client.calls == []
    assert notices == ["No runnable Go code block found."]
    assert document.dirty is False


@pytest.mark.asyncio
async def test_transport_failure_leaves_document_untouched(settings: Settings) -> None:
    text = "```go\nx\n```"
    document = DocumentState(text=text)
    client = FakePlaygroundClient(error=PlaygroundHTTPError(500))
    actions, notices = _actions(client, settings)

    outcome = await actions.run_block(document, 0, 2)

    assert outcome.status == "failed"
    assert outcome.message == "HTTP error! status: 500"
    assert notices == ["HTTP error! status: 500"]
    assert document.text == text
    assert document.version_id == 1


@pytest.mark.asyncio
async def test_unexpected_error_uses_generic_message(settings: Settings) -> None:
    document = DocumentState(text="```go\nx\n```")
    actions, _ = _actions(FakePlaygroundClient(error=KeyError("boom")), settings)

    outcome = await actions.format_block(document, 0, 2)

    assert outcome.status == "failed"
    assert outcome.message == "Format failed."


@pytest.mark.asyncio
async def test_run_targets_block_at_its_new_position(settings: Settings) -> None:
    document = DocumentState(text="```go\nx\n```")

    def prepend_heading() -> None:
        document.update_text("# Added\n" + document.text)

    client = FakePlaygroundClient(run_output="ok", before_return=prepend_heading)
    actions, _ = _actions(client, settings)

    outcome = await actions.run_block(document, 0, 3)

    assert outcome.ok
    assert document.lines() == ["# Added", "```go", "x", "```", "", "```go-run-result", "ok", "```"]


@pytest.mark.asyncio
async def test_format_replaces_code_and_keeps_surroundings(settings: Settings) -> None:
    document = DocumentState(text="intro\n```go\nx:=1\n```\noutro")
    client = FakePlaygroundClient(format_body="x := 1\n")
    actions, notices = _actions(client, settings)

    outcome = await actions.format_block(document, 0, 4)

    assert outcome.ok
    assert document.text == "intro\n```go\nx := 1\n```\noutro"
    assert client.calls == [("format", ("x:=1", settings.format_fix_imports))]
    assert notices == ["Code block formatted."]


@pytest.mark.asyncio
async def test_format_service_error_is_reported(settings: Settings) -> None:
    text = "```go\nx:=\n```"
    document = DocumentState(text=text)
    actions, notices = _actions(FakePlaygroundClient(format_error="prog.go:1:4: expected operand"), settings)

    outcome = await actions.format_block(document, 0, 2)

    assert outcome.status == "failed"
    assert notices == ["prog.go:1:4: expected operand"]
    assert document.text == text


@pytest.mark.asyncio
async def test_format_aborts_when_code_changed_during_request(settings: Settings) -> None:
    document = DocumentState(text="```go\nx:=1\n```")

    def edit_code() -> None:
        document.update_text("```go\nx:=2\n```")

    actions, _ = _actions(FakePlaygroundClient(format_body="x := 1\n", before_return=edit_code), settings)

    outcome = await actions.format_block(document, 0, 2)

    assert outcome.status == "failed"
    assert document.text == "```go\nx:=2\n```"


@pytest.mark.asyncio
async def test_share_copies_url_when_clipboard_available(settings: Settings) -> None:
    copied: List[str] = []

    async def clipboard(text: str) -> None:
        copied.append(text)

    document = DocumentState(text="```go\nx\n```")
    actions, notices = _actions(FakePlaygroundClient(snippet_id="abc123"), settings, clipboard=clipboard)

    outcome = await actions.share_block(document, 0, 2)

    assert outcome.share_url == "https://play.example.test/p/abc123"
    assert copied == ["https://play.example.test/p/abc123"]
    assert notices == ["Share link copied to clipboard."]
    assert document.dirty is False


@pytest.mark.asyncio
async def test_share_without_clipboard_still_returns_url(settings: Settings) -> None:
    document = DocumentState(text="```go\nx\n```")
    actions, notices = _actions(FakePlaygroundClient(snippet_id="zz"), settings)

    outcome = await actions.share_block(document, 0, 2)

    assert outcome.text == "https://play.example.test/p/zz"
    assert notices == ["Share link created."]


@pytest.mark.asyncio
async def test_copy_produces_fenced_text_without_network(settings: Settings) -> None:
    copied: List[str] = []
    client = FakePlaygroundClient()
    document = DocumentState(text="```golang\na\nb\n```")
    actions, _ = _actions(client, settings, clipboard=copied.append)

    outcome = await actions.copy_block(document, 0, 3)

    assert outcome.text == "```golang\na\nb\n```"
    assert copied == ["```golang\na\nb\n```"]
    assert client.calls == []


@pytest.mark.asyncio
async def test_overlapping_action_on_same_block_is_refused(settings: Settings) -> None:
    document = DocumentState(text="```go\nx\n```")
    gate = ActionGate()
    gate.try_acquire((document.document_id, "run", 0))
    client = FakePlaygroundClient(run_output="1")
    actions, notices = _actions(client, settings, gate=gate)

    outcome = await actions.run_block(document, 0, 2)

    assert outcome.status == "busy"
    assert notices == ["Please wait for the previous action to finish."]
    assert client.calls == []


def test_gate_enforces_minimum_interval() -> None:
    now = [10.0]
    gate = ActionGate(clock=lambda: now[0])

    assert gate.try_acquire("insert", min_interval=0.5)
    gate.release("insert")
    now[0] = 10.2
    assert not gate.try_acquire("insert", min_interval=0.5)
    now[0] = 10.6
    assert gate.try_acquire("insert", min_interval=0.5)
    assert gate.is_active("insert")


@pytest.mark.asyncio
async def test_insert_snippet_at_caret(settings: Settings) -> None:
    document = DocumentState(text="# Notes\n")
    document.select_line_start(1)
    client = FakePlaygroundClient(snippet_code="package main\n")
    actions, notices = _actions(client, settings)

    outcome = await actions.insert_snippet(document, "https://play.golang.org/p/abc123")

    assert outcome.ok
    assert client.calls == [("view", "abc123")]
    assert document.text == "# Notes\n```go\npackage main\n```\n"
    assert notices == ["Snippet inserted."]


@pytest.mark.asyncio
async def test_insert_snippet_starts_new_line_mid_text(settings: Settings) -> None:
    document = DocumentState(text="abc")
    document.select_line_start(5)
    actions, _ = _actions(FakePlaygroundClient(snippet_code="x"), settings)

    await actions.insert_snippet(document, "abc123")

    assert document.text == "abc\n```go\nx\n```\n"


@pytest.mark.asyncio
async def test_insert_rejects_unparseable_reference(settings: Settings) -> None:
    document = DocumentState(text="")
    client = FakePlaygroundClient()
    actions, notices = _actions(client, settings)

    outcome = await actions.insert_snippet(document, "not a url")

    assert outcome.status == "failed"
    assert notices == ["Unable to parse snippet id."]
    assert client.calls == []


@pytest.mark.asyncio
async def test_messages_follow_locale(settings: Settings) -> None:
    settings.locale = "zh"
    document = DocumentState(text="plain text")
    actions, notices = _actions(FakePlaygroundClient(), settings)

    await actions.share_block(document, 0, 0)

    assert notices == ["未发现可分享的 Go 代码块。"]
