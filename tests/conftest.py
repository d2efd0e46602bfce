"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from playmark.services.settings import ApiKeyCipher, ENV_VARIABLES, Settings, SettingsStore


@pytest.fixture
def sample_markdown() -> str:
    return "\n".join(
        [
            "# Demo",
            "",
            "```go",
            "package main",
            "",
            'import "fmt"',
            "",
            "func main() { fmt.Println(1) }",
            "```",
            "",
            "Trailing prose.",
        ]
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(base_url="https://play.example.test", run_result_language="go-run-result")


@pytest.fixture
def settings_store(tmp_path: Path) -> SettingsStore:
    return SettingsStore(tmp_path / "settings.json", cipher=ApiKeyCipher(tmp_path / "settings.key"))


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (*ENV_VARIABLES, "PLAYMARK_SETTINGS_PATH", "PLAYMARK_DEBUG", "PLAYMARK_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
