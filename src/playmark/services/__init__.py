"""Service layer helpers (code block actions, settings)."""

from .actions import ActionGate, ActionOutcome, CodeBlockActions
from .settings import Settings, SettingsStore

__all__ = ["ActionGate", "ActionOutcome", "CodeBlockActions", "Settings", "SettingsStore"]
