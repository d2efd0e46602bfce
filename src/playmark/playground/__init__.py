"""HTTP client for the Go Playground service."""

from .client import (
    ClientSettings,
    CompileEvent,
    CompileResponse,
    FormatResponse,
    PlaygroundClient,
    PlaygroundError,
    PlaygroundHTTPError,
    PlaygroundResponseError,
    VersionResponse,
)

__all__ = [
    "ClientSettings",
    "CompileEvent",
    "CompileResponse",
    "FormatResponse",
    "PlaygroundClient",
    "PlaygroundError",
    "PlaygroundHTTPError",
    "PlaygroundResponseError",
    "VersionResponse",
]
