"""Async client for Go Playground compatible execution services."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping

import httpx
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

__all__ = [
    "ClientSettings",
    "CompileEvent",
    "CompileResponse",
    "FormatResponse",
    "VersionResponse",
    "PlaygroundClient",
    "PlaygroundError",
    "PlaygroundHTTPError",
    "PlaygroundResponseError",
]

LOGGER = logging.getLogger(__name__)
_COMPILE_PROTOCOL_VERSION = 2
_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class PlaygroundError(RuntimeError):
    """Base error raised when the execution service cannot satisfy a request."""

    def __init__(self, message: str, *, reason: str = "upstream_failure") -> None:
        super().__init__(message)
        self.reason = reason


class PlaygroundHTTPError(PlaygroundError):
    """Raised for any non-200 response."""

    def __init__(self, status_code: int, *, url: str | None = None) -> None:
        super().__init__(f"HTTP error! status: {status_code}", reason="http_status")
        self.status_code = status_code
        self.url = url


class PlaygroundResponseError(PlaygroundError):
    """Raised when a response body does not have the documented shape."""

    def __init__(self, message: str) -> None:
        super().__init__(message, reason="malformed_response")


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the playground client."""

    base_url: str
    request_timeout: float | None = 10.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    api_key: str = ""
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


@dataclass(slots=True, frozen=True)
class CompileEvent:
    message: str
    kind: str = "stdout"
    delay: int = 0


@dataclass(slots=True)
class CompileResponse:
    """Decoded ``/compile`` payload."""

    errors: str = ""
    events: List[CompileEvent] = field(default_factory=list)
    status: int = 0
    is_test: bool = False
    tests_failed: int = 0

    @classmethod
    def from_payload(cls, payload: Any) -> "CompileResponse":
        data = _require_mapping(payload, "compile")
        raw_events = data.get("Events") or []
        if not isinstance(raw_events, list):
            raise PlaygroundResponseError("Compile response field 'Events' must be a list")
        events: List[CompileEvent] = []
        try:
            for entry in raw_events:
                if not isinstance(entry, Mapping):
                    raise PlaygroundResponseError("Compile response event must be an object")
                events.append(
                    CompileEvent(
                        message=str(entry.get("Message") or ""),
                        kind=str(entry.get("Kind") or "stdout"),
                        delay=int(entry.get("Delay") or 0),
                    )
                )
            return cls(
                errors=str(data.get("Errors") or ""),
                events=events,
                status=int(data.get("Status") or 0),
                is_test=bool(data.get("IsTest", False)),
                tests_failed=int(data.get("TestsFailed") or 0),
            )
        except (TypeError, ValueError) as exc:
            raise PlaygroundResponseError(f"Compile response has invalid field types: {exc}") from exc


@dataclass(slots=True, frozen=True)
class FormatResponse:
    body: str = ""
    error: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "FormatResponse":
        data = _require_mapping(payload, "format")
        return cls(body=str(data.get("Body") or ""), error=str(data.get("Error") or ""))


@dataclass(slots=True, frozen=True)
class VersionResponse:
    version: str = ""
    release: str = ""
    name: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "VersionResponse":
        data = _require_mapping(payload, "version")
        return cls(
            version=str(data.get("Version") or ""),
            release=str(data.get("Release") or ""),
            name=str(data.get("Name") or ""),
        )


class PlaygroundClient:
    """Async client wrapping the playground endpoints with retry semantics."""

    def __init__(self, settings: ClientSettings, *, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._base_url = _strip_trailing_slash(settings.base_url)
        self._client = client or self._build_client(settings)

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def base_url(self) -> str:
        return self._base_url

    def update_config(self, base_url: str) -> None:
        """Point subsequent requests at ``base_url``."""

        self._base_url = _strip_trailing_slash(base_url)
        self._settings.base_url = self._base_url
        LOGGER.debug("Playground base URL set to %s", self._base_url)

    async def execute(self, code: str) -> CompileResponse:
        return await self.compile(code)

    async def compile(self, code: str, with_vet: bool = False) -> CompileResponse:
        """Compile and run ``code`` remotely."""

        request: dict[str, Any] = {"version": _COMPILE_PROTOCOL_VERSION, "body": code}
        if with_vet:
            request["withVet"] = True
        response = await self._request("POST", "/compile", json=request)
        return CompileResponse.from_payload(_decode_json(response))

    async def run(self, code: str) -> str:
        """Compile ``code`` and return its combined output text."""

        return self.get_output(await self.compile(code))

    async def format(self, code: str, fix_imports: bool = False) -> FormatResponse:
        form = {"body": code, "imports": "true" if fix_imports else "false"}
        response = await self._request("POST", "/fmt", data=form)
        return FormatResponse.from_payload(_decode_json(response))

    async def share(self, code: str) -> str:
        """Store ``code`` on the service and return the snippet id."""

        response = await self._request(
            "POST",
            "/share",
            content=code.encode("utf-8"),
            headers={"Content-Type": _FORM_CONTENT_TYPE},
        )
        snippet_id = response.text.strip()
        if not snippet_id:
            raise PlaygroundResponseError("Share response did not contain a snippet id")
        return snippet_id

    def share_url(self, snippet_id: str) -> str:
        return f"{self._base_url}/p/{snippet_id.strip()}"

    async def view(self, snippet_id: str) -> str:
        response = await self._request("GET", f"/p/{snippet_id}.go")
        return response.text

    async def download(self, snippet_id: str) -> str:
        response = await self._request("POST", f"/p/{snippet_id}.go", data={"download": "true"})
        return response.text

    async def health(self) -> str:
        response = await self._request("GET", "/_ah/health")
        return response.text

    async def version(self) -> VersionResponse:
        response = await self._request("GET", "/version")
        return VersionResponse.from_payload(_decode_json(response))

    def get_output(self, response: CompileResponse) -> str:
        """Return compile errors or the concatenated event stream."""

        if response.errors:
            return f"Compilation Error:\n{response.errors}"
        if not response.events:
            return ""
        return "".join(event.message for event in response.events)

    def has_errors(self, response: CompileResponse) -> bool:
        return bool(response.errors)

    async def aclose(self) -> None:
        """Close the underlying HTTP client to release network resources."""

        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self._base_url}{path}"
        if self._settings.debug_logging:
            LOGGER.debug("Playground request %s %s: %s", method, url, _describe_payload(kwargs))
        response: httpx.Response | None = None
        async for attempt in self._retrying():
            with attempt:
                response = await self._client.request(method, url, **kwargs)
                if response.status_code != 200:
                    raise PlaygroundHTTPError(response.status_code, url=url)
                break
        assert response is not None
        LOGGER.debug("Playground %s %s -> %s", method, path, response.status_code)
        return response

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.max_retries)),
            wait=wait_exponential(
                multiplier=self._settings.retry_min_seconds,
                max=self._settings.retry_max_seconds,
            ),
            retry=retry_if_exception(_is_retryable),
        )

    def _build_client(self, settings: ClientSettings) -> httpx.AsyncClient:
        headers = dict(settings.default_headers) if settings.default_headers else {}
        if settings.api_key:
            headers["Authorization"] = f"Bearer {settings.api_key}"
        return httpx.AsyncClient(timeout=settings.request_timeout, headers=headers, follow_redirects=True)


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    return isinstance(exc, PlaygroundHTTPError) and exc.status_code >= 500


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise PlaygroundResponseError(f"Response from {response.request.url} is not valid JSON") from exc


def _require_mapping(payload: Any, endpoint: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise PlaygroundResponseError(f"Unexpected {endpoint} response payload")
    return payload


def _describe_payload(kwargs: Mapping[str, Any]) -> str:
    for key in ("json", "data"):
        if key in kwargs:
            try:
                return json.dumps(kwargs[key], ensure_ascii=False)
            except (TypeError, ValueError):
                return repr(kwargs[key])
    content = kwargs.get("content")
    if isinstance(content, bytes):
        return f"<{len(content)} bytes>"
    return "<empty>"
