"""Playground settings, their JSON file and their environment variables.

Values resolve in three layers: the settings file, then ``--set`` overrides
from the command line, then ``PLAYMARK_*`` environment variables. The
optional proxy API key never reaches the file in clear text; it is stored as
a Fernet token under ``api_key_ciphertext`` with the key kept next to the
settings file.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, get_type_hints

from cryptography.fernet import Fernet, InvalidToken

__all__ = [
    "ENV_VARIABLES",
    "ApiKeyCipher",
    "Settings",
    "SettingsStore",
    "coerce_setting",
    "environment_overrides",
    "parse_bool",
    "parse_language_list",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)
_DEFAULT_SETTINGS_PATH = Path.home() / ".playmark" / "settings.json"
_SETTINGS_VERSION = 1
_API_KEY_FIELD = "api_key_ciphertext"
_TOKEN_PREFIX = "fernet:"
_TRUE_VALUES = frozenset({"1", "true", "yes", "on", "debug"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", "disabled"})

ENV_VARIABLES: Mapping[str, str] = {
    "PLAYMARK_BASE_URL": "base_url",
    "PLAYMARK_LANGUAGES": "code_block_languages",
    "PLAYMARK_RESULT_LANGUAGE": "run_result_language",
    "PLAYMARK_FIX_IMPORTS": "format_fix_imports",
    "PLAYMARK_REQUEST_TIMEOUT": "request_timeout",
    "PLAYMARK_MAX_RETRIES": "max_retries",
    "PLAYMARK_API_KEY": "api_key",
    "PLAYMARK_LOCALE": "locale",
    "PLAYMARK_DEBUG_LOGGING": "debug_logging",
}


@dataclass(slots=True)
class Settings:
    """Playground endpoint, fence tags and request policy."""

    base_url: str = "https://play.golang.org"
    code_block_languages: list[str] = field(default_factory=lambda: ["go", "golang"])
    run_result_language: str = "golang-run-result"
    format_fix_imports: bool = True
    request_timeout: float = 10.0
    max_retries: int = 3
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    api_key: str = ""
    default_headers: dict[str, str] = field(default_factory=dict)
    locale: str = "en"
    insert_interval_seconds: float = 0.5
    debug_logging: bool = False


class ApiKeyCipher:
    """Encrypt the API key with a Fernet key created on first use."""

    def __init__(self, key_path: Path) -> None:
        self.key_path = key_path
        self._fernet: Fernet | None = None

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        token = self._get_fernet().encrypt(secret.encode("utf-8"))
        return _TOKEN_PREFIX + token.decode("ascii")

    def decrypt(self, token: str) -> str:
        """Return the key stored in ``token``; raise ``ValueError`` when it is unreadable."""

        if not token:
            return ""
        if not token.startswith(_TOKEN_PREFIX):
            raise ValueError("API key token has an unknown format")
        try:
            raw = self._get_fernet().decrypt(token[len(_TOKEN_PREFIX):].encode("ascii"))
        except InvalidToken as exc:
            raise ValueError("API key token does not match the key file") from exc
        return raw.decode("utf-8")

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_key())
        return self._fernet

    def _load_or_create_key(self) -> bytes:
        if self.key_path.exists():
            return self.key_path.read_bytes().strip()
        key = Fernet.generate_key()
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.key_path.with_suffix(".tmp")
        tmp_path.write_bytes(key)
        if os.name != "nt":  # pragma: no cover - depends on OS
            os.chmod(tmp_path, 0o600)
        tmp_path.replace(self.key_path)
        LOGGER.debug("Created API key file %s", self.key_path)
        return key


class SettingsStore:
    """Reads and writes :class:`Settings` as a versioned JSON object."""

    def __init__(self, path: Path | None = None, *, cipher: ApiKeyCipher | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH
        self._cipher = cipher or ApiKeyCipher(self._path.with_suffix(".key"))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def cipher(self) -> ApiKeyCipher:
        return self._cipher

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Read the file, then apply ``overrides`` and the environment on top."""

        settings = self._from_payload(self._read_payload())
        if overrides:
            settings = _apply(settings, overrides, source="CLI")
        return _apply(settings, environment_overrides(), source="environment")

    def save(self, settings: Settings) -> Path:
        payload = asdict(settings)
        token = self._cipher.encrypt(payload.pop("api_key"))
        if token:
            payload[_API_KEY_FIELD] = token
        payload["version"] = _SETTINGS_VERSION
        body = json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body + "\n", encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _from_payload(self, payload: Dict[str, Any]) -> Settings:
        if not payload:
            return Settings()
        version = payload.get("version")
        if version != _SETTINGS_VERSION:
            LOGGER.info(
                "Settings file %s has version %r; reading it as version %s",
                self._path,
                version,
                _SETTINGS_VERSION,
            )

        allowed = {item.name for item in fields(Settings)} - {"api_key"}
        data = {key: value for key, value in payload.items() if key in allowed}
        if "code_block_languages" in data:
            data["code_block_languages"] = parse_language_list(data["code_block_languages"])
        try:
            settings = Settings(**data)
        except TypeError as exc:
            LOGGER.warning("Settings file %s contained unexpected data: %s", self._path, exc)
            settings = Settings()

        token = payload.get(_API_KEY_FIELD)
        if isinstance(token, str) and token:
            try:
                settings = replace(settings, api_key=self._cipher.decrypt(token))
            except ValueError as exc:
                LOGGER.warning("Ignoring stored API key: %s", exc)
        return settings

    def _read_payload(self) -> Dict[str, Any]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(payload, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return payload


def environment_overrides(environ: Mapping[str, str] | None = None) -> Dict[str, Any]:
    """Return typed settings values from the ``PLAYMARK_*`` variables that are set."""

    source = os.environ if environ is None else environ
    overrides: Dict[str, Any] = {}
    for env_name, field_name in ENV_VARIABLES.items():
        raw = source.get(env_name)
        if raw is None:
            continue
        try:
            overrides[field_name] = coerce_setting(field_name, raw)
        except ValueError as exc:
            LOGGER.warning("Ignoring %s: %s", env_name, exc)
    return overrides


def coerce_setting(name: str, raw: str) -> Any:
    """Convert the text ``raw`` to the type of the ``name`` field."""

    hints = get_type_hints(Settings)
    if name not in hints:
        raise ValueError(f"Unknown setting '{name}'.")
    target = getattr(hints[name], "__origin__", hints[name])
    value = raw.strip()
    if target is bool:
        return parse_bool(value)
    if target is int:
        return int(value, 10)
    if target is float:
        return float(value)
    if target is list:
        if value.startswith("["):
            return parse_language_list(_load_json(value, list))
        return parse_language_list(value)
    if target is dict:
        return _load_json(value or "{}", dict)
    return value


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"Cannot coerce '{value}' to a boolean.")


def parse_language_list(value: str | Iterable[Any] | None) -> List[str]:
    """Split and trim a language list given as ``"go, golang"`` or a sequence."""

    if value is None:
        return []
    items: Iterable[Any] = value.split(",") if isinstance(value, str) else value
    return [text for text in (str(item).strip() for item in items) if text]


def redact_secret(value: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"


def _apply(settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
    allowed = {item.name for item in fields(Settings)}
    filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
    if "code_block_languages" in filtered:
        filtered["code_block_languages"] = parse_language_list(filtered["code_block_languages"])
    if not filtered:
        return settings
    LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
    return replace(settings, **filtered)


def _load_json(value: str, expected: type) -> Any:
    try:
        payload = json.loads(value)
    except json.JSONDecodeError as exc:
        raise ValueError(f"'{value}' is not valid JSON") from exc
    if not isinstance(payload, expected):
        raise ValueError(f"'{value}' is not a JSON {expected.__name__}")
    return payload
