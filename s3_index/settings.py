from __future__ import annotations
"""Server settings persistence helpers."""

from dataclasses import dataclass, fields, replace
from datetime import timedelta
import json
import logging
from pathlib import Path

LOGGER = logging.getLogger(__name__)

LOG_LEVELS = ("critical", "error", "warning", "info", "debug")


@dataclass
class ServerSettings:
    """Simple container for server settings."""

    bucket: str = ""
    region: str = ""
    endpoint_url: str = ""
    profile: str = ""
    host: str = "127.0.0.1"
    port: int = 3030
    presign_expiry_seconds: int = 24 * 60 * 60
    directory_fallback: bool = True
    log_level: str = "info"
    access_log: bool = True

    @property
    def presign_expiry(self) -> timedelta:
        return timedelta(seconds=self.presign_expiry_seconds)

    def merged(self, **overrides) -> ServerSettings:
        """Return a copy with every override that is not ``None`` applied."""

        known = {item.name for item in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise TypeError(f"unknown settings: {', '.join(sorted(unknown))}")
        return sanitize(replace(self, **{k: v for k, v in overrides.items() if v is not None}))


def _positive_int(value: object, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number <= 0:
        return default
    return number


def _text(value: object, default: str) -> str:
    return value if isinstance(value, str) else default


def _flag(value: object, default: bool) -> bool:
    return value if isinstance(value, bool) else default


def sanitize(settings: ServerSettings) -> ServerSettings:
    """Replace invalid values with their defaults."""

    defaults = ServerSettings()
    port = _positive_int(settings.port, defaults.port)
    if port > 65535:
        port = defaults.port
    log_level = _text(settings.log_level, defaults.log_level).lower()
    if log_level not in LOG_LEVELS:
        log_level = defaults.log_level
    return ServerSettings(
        bucket=_text(settings.bucket, defaults.bucket),
        region=_text(settings.region, defaults.region),
        endpoint_url=_text(settings.endpoint_url, defaults.endpoint_url),
        profile=_text(settings.profile, defaults.profile),
        host=_text(settings.host, defaults.host) or defaults.host,
        port=port,
        presign_expiry_seconds=_positive_int(
            settings.presign_expiry_seconds, defaults.presign_expiry_seconds
        ),
        directory_fallback=_flag(settings.directory_fallback, defaults.directory_fallback),
        log_level=log_level,
        access_log=_flag(settings.access_log, defaults.access_log),
    )


class SettingsStorage:
    """JSON-backed persistence for :class:`ServerSettings`."""

    def __init__(self, storage_path: str | Path | None = None):
        if storage_path is None:
            storage_path = Path.home() / ".s3_index_settings.json"
        self._path = Path(storage_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> ServerSettings:
        if not self._path.exists():
            return ServerSettings()
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            LOGGER.warning("ignoring unreadable settings file %s", self._path)
            return ServerSettings()
        if not isinstance(data, dict):
            return ServerSettings()
        known = {item.name for item in fields(ServerSettings)}
        values = {key: value for key, value in data.items() if key in known}
        return sanitize(ServerSettings(**values))
