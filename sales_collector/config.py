"""
CONFIG.PY: configuration for the sales collector.

This module is the ONLY place allowed to read environment variables.

Configuration is loaded ONCE at startup via ``Config.load_from_env()`` and the
resulting frozen object is handed to every component that needs it
(SessionStore, HistoryStore, CollectionOrchestrator, the HTTP app). There is no
module-level config instance; do not call ``os.getenv`` anywhere else.

Variables are read from the process environment, with ``.env`` in the project
root (or the current directory) loaded first; OS env overrides ``.env``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parents[1]

DEFAULT_DASHBOARD_URL = "https://app.upseller.com/pt/analytics/store-sales"
DEFAULT_TIMEZONE = "America/Sao_Paulo"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


logger = logging.getLogger(__name__)


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


@dataclass(slots=True, frozen=True)
class UiTimings:
    """Timeouts and settle delays for the dashboard flow, in milliseconds."""

    navigation_timeout_ms: int = 60_000
    post_navigation_settle_ms: int = 3_000
    date_picker_timeout_ms: int = 30_000
    coarse_filter_settle_ms: int = 2_000
    calendar_popup_timeout_ms: int = 5_000
    calendar_open_settle_ms: int = 800
    day_click_pause_ms: int = 300
    period_settle_ms: int = 1_000
    group_by_settle_ms: int = 2_000
    loading_timeout_ms: int = 10_000
    data_settle_ms: int = 3_000


@dataclass(slots=True, frozen=True)
class Config:
    dashboard_url: str = DEFAULT_DASHBOARD_URL
    session_file: Path = Path("cookies.json")
    history_file: Path = Path("historico_vendas.json")
    screenshot_dir: Path = Path("screenshots")
    headless: bool = True
    chrome_executable: str = ""
    pipeline_timezone: str = DEFAULT_TIMEZONE
    browser_locale: str = "pt-BR"
    viewport_width: int = 1920
    viewport_height: int = 1080
    history_retention: int = 30
    history_default_days: int = 7
    json_log_file: str = ""
    host: str = "0.0.0.0"
    port: int = 3000
    auth_token: str = ""
    timings: UiTimings = field(default_factory=UiTimings)

    @classmethod
    def load_from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        if environ is None:
            _load_dotenv()
            environ = os.environ
        values = _Reader(environ)

        timings = UiTimings(
            navigation_timeout_ms=values.positive_int("NAV_TIMEOUT_MS", 60_000),
            date_picker_timeout_ms=values.positive_int("DATE_PICKER_TIMEOUT_MS", 30_000),
            loading_timeout_ms=values.positive_int("LOADING_TIMEOUT_MS", 10_000),
        )

        return cls(
            dashboard_url=values.url("SALES_DASHBOARD_URL", DEFAULT_DASHBOARD_URL),
            session_file=values.path("SESSION_FILE", "cookies.json"),
            history_file=values.path("HISTORY_FILE", "historico_vendas.json"),
            screenshot_dir=values.path("SCREENSHOT_DIR", "screenshots"),
            headless=values.boolean("HEADLESS", True),
            chrome_executable=values.optional("CHROME_EXECUTABLE"),
            pipeline_timezone=values.text("PIPELINE_TIMEZONE", DEFAULT_TIMEZONE),
            browser_locale=values.text("BROWSER_LOCALE", "pt-BR"),
            history_retention=values.positive_int("HISTORY_RETENTION", 30),
            history_default_days=values.positive_int("HISTORY_DEFAULT_DAYS", 7),
            json_log_file=values.optional("JSON_LOG_FILE"),
            host=values.text("HOST", "0.0.0.0"),
            port=values.positive_int("PORT", 3000),
            auth_token=values.optional("AUTH_TOKEN"),
            timings=timings,
        )

    def require_auth_token(self) -> str:
        if not self.auth_token:
            message = "Missing required environment variable: AUTH_TOKEN"
            logger.error(message)
            raise ConfigError(message)
        return self.auth_token


def _load_dotenv() -> None:
    for candidate in (PROJECT_ROOT / ".env", Path.cwd() / ".env"):
        if candidate.is_file():
            load_dotenv(candidate)
            if os.getenv("DEBUG_CONFIG") == "1":
                print("[CONFIG] Loaded .env from:", candidate)


def _parse_bool(value: str, *, key: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    message = f"Config key {key} must be a boolean string; got {value!r}"
    logger.error(message)
    raise ConfigError(message)


def _parse_int(value: str, *, key: str) -> int:
    try:
        return int(value.strip())
    except (TypeError, ValueError):
        message = f"Config key {key} must be an integer; got {value!r}"
        logger.error(message)
        raise ConfigError(message)


class _Reader:
    """Typed accessors over an environment mapping; blank values count as unset."""

    def __init__(self, environ: Mapping[str, str]) -> None:
        self._values: Dict[str, str] = {
            key: value.strip() for key, value in environ.items() if value and value.strip()
        }

    def optional(self, key: str) -> str:
        return self._values.get(key, "")

    def text(self, key: str, default: str) -> str:
        return self._values.get(key, default)

    def url(self, key: str, default: str) -> str:
        return self.text(key, default).rstrip("/")

    def path(self, key: str, default: str) -> Path:
        return Path(self.text(key, default)).expanduser()

    def boolean(self, key: str, default: bool) -> bool:
        raw = self._values.get(key)
        if raw is None:
            return default
        return _parse_bool(raw, key=key)

    def positive_int(self, key: str, default: int) -> int:
        raw = self._values.get(key)
        if raw is None:
            return default
        value = _parse_int(raw, key=key)
        if value <= 0:
            message = f"Config key {key} must be positive; got {value}"
            logger.error(message)
            raise ConfigError(message)
        return value
