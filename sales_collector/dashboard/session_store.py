"""Persisted dashboard session (cookie bundle) shared between the login helper and collection runs."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, List

from pydantic import BaseModel, ConfigDict, ValidationError

from sales_collector.common.files import atomic_write_json

from .errors import MissingSessionError
from .json_logger import JsonLogger, log_event
from .models import AuthSession

RELOGIN_HINT = "run `python -m sales_collector login` to create a new session"


class CookieRecord(BaseModel):
    """One cookie as accepted by ``BrowserContext.add_cookies``; unknown keys are kept verbatim."""

    model_config = ConfigDict(extra="allow")

    name: str
    value: str
    domain: str | None = None
    path: str | None = None
    url: str | None = None
    expires: int | float | None = None
    httpOnly: bool | None = None
    secure: bool | None = None
    sameSite: str | None = None


def _sanitize(raw_cookies: Iterable[Any]) -> List[dict]:
    sanitized: List[dict] = []
    for cookie in raw_cookies:
        record = CookieRecord.model_validate(cookie)
        sanitized.append(record.model_dump(exclude_none=True))
    return sanitized


class SessionStore:
    def __init__(self, path: Path, *, logger: JsonLogger | None = None) -> None:
        self.path = Path(path)
        self.logger = logger

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> AuthSession:
        try:
            raw_state = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise MissingSessionError(
                f"Session file not found at {self.path}; {RELOGIN_HINT}"
            ) from None
        except OSError as exc:
            raise MissingSessionError(f"Unable to read session file {self.path}: {exc}") from exc

        try:
            state = json.loads(raw_state)
        except json.JSONDecodeError as exc:
            raise MissingSessionError(
                f"Session file {self.path} is not valid JSON; {RELOGIN_HINT}"
            ) from exc

        # Accept a bare cookie array or a full Playwright storage_state document.
        cookies = state.get("cookies") if isinstance(state, dict) else state
        if not isinstance(cookies, list):
            raise MissingSessionError(
                f"Session file {self.path} does not contain a cookie list; {RELOGIN_HINT}"
            )

        try:
            sanitized = _sanitize(cookies)
        except ValidationError as exc:
            raise MissingSessionError(
                f"Session file {self.path} has malformed cookies; {RELOGIN_HINT}"
            ) from exc

        if self.logger is not None:
            log_event(
                logger=self.logger,
                phase="session",
                message="Loaded persisted session",
                session_file=str(self.path),
                cookie_count=len(sanitized),
                cookie_domains=sorted({c.get("domain") or "" for c in sanitized}),
            )
        return AuthSession(cookies=tuple(sanitized))

    def save(self, session: AuthSession) -> Path:
        payload = _sanitize(session.cookies)
        atomic_write_json(self.path, payload)
        if self.logger is not None:
            log_event(
                logger=self.logger,
                phase="session",
                message="Session saved",
                session_file=str(self.path),
                cookie_count=len(payload),
            )
        return self.path
