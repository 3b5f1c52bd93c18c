from __future__ import annotations


class CollectionError(RuntimeError):
    """Base class for failures surfaced to whoever triggered a collection."""

    kind = "collection_error"

    def to_payload(self) -> dict[str, str]:
        return {"kind": self.kind, "message": str(self)}


class MissingSessionError(CollectionError):
    """No persisted session bundle exists; the interactive login must be run."""

    kind = "missing_session"


class ExpiredSessionError(CollectionError):
    """The dashboard redirected to its login page; the saved session was rejected."""

    kind = "expired_session"


class UiTimeoutError(CollectionError):
    """An expected dashboard element never appeared within its timeout."""

    kind = "ui_timeout"


class PeriodNotFoundError(CollectionError):
    """The calendar panel had no cell for the requested day."""

    kind = "period_not_found"


class NoDataError(CollectionError):
    """The history log holds no collections yet."""

    kind = "no_data"


class HistoryFileError(CollectionError):
    """The history file exists but does not hold a ``{"coletas": [...]}`` document."""

    kind = "corrupt_history"


class LoginIncompleteError(CollectionError):
    """The interactive login finished while the browser was still on the login page."""

    kind = "login_incomplete"


def error_kind(exc: BaseException) -> str:
    if isinstance(exc, CollectionError):
        return exc.kind
    return "unexpected"
