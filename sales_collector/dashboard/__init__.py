"""Dashboard collection flow: session reuse, period selection, extraction and history."""

__all__ = ["CollectionOrchestrator", "HistoryStore", "SessionStore"]


def __getattr__(name: str):
    if name == "CollectionOrchestrator":
        from .orchestrator import CollectionOrchestrator as _orchestrator

        return _orchestrator
    if name == "HistoryStore":
        from .history_store import HistoryStore as _history_store

        return _history_store
    if name == "SessionStore":
        from .session_store import SessionStore as _session_store

        return _session_store
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
