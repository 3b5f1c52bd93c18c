"""Top-level package for the store sales collector."""

from typing import Any

__all__ = ["CollectionOrchestrator", "Config"]


def __getattr__(name: str) -> Any:
    if name == "CollectionOrchestrator":
        from sales_collector.dashboard.orchestrator import CollectionOrchestrator as _orchestrator

        return _orchestrator
    if name == "Config":
        from sales_collector.config import Config as _config

        return _config
    raise AttributeError(name)
