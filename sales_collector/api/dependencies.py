"""
sales_collector/api/dependencies.py

Shared FastAPI dependencies: token check and access to the run-wide components.
"""

from __future__ import annotations

import secrets

from fastapi import Request, status

from sales_collector.dashboard.history_store import HistoryStore
from sales_collector.dashboard.orchestrator import CollectionOrchestrator

from .schemas import FailureResponse

INVALID_TOKEN_MESSAGE = "Token inválido"


class ApiFailure(Exception):
    """Rendered by the app as a ``{"status": "falha", ...}`` body with ``status_code``."""

    def __init__(self, status_code: int, body: FailureResponse) -> None:
        super().__init__(body.erro)
        self.status_code = status_code
        self.body = body


def _presented_token(request: Request) -> str | None:
    header = request.headers.get("authorization") or ""
    parts = header.split(" ")
    if len(parts) > 1 and parts[1]:
        return parts[1]
    return request.query_params.get("token")


def require_token(request: Request) -> None:
    """
    Accept ``Authorization: Bearer <token>`` or a ``?token=`` query parameter.
    """

    expected: str = request.app.state.auth_token
    presented = _presented_token(request)
    if not presented or not secrets.compare_digest(presented.encode(), expected.encode()):
        raise ApiFailure(
            status.HTTP_401_UNAUTHORIZED,
            FailureResponse(erro=INVALID_TOKEN_MESSAGE),
        )


def get_orchestrator(request: Request) -> CollectionOrchestrator:
    return request.app.state.orchestrator


def get_history_store(request: Request) -> HistoryStore:
    return request.app.state.history_store
