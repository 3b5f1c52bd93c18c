"""
sales_collector/api/routers.py

Collection trigger and history read endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from sales_collector.dashboard.errors import NoDataError, error_kind
from sales_collector.dashboard.history_store import HistoryStore
from sales_collector.dashboard.json_logger import log_event
from sales_collector.dashboard.orchestrator import CollectionOrchestrator

from .dependencies import ApiFailure, get_history_store, get_orchestrator, require_token
from .schemas import CollectionResponse, FailureResponse, HistoryResponse, LatestResponse

router = APIRouter(prefix="/api", tags=["coleta"], dependencies=[Depends(require_token)])

FAILURE_RESPONSES = {
    status.HTTP_401_UNAUTHORIZED: {"model": FailureResponse},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": FailureResponse},
}


@router.post("/coleta", response_model=CollectionResponse, responses=FAILURE_RESPONSES)
async def trigger_collection(
    orchestrator: CollectionOrchestrator = Depends(get_orchestrator),
) -> CollectionResponse:
    """
    Run one collection against the dashboard; overlapping calls wait for the active run.
    """

    try:
        result = await orchestrator.collect()
    except Exception as exc:
        log_event(
            logger=orchestrator.logger,
            phase="api",
            status="error",
            message="POST /api/coleta failed",
            error_kind=error_kind(exc),
            error=str(exc),
        )
        raise ApiFailure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            FailureResponse(erro=str(exc), tipo=error_kind(exc)),
        ) from exc

    return CollectionResponse(dados=result.to_wire())


@router.get(
    "/dados",
    response_model=LatestResponse,
    responses={**FAILURE_RESPONSES, status.HTTP_404_NOT_FOUND: {"model": FailureResponse}},
)
def latest_collection(
    history: HistoryStore = Depends(get_history_store),
) -> LatestResponse:
    try:
        entry = history.latest()
    except NoDataError as exc:
        raise ApiFailure(
            status.HTTP_404_NOT_FOUND,
            FailureResponse(erro=str(exc), tipo=exc.kind),
        ) from exc
    except Exception as exc:
        raise ApiFailure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            FailureResponse(erro=str(exc), tipo=error_kind(exc)),
        ) from exc

    return LatestResponse(dados=entry.to_wire())


@router.get("/historico", response_model=HistoryResponse, responses=FAILURE_RESPONSES)
def collection_history(
    dias: str | None = Query(default=None, description="Window in days; non-numeric values fall back to the default"),
    history: HistoryStore = Depends(get_history_store),
) -> HistoryResponse:
    try:
        window = history.query_recent(dias)
    except Exception as exc:
        raise ApiFailure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            FailureResponse(erro=str(exc), tipo=error_kind(exc)),
        ) from exc

    return HistoryResponse(**window.to_wire())
