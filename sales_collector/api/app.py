from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from sales_collector.common.date_utils import js_iso_timestamp, utc_now
from sales_collector.config import Config
from sales_collector.dashboard.history_store import HistoryStore
from sales_collector.dashboard.json_logger import JsonLogger, get_logger, log_event
from sales_collector.dashboard.orchestrator import CollectionOrchestrator

from .dependencies import ApiFailure
from .routers import router
from .schemas import HealthResponse


def create_app(
    config: Config | None = None,
    *,
    orchestrator: CollectionOrchestrator | None = None,
    logger: JsonLogger | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    The token is validated here so a misconfigured server refuses to start
    instead of rejecting every request.
    """

    config = config or Config.load_from_env()
    auth_token = config.require_auth_token()
    logger = logger or get_logger(log_file_path=config.json_log_file or None)
    orchestrator = orchestrator or CollectionOrchestrator(config, logger=logger)
    history_store: HistoryStore = orchestrator.history_store

    @asynccontextmanager
    async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
        history_store.initialize()
        config.screenshot_dir.mkdir(parents=True, exist_ok=True)
        log_event(
            logger=logger,
            phase="init",
            message="Sales collector API started",
            history_file=str(history_store.path),
            session_file=str(config.session_file),
            session_present=orchestrator.session_store.exists(),
        )
        try:
            yield
        finally:
            log_event(logger=logger, phase="shutdown", message="Sales collector API stopped")

    application = FastAPI(
        title="Store Sales Collector",
        version="1.0.0",
        lifespan=_lifespan,
    )
    application.state.config = config
    application.state.auth_token = auth_token
    application.state.orchestrator = orchestrator
    application.state.history_store = history_store

    @application.exception_handler(ApiFailure)
    async def _api_failure_handler(_request: Request, exc: ApiFailure) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.body.model_dump(exclude_none=True))

    application.include_router(router)

    @application.get("/health", response_model=HealthResponse)
    def healthcheck() -> HealthResponse:
        return HealthResponse(timestamp=js_iso_timestamp(utc_now()))

    return application
