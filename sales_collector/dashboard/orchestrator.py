"""One collection run against the store-sales dashboard.

Stages, in order (any failure jumps to ``FAILED``)::

    START → SESSION_LOADED → NAVIGATED → AUTH_VERIFIED → CALENDAR_READY
          → PERIOD_SELECTED → GROUPED_BY_STORE → DATA_RENDERED → EXTRACTED
          → RECORDED → SUCCEEDED

Runs are serialised with an ``asyncio.Lock`` held for the whole run: the cookie
bundle and the history file are not safe for concurrent mutation, so
overlapping triggers queue behind the active one.
"""
from __future__ import annotations

import asyncio
import enum
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncContextManager, Callable, Iterator, Optional

from playwright.async_api import BrowserContext, Page, TimeoutError as PlaywrightTimeoutError

from sales_collector.common.date_utils import artifact_timestamp, get_timezone, utc_now
from sales_collector.config import Config

from . import page_selectors as sel
from .browser import open_browser_context
from .errors import ExpiredSessionError, UiTimeoutError, error_kind
from .history_store import HistoryStore
from .json_logger import JsonLogger, get_logger, log_event, new_run_id, timed_event
from .models import AuthState, AuthStatus, CollectionResult
from .period_selector import PeriodSelector
from .session_store import RELOGIN_HINT, SessionStore
from .table_extractor import TableExtractor
from .ui_waits import settle, wait_hidden_tolerant, wait_visible

BrowserFactory = Callable[[Config, JsonLogger], AsyncContextManager[BrowserContext]]


class CollectionStage(str, enum.Enum):
    START = "start"
    SESSION_LOADED = "session_loaded"
    NAVIGATED = "navigated"
    AUTH_VERIFIED = "auth_verified"
    CALENDAR_READY = "calendar_ready"
    PERIOD_SELECTED = "period_selected"
    GROUPED_BY_STORE = "grouped_by_store"
    DATA_RENDERED = "data_rendered"
    EXTRACTED = "extracted"
    RECORDED = "recorded"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


SNAPSHOT_SUCCESS = "success"
SNAPSHOT_FAILURE = "failure"


def detect_auth_status(url: str | None) -> AuthStatus:
    """The dashboard redirects unauthenticated sessions to a ``.../login`` URL."""

    final_url = url or ""
    if sel.LOGIN_URL_MARKER in final_url.lower():
        return AuthStatus(state=AuthState.LOGIN_REQUIRED, final_url=final_url)
    return AuthStatus(state=AuthState.AUTHENTICATED, final_url=final_url)


class CollectionOrchestrator:
    def __init__(
        self,
        config: Config,
        *,
        session_store: SessionStore | None = None,
        history_store: HistoryStore | None = None,
        period_selector: PeriodSelector | None = None,
        table_extractor: TableExtractor | None = None,
        browser_factory: BrowserFactory = open_browser_context,
        logger: JsonLogger | None = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config
        self.logger = logger or get_logger(log_file_path=config.json_log_file or None)
        self.session_store = session_store or SessionStore(config.session_file, logger=self.logger)
        self.history_store = history_store or HistoryStore(
            config.history_file,
            retention=config.history_retention,
            default_days=config.history_default_days,
            logger=self.logger,
        )
        self.period_selector = period_selector or PeriodSelector(
            timings=config.timings,
            logger=self.logger,
            tz=get_timezone(config.pipeline_timezone),
        )
        self.table_extractor = table_extractor or TableExtractor(logger=self.logger)
        self.browser_factory = browser_factory
        self.clock = clock or utc_now

        self.stage = CollectionStage.START
        self.failed_stage: CollectionStage | None = None
        self.last_snapshot: Path | None = None
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def collect(self, *, run_id: str | None = None) -> CollectionResult:
        run_logger = self.logger.bind(run_id=run_id or new_run_id())
        if self._lock.locked():
            log_event(
                logger=run_logger,
                phase="init",
                status="info",
                message="Another collection is in progress; waiting for it to finish",
            )
        async with self._lock:
            return await self._run(run_logger)

    @contextmanager
    def _stage(self, stage: CollectionStage, logger: JsonLogger, message: str) -> Iterator[None]:
        with timed_event(logger=logger, phase=stage.value, message=message):
            yield
        self.stage = stage

    async def _run(self, logger: JsonLogger) -> CollectionResult:
        self.stage = CollectionStage.START
        self.failed_stage = None
        self.last_snapshot = None
        timings = self.config.timings
        log_event(
            logger=logger,
            phase="init",
            message="Starting store sales collection",
            dashboard_url=self.config.dashboard_url,
        )

        try:
            with self._stage(CollectionStage.SESSION_LOADED, logger, "load persisted session"):
                session = await asyncio.to_thread(self.session_store.load)

            async with self.browser_factory(self.config, logger) as context:
                page: Page | None = None
                try:
                    await context.add_cookies(session.as_playwright())
                    page = await context.new_page()

                    with self._stage(CollectionStage.NAVIGATED, logger, "open sales dashboard"):
                        auth_status = await self.navigate(page)

                    with self._stage(CollectionStage.AUTH_VERIFIED, logger, "verify session"):
                        if not auth_status.authenticated:
                            raise ExpiredSessionError(
                                f"Session expired: dashboard redirected to {auth_status.final_url}; "
                                f"{RELOGIN_HINT}"
                            )

                    with self._stage(CollectionStage.CALENDAR_READY, logger, "wait for date picker"):
                        await wait_visible(
                            page,
                            sel.DATE_PICKER,
                            timeout_ms=timings.date_picker_timeout_ms,
                            description="Date picker",
                        )

                    with self._stage(CollectionStage.PERIOD_SELECTED, logger, "select yesterday"):
                        await self.period_selector.select_yesterday(page)
                        await settle(timings.period_settle_ms)

                    with self._stage(CollectionStage.GROUPED_BY_STORE, logger, "group by store"):
                        await page.click(sel.GROUP_BY_STORE)
                        await settle(timings.group_by_settle_ms)

                    with self._stage(CollectionStage.DATA_RENDERED, logger, "wait for table data"):
                        await self.await_data(page, logger)

                    with self._stage(CollectionStage.EXTRACTED, logger, "extract table"):
                        result = await self.table_extractor.extract(page)

                    with self._stage(CollectionStage.RECORDED, logger, "append to history"):
                        await asyncio.to_thread(self.history_store.append, result)

                    self.last_snapshot = await self.capture_snapshot(page, SNAPSHOT_SUCCESS, logger)
                except Exception:
                    self.last_snapshot = await self.capture_snapshot(page, SNAPSHOT_FAILURE, logger)
                    raise
        except Exception as exc:
            self.failed_stage = self.stage
            self.stage = CollectionStage.FAILED
            log_event(
                logger=logger,
                phase="collection",
                status="error",
                message="Store sales collection failed",
                last_stage=self.failed_stage.value,
                error_kind=error_kind(exc),
                error=str(exc),
            )
            raise

        self.stage = CollectionStage.SUCCEEDED
        log_event(
            logger=logger,
            phase="collection",
            message="Store sales collection finished",
            period=result.period,
            row_count=len(result.rows),
            total_valid_orders=result.total_valid_orders,
            total_valid_sales_value=result.total_valid_sales_value,
        )
        return result

    async def navigate(self, page: Page) -> AuthStatus:
        timings = self.config.timings
        try:
            await page.goto(
                self.config.dashboard_url,
                wait_until="domcontentloaded",
                timeout=timings.navigation_timeout_ms,
            )
        except PlaywrightTimeoutError as exc:
            raise UiTimeoutError(
                f"Dashboard navigation timed out after {timings.navigation_timeout_ms} ms"
            ) from exc
        await settle(timings.post_navigation_settle_ms)
        return detect_auth_status(page.url)

    async def await_data(self, page: Page, logger: JsonLogger) -> None:
        # Best effort: the spinner may never appear, and a hidden spinner does
        # not guarantee the table is fully populated.
        timings = self.config.timings
        await wait_hidden_tolerant(
            page,
            sel.LOADING_SPINNER,
            timeout_ms=timings.loading_timeout_ms,
            logger=logger,
            phase=CollectionStage.DATA_RENDERED.value,
        )
        await settle(timings.data_settle_ms)

    async def capture_snapshot(self, page: Page | None, status: str, logger: JsonLogger) -> Path | None:
        """Full-page screenshot for diagnostics; its own failures are logged, never raised."""

        if page is None:
            log_event(
                logger=logger,
                phase="snapshot",
                status="warn",
                message="No page available for diagnostic snapshot",
                snapshot_status=status,
            )
            return None

        screenshot_path = self.config.screenshot_dir / f"{status}_{artifact_timestamp(self.clock())}.png"
        try:
            screenshot_path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(screenshot_path), full_page=True)
        except Exception as exc:
            log_event(
                logger=logger,
                phase="snapshot",
                status="warn",
                message="Unable to capture diagnostic snapshot",
                snapshot_status=status,
                error=str(exc),
            )
            return None

        log_event(
            logger=logger,
            phase="snapshot",
            message="Diagnostic snapshot saved",
            snapshot_status=status,
            screenshot=str(screenshot_path),
        )
        return screenshot_path
