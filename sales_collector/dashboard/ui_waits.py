from __future__ import annotations

import asyncio

from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError

from .errors import UiTimeoutError
from .json_logger import JsonLogger, log_event


async def settle(delay_ms: int) -> None:
    """Unconditional wait for asynchronous rendering after a UI action."""

    if delay_ms > 0:
        await asyncio.sleep(delay_ms / 1000)


async def wait_visible(
    page: Page,
    selector: str,
    *,
    timeout_ms: int,
    description: str,
) -> None:
    try:
        await page.wait_for_selector(selector, state="visible", timeout=timeout_ms)
    except PlaywrightTimeoutError as exc:
        raise UiTimeoutError(
            f"{description} did not become visible within {timeout_ms} ms ({selector})"
        ) from exc


async def wait_hidden_tolerant(
    page: Page,
    selector: str,
    *,
    timeout_ms: int,
    logger: JsonLogger,
    phase: str,
) -> bool:
    """Wait for ``selector`` to disappear; a timeout is logged and tolerated."""

    try:
        await page.wait_for_selector(selector, state="hidden", timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        log_event(
            logger=logger,
            phase=phase,
            status="warn",
            message="Loading indicator still visible after timeout; continuing",
            selector=selector,
            timeout_ms=timeout_ms,
        )
        return False
