from __future__ import annotations

import contextlib
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Dict

from playwright.async_api import Browser, BrowserContext, async_playwright

from sales_collector.config import Config

from .json_logger import JsonLogger, log_event


async def launch_browser(*, playwright: Any, config: Config, logger: JsonLogger) -> Browser:
    chrome_exec = (config.chrome_executable or "").strip() or None
    headless = config.headless
    launch_kwargs: Dict[str, Any] = {"headless": headless}

    if chrome_exec:
        if Path(chrome_exec).is_file():
            launch_kwargs["executable_path"] = chrome_exec
            log_event(
                logger=logger,
                phase="init",
                message="Launching Playwright with local Chrome executable",
                executable_path=chrome_exec,
                headless=headless,
            )
        else:
            log_event(
                logger=logger,
                phase="init",
                status="warn",
                message="Configured local Chrome executable missing; falling back to bundled Chromium",
                executable_path=chrome_exec,
                headless=headless,
            )
    else:
        log_event(
            logger=logger,
            phase="init",
            message="Launching Playwright with bundled Chromium",
            headless=headless,
        )

    try:
        return await playwright.chromium.launch(**launch_kwargs)
    except Exception as exc:
        if launch_kwargs.pop("executable_path", None) is not None:
            log_event(
                logger=logger,
                phase="init",
                status="warn",
                message="Local Chrome launch failed; retrying with bundled Chromium",
                executable_path=chrome_exec,
                headless=headless,
                error=str(exc),
            )
            return await playwright.chromium.launch(**launch_kwargs)
        raise


def context_options(config: Config) -> Dict[str, Any]:
    return {
        "viewport": {"width": config.viewport_width, "height": config.viewport_height},
        "locale": config.browser_locale,
        "timezone_id": config.pipeline_timezone,
    }


@asynccontextmanager
async def open_browser_context(config: Config, logger: JsonLogger) -> AsyncIterator[BrowserContext]:
    """Launch one browser for a single run and always close it on exit."""

    async with async_playwright() as playwright:
        browser = await launch_browser(playwright=playwright, config=config, logger=logger)
        try:
            context = await browser.new_context(**context_options(config))
            yield context
        finally:
            with contextlib.suppress(Exception):
                await browser.close()
            log_event(logger=logger, phase="cleanup", message="Browser closed")
