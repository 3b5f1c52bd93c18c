# sales_collector/dashboard/first_login.py
from __future__ import annotations

from pathlib import Path
from typing import Callable

from playwright.sync_api import sync_playwright

from sales_collector.config import Config

from .browser import context_options
from .errors import LoginIncompleteError
from .json_logger import JsonLogger, get_logger, log_event
from .models import AuthSession
from .orchestrator import detect_auth_status
from .session_store import SessionStore


def _wait_for_enter() -> None:
    input()


def first_login_headed(
    config: Config,
    *,
    logger: JsonLogger | None = None,
    wait_for_operator: Callable[[], None] = _wait_for_enter,
) -> Path:
    """
    Opens a headed browser on the sales dashboard so the operator can log in
    (including any captcha/OTP) by hand. Once the dashboard is showing, the
    operator presses Enter and the context cookies are written to the session
    file used by every later headless run.
    """
    logger = logger or get_logger(log_file_path=config.json_log_file or None)
    store = SessionStore(config.session_file, logger=logger)

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=False)
        try:
            ctx = browser.new_context(**context_options(config))
            page = ctx.new_page()

            page.goto(config.dashboard_url)
            print("Complete the login in the browser window.")
            print("When the sales dashboard is showing, press Enter here…")
            wait_for_operator()

            if not detect_auth_status(page.url).authenticated:
                raise LoginIncompleteError(f"Login not completed; browser is still on {page.url}")

            cookies = ctx.cookies()
            saved_to = store.save(AuthSession(cookies=tuple(dict(cookie) for cookie in cookies)))
        finally:
            browser.close()

    log_event(
        logger=logger,
        phase="session",
        message="Interactive login saved session",
        session_file=str(saved_to.resolve()),
        cookie_count=len(cookies),
    )
    print(f"Saved session → {saved_to.resolve()} ({len(cookies)} cookies)")
    return saved_to


if __name__ == "__main__":
    first_login_headed(Config.load_from_env())
