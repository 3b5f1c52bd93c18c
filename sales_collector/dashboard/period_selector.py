"""Select "yesterday" as a one-day range in the dashboard's Ant Design range picker.

The picker only shows two month panels. A coarse preset is clicked first so the
left panel already displays yesterday's month: "Este mês" when yesterday is in
the current month, "Últimos 30 dias" when today is the first of the month.
The day is then clicked twice, which collapses the range to that single day.

Month grids are padded with trailing days of the previous month and leading
days of the next one, so a day number such as "30" may appear twice; padding
cells are recognised by their CSS class and skipped.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from playwright.async_api import Locator, Page

from sales_collector.common.date_utils import aware_now, get_daily_report_date, is_same_month
from sales_collector.config import UiTimings

from . import page_selectors as sel
from .errors import PeriodNotFoundError
from .json_logger import JsonLogger, log_event
from .models import ReportingPeriod
from .ui_waits import settle, wait_visible

PADDING_CELL_CLASSES = (sel.PREVIOUS_MONTH_CELL_CLASS, sel.NEXT_MONTH_CELL_CLASS)


@dataclass(frozen=True)
class CoarseFilter:
    label: str
    selector: str


THIS_MONTH = CoarseFilter(label="this_month", selector=sel.COARSE_THIS_MONTH)
LAST_30_DAYS = CoarseFilter(label="last_30_days", selector=sel.COARSE_LAST_30_DAYS)


def choose_coarse_filter(today: date, yesterday: date) -> CoarseFilter:
    """Preset that brings ``yesterday``'s month into the left calendar panel."""

    return THIS_MONTH if is_same_month(today, yesterday) else LAST_30_DAYS


def is_current_month_cell(class_attr: str | None) -> bool:
    classes = (class_attr or "").split()
    return not any(padding in classes for padding in PADDING_CELL_CLASSES)


class PeriodSelector:
    def __init__(
        self,
        *,
        timings: UiTimings,
        logger: JsonLogger,
        tz: ZoneInfo | None = None,
        today_provider: Optional[Callable[[], date]] = None,
    ) -> None:
        self.timings = timings
        self.logger = logger
        self.tz = tz
        self._today_provider = today_provider or (lambda: aware_now(self.tz).date())

    async def select_yesterday(self, page: Page, *, today: date | None = None) -> ReportingPeriod:
        current = today or self._today_provider()
        yesterday = get_daily_report_date(current)
        coarse = choose_coarse_filter(current, yesterday)

        log_event(
            logger=self.logger,
            phase="period",
            message="Selecting reporting period",
            today=current.isoformat(),
            target_date=yesterday.isoformat(),
            coarse_filter=coarse.label,
        )

        await page.click(coarse.selector)
        await settle(self.timings.coarse_filter_settle_ms)

        await page.click(sel.DATE_PICKER)
        await wait_visible(
            page,
            sel.CALENDAR_RANGE_POPUP,
            timeout_ms=self.timings.calendar_popup_timeout_ms,
            description="Calendar range popup",
        )
        await settle(self.timings.calendar_open_settle_ms)

        cell = await self._find_day_cell(page, yesterday)
        if cell is None:
            raise PeriodNotFoundError(
                f"No day cell for {yesterday.isoformat()} in the left calendar panel "
                f"after applying the '{coarse.label}' preset"
            )

        day = cell.locator(sel.CALENDAR_DAY)
        await day.click()
        await settle(self.timings.day_click_pause_ms)
        await day.click()

        period = ReportingPeriod(
            start=yesterday,
            end=yesterday,
            label=f"{yesterday.isoformat()} ~ {yesterday.isoformat()}",
        )
        log_event(
            logger=self.logger,
            phase="period",
            message="Reporting period selected",
            period=period.label,
        )
        return period

    async def _find_day_cell(self, page: Page, target: date) -> Locator | None:
        wanted = str(target.day)
        cells = page.locator(sel.CALENDAR_LEFT_PANEL).locator(sel.CALENDAR_DAY_CELL)
        count = await cells.count()
        skipped_padding = 0
        for index in range(count):
            cell = cells.nth(index)
            text = ((await cell.inner_text()) or "").strip()
            if text != wanted:
                continue
            if not is_current_month_cell(await cell.get_attribute("class")):
                skipped_padding += 1
                continue
            return cell

        log_event(
            logger=self.logger,
            phase="period",
            status="warn",
            message="Target day not present in left calendar panel",
            target_day=wanted,
            scanned_cells=count,
            skipped_padding_cells=skipped_padding,
        )
        return None
