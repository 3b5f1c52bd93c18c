import asyncio
import io
from datetime import date

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from sales_collector.config import UiTimings
from sales_collector.dashboard import page_selectors as sel
from sales_collector.dashboard.errors import PeriodNotFoundError, UiTimeoutError
from sales_collector.dashboard.json_logger import JsonLogger
from sales_collector.dashboard.period_selector import (
    LAST_30_DAYS,
    THIS_MONTH,
    PeriodSelector,
    choose_coarse_filter,
    is_current_month_cell,
)


class FakeDay:
    def __init__(self, cell: "FakeCell"):
        self.cell = cell

    async def click(self):
        self.cell.clicks += 1
        self.cell.page.actions.append(("click_day", self.cell.text))


class FakeCell:
    def __init__(self, page: "FakePage", text: str, classes: str):
        self.page = page
        self.text = text
        self.classes = classes
        self.clicks = 0

    async def inner_text(self):
        return f" {self.text} "

    async def get_attribute(self, name):
        assert name == "class"
        return self.classes

    def locator(self, selector):
        assert selector == sel.CALENDAR_DAY
        return FakeDay(self)


class FakeCellList:
    def __init__(self, cells):
        self.cells = cells

    async def count(self):
        return len(self.cells)

    def nth(self, index):
        return self.cells[index]


class FakePanel:
    def __init__(self, cells):
        self.cells = cells

    def locator(self, selector):
        assert selector == sel.CALENDAR_DAY_CELL
        return FakeCellList(self.cells)


class FakePage:
    def __init__(self, *, popup_times_out: bool = False):
        self.actions: list[tuple[str, str]] = []
        self.cells: list[FakeCell] = []
        self.popup_times_out = popup_times_out

    def add_month_grid(self, *, leading: range, days: int, trailing: range):
        for day in leading:
            self.cells.append(FakeCell(self, str(day), f"ant-calendar-cell {sel.PREVIOUS_MONTH_CELL_CLASS}"))
        for day in range(1, days + 1):
            self.cells.append(FakeCell(self, str(day), "ant-calendar-cell"))
        for day in trailing:
            self.cells.append(FakeCell(self, str(day), f"ant-calendar-cell {sel.NEXT_MONTH_CELL_CLASS}"))

    async def click(self, selector):
        self.actions.append(("click", selector))

    async def wait_for_selector(self, selector, *, state, timeout):
        self.actions.append(("wait", selector))
        if self.popup_times_out and selector == sel.CALENDAR_RANGE_POPUP:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")

    def locator(self, selector):
        assert selector == sel.CALENDAR_LEFT_PANEL
        return FakePanel(self.cells)


def run(coro):
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    slept: list[float] = []

    async def _no_sleep(delay, *_args, **_kwargs):
        slept.append(delay)

    monkeypatch.setattr(asyncio, "sleep", _no_sleep)
    return slept


def _selector() -> PeriodSelector:
    logger = JsonLogger(run_id="test", stream=io.StringIO(), log_file_path=None)
    return PeriodSelector(timings=UiTimings(), logger=logger)


def test_choose_coarse_filter_same_month_uses_this_month():
    assert choose_coarse_filter(date(2024, 3, 15), date(2024, 3, 14)) is THIS_MONTH


def test_choose_coarse_filter_month_rollover_uses_last_30_days():
    assert choose_coarse_filter(date(2024, 3, 1), date(2024, 2, 29)) is LAST_30_DAYS


def test_choose_coarse_filter_year_rollover_uses_last_30_days():
    assert choose_coarse_filter(date(2025, 1, 1), date(2024, 12, 31)) is LAST_30_DAYS


def test_choose_coarse_filter_same_month_number_different_year():
    assert choose_coarse_filter(date(2025, 3, 2), date(2024, 3, 1)) is LAST_30_DAYS


@pytest.mark.parametrize(
    "classes, expected",
    [
        ("ant-calendar-cell", True),
        ("ant-calendar-cell ant-calendar-today", True),
        (f"ant-calendar-cell {sel.PREVIOUS_MONTH_CELL_CLASS}", False),
        (f"ant-calendar-cell {sel.NEXT_MONTH_CELL_CLASS}", False),
        (None, True),
    ],
)
def test_is_current_month_cell(classes, expected):
    assert is_current_month_cell(classes) is expected


def test_select_yesterday_same_month_clicks_this_month_and_collapses_range(no_sleep):
    page = FakePage()
    page.add_month_grid(leading=range(26, 30), days=31, trailing=range(1, 7))

    period = run(_selector().select_yesterday(page, today=date(2024, 3, 15)))

    assert period.start == period.end == date(2024, 3, 14)
    assert page.actions[0] == ("click", sel.COARSE_THIS_MONTH)
    assert ("click", sel.DATE_PICKER) in page.actions
    assert ("wait", sel.CALENDAR_RANGE_POPUP) in page.actions
    assert page.actions[-2:] == [("click_day", "14"), ("click_day", "14")]
    clicked = [cell for cell in page.cells if cell.clicks]
    assert len(clicked) == 1 and clicked[0].clicks == 2
    assert UiTimings().day_click_pause_ms / 1000 in no_sleep


def test_select_yesterday_on_first_of_month_uses_last_30_days():
    page = FakePage()
    page.add_month_grid(leading=range(28, 32), days=29, trailing=range(1, 10))

    period = run(_selector().select_yesterday(page, today=date(2024, 3, 1)))

    assert period.start == date(2024, 2, 29)
    assert page.actions[0] == ("click", sel.COARSE_LAST_30_DAYS)


def test_select_yesterday_skips_padding_cells_with_same_day_number():
    page = FakePage()
    # Leading padding holds 30 and 31 of March ahead of April 30.
    page.add_month_grid(leading=range(28, 32), days=30, trailing=range(1, 9))

    run(_selector().select_yesterday(page, today=date(2024, 5, 1)))

    padding_30 = page.cells[2]
    real_30 = next(cell for cell in page.cells if cell.text == "30" and "month-cell" not in cell.classes)
    assert padding_30.clicks == 0
    assert real_30.clicks == 2


def test_select_yesterday_raises_when_day_missing_from_panel():
    page = FakePage()
    # Only padding cells carry the number 31; the displayed month has 30 days.
    page.add_month_grid(leading=range(29, 32), days=30, trailing=range(1, 10))

    with pytest.raises(PeriodNotFoundError):
        run(_selector().select_yesterday(page, today=date(2024, 8, 1)))

    assert all(cell.clicks == 0 for cell in page.cells)


def test_select_yesterday_popup_timeout_raises_ui_timeout():
    page = FakePage(popup_times_out=True)
    page.add_month_grid(leading=range(0), days=31, trailing=range(0))

    with pytest.raises(UiTimeoutError):
        run(_selector().select_yesterday(page, today=date(2024, 3, 15)))


def test_select_yesterday_uses_today_provider_when_not_given():
    page = FakePage()
    page.add_month_grid(leading=range(0), days=31, trailing=range(0))
    logger = JsonLogger(run_id="test", stream=io.StringIO(), log_file_path=None)
    selector = PeriodSelector(timings=UiTimings(), logger=logger, today_provider=lambda: date(2024, 1, 10))

    period = run(selector.select_yesterday(page))

    assert period.start == date(2024, 1, 9)
