from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Sequence

from playwright.async_api import Page

from . import page_selectors as sel
from .json_logger import JsonLogger, log_event
from .models import ZERO, CollectionResult, StoreSalesRow

UNDEFINED_PERIOD = "undefined"

_NON_NUMERIC = re.compile(r"[^\d,.\-]")
_DECIMAL_PREFIX = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")
_INT_PREFIX = re.compile(r"[+-]?\d[\d.]*")

# Column order of the "Por Loja" table.
STRING_COLUMNS = {0: "store", 1: "marketplace"}
INT_COLUMNS = {2: "total_orders", 4: "valid_orders", 6: "cancelled_orders", 8: "customers"}
DECIMAL_COLUMNS = {
    3: "total_value",
    5: "valid_sales_value",
    7: "cancelled_sales_value",
    9: "sales_per_customer",
}

# Runs inside the page; returns raw strings only so parsing stays in Python.
_SNAPSHOT_SCRIPT = """
(selectors) => {
    const rangeInputs = Array.from(document.querySelectorAll(selectors.rangeInputs))
        .map((input) => input.value ?? "");
    const table = document.querySelector(selectors.table);
    if (!table) {
        return { rangeInputs, rows: null };
    }
    const rows = Array.from(table.querySelectorAll(selectors.rows)).map((row) =>
        Array.from(row.querySelectorAll("td")).map((cell) => (cell.textContent || "").trim())
    );
    return { rangeInputs, rows };
}
"""


def parse_locale_number(text: str | None) -> Decimal:
    """Parse a pt-BR formatted amount (``"R$ 1.234,56"``); anything unparseable is ``0``.

    Periods are thousands separators and the comma is the decimal mark.
    """

    if not text:
        return ZERO
    cleaned = _NON_NUMERIC.sub("", text).replace(".", "").replace(",", ".", 1)
    match = _DECIMAL_PREFIX.match(cleaned)
    if not match:
        return ZERO
    try:
        return Decimal(match.group(0))
    except (InvalidOperation, ValueError):
        return ZERO


def parse_int_cell(text: str | None) -> int:
    """Leading integer of a count cell, ignoring pt-BR thousands separators."""

    if not text:
        return 0
    match = _INT_PREFIX.match(text.strip())
    if not match:
        return 0
    try:
        return int(match.group(0).replace(".", ""))
    except ValueError:
        return 0


def period_label(range_inputs: Sequence[str] | None) -> str:
    if not range_inputs or len(range_inputs) < 2:
        return UNDEFINED_PERIOD
    return f"{range_inputs[0]} ~ {range_inputs[1]}"


def row_from_cells(cells: Sequence[str]) -> StoreSalesRow:
    def cell(index: int) -> str:
        return cells[index].strip() if index < len(cells) and cells[index] is not None else ""

    values: dict[str, Any] = {}
    for index, attr in STRING_COLUMNS.items():
        values[attr] = cell(index)
    for index, attr in INT_COLUMNS.items():
        values[attr] = parse_int_cell(cell(index))
    for index, attr in DECIMAL_COLUMNS.items():
        values[attr] = parse_locale_number(cell(index))
    return StoreSalesRow(**values)


@dataclass(frozen=True)
class TableSnapshot:
    """Raw text read from the page: date-range inputs and table body cells (``None`` when no table)."""

    range_inputs: List[str] = field(default_factory=list)
    rows: Optional[List[List[str]]] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any] | None) -> "TableSnapshot":
        payload = payload or {}
        raw_rows = payload.get("rows")
        rows = None if raw_rows is None else [[str(c or "") for c in row] for row in raw_rows]
        return cls(
            range_inputs=[str(value or "") for value in payload.get("rangeInputs") or []],
            rows=rows,
        )


def extract_from_snapshot(snapshot: TableSnapshot) -> CollectionResult:
    rows = tuple(row_from_cells(cells) for cells in (snapshot.rows or []) if len(cells) > 0)
    return CollectionResult(period=period_label(snapshot.range_inputs), rows=rows)


class TableExtractor:
    def __init__(self, *, logger: JsonLogger) -> None:
        self.logger = logger

    async def read_snapshot(self, page: Page) -> TableSnapshot:
        payload = await page.evaluate(
            _SNAPSHOT_SCRIPT,
            {
                "rangeInputs": sel.RANGE_INPUTS,
                "table": sel.DATA_TABLE,
                "rows": sel.DATA_TABLE_ROWS,
            },
        )
        return TableSnapshot.from_payload(payload)

    async def extract(self, page: Page) -> CollectionResult:
        snapshot = await self.read_snapshot(page)
        result = extract_from_snapshot(snapshot)
        log_event(
            logger=self.logger,
            phase="extract",
            status="ok" if snapshot.rows is not None else "warn",
            message="Extracted store sales table" if snapshot.rows is not None else "No data table on page",
            period=result.period,
            row_count=len(result.rows),
            total_valid_orders=result.total_valid_orders,
            total_valid_sales_value=result.total_valid_sales_value,
        )
        return result
