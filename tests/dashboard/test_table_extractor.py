import asyncio
import io
import json
from decimal import Decimal

import pytest

from sales_collector.dashboard import page_selectors
from sales_collector.dashboard.json_logger import JsonLogger
from sales_collector.dashboard.models import StoreSalesRow
from sales_collector.dashboard.table_extractor import (
    UNDEFINED_PERIOD,
    TableExtractor,
    TableSnapshot,
    extract_from_snapshot,
    parse_int_cell,
    parse_locale_number,
    period_label,
    row_from_cells,
)


def run(coro):
    return asyncio.run(coro)


def _format_brl(value: Decimal) -> str:
    """Render like the dashboard does: ``-1.234.567,89``."""

    sign = "-" if value < 0 else ""
    quantized = abs(value).quantize(Decimal("0.01"))
    integer_part, _, fraction = f"{quantized:f}".partition(".")
    groups = []
    while len(integer_part) > 3:
        groups.insert(0, integer_part[-3:])
        integer_part = integer_part[:-3]
    groups.insert(0, integer_part)
    return f"{sign}{'.'.join(groups)},{fraction}"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("1.234,56", Decimal("1234.56")),
        ("R$ 12,00", Decimal("12.00")),
        ("R$ 1.234.567,89", Decimal("1234567.89")),
        ("-45,10", Decimal("-45.10")),
        ("0,5", Decimal("0.5")),
        ("300", Decimal("300")),
    ],
)
def test_parse_locale_number_handles_brazilian_formats(text, expected):
    assert parse_locale_number(text) == expected


@pytest.mark.parametrize("text", ["", None, "abc", "R$", "-", "--", "n/a"])
def test_parse_locale_number_yields_zero_for_empty_or_garbage(text):
    assert parse_locale_number(text) == Decimal("0")


@pytest.mark.parametrize(
    "value",
    ["0.00", "0.01", "9.99", "12.00", "999.99", "1000.00", "1234.56", "98765.43", "1234567.89", "-250.75"],
)
def test_parse_locale_number_recovers_formatted_values(value):
    expected = Decimal(value)
    assert parse_locale_number(_format_brl(expected)) == expected
    assert parse_locale_number(f"R$ {_format_brl(expected)}") == expected


@pytest.mark.parametrize(
    "text, expected",
    [("5", 5), (" 12 ", 12), ("1.234", 1234), ("7 pedidos", 7), ("", 0), ("abc", 0), (None, 0), ("-3", -3)],
)
def test_parse_int_cell(text, expected):
    assert parse_int_cell(text) == expected


def test_period_label_joins_two_inputs():
    assert period_label(["01/03/2024", "01/03/2024"]) == "01/03/2024 ~ 01/03/2024"


@pytest.mark.parametrize("inputs", [[], ["01/03/2024"], None])
def test_period_label_undefined_when_an_input_is_missing(inputs):
    assert period_label(inputs) == UNDEFINED_PERIOD


def test_row_from_cells_maps_fixed_columns():
    cells = [
        "Loja Centro",
        "Shopee",
        "10",
        "R$ 1.500,00",
        "8",
        "R$ 1.200,50",
        "2",
        "R$ 299,50",
        "7",
        "R$ 171,50",
    ]

    row = row_from_cells(cells)

    assert row == StoreSalesRow(
        store="Loja Centro",
        marketplace="Shopee",
        total_orders=10,
        total_value=Decimal("1500.00"),
        valid_orders=8,
        valid_sales_value=Decimal("1200.50"),
        cancelled_orders=2,
        cancelled_sales_value=Decimal("299.50"),
        customers=7,
        sales_per_customer=Decimal("171.50"),
    )


def test_row_from_cells_defaults_missing_cells():
    row = row_from_cells(["Loja Sul", "Mercado Livre", "3"])

    assert row.store == "Loja Sul"
    assert row.total_orders == 3
    assert row.total_value == Decimal("0")
    assert row.valid_orders == 0
    assert row.customers == 0
    assert row.sales_per_customer == Decimal("0")


def test_extract_from_snapshot_sums_valid_orders_and_sales():
    snapshot = TableSnapshot(
        range_inputs=["14/03/2024", "14/03/2024"],
        rows=[
            ["A", "Shopee", "6", "130,00", "5", "120,50", "1", "9,50", "5", "24,10"],
            ["B", "Shein", "3", "80,00", "3", "80,00", "0", "0,00", "2", "40,00"],
        ],
    )

    result = extract_from_snapshot(snapshot)

    assert result.period == "14/03/2024 ~ 14/03/2024"
    assert result.total_valid_orders == 8
    assert result.total_valid_sales_value == Decimal("200.50")
    assert result.total_valid_orders == sum(row.valid_orders for row in result.rows)
    assert result.total_valid_sales_value == sum(row.valid_sales_value for row in result.rows)


def test_extract_from_snapshot_skips_rows_without_cells():
    snapshot = TableSnapshot(
        range_inputs=["a", "b"],
        rows=[[], ["A", "Shopee", "1", "1,00", "1", "1,00", "0", "0,00", "1", "1,00"], []],
    )

    result = extract_from_snapshot(snapshot)

    assert len(result.rows) == 1


def test_extract_from_snapshot_without_table_has_zero_totals():
    result = extract_from_snapshot(TableSnapshot(range_inputs=[], rows=None))

    assert result.period == UNDEFINED_PERIOD
    assert result.rows == ()
    assert result.total_valid_orders == 0
    assert result.total_valid_sales_value == Decimal("0")


def test_collection_result_wire_payload_uses_recomputed_totals():
    result = extract_from_snapshot(
        TableSnapshot(
            range_inputs=["x", "y"],
            rows=[["A", "Shopee", "5", "120,50", "5", "120,50", "0", "0", "5", "24,10"]],
        )
    )

    payload = result.to_wire()

    assert payload["periodo"] == "x ~ y"
    assert payload["pedidosValidos"] == 5
    assert payload["valorVendasValidas"] == pytest.approx(120.50)
    assert payload["detalhes"][0]["loja"] == "A"
    assert payload["detalhes"][0]["vendasPorCliente"] == pytest.approx(24.10)


class FakePage:
    def __init__(self, payload):
        self.payload = payload
        self.evaluate_args = None

    async def evaluate(self, script, arg=None):
        self.evaluate_args = arg
        return self.payload


def test_table_extractor_reads_page_once_and_logs_summary():
    log_stream = io.StringIO()
    logger = JsonLogger(run_id="test", stream=log_stream, log_file_path=None)
    page = FakePage(
        {
            "rangeInputs": ["14/03/2024", "14/03/2024"],
            "rows": [["A", "Shopee", "6", "130,00", "5", "120,50", "1", "9,50", "5", "24,10"]],
        }
    )

    result = run(TableExtractor(logger=logger).extract(page))

    assert result.total_valid_orders == 5
    assert page.evaluate_args["rangeInputs"] == page_selectors.RANGE_INPUTS
    assert page.evaluate_args["table"] == page_selectors.DATA_TABLE

    logged = [json.loads(line) for line in log_stream.getvalue().splitlines() if line.strip()]
    assert logged[-1]["phase"] == "extract"
    assert logged[-1]["row_count"] == 1
    assert logged[-1]["status"] == "ok"


def test_table_extractor_warns_when_table_missing():
    log_stream = io.StringIO()
    logger = JsonLogger(run_id="test", stream=log_stream, log_file_path=None)

    result = run(TableExtractor(logger=logger).extract(FakePage({"rangeInputs": [], "rows": None})))

    assert result.rows == ()
    logged = [json.loads(line) for line in log_stream.getvalue().splitlines() if line.strip()]
    assert logged[-1]["status"] == "warn"
