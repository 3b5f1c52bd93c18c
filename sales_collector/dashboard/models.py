from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from dateutil import parser as date_parser

from sales_collector.common.date_utils import js_iso_timestamp

ZERO = Decimal("0")

# Wire names used by the history artifact and the HTTP payloads. They match the
# files written by the earlier Node tool so existing histories stay readable.
ROW_WIRE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("store", "loja"),
    ("marketplace", "marketplace"),
    ("total_orders", "totalPedidos"),
    ("total_value", "valorTotal"),
    ("valid_orders", "pedidosValidos"),
    ("valid_sales_value", "valorVendasValidas"),
    ("cancelled_orders", "pedidosCancelados"),
    ("cancelled_sales_value", "valorVendasCanceladas"),
    ("customers", "clientes"),
    ("sales_per_customer", "vendasPorCliente"),
)


def _wire_number(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _as_decimal(value: Any) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except ArithmeticError:
        return ZERO


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class AuthState(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    LOGIN_REQUIRED = "login_required"


@dataclass(frozen=True)
class AuthStatus:
    state: AuthState
    final_url: str

    @property
    def authenticated(self) -> bool:
        return self.state is AuthState.AUTHENTICATED


@dataclass(frozen=True)
class AuthSession:
    """Ordered cookie bundle as produced by ``BrowserContext.cookies()``."""

    cookies: Tuple[Dict[str, Any], ...] = ()

    def as_playwright(self) -> List[Dict[str, Any]]:
        return [dict(cookie) for cookie in self.cookies]

    def __len__(self) -> int:
        return len(self.cookies)


@dataclass(frozen=True)
class ReportingPeriod:
    start: date
    end: date
    label: str


@dataclass(frozen=True)
class StoreSalesRow:
    store: str = ""
    marketplace: str = ""
    total_orders: int = 0
    total_value: Decimal = ZERO
    valid_orders: int = 0
    valid_sales_value: Decimal = ZERO
    cancelled_orders: int = 0
    cancelled_sales_value: Decimal = ZERO
    customers: int = 0
    sales_per_customer: Decimal = ZERO

    def to_wire(self) -> Dict[str, Any]:
        return {wire: _wire_number(getattr(self, attr)) for attr, wire in ROW_WIRE_FIELDS}

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "StoreSalesRow":
        return cls(
            store=str(payload.get("loja") or ""),
            marketplace=str(payload.get("marketplace") or ""),
            total_orders=_as_int(payload.get("totalPedidos")),
            total_value=_as_decimal(payload.get("valorTotal")),
            valid_orders=_as_int(payload.get("pedidosValidos")),
            valid_sales_value=_as_decimal(payload.get("valorVendasValidas")),
            cancelled_orders=_as_int(payload.get("pedidosCancelados")),
            cancelled_sales_value=_as_decimal(payload.get("valorVendasCanceladas")),
            customers=_as_int(payload.get("clientes")),
            sales_per_customer=_as_decimal(payload.get("vendasPorCliente")),
        )


@dataclass(frozen=True)
class CollectionResult:
    period: str
    rows: Tuple[StoreSalesRow, ...] = ()

    @property
    def total_valid_orders(self) -> int:
        return sum((row.valid_orders for row in self.rows), 0)

    @property
    def total_valid_sales_value(self) -> Decimal:
        return sum((row.valid_sales_value for row in self.rows), ZERO)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "periodo": self.period,
            "detalhes": [row.to_wire() for row in self.rows],
            "pedidosValidos": self.total_valid_orders,
            "valorVendasValidas": _wire_number(self.total_valid_sales_value),
        }


@dataclass(frozen=True)
class HistoryEntry:
    timestamp: datetime
    period: str
    total_orders: int
    total_value: Decimal
    rows: Tuple[StoreSalesRow, ...] = ()

    @classmethod
    def from_result(cls, result: CollectionResult, *, timestamp: datetime) -> "HistoryEntry":
        return cls(
            timestamp=timestamp,
            period=result.period,
            total_orders=result.total_valid_orders,
            total_value=result.total_valid_sales_value,
            rows=tuple(result.rows),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "data": js_iso_timestamp(self.timestamp),
            "periodo": self.period,
            "totalPedidos": self.total_orders,
            "totalValor": _wire_number(self.total_value),
            "detalhes": [row.to_wire() for row in self.rows],
        }

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> "HistoryEntry":
        timestamp = date_parser.isoparse(str(payload["data"]))
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            timestamp=timestamp,
            period=str(payload.get("periodo") or ""),
            total_orders=_as_int(payload.get("totalPedidos")),
            total_value=_as_decimal(payload.get("totalValor")),
            rows=tuple(StoreSalesRow.from_wire(row) for row in payload.get("detalhes") or []),
        )


@dataclass(frozen=True)
class HistoryWindow:
    days: int
    entries: Sequence[HistoryEntry] = field(default_factory=tuple)

    @property
    def count(self) -> int:
        return len(self.entries)

    @property
    def average(self) -> Decimal:
        total = sum((entry.total_value for entry in self.entries), ZERO)
        return total / max(self.count, 1)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "dias": self.days,
            "coletas": self.count,
            "media": _wire_number(self.average),
            "dados": [entry.to_wire() for entry in self.entries],
        }
