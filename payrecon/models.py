"""
Reconciliation Data Models

This module defines the core data structures for a ledger ↔ mobile-payment run:
- LedgerRecord: one cleansed accounting (ERP) line
- PaymentRecord: one cleansed WeChat / Alipay statement line
- MatchedPair / ReconciliationResult: the output snapshot of a run

Key concepts:
- Money is held as integer cents; float properties exist for display only
- Records are frozen; aggregation builds new records instead of mutating
- A result is built once per run and never partially populated
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple


def cents_to_float(cents: int) -> float:
    """Render integer cents as a 2-decimal float"""
    return round(cents / 100.0, 2)


def _freeze(obj: Any, name: str) -> None:
    # Read-only view so a frozen record cannot be changed through its dict field
    object.__setattr__(obj, name, MappingProxyType(dict(getattr(obj, name))))


# =============================================================================
# Enums
# =============================================================================

class Channel(str, Enum):
    """Payment source identifiers"""
    WECHAT = "WeChat"   # Channel A: only merchant collections are in scope
    ALIPAY = "Alipay"   # Channel B


class Direction(str, Enum):
    """Money flow direction of a payment record"""
    INCOME = "income"
    EXPENDITURE = "expenditure"   # Only refunds survive with this direction


class DropReason(str, Enum):
    """Why a raw row was discarded during ingestion"""
    EMPTY_ROW = "empty_row"
    INVALID_DATE = "invalid_date"
    NO_SUBSTANCE = "no_substance"                     # Zero net, zero deposit, not cash
    CHANNEL_FILTER = "channel_filter"                 # WeChat non-merchant transaction
    BLACKLIST_TYPE = "blacklist_type"
    BLACKLIST_STATUS = "blacklist_status"
    BLACKLIST_COUNTERPARTY = "blacklist_counterparty"
    EXPENDITURE = "expenditure"                       # Real spend, not a refund


# =============================================================================
# Core Records
# =============================================================================

@dataclass(frozen=True)
class LedgerRecord:
    """
    Cleansed ERP line.

    amount_cents is the net digital/cash flow (raw amount minus deposit used).
    sales_cents is the service value: amount + deposit for sales, 0 for recharges.
    """
    id: str
    timestamp: datetime
    amount_cents: int
    deposit_cents: int = 0
    sales_cents: int = 0
    type: str = "Unknown"
    client: str = "Unknown"
    remark: str = ""
    phone: str = ""
    is_cash: bool = False
    commission_cents: int = 0

    @property
    def amount(self) -> float:
        return cents_to_float(self.amount_cents)

    @property
    def deposit(self) -> float:
        return cents_to_float(self.deposit_cents)

    @property
    def sales_amount(self) -> float:
        return cents_to_float(self.sales_cents)

    @property
    def commission(self) -> float:
        return cents_to_float(self.commission_cents)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "amount": self.amount,
            "deposit": self.deposit,
            "sales_amount": self.sales_amount,
            "type": self.type,
            "client": self.client,
            "remark": self.remark,
            "phone": self.phone,
            "is_cash": self.is_cash,
            "commission": self.commission,
        }


@dataclass(frozen=True)
class PaymentRecord:
    """Cleansed payment-channel line. Refunds carry a negative amount."""
    id: str
    timestamp: datetime
    amount_cents: int
    channel: Channel
    type: str = ""
    direction: Direction = Direction.INCOME
    counterparty: str = ""
    source_row: Tuple[Any, ...] = ()
    original_id: Optional[str] = None

    @property
    def amount(self) -> float:
        return cents_to_float(self.amount_cents)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "amount": self.amount,
            "type": self.type,
            "direction": self.direction.value,
            "counterparty": self.counterparty,
            "channel": self.channel.value,
            "original_id": self.original_id,
        }


@dataclass(frozen=True)
class MatchedPair:
    ledger: LedgerRecord
    payment: PaymentRecord
    time_diff_minutes: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ledger": self.ledger.to_dict(),
            "payment": self.payment.to_dict(),
            "time_diff_minutes": round(self.time_diff_minutes, 2),
        }


# =============================================================================
# Ingestion
# =============================================================================

@dataclass(frozen=True)
class ColumnMapping:
    """
    Header row index plus semantic field -> column index.

    Produced by auto-detection or supplied by a manual-mapping collaborator.
    None (or a negative index) means the field is unmapped.
    """
    header_row_index: int
    columns: Mapping[str, Optional[int]] = field(default_factory=dict)

    def __post_init__(self):
        _freeze(self, "columns")

    def column(self, key: str) -> Optional[int]:
        idx = self.columns.get(key)
        if idx is None or idx < 0:
            return None
        return idx

    def to_dict(self) -> Dict[str, Any]:
        return {
            "header_row_index": self.header_row_index,
            "columns": {k: self.column(k) for k in self.columns},
        }


@dataclass(frozen=True)
class IngestReport:
    """Row accounting for one parsed source"""
    source: str
    header_row_index: int
    raw_rows: int
    kept_rows: int
    dropped: Mapping[DropReason, int] = field(default_factory=dict)

    def __post_init__(self):
        _freeze(self, "dropped")

    @property
    def dropped_rows(self) -> int:
        return sum(self.dropped.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "header_row_index": self.header_row_index,
            "raw_rows": self.raw_rows,
            "kept_rows": self.kept_rows,
            "dropped": {reason.value: n for reason, n in self.dropped.items()},
        }


@dataclass(frozen=True)
class ParsedSource:
    records: Tuple[Any, ...]
    report: IngestReport


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class DateRange:
    start: datetime
    end: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class ReconSummary:
    """Headline KPIs of a run. Money values are rendered floats."""
    total_revenue_erp: float = 0.0       # Σ ledger net amounts
    total_revenue_actual: float = 0.0    # Σ payments + counted cash
    total_valid_revenue: float = 0.0     # Σ sales amounts (excludes recharges)
    channel_totals: Mapping[str, float] = field(default_factory=dict)
    variance: float = 0.0                # actual - erp
    cash_actual: float = 0.0
    cash_recorded: float = 0.0
    cash_balance: float = 0.0            # actual cash - recorded cash
    total_commission: float = 0.0
    footfall: int = 0
    match_rate: float = 0.0              # fraction in [0, 1]
    ledger_count: int = 0
    payment_count: int = 0
    match_count: int = 0

    def __post_init__(self):
        _freeze(self, "channel_totals")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_revenue_erp": self.total_revenue_erp,
            "total_revenue_actual": self.total_revenue_actual,
            "total_valid_revenue": self.total_valid_revenue,
            "channel_totals": dict(self.channel_totals),
            "variance": self.variance,
            "cash_actual": self.cash_actual,
            "cash_recorded": self.cash_recorded,
            "cash_balance": self.cash_balance,
            "total_commission": self.total_commission,
            "footfall": self.footfall,
            "match_rate": self.match_rate,
            "ledger_count": self.ledger_count,
            "payment_count": self.payment_count,
            "match_count": self.match_count,
        }


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Immutable snapshot of one reconciliation run.

    missing_money (Type A): ledger records with no payment found.
    missing_entry (Type B): payment records with no ledger entry found.
    """
    summary: ReconSummary
    matches: Tuple[MatchedPair, ...]
    missing_money: Tuple[LedgerRecord, ...]
    missing_entry: Tuple[PaymentRecord, ...]
    cash_records: Tuple[LedgerRecord, ...]
    deposit_records: Tuple[LedgerRecord, ...]
    processed_at: datetime
    date_range: DateRange
    inferred_period: str
    reports: Tuple[IngestReport, ...] = ()
    skipped_sources: Tuple[str, ...] = ()    # Statements ignored for lack of a header

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "matches": [m.to_dict() for m in self.matches],
            "missing_money": [r.to_dict() for r in self.missing_money],
            "missing_entry": [r.to_dict() for r in self.missing_entry],
            "cash_records": [r.to_dict() for r in self.cash_records],
            "deposit_records": [r.to_dict() for r in self.deposit_records],
            "processed_at": self.processed_at.isoformat(),
            "date_range": self.date_range.to_dict(),
            "inferred_period": self.inferred_period,
            "reports": [r.to_dict() for r in self.reports],
            "skipped_sources": list(self.skipped_sources),
        }
