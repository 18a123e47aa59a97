"""
Source Adapters

Each adapter converts one exported sheet (a grid of cells) into cleansed records.
This abstraction keeps the reconciliation engine independent of export layouts.

Supported sources:
- Ledger (ERP sales export): deposit deduction, cash detection, commission
- WeChat Pay statement: merchant collections only
- Alipay statement

Noise rows are never errors: they are dropped and counted in an IngestReport.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd

from .errors import HeaderNotFoundError
from .headers import LEDGER_FIELDS, PAYMENT_FIELDS, FieldSpec, Grid, require_columns, resolve_mapping
from .models import (
    Channel, ColumnMapping, Direction, DropReason, IngestReport,
    LedgerRecord, ParsedSource, PaymentRecord,
)
from .normalize import CellKind, cell_kind, cell_text, parse_cents, parse_timestamp, round_cents
from .settings import DEFAULT_SETTINGS, ReconSettings

logger = logging.getLogger(__name__)

# Ledger vocabulary
CASH_KEYWORD = "现金"
RECHARGE_KEYWORD = "充值"          # also covers 押金充值
UNKNOWN = "Unknown"

# Payment vocabulary
MERCHANT_COLLECTION = "经营收款"
REFUND_KEYWORD = "退款"
EXPENDITURE_MARKER = "支出"
INCOME_MARKER = "收入"

BLACKLIST_TYPES = ("提现", "红包", "转账", "充值", "理财", "服务费")
BLACKLIST_STATUS = ("关闭", "失败", "Refunded")
BLACKLIST_COUNTERPARTY = ("美团", "饿了么")    # delivery platforms: pass-through spend


# =============================================================================
# Grid helpers
# =============================================================================

def _plain(value: Any) -> Any:
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.to_pydatetime()
    if cell_kind(value) is CellKind.EMPTY:
        return None
    if hasattr(value, "item"):  # numpy scalar
        return value.item()
    return value


def grid_from_frame(df: pd.DataFrame, header_from_columns: bool = False) -> List[List[Any]]:
    """
    Convert a DataFrame into a grid of plain Python cells.

    Read sheets with header=None so banner rows stay in the grid; pass
    header_from_columns=True when the frame was read with a header row.
    """
    rows: List[List[Any]] = []
    if header_from_columns:
        rows.append([str(c) for c in df.columns])
    for values in df.astype(object).itertuples(index=False, name=None):
        rows.append([_plain(v) for v in values])
    return rows


def _is_blank(row: Sequence[Any]) -> bool:
    return not row or all(cell_kind(c) is CellKind.EMPTY for c in row)


# =============================================================================
# Base Adapter
# =============================================================================

class BaseAdapter(ABC):
    """Base class for all source adapters"""

    source: str
    fields: Tuple[FieldSpec, ...]

    def resolve(self, grid: Grid, mapping: Optional[ColumnMapping] = None) -> ColumnMapping:
        """Auto-detect (or validate a manual) mapping and check required columns"""
        if mapping is None:
            mapping = resolve_mapping(grid, self.fields, self.source)
        elif not 0 <= mapping.header_row_index < len(grid):
            raise HeaderNotFoundError(
                f"{self.source}: header row {mapping.header_row_index} is outside the sheet "
                f"({len(grid)} rows)",
                source=self.source,
            )
        require_columns(mapping, self.fields, self.source)
        return mapping

    @abstractmethod
    def parse(self, grid: Grid, mapping: Optional[ColumnMapping] = None) -> ParsedSource:
        """Parse a grid and return cleansed records with an ingest report"""

    def _cell(self, row: Sequence[Any], mapping: ColumnMapping, key: str) -> Any:
        idx = mapping.column(key)
        if idx is None or idx >= len(row):
            return None
        return row[idx]

    def _text(self, row: Sequence[Any], mapping: ColumnMapping, key: str, default: str = "") -> str:
        return cell_text(self._cell(row, mapping, key)) or default

    def _report(self, mapping: ColumnMapping, raw_rows: int, kept: int, dropped: Counter) -> IngestReport:
        report = IngestReport(
            source=self.source,
            header_row_index=mapping.header_row_index,
            raw_rows=raw_rows,
            kept_rows=kept,
            dropped=dict(dropped),
        )
        logger.info("%s: %d raw rows, %d kept", self.source, raw_rows, kept)
        if dropped:
            logger.debug("%s: dropped %s", self.source, {r.value: n for r, n in dropped.items()})
        return report


# =============================================================================
# Ledger Adapter
# =============================================================================

class LedgerAdapter(BaseAdapter):
    """
    Adapter for ERP sales exports.

    Net amount = paid amount - deposit consumed. Deposit-only and cash rows are
    kept (they feed the audit lists and cash balance); rows with no financial
    substance are dropped.
    """

    source = "Ledger"
    fields = LEDGER_FIELDS

    def __init__(self, settings: ReconSettings = DEFAULT_SETTINGS):
        self.settings = settings

    def parse(self, grid: Grid, mapping: Optional[ColumnMapping] = None) -> ParsedSource:
        mapping = self.resolve(grid, mapping)
        rows = grid[mapping.header_row_index + 1:]

        records: List[LedgerRecord] = []
        dropped: Counter = Counter()

        for idx, row in enumerate(rows):
            if _is_blank(row):
                dropped[DropReason.EMPTY_ROW] += 1
                continue

            record = self._parse_row(row, mapping, idx)
            if isinstance(record, DropReason):
                dropped[record] += 1
                continue
            records.append(record)

        return ParsedSource(
            records=tuple(records),
            report=self._report(mapping, len(rows), len(records), dropped),
        )

    def _parse_row(self, row: Sequence[Any], mapping: ColumnMapping, idx: int):
        timestamp = parse_timestamp(self._cell(row, mapping, "date"))
        raw_cents = parse_cents(self._cell(row, mapping, "amount"))
        deposit_cents = parse_cents(self._cell(row, mapping, "deposit"))
        amount_cents = raw_cents - deposit_cents

        tx_type = self._text(row, mapping, "type", UNKNOWN)
        is_cash = CASH_KEYWORD in tx_type or parse_cents(self._cell(row, mapping, "cash")) > 0

        if timestamp is None:
            return DropReason.INVALID_DATE
        if amount_cents == 0 and deposit_cents == 0 and not is_cash:
            return DropReason.NO_SUBSTANCE

        remark = self._text(row, mapping, "remark")
        commission_cents, sales_cents = self._commission(tx_type, remark, raw_cents, amount_cents, deposit_cents)

        return LedgerRecord(
            id=self._text(row, mapping, "id") or f"ERP_GEN_{idx}",
            timestamp=timestamp,
            amount_cents=amount_cents,
            deposit_cents=deposit_cents,
            sales_cents=sales_cents,
            type=tx_type,
            client=self._text(row, mapping, "client", UNKNOWN),
            remark=remark,
            phone=self._text(row, mapping, "phone"),
            is_cash=is_cash,
            commission_cents=commission_cents,
        )

    def _commission(self, tx_type: str, remark: str, raw_cents: int,
                    amount_cents: int, deposit_cents: int) -> Tuple[int, int]:
        """Return (commission, sales) in cents. Recharges earn nothing and sell nothing."""
        if RECHARGE_KEYWORD in tx_type:
            return 0, 0

        commission = 0
        for rule in self.settings.commission_rules:
            if rule.matches(remark):
                # Rate applies to the raw amount, before deposit deduction
                commission = round_cents(Decimal(raw_cents) * Decimal(str(rule.rate)))
                break
        return commission, amount_cents + deposit_cents


# =============================================================================
# Payment Adapter
# =============================================================================

class PaymentAdapter(BaseAdapter):
    """
    Adapter for WeChat Pay / Alipay statements.

    Filter pipeline (first failure drops the row):
    date -> channel rule -> type blacklist -> status blacklist
    -> counterparty blacklist -> direction (non-refund spend is dropped)
    """

    fields = PAYMENT_FIELDS

    def __init__(self, channel: Channel):
        self.channel = Channel(channel)
        self.source = self.channel.value

    def parse(self, grid: Grid, mapping: Optional[ColumnMapping] = None) -> ParsedSource:
        mapping = self.resolve(grid, mapping)
        rows = grid[mapping.header_row_index + 1:]

        records: List[PaymentRecord] = []
        dropped: Counter = Counter()

        for idx, row in enumerate(rows):
            if _is_blank(row):
                dropped[DropReason.EMPTY_ROW] += 1
                continue

            record = self._parse_row(row, mapping, idx)
            if isinstance(record, DropReason):
                dropped[record] += 1
                continue
            records.append(record)

        return ParsedSource(
            records=tuple(records),
            report=self._report(mapping, len(rows), len(records), dropped),
        )

    def _parse_row(self, row: Sequence[Any], mapping: ColumnMapping, idx: int):
        timestamp = parse_timestamp(self._cell(row, mapping, "date"))
        if timestamp is None:
            return DropReason.INVALID_DATE

        tx_type = self._text(row, mapping, "type")
        status = self._text(row, mapping, "status")
        counterparty = self._text(row, mapping, "counterparty")

        reason = self._filter(tx_type, status, counterparty)
        if reason is not None:
            return reason

        resolved = self._resolve_direction(
            self._text(row, mapping, "direction"),
            tx_type,
            parse_cents(self._cell(row, mapping, "amount")),
        )
        if resolved is None:
            return DropReason.EXPENDITURE
        direction, amount_cents = resolved

        original_id = None
        if mapping.column("id") is not None:
            original_id = self._text(row, mapping, "id")

        return PaymentRecord(
            id=f"{self.channel.value}_GEN_{idx}",
            timestamp=timestamp,
            amount_cents=amount_cents,
            channel=self.channel,
            type=tx_type,
            direction=direction,
            counterparty=counterparty,
            source_row=tuple(row),
            original_id=original_id,
        )

    def _filter(self, tx_type: str, status: str, counterparty: str) -> Optional[DropReason]:
        # WeChat mixes personal transfers with shop receipts; only the latter count
        if self.channel is Channel.WECHAT and MERCHANT_COLLECTION not in tx_type:
            return DropReason.CHANNEL_FILTER
        if any(b in tx_type for b in BLACKLIST_TYPES):
            return DropReason.BLACKLIST_TYPE
        if any(b in status for b in BLACKLIST_STATUS):
            return DropReason.BLACKLIST_STATUS
        if any(b in counterparty for b in BLACKLIST_COUNTERPARTY):
            return DropReason.BLACKLIST_COUNTERPARTY
        return None

    @staticmethod
    def _resolve_direction(raw_direction: str, tx_type: str,
                           amount_cents: int) -> Optional[Tuple[Direction, int]]:
        """Signed amount and direction, or None for spend that is out of scope"""
        if EXPENDITURE_MARKER in raw_direction:
            if REFUND_KEYWORD not in tx_type:
                return None
            return Direction.EXPENDITURE, -abs(amount_cents)
        if INCOME_MARKER in raw_direction:
            return Direction.INCOME, abs(amount_cents)
        if amount_cents < 0:
            return Direction.EXPENDITURE, amount_cents
        return Direction.INCOME, amount_cents
