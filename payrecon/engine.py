"""
Reconciliation Engine

Runs one reconciliation over in-memory grids:
    ingest (ledger | each channel) -> classify -> aggregate -> match -> metrics

The engine never reads files. A run either returns a complete
ReconciliationResult or raises a ReconError; nothing partial escapes.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Mapping, Optional, Sequence, Tuple

from .adapters import LedgerAdapter, PaymentAdapter
from .aggregate import aggregate_ledger, aggregate_payments
from .errors import EmptySourceError, HeaderNotFoundError
from .headers import Grid
from .matching import match_records
from .metrics import compute_summary, infer_period
from .models import (
    Channel, ColumnMapping, IngestReport, LedgerRecord, PaymentRecord,
    ReconciliationResult,
)
from .settings import DEFAULT_SETTINGS, ReconSettings

logger = logging.getLogger(__name__)


# -----------------------------
# Classification
# -----------------------------
def classify_ledger(
    records: Sequence[LedgerRecord],
) -> Tuple[List[LedgerRecord], List[LedgerRecord], List[LedgerRecord]]:
    """Split into (cash, deposit-only, digital). Only digital records are matched."""
    cash: List[LedgerRecord] = []
    deposit_only: List[LedgerRecord] = []
    digital: List[LedgerRecord] = []
    for r in records:
        if r.is_cash:
            cash.append(r)
        elif r.amount_cents == 0:
            if r.deposit_cents > 0:
                deposit_only.append(r)
        else:
            digital.append(r)
    return cash, deposit_only, digital


# -----------------------------
# Core run
# -----------------------------
def run_reconciliation(
    ledger: Sequence[LedgerRecord],
    payments: Sequence[PaymentRecord],
    cash_actual: float = 0.0,
    settings: ReconSettings = DEFAULT_SETTINGS,
    now: Optional[datetime] = None,
    reports: Sequence[IngestReport] = (),
    skipped_sources: Sequence[str] = (),
) -> ReconciliationResult:
    """Reconcile cleansed ledger records against cleansed payment records."""
    agg_window = settings.aggregation_time_window

    cash, deposit_only, digital = classify_ledger(ledger)

    aggregated_ledger = aggregate_ledger(digital, agg_window)
    aggregated_payments = aggregate_payments(payments, agg_window)
    aggregated_cash = aggregate_ledger(cash, agg_window)
    aggregated_deposits = aggregate_ledger(deposit_only, agg_window)

    outcome = match_records(aggregated_ledger, aggregated_payments, settings.match_time_window)

    summary = compute_summary(
        ledger=ledger,
        payments=payments,
        aggregated_ledger=aggregated_ledger,
        aggregated_payments=aggregated_payments,
        matches=outcome.matches,
        cash_actual=cash_actual,
    )

    processed_at = now or datetime.now(settings.tz)
    date_range, period = infer_period(ledger, payments, processed_at.replace(tzinfo=None))

    logger.info(
        "Reconciled %s: %d ledger / %d payments, %d matched (%.1f%%), %d type A, %d type B",
        period, summary.ledger_count, summary.payment_count, summary.match_count,
        summary.match_rate * 100, len(outcome.unmatched_ledger), len(outcome.unmatched_payments),
    )

    return ReconciliationResult(
        summary=summary,
        matches=tuple(outcome.matches),
        missing_money=tuple(outcome.unmatched_ledger),
        missing_entry=tuple(outcome.unmatched_payments),
        cash_records=tuple(aggregated_cash),
        deposit_records=tuple(aggregated_deposits),
        processed_at=processed_at,
        date_range=date_range,
        inferred_period=period,
        reports=tuple(reports),
        skipped_sources=tuple(skipped_sources),
    )


def reconcile(
    ledger_grid: Grid,
    payment_grids: Mapping[Channel, Optional[Grid]],
    cash_actual: float = 0.0,
    settings: ReconSettings = DEFAULT_SETTINGS,
    ledger_mapping: Optional[ColumnMapping] = None,
    payment_mappings: Optional[Mapping[Channel, ColumnMapping]] = None,
    now: Optional[datetime] = None,
) -> ReconciliationResult:
    """
    Full pipeline on raw grids.

    Ledger ingestion errors are fatal. A payment statement whose header cannot
    be auto-detected is skipped with a warning and listed in
    result.skipped_sources; a bad manual mapping or missing
    required columns is fatal. The run aborts if either side yields no records.
    """
    payment_mappings = {Channel(k): v for k, v in (payment_mappings or {}).items()}
    reports: List[IngestReport] = []
    skipped: List[str] = []

    parsed_ledger = LedgerAdapter(settings).parse(ledger_grid, ledger_mapping)
    reports.append(parsed_ledger.report)
    if not parsed_ledger.records:
        raise EmptySourceError("Ledger: no usable records after cleansing.", source="Ledger")

    payments: List[PaymentRecord] = []
    for channel, grid in payment_grids.items():
        if grid is None:
            continue
        channel = Channel(channel)
        try:
            parsed = PaymentAdapter(channel).parse(grid, payment_mappings.get(channel))
        except HeaderNotFoundError as e:
            if channel in payment_mappings:
                raise
            logger.warning("Skipping %s statement: %s", channel.value, e)
            skipped.append(channel.value)
            continue
        reports.append(parsed.report)
        payments.extend(parsed.records)

    if not payments:
        raise EmptySourceError(
            "No usable payment records: supply at least one valid WeChat or Alipay statement.",
            source="Payments",
        )

    return run_reconciliation(
        ledger=parsed_ledger.records,
        payments=payments,
        cash_actual=cash_actual,
        settings=settings,
        now=now,
        reports=reports,
        skipped_sources=skipped,
    )
