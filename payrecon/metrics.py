from __future__ import annotations

from datetime import datetime
from typing import Dict, Sequence, Tuple

from .models import (
    Channel, DateRange, LedgerRecord, MatchedPair, PaymentRecord,
    ReconSummary, cents_to_float,
)
from .normalize import parse_cents

NO_DATA_PERIOD = "无数据期间"


def compute_summary(
    ledger: Sequence[LedgerRecord],
    payments: Sequence[PaymentRecord],
    aggregated_ledger: Sequence[LedgerRecord],
    aggregated_payments: Sequence[PaymentRecord],
    matches: Sequence[MatchedPair],
    cash_actual: float = 0.0,
) -> ReconSummary:
    """
    Headline KPIs.

    ledger/payments are the cleansed records before aggregation (all ledger
    classes, including cash and deposit-only). aggregated_ledger is the
    matchable (digital) set the match rate is measured against.
    """
    cash_actual_cents = parse_cents(cash_actual)

    erp_total = sum(r.amount_cents for r in ledger)
    digital_actual = sum(p.amount_cents for p in aggregated_payments)
    actual_total = digital_actual + cash_actual_cents
    cash_recorded = sum(r.amount_cents for r in ledger if r.is_cash)

    channel_totals: Dict[str, float] = {}
    for channel in Channel:
        channel_totals[channel.value] = cents_to_float(
            sum(p.amount_cents for p in payments if p.channel is channel)
        )

    match_rate = len(matches) / len(aggregated_ledger) if aggregated_ledger else 0.0

    return ReconSummary(
        total_revenue_erp=cents_to_float(erp_total),
        total_revenue_actual=cents_to_float(actual_total),
        total_valid_revenue=cents_to_float(sum(r.sales_cents for r in ledger)),
        channel_totals=channel_totals,
        variance=cents_to_float(actual_total - erp_total),
        cash_actual=cents_to_float(cash_actual_cents),
        cash_recorded=cents_to_float(cash_recorded),
        cash_balance=cents_to_float(cash_actual_cents - cash_recorded),
        total_commission=cents_to_float(sum(r.commission_cents for r in ledger)),
        footfall=len({r.phone for r in ledger if r.phone}),
        match_rate=match_rate,
        ledger_count=len(aggregated_ledger),
        payment_count=len(aggregated_payments),
        match_count=len(matches),
    )


def period_label(start: datetime, end: datetime) -> str:
    if start.date() == end.date():
        return f"{start.year}年{start.month}月{start.day}日_当日对账"
    if (start.year, start.month) == (end.year, end.month):
        return f"{start.year}年{start.month}月_月度对账"
    return f"{start.month}月{start.day}日 - {end.month}月{end.day}日_阶段对账"


def infer_period(
    ledger: Sequence[LedgerRecord],
    payments: Sequence[PaymentRecord],
    now: datetime,
) -> Tuple[DateRange, str]:
    """Reporting period spanned by every input record"""
    stamps = [r.timestamp for r in ledger] + [p.timestamp for p in payments]
    if not stamps:
        return DateRange(start=now, end=now), NO_DATA_PERIOD
    start, end = min(stamps), max(stamps)
    return DateRange(start=start, end=end), period_label(start, end)
