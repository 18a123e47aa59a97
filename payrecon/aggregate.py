"""
Time-window aggregation of near-duplicate records.

A customer who pays for a service and tops up a deposit a minute later shows
up as two ledger lines (and often two payments). Records sharing an identity
whose timestamps fall within the window of the batch start are folded into
one economic event that keeps the earliest timestamp.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import timedelta
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from .adapters import UNKNOWN
from .models import LedgerRecord, PaymentRecord

T = TypeVar("T", LedgerRecord, PaymentRecord)


def aggregate(
    records: Iterable[T],
    identity: Callable[[T], Optional[str]],
    merge: Callable[[T, T], T],
    window_minutes: float,
) -> List[T]:
    """
    Fold same-identity records within window_minutes of their batch start.

    Records whose identity is None are never merged. Output: those records
    first (input order), then each identity group's batches in time order.
    """
    window = timedelta(minutes=window_minutes)
    standalone: List[T] = []
    groups: Dict[str, List[T]] = {}

    for r in records:
        key = identity(r)
        if key is None:
            standalone.append(r)
        else:
            groups.setdefault(key, []).append(r)

    result: List[T] = list(standalone)
    for group in groups.values():
        group = sorted(group, key=lambda r: r.timestamp)
        current = group[0]
        for nxt in group[1:]:
            if nxt.timestamp - current.timestamp <= window:
                current = merge(current, nxt)
            else:
                result.append(current)
                current = nxt
        result.append(current)
    return result


# -----------------------------
# Ledger
# -----------------------------
def ledger_identity(r: LedgerRecord) -> Optional[str]:
    client = r.client.strip()
    if not client or client == UNKNOWN:
        return None
    return r.client


def merge_ledger(current: LedgerRecord, nxt: LedgerRecord) -> LedgerRecord:
    tx_type = current.type
    if nxt.type not in tx_type:
        tx_type = f"{tx_type} & {nxt.type}"
    remark = current.remark
    if nxt.remark and nxt.remark not in remark:
        remark = f"{remark} | {nxt.remark}" if remark else nxt.remark

    return replace(
        current,
        id=f"{current.id}, {nxt.id}",
        amount_cents=current.amount_cents + nxt.amount_cents,
        deposit_cents=current.deposit_cents + nxt.deposit_cents,
        sales_cents=current.sales_cents + nxt.sales_cents,
        commission_cents=current.commission_cents + nxt.commission_cents,
        type=tx_type,
        remark=remark,
    )


def aggregate_ledger(records: Iterable[LedgerRecord], window_minutes: float) -> List[LedgerRecord]:
    return aggregate(records, ledger_identity, merge_ledger, window_minutes)


# -----------------------------
# Payments
# -----------------------------
def payment_identity(r: PaymentRecord) -> Optional[str]:
    return r.counterparty if r.counterparty.strip() else None


def merge_payment(current: PaymentRecord, nxt: PaymentRecord) -> PaymentRecord:
    return replace(
        current,
        id=f"{current.id}, {nxt.id}",
        amount_cents=current.amount_cents + nxt.amount_cents,
    )


def aggregate_payments(records: Iterable[PaymentRecord], window_minutes: float) -> List[PaymentRecord]:
    return aggregate(records, payment_identity, merge_payment, window_minutes)
