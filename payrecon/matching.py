"""
Greedy nearest-time matching of ledger records to payment records.

For each ledger record (in time order) the unconsumed payment with the same
amount and the smallest time difference inside the window is taken. This is a
single pass, not an optimal assignment: the outcome (and hence the reported
variance) must be reproducible for a given input order, including the
first-scanned tie-break.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence, Set

from .models import LedgerRecord, MatchedPair, PaymentRecord


@dataclass(frozen=True)
class MatchOutcome:
    matches: List[MatchedPair]
    unmatched_ledger: List[LedgerRecord]       # Type A: money missing
    unmatched_payments: List[PaymentRecord]    # Type B: entry missing


def _minutes(delta: timedelta) -> float:
    return abs(delta.total_seconds()) / 60.0


def find_best_payment(
    ledger: LedgerRecord,
    payments: Sequence[PaymentRecord],
    consumed: Set[int],
    window: timedelta,
) -> Optional[int]:
    """Index of the closest same-amount payment inside the window (payments sorted by time)"""
    best_index: Optional[int] = None
    best_diff: Optional[timedelta] = None

    for i, pay in enumerate(payments):
        if i in consumed:
            continue
        # Sorted input: nothing later can be inside the window
        if pay.timestamp > ledger.timestamp + window:
            break
        if pay.timestamp < ledger.timestamp - window:
            continue
        if pay.amount_cents != ledger.amount_cents:
            continue

        diff = abs(pay.timestamp - ledger.timestamp)
        if best_diff is None or diff < best_diff:
            best_diff = diff
            best_index = i
    return best_index


def match_records(
    ledger: Sequence[LedgerRecord],
    payments: Sequence[PaymentRecord],
    window_minutes: float,
) -> MatchOutcome:
    window = timedelta(minutes=window_minutes)
    ledger_sorted = sorted(ledger, key=lambda r: r.timestamp)
    pay_sorted = sorted(payments, key=lambda r: r.timestamp)

    matches: List[MatchedPair] = []
    unmatched_ledger: List[LedgerRecord] = []
    consumed: Set[int] = set()

    for erp in ledger_sorted:
        idx = find_best_payment(erp, pay_sorted, consumed, window)
        if idx is None:
            unmatched_ledger.append(erp)
            continue
        consumed.add(idx)
        pay = pay_sorted[idx]
        matches.append(MatchedPair(
            ledger=erp,
            payment=pay,
            time_diff_minutes=_minutes(pay.timestamp - erp.timestamp),
        ))

    unmatched_payments = [p for i, p in enumerate(pay_sorted) if i not in consumed]
    return MatchOutcome(matches, unmatched_ledger, unmatched_payments)
