"""
Output Formatting

Tabular views of a ReconciliationResult for display collaborators (dashboards,
report exporters). One DataFrame per view:
- summary: KPI name / value rows
- matches: ledger and payment side by side with the time difference
- missing_money / missing_entry: Type A / Type B anomalies
- cash / deposits: aggregated audit lists

Nothing is written to disk here.
"""
from __future__ import annotations

from typing import Dict, List, Sequence

import pandas as pd

from .models import LedgerRecord, PaymentRecord, ReconciliationResult

LEDGER_COLUMNS = [
    "id", "timestamp", "amount", "deposit", "sales_amount", "type",
    "client", "remark", "phone", "is_cash", "commission",
]
PAYMENT_COLUMNS = [
    "id", "timestamp", "amount", "type", "direction", "counterparty",
    "channel", "original_id",
]
MATCH_COLUMNS = [
    "ledger_id", "ledger_time", "payment_id", "payment_time", "channel",
    "amount", "client", "counterparty", "time_diff_minutes",
]


def _ledger_frame(records: Sequence[LedgerRecord]) -> pd.DataFrame:
    rows = []
    for r in records:
        row = r.to_dict()
        row["timestamp"] = r.timestamp
        rows.append(row)
    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)


def _payment_frame(records: Sequence[PaymentRecord]) -> pd.DataFrame:
    rows = []
    for p in records:
        row = p.to_dict()
        row["timestamp"] = p.timestamp
        rows.append(row)
    return pd.DataFrame(rows, columns=PAYMENT_COLUMNS)


def summary_frame(result: ReconciliationResult) -> pd.DataFrame:
    s = result.summary
    rows: List[Dict] = [
        {"metric": "period", "value": result.inferred_period},
        {"metric": "total_revenue_erp", "value": s.total_revenue_erp},
        {"metric": "total_revenue_actual", "value": s.total_revenue_actual},
        {"metric": "total_valid_revenue", "value": s.total_valid_revenue},
        {"metric": "variance", "value": s.variance},
        {"metric": "cash_balance", "value": s.cash_balance},
        {"metric": "total_commission", "value": s.total_commission},
        {"metric": "footfall", "value": s.footfall},
        {"metric": "match_rate", "value": round(s.match_rate, 4)},
        {"metric": "type_a_count", "value": len(result.missing_money)},
        {"metric": "type_b_count", "value": len(result.missing_entry)},
    ]
    for channel, total in s.channel_totals.items():
        rows.append({"metric": f"total_{channel.lower()}", "value": total})
    return pd.DataFrame(rows, columns=["metric", "value"])


def matches_frame(result: ReconciliationResult) -> pd.DataFrame:
    rows = [
        {
            "ledger_id": m.ledger.id,
            "ledger_time": m.ledger.timestamp,
            "payment_id": m.payment.id,
            "payment_time": m.payment.timestamp,
            "channel": m.payment.channel.value,
            "amount": m.ledger.amount,
            "client": m.ledger.client,
            "counterparty": m.payment.counterparty,
            "time_diff_minutes": round(m.time_diff_minutes, 2),
        }
        for m in result.matches
    ]
    return pd.DataFrame(rows, columns=MATCH_COLUMNS)


def result_frames(result: ReconciliationResult) -> Dict[str, pd.DataFrame]:
    return {
        "summary": summary_frame(result),
        "matches": matches_frame(result),
        "missing_money": _ledger_frame(result.missing_money),
        "missing_entry": _payment_frame(result.missing_entry),
        "cash": _ledger_frame(result.cash_records),
        "deposits": _ledger_frame(result.deposit_records),
    }
