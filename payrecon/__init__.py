"""Ledger ↔ mobile-payment reconciliation engine.

This package is intentionally lightweight: it takes in-memory grids of cells
(one ERP export, one or more WeChat / Alipay statements) and returns an
immutable ReconciliationResult. Reading files and rendering reports belong to
the caller:

    from payrecon import Channel, reconcile
    result = reconcile(ledger_grid, {Channel.WECHAT: wechat_grid}, cash_actual=200)
"""
from .adapters import LedgerAdapter, PaymentAdapter, grid_from_frame
from .engine import reconcile, run_reconciliation
from .errors import EmptySourceError, HeaderNotFoundError, MissingColumnError, ReconError
from .models import (
    Channel, ColumnMapping, Direction, LedgerRecord, MatchedPair, PaymentRecord,
    ReconciliationResult,
)
from .settings import DEFAULT_SETTINGS, CommissionRule, ReconSettings, load_settings, settings_from_dict

__all__ = [
    "Channel", "ColumnMapping", "CommissionRule", "DEFAULT_SETTINGS", "Direction",
    "EmptySourceError", "HeaderNotFoundError", "LedgerAdapter", "LedgerRecord",
    "MatchedPair", "MissingColumnError", "PaymentAdapter", "PaymentRecord",
    "ReconError", "ReconSettings", "ReconciliationResult", "grid_from_frame",
    "load_settings", "reconcile", "run_reconciliation", "settings_from_dict",
]
