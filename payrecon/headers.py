"""
Header detection and column mapping for schema-less exports.

Exports put banners, account info and summaries above the real header, so the
header row is found by anchor-keyword scoring. Fields are then resolved to
column indices by exact label first and substring containment second.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import HeaderNotFoundError, MissingColumnError
from .models import ColumnMapping
from .normalize import cell_text

logger = logging.getLogger(__name__)

Grid = Sequence[Sequence[Any]]

HEADER_SCAN_LIMIT = 100
MIN_ANCHOR_SCORE = 2

ANCHORS: Tuple[str, ...] = (
    # Ledger (ERP)
    "支付日期", "实收额", "支付序号", "电话 1", "押金",
    # WeChat
    "交易时间", "收支类型", "交易类型", "金额", "明细名称",
    # Alipay
    "资金流向", "业务描述", "收/支", "商品说明", "交易分类", "交易状态", "交易订单号",
)


@dataclass(frozen=True)
class FieldSpec:
    """One semantic field: where to look for it and what to never confuse it with"""
    key: str
    candidates: Tuple[str, ...]
    exclude: Tuple[str, ...] = ()
    required: bool = False


LEDGER_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("date", ("支付日期", "Date", "Time", "时间", "日期"), required=True),
    FieldSpec("amount", ("实收额", "Amount", "Price", "金额", "实收"), exclude=("押金",), required=True),
    FieldSpec("deposit", ("押金", "Deposit", "储值")),
    FieldSpec("cash", ("现金", "Cash")),
    FieldSpec("type", ("交易类型", "Type", "类型")),
    FieldSpec("client", ("客户名", "Client", "Name", "客户")),
    FieldSpec("remark", ("备注", "Remark", "Note", "说明")),
    FieldSpec("phone", ("电话 1", "电话", "Phone", "Mobile")),
    FieldSpec("id", ("支付序号", "ID", "Order", "单号")),
)

PAYMENT_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("date", ("交易时间", "时间", "Time", "Date", "日期"), required=True),
    FieldSpec("amount", ("金额", "Amount", "Price", "实收"), required=True),
    FieldSpec("type", ("商品说明", "交易类型", "类型", "Type", "商品", "名称", "业务描述", "交易分类"),
              exclude=("收支",)),
    FieldSpec("direction", ("收/支", "收支类型", "收支", "Direction", "Status", "资金流向")),
    FieldSpec("status", ("交易状态", "状态", "Status", "当前状态")),
    FieldSpec("counterparty", ("交易对方", "对方", "Counterparty", "明细名称", "商品名称", "Name")),
    FieldSpec("id", ("交易订单号", "商家订单号", "交易单号", "单号", "Order ID", "Transaction ID")),
)


def detect_header_row(grid: Grid, anchors: Sequence[str] = ANCHORS) -> Optional[int]:
    """Index of the row with the most anchor hits, or None if the best row scores < 2"""
    best_score = 0
    best_index = -1

    for i, row in enumerate(grid[:HEADER_SCAN_LIMIT]):
        if not row:
            continue
        row_text = " ".join(cell_text(c) for c in row)
        score = sum(1 for a in anchors if a in row_text)
        if score > best_score:
            best_score = score
            best_index = i

    return best_index if best_score >= MIN_ANCHOR_SCORE else None


def get_col_index(
    headers: Sequence[Any],
    candidates: Sequence[str],
    exclude: Sequence[str] = (),
) -> Optional[int]:
    """Exact (trimmed) label match first, then the first header containing any candidate"""
    labels: List[Optional[str]] = []
    for h in headers:
        text = cell_text(h)
        if not text or any(ex in text for ex in exclude):
            labels.append(None)
        else:
            labels.append(text)

    for idx, text in enumerate(labels):
        if text is not None and text in candidates:
            return idx

    for idx, text in enumerate(labels):
        if text is not None and any(c in text for c in candidates):
            return idx
    return None


def map_columns(headers: Sequence[Any], specs: Sequence[FieldSpec]) -> Dict[str, Optional[int]]:
    return {s.key: get_col_index(headers, s.candidates, s.exclude) for s in specs}


def resolve_mapping(grid: Grid, specs: Sequence[FieldSpec], source: str) -> ColumnMapping:
    """Auto-detect the header row and map every field of specs"""
    header_idx = detect_header_row(grid)
    if header_idx is None:
        raise HeaderNotFoundError(
            f"{source}: could not find a header row in the first {HEADER_SCAN_LIMIT} rows. "
            f"Supply a manual column mapping.",
            source=source,
        )
    columns = map_columns(grid[header_idx], specs)
    logger.debug("%s: header row %d, columns %s", source, header_idx, columns)
    return ColumnMapping(header_row_index=header_idx, columns=columns)


def require_columns(mapping: ColumnMapping, specs: Sequence[FieldSpec], source: str) -> None:
    missing = [s.key for s in specs if s.required and mapping.column(s.key) is None]
    if missing:
        raise MissingColumnError(source, missing)
