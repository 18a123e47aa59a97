"""
Cell normalization

Grid cells arrive untyped from the spreadsheet reader. Every cell is classified
into a CellKind first and the parsers dispatch on that kind:
- amounts: currency symbols, thousands separators, dirty multi-value cells,
  accounting parentheses and trailing minus signs
- timestamps: native dates, pandas timestamps, free-form strings, Excel serials

Parsers never raise on bad input: amounts fall back to 0, timestamps to None.
"""
from __future__ import annotations

import numbers
import re
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

import pandas as pd


class CellKind(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMPTY = "empty"


_STRIP_CHARS = re.compile(r"[¥￥$,]")
_NUMBER_PREFIX = re.compile(r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_CN_DATE = re.compile(r"([0-9]{4})年([0-9]{1,2})月([0-9]{1,2})日?")
_TIME_ONLY = re.compile(r"^[0-9]{1,2}:[0-9]{2}(?::[0-9]{2}(?:\.[0-9]+)?)?\s*(?:[AaPp][Mm])?$")

# Excel day serials between 1900-01-01 and 9999-12-31
_EXCEL_EPOCH = pd.Timestamp("1899-12-30")
_EXCEL_SERIAL_MIN = 1
_EXCEL_SERIAL_MAX = 2958465

_CENT = Decimal("0.01")

# Anything this large is an order number or a serial, not money
_MAX_AMOUNT = Decimal("1e15")


# -----------------------------
# Cell classification
# -----------------------------
def cell_kind(value: Any) -> CellKind:
    if value is None or value is pd.NaT or value is pd.NA:
        return CellKind.EMPTY
    if isinstance(value, bool):
        return CellKind.TEXT
    if isinstance(value, (datetime, date)):
        return CellKind.DATE
    if isinstance(value, numbers.Number):
        # NaN is the only value not equal to itself
        return CellKind.EMPTY if value != value else CellKind.NUMBER
    if isinstance(value, str):
        return CellKind.TEXT if value.strip() else CellKind.EMPTY
    return CellKind.TEXT


def cell_text(value: Any) -> str:
    """Trimmed display text of a cell ("" for empty cells)"""
    kind = cell_kind(value)
    if kind is CellKind.EMPTY:
        return ""
    if kind is CellKind.NUMBER:
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)
    if kind is CellKind.DATE:
        return value.isoformat()
    return str(value).strip()


# -----------------------------
# Amounts
# -----------------------------
def _amount_token(text: str) -> Optional[str]:
    s = _STRIP_CHARS.sub("", text).strip()

    # Dirty cells like "15 15.00": take the first token that reads as a number
    parts = s.split()
    if len(parts) > 1:
        for part in parts:
            if _NUMBER_PREFIX.match(part):
                s = part
                break

    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1]
    # Accounting exports write negatives as "100-"
    if s.endswith("-"):
        s = "-" + s[:-1]

    m = _NUMBER_PREFIX.match(s)
    return m.group(0) if m else None


def _to_decimal(value: Any) -> Decimal:
    kind = cell_kind(value)
    try:
        if kind is CellKind.NUMBER:
            if isinstance(value, Decimal):
                d = value
            elif isinstance(value, numbers.Integral):
                d = Decimal(int(value))
            else:
                d = Decimal(str(float(value)))
        elif kind is CellKind.TEXT:
            token = _amount_token(str(value))
            if token is None:
                return Decimal(0)
            d = Decimal(token)
        else:
            return Decimal(0)
    except (InvalidOperation, TypeError, ValueError):
        return Decimal(0)
    if not d.is_finite() or abs(d) >= _MAX_AMOUNT:
        return Decimal(0)
    return d


def parse_amount(value: Any) -> float:
    """Parse a currency cell; unparsable input yields 0.0"""
    return float(_to_decimal(value))


def parse_cents(value: Any) -> int:
    """Parse a currency cell into integer cents, rounding half-up"""
    try:
        return int(_to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP) * 100)
    except InvalidOperation:
        return 0


def round_cents(value: Decimal) -> int:
    """Round a Decimal cent quantity (e.g. a commission) to whole cents"""
    try:
        return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return 0


# -----------------------------
# Timestamps
# -----------------------------
def _to_naive(value: Any) -> datetime:
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    if value.tzinfo is not None:
        return value.replace(tzinfo=None)
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a date cell; returns None when the cell is not a usable date"""
    kind = cell_kind(value)
    if kind is CellKind.EMPTY:
        return None
    if kind is CellKind.DATE:
        return _to_naive(value)
    if kind is CellKind.NUMBER:
        try:
            serial = float(value)
        except (TypeError, ValueError):
            return None
        if not (_EXCEL_SERIAL_MIN <= serial <= _EXCEL_SERIAL_MAX):
            return None
        ts = _EXCEL_EPOCH + pd.to_timedelta(serial, unit="D")
        return _to_naive(ts.round("s"))

    text = cell_text(value)
    # pandas stamps a bare clock time with today's date
    if _TIME_ONLY.match(text):
        return None
    text = _CN_DATE.sub(r"\1-\2-\3", text)
    try:
        ts = pd.to_datetime(text, errors="coerce")
    except (ValueError, OverflowError, TypeError):
        return None
    if pd.isna(ts):
        return None
    return _to_naive(ts)
