from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from payrecon.normalize import (
    CellKind, cell_kind, cell_text, parse_amount, parse_cents, parse_timestamp, round_cents,
)


@pytest.mark.parametrize("raw, expected", [
    ("¥1,234.50", 1234.50),
    ("￥88", 88.0),
    ("$1,000", 1000.0),
    ("150-", -150.0),
    ("(100.00)", -100.0),
    ("15 15.00", 15.0),
    ("n/a 42.5", 42.5),
    ("100元", 100.0),
    ("  -20.5 ", -20.5),
    ("¥ 1,000.00", 1000.0),
    ("￥  88 ", 88.0),
    ("1.5e2", 150.0),
    (99, 99.0),
    (12.75, 12.75),
])
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [
    "abc", "", "   ", None, float("nan"), pd.NaT, "--",
    "\u0661\u0662\u0663",                   # Arabic-Indic digits
    "4200000000000000000000000001",         # WeChat order number in the amount column
    "1e400", 1e30, 10 ** 30, float("inf"),
])
def test_parse_amount_unparsable_is_zero(raw):
    assert parse_amount(raw) == 0.0
    assert parse_cents(raw) == 0


def test_parse_cents_rounds_half_up():
    assert parse_cents("0.005") == 1
    assert parse_cents("-0.005") == -1
    assert parse_cents(33.3) == 3330
    assert parse_cents(100) == 10000
    assert parse_cents("¥1,234.50") == 123450


def test_round_cents():
    assert round_cents(Decimal("1499.5")) == 1500
    assert round_cents(Decimal("1499.4")) == 1499
    assert round_cents(Decimal("1e40")) == 0


def test_parse_timestamp_strings():
    assert parse_timestamp("2026/2/14 18:43:39") == datetime(2026, 2, 14, 18, 43, 39)
    assert parse_timestamp("2024-05-01 10:00:00") == datetime(2024, 5, 1, 10, 0)
    assert parse_timestamp("2024年5月1日 10:00") == datetime(2024, 5, 1, 10, 0)


def test_parse_timestamp_native_values():
    assert parse_timestamp(datetime(2024, 5, 1, 10, 0)) == datetime(2024, 5, 1, 10, 0)
    assert parse_timestamp(date(2024, 5, 1)) == datetime(2024, 5, 1)
    assert parse_timestamp(pd.Timestamp("2024-05-01 10:00")) == datetime(2024, 5, 1, 10, 0)

    aware = pd.Timestamp("2024-05-01 10:00", tz="Asia/Shanghai")
    parsed = parse_timestamp(aware)
    assert parsed == datetime(2024, 5, 1, 10, 0)
    assert parsed.tzinfo is None


def test_parse_timestamp_excel_serial():
    assert parse_timestamp(45413.5) == datetime(2024, 5, 1, 12, 0)
    assert parse_timestamp(0) is None
    assert parse_timestamp(20240501) is None


@pytest.mark.parametrize("raw", [
    "not a date", "", None, float("nan"), pd.NaT, True, "10:00", "10:00:30", "9:15 PM",
])
def test_parse_timestamp_invalid(raw):
    assert parse_timestamp(raw) is None


def test_cell_kind():
    assert cell_kind(None) is CellKind.EMPTY
    assert cell_kind("   ") is CellKind.EMPTY
    assert cell_kind(float("nan")) is CellKind.EMPTY
    assert cell_kind(pd.NaT) is CellKind.EMPTY
    assert cell_kind(3) is CellKind.NUMBER
    assert cell_kind(2.5) is CellKind.NUMBER
    assert cell_kind(True) is CellKind.TEXT
    assert cell_kind("服务") is CellKind.TEXT
    assert cell_kind(datetime(2024, 5, 1)) is CellKind.DATE
    assert cell_kind(date(2024, 5, 1)) is CellKind.DATE


def test_cell_text():
    assert cell_text(13800000000.0) == "13800000000"
    assert cell_text(12.5) == "12.5"
    assert cell_text("  张三 ") == "张三"
    assert cell_text(None) == ""
    assert cell_text(float("nan")) == ""
