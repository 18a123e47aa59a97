from datetime import datetime

from payrecon.engine import run_reconciliation
from payrecon.models import Channel
from payrecon.outputs import LEDGER_COLUMNS, MATCH_COLUMNS, PAYMENT_COLUMNS, result_frames

T0 = datetime(2024, 5, 1, 10, 0)


def test_result_frames(make_ledger, make_payment, fixed_now):
    ledger = [
        make_ledger("L1", T0, 100),
        make_ledger("L2", T0, 300, client="李四"),
        make_ledger("C1", T0, 50, client="王五", is_cash=True),
    ]
    payments = [
        make_payment("P1", T0, 100, counterparty="张三"),
        make_payment("P2", T0, 20, counterparty="钱七", channel=Channel.ALIPAY),
    ]
    result = run_reconciliation(ledger, payments, cash_actual=50, now=fixed_now)
    frames = result_frames(result)

    assert set(frames) == {"summary", "matches", "missing_money", "missing_entry", "cash", "deposits"}
    assert list(frames["matches"].columns) == MATCH_COLUMNS
    assert list(frames["missing_money"].columns) == LEDGER_COLUMNS
    assert list(frames["missing_entry"].columns) == PAYMENT_COLUMNS

    assert frames["matches"].iloc[0]["ledger_id"] == "L1"
    assert frames["missing_money"]["id"].tolist() == ["L2"]
    assert frames["missing_entry"]["id"].tolist() == ["P2"]
    assert frames["missing_entry"]["channel"].tolist() == ["Alipay"]
    assert frames["cash"]["id"].tolist() == ["C1"]
    assert frames["deposits"].empty
    assert list(frames["deposits"].columns) == LEDGER_COLUMNS

    summary = dict(zip(frames["summary"]["metric"], frames["summary"]["value"]))
    assert summary["period"] == "2024年5月1日_当日对账"
    assert summary["variance"] == -280.0
    assert summary["type_a_count"] == 1
    assert summary["type_b_count"] == 1
    assert summary["total_wechat"] == 100.0
    assert summary["total_alipay"] == 20.0
