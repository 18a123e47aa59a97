from datetime import datetime

import pytest

from payrecon.models import Channel, LedgerRecord, PaymentRecord

LEDGER_HEADER = ["支付序号", "支付日期", "客户名", "交易类型", "实收额", "押金", "现金", "备注", "电话 1"]
WECHAT_HEADER = ["交易时间", "交易类型", "交易对方", "商品", "收/支", "金额(元)", "支付方式", "当前状态", "交易单号"]
ALIPAY_HEADER = ["交易时间", "交易分类", "交易对方", "商品说明", "收/支", "金额", "收/付款方式", "交易状态", "交易订单号"]


@pytest.fixture
def ledger_row():
    def _row(id="P001", date="2024-05-01 10:00:00", client="张三", type="服务",
             amount=100, deposit=0, cash=0, remark="", phone=""):
        return [id, date, client, type, amount, deposit, cash, remark, phone]
    return _row


@pytest.fixture
def wechat_row():
    def _row(date="2024-05-01 10:10:00", type="经营收款", counterparty="张三", direction="收入",
             amount="¥100.00", status="已收钱", id="W001"):
        return [date, type, counterparty, "/", direction, amount, "零钱", status, id]
    return _row


@pytest.fixture
def alipay_row():
    def _row(date="2024-05-01 10:10:00", category="商业服务", counterparty="李四", direction="收入",
             amount="100.00", status="交易成功", id="A001"):
        return [date, category, counterparty, "收款", direction, amount, "", status, id]
    return _row


@pytest.fixture
def ledger_grid():
    """Ledger export with banner rows above the header"""
    def _grid(*rows):
        return [["XX门店 营业流水"], [], ["导出人", "admin"], LEDGER_HEADER] + [list(r) for r in rows]
    return _grid


@pytest.fixture
def wechat_grid():
    def _grid(*rows):
        return [["微信支付账单明细"], ["微信昵称：[shop]"], [], WECHAT_HEADER] + [list(r) for r in rows]
    return _grid


@pytest.fixture
def alipay_grid():
    def _grid(*rows):
        return [["支付宝交易明细"], ALIPAY_HEADER] + [list(r) for r in rows]
    return _grid


@pytest.fixture
def make_ledger():
    def _make(id, when, amount, client="张三", deposit=0.0, type="服务", remark="",
              phone="", is_cash=False, commission=0.0, sales=None):
        amount_cents = round(amount * 100)
        deposit_cents = round(deposit * 100)
        sales_cents = amount_cents + deposit_cents if sales is None else round(sales * 100)
        return LedgerRecord(
            id=id, timestamp=when, amount_cents=amount_cents, deposit_cents=deposit_cents,
            sales_cents=sales_cents, type=type, client=client, remark=remark, phone=phone,
            is_cash=is_cash, commission_cents=round(commission * 100),
        )
    return _make


@pytest.fixture
def make_payment():
    def _make(id, when, amount, counterparty="", channel=Channel.WECHAT, type="经营收款"):
        return PaymentRecord(
            id=id, timestamp=when, amount_cents=round(amount * 100), channel=channel,
            type=type, counterparty=counterparty,
        )
    return _make


@pytest.fixture
def fixed_now():
    return datetime(2024, 5, 2, 9, 0, 0)
