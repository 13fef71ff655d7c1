"""Unit tests for interest accrual"""

import pytest
from datetime import date
from decimal import Decimal
from billing_gateway.domain.interest import (
    calculate_pmt,
    calculate_total_interest,
    contract_total_interest,
    infer_daily_interest,
    interest_received,
    overdue_penalty,
    pending_interest,
    price_table,
    split_amount,
)
from billing_gateway.domain.installments import originate_contract
from billing_gateway.domain.models import Cadence, InterestMode
from billing_gateway.domain.reconciliation import apply_payment, assess_late_fee, pay_late_fee
from conftest import make_terms


@pytest.mark.parametrize(
    "mode,count,expected",
    [
        (InterestMode.PER_INSTALLMENT, 12, Decimal("720.00")),
        (InterestMode.ON_TOTAL, 12, Decimal("60.00")),
        (InterestMode.COMPOUND, 2, Decimal("123.00")),
    ],
)
def test_calculate_total_interest_modes(mode, count, expected):
    assert calculate_total_interest(Decimal("1200"), Decimal("5"), mode, count) == expected


def test_proportional_interest_prorates_by_days():
    """3% a month over 30 days on 1000 is 30.00"""
    interest = calculate_total_interest(
        Decimal("1000"),
        Decimal("3"),
        InterestMode.PROPORTIONAL,
        1,
        start_date=date(2024, 1, 1),
        due_date=date(2024, 1, 31),
    )
    assert interest == Decimal("30.00")


def test_proportional_interest_charges_at_least_one_day():
    interest = calculate_total_interest(
        Decimal("1000"),
        Decimal("3"),
        InterestMode.PROPORTIONAL,
        1,
        start_date=date(2024, 1, 1),
        due_date=date(2024, 1, 1),
    )
    assert interest == Decimal("1.00")


def test_proportional_interest_requires_dates():
    with pytest.raises(ValueError):
        calculate_total_interest(Decimal("1000"), Decimal("3"), InterestMode.PROPORTIONAL, 1)


def test_infer_daily_interest():
    assert infer_daily_interest(Decimal("1000"), Decimal("900"), Decimal("300")) == Decimal("200")
    # Never negative
    assert infer_daily_interest(Decimal("1000"), Decimal("0"), Decimal("500")) == Decimal("0")


def test_daily_contract_interest_is_inferred_not_rate_based():
    dates = [date(2024, 5, 27), date(2024, 5, 28), date(2024, 5, 29), date(2024, 5, 30)]
    contract = originate_contract(
        make_terms(principal="1000", rate="20", count=4, cadence=Cadence.DAILY, dates=dates, total_repayment="1200")
    )
    apply_payment(contract, 1, Decimal("300"), date(2024, 5, 27), "pay-1")

    # 900 still owed + 300 paid - 1000 principal; the 20% rate is ignored
    assert contract_total_interest(contract) == Decimal("200")


def test_split_amount_pro_rata():
    principal_part, interest_part = split_amount(Decimal("160"), Decimal("1200"), Decimal("720"))

    assert principal_part == Decimal("100.00")
    assert interest_part == Decimal("60.00")


def test_split_amount_caps_interest_at_outstanding():
    principal_part, interest_part = split_amount(
        Decimal("500"), Decimal("1200"), Decimal("720"), interest_outstanding=Decimal("30")
    )

    assert interest_part == Decimal("30")
    assert principal_part == Decimal("470")


def test_split_amount_without_interest():
    assert split_amount(Decimal("100"), Decimal("300"), Decimal("0")) == (Decimal("100"), Decimal("0"))


def test_pending_interest_reads_paid_rows(interest_contract):
    apply_payment(interest_contract, 1, Decimal("160"), date(2024, 2, 1), "pay-1")

    assert pending_interest(interest_contract) == Decimal("660.00")


def test_interest_received_includes_penalty_rows(monthly_contract):
    fee = assess_late_fee(monthly_contract, Decimal("25"), date(2024, 2, 10))
    pay_late_fee(monthly_contract, fee.id, "fee-pay-1", date(2024, 2, 11))

    assert interest_received(monthly_contract) == Decimal("25")
    # Penalties are not scheduled interest
    assert pending_interest(monthly_contract) == Decimal("50.00")


def test_overdue_penalty():
    """3% a month is 0.1% a day: 10 days on 1000 is 10.00"""
    assert overdue_penalty(Decimal("1000"), Decimal("3"), 10) == Decimal("10.00")
    assert overdue_penalty(Decimal("1000"), Decimal("3"), 0) == Decimal("0")
    assert overdue_penalty(Decimal("1000"), Decimal("0"), 10) == Decimal("0")


def test_calculate_pmt():
    assert calculate_pmt(Decimal("1000"), Decimal("0"), 4) == Decimal("250.00")
    assert calculate_pmt(Decimal("1000"), Decimal("10"), 2) == Decimal("576.19")

    with pytest.raises(ValueError):
        calculate_pmt(Decimal("1000"), Decimal("10"), 0)


def test_price_table_rows():
    quote = price_table(Decimal("1000"), Decimal("10"), 2)

    assert quote.installment_amount == Decimal("576.19")
    assert [(r.interest, r.amortization, r.balance) for r in quote.rows] == [
        (Decimal("100.00"), Decimal("476.19"), Decimal("523.81")),
        (Decimal("52.38"), Decimal("523.81"), Decimal("0.00")),
    ]
    assert quote.total_payment == Decimal("1152.38")
    assert quote.total_interest == Decimal("152.38")


def test_price_table_last_row_closes_balance():
    quote = price_table(Decimal("5000"), Decimal("3.5"), 12)

    assert len(quote.rows) == 12
    assert quote.rows[-1].balance == 0
    assert sum(r.amortization for r in quote.rows) == Decimal("5000")
    assert all(r.payment == quote.installment_amount for r in quote.rows[:-1])
