"""Unit tests for delinquency classification"""

from datetime import date
from decimal import Decimal
from billing_gateway.domain.delinquency import (
    assess,
    classify,
    paid_installment_count,
    per_installment_amount,
    refresh_status,
)
from billing_gateway.domain.installments import originate_contract
from billing_gateway.domain.models import ContractStatus, Delinquency, EventType
from billing_gateway.domain.reconciliation import apply_payment, assess_late_fee
from conftest import make_terms


def test_overdue_after_last_unpaid_date(monthly_contract):
    """3 x 100 with two paid: the day after the third due date it is overdue by 100"""
    apply_payment(monthly_contract, 1, Decimal("100"), date(2024, 2, 1), "pay-1")
    apply_payment(monthly_contract, 2, Decimal("100"), date(2024, 3, 1), "pay-2")

    report = assess(monthly_contract, date(2024, 4, 2))

    assert report.status == Delinquency.OVERDUE
    assert report.overdue_amount == Decimal("100")
    assert report.days_overdue == 1
    assert report.overdue_installments == 1
    assert report.next_due_date is None


def test_due_today_is_not_overdue(monthly_contract):
    report = assess(monthly_contract, date(2024, 2, 1))

    assert report.status == Delinquency.CURRENT
    assert report.due_today is True
    assert report.overdue_amount == Decimal("0")
    assert classify(monthly_contract, date(2024, 2, 2)) == Delinquency.OVERDUE


def test_paid_takes_precedence(monthly_contract):
    for number, ref in ((1, "pay-1"), (2, "pay-2"), (3, "pay-3")):
        apply_payment(monthly_contract, number, Decimal("100"), date(2024, 6, 1), ref)

    assert classify(monthly_contract, date(2024, 6, 2)) == Delinquency.PAID


def test_single_contract_owes_remaining_balance(single_contract):
    report = assess(single_contract, date(2024, 2, 2))

    assert report.status == Delinquency.OVERDUE
    assert report.overdue_amount == Decimal("1100.00")


def test_late_interest_accrues_per_day():
    contract = originate_contract(make_terms(late_rate="3"))

    report = assess(contract, date(2024, 2, 11))

    # 300 * 3% / 30 * 10 days
    assert report.days_overdue == 10
    assert report.late_interest == Decimal("3.00")
    assert report.overdue_amount == Decimal("303.00")


def test_unpaid_late_fees_reported(monthly_contract):
    assess_late_fee(monthly_contract, Decimal("15"), date(2024, 2, 5))

    assert assess(monthly_contract, date(2024, 2, 5)).unpaid_late_fees == Decimal("15")


def test_remainder_installment_surfaces_as_overdue(monthly_contract):
    apply_payment(monthly_contract, 1, Decimal("60"), date(2024, 2, 1), "pay-1")

    assert classify(monthly_contract, date(2024, 2, 1)) == Delinquency.CURRENT
    assert classify(monthly_contract, date(2024, 2, 2)) == Delinquency.OVERDUE


def test_repeating_decimal_installments_count_as_paid():
    """1000 over 3 is 333.33 a month; paying one leaves the contract current"""
    contract = originate_contract(make_terms(principal="800", rate="25", count=3))
    apply_payment(contract, 1, Decimal("333.33"), date(2024, 2, 1), "pay-1")

    assert per_installment_amount(contract) == Decimal("333.33")
    assert paid_installment_count(contract) == 1
    report = assess(contract, date(2024, 2, 15))
    assert report.status == Delinquency.CURRENT
    assert report.next_due_date == date(2024, 3, 1)


def test_refresh_status_emits_event_once(monthly_contract):
    event = refresh_status(monthly_contract, date(2024, 2, 2))

    assert monthly_contract.status == ContractStatus.OVERDUE
    assert event.event_type == EventType.CONTRACT_OVERDUE
    assert event.data["days_overdue"] == "1"
    assert event.client_phone == "5511999990000"

    assert refresh_status(monthly_contract, date(2024, 2, 3)) is None


def test_refresh_status_back_to_pending(monthly_contract):
    refresh_status(monthly_contract, date(2024, 2, 2))
    apply_payment(monthly_contract, 1, Decimal("100"), date(2024, 2, 3), "pay-1")

    assert refresh_status(monthly_contract, date(2024, 2, 4)) is None
    assert monthly_contract.status == ContractStatus.PENDING
