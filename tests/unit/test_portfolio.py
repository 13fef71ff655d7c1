"""Unit tests for portfolio aggregation"""

import pytest
from datetime import date
from decimal import Decimal
from billing_gateway.domain.installments import originate_contract
from billing_gateway.domain.models import Cadence
from billing_gateway.domain.portfolio import build_snapshot, collection_progress
from billing_gateway.domain.reconciliation import apply_payment, assess_late_fee, pay_late_fee
from conftest import make_terms

TODAY = date(2024, 2, 10)


@pytest.fixture
def portfolio(monthly_contract, single_contract):
    """One paid contract, one overdue single payment and one current contract due in five days"""
    for number, ref in ((1, "pay-1"), (2, "pay-2"), (3, "pay-3")):
        apply_payment(monthly_contract, number, Decimal("100"), date(2024, 2, 1), ref)

    current = originate_contract(
        make_terms(principal="200", rate="10", count=2, first_due=date(2024, 2, 15)),
        contract_id="c-current",
    )
    return [monthly_contract, single_contract, current]


def test_snapshot_counts(portfolio):
    snapshot = build_snapshot(portfolio, TODAY)

    assert snapshot.as_of == TODAY
    assert snapshot.paid_count == 1
    assert snapshot.active_count == 2
    assert snapshot.overdue_count == 1


def test_snapshot_amounts(portfolio):
    snapshot = build_snapshot(portfolio, TODAY)

    assert snapshot.total_received_all_time == Decimal("300")
    assert snapshot.capital_on_street == Decimal("1200")
    assert snapshot.pending_amount == Decimal("1320.00")
    assert snapshot.pending_interest == Decimal("120.00")
    assert snapshot.overdue_amount == Decimal("1100.00")
    assert snapshot.realized_profit == Decimal("50.00")


def test_snapshot_alert_buckets(portfolio):
    snapshot = build_snapshot(portfolio, TODAY)

    assert snapshot.due_this_week.count == 1
    assert snapshot.due_this_week.amount == Decimal("110.00")
    assert snapshot.overdue_gt_30d.count == 0
    assert snapshot.overdue_by_cadence[Cadence.SINGLE].count == 1
    assert snapshot.overdue_by_cadence[Cadence.SINGLE].amount == Decimal("1100.00")


def test_long_overdue_bucket(single_contract):
    snapshot = build_snapshot([single_contract], date(2024, 3, 15))

    assert snapshot.overdue_gt_30d.count == 1
    assert snapshot.overdue_gt_30d.amount == Decimal("1100.00")
    assert snapshot.due_this_week.count == 0


def test_penalty_settlement_counts_as_profit_not_receipt(portfolio):
    current = portfolio[2]
    fee = assess_late_fee(current, Decimal("25"), TODAY)
    pay_late_fee(current, fee.id, "fee-pay-1", TODAY)

    snapshot = build_snapshot(portfolio, TODAY)

    assert snapshot.realized_profit == Decimal("75.00")
    assert snapshot.total_received_all_time == Decimal("300")


def test_unpaid_late_fee_counts_as_pending(single_contract):
    assess_late_fee(single_contract, Decimal("40"), TODAY)

    snapshot = build_snapshot([single_contract], TODAY)

    assert snapshot.pending_amount == Decimal("1140.00")


def test_empty_portfolio():
    snapshot = build_snapshot([], TODAY)

    assert snapshot.active_count == 0
    assert snapshot.pending_amount == Decimal("0")
    assert snapshot.overdue_by_cadence == {}


def test_collection_progress(portfolio):
    assert collection_progress(portfolio[0]) == Decimal("100")
    assert collection_progress(portfolio[2]) == Decimal("0")
