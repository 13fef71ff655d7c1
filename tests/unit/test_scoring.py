"""Unit tests for client risk scoring"""

import pytest
from datetime import date, datetime, timedelta
from decimal import Decimal
from billing_gateway.domain.exceptions import DomainException
from billing_gateway.domain.models import AdjustmentKind, ScoreAdjustment
from billing_gateway.domain.reconciliation import apply_payment, assess_late_fee, pay_late_fee
from billing_gateway.domain.scoring import (
    extra_profit,
    fold_score,
    loyalty_adjustment,
    loyalty_bonus_target,
    manual_override,
    recovery_adjustment,
    recovery_bonus_target,
    score_label,
    score_payment,
)

NOW = datetime(2024, 3, 1, 12, 0)
DUE = date(2024, 2, 1)


def adjustment(kind: AdjustmentKind, delta: int, minutes: int) -> ScoreAdjustment:
    return ScoreAdjustment(client_id="client-1", kind=kind, delta=delta, created_at=NOW + timedelta(minutes=minutes))


@pytest.mark.parametrize(
    "paid_date,kind,delta",
    [
        (date(2024, 1, 25), AdjustmentKind.ON_TIME_PAYMENT, 3),
        (DUE, AdjustmentKind.ON_TIME_PAYMENT, 3),
        (date(2024, 2, 6), AdjustmentKind.LATE_PAYMENT, -20),
        (date(2024, 3, 2), AdjustmentKind.LATE_PAYMENT, -20),  # exactly 30 days
        (date(2024, 3, 3), AdjustmentKind.CRITICAL_LATE_PAYMENT, -30),
    ],
)
def test_score_payment(paid_date, kind, delta):
    entry = score_payment("client-1", DUE, paid_date, NOW)

    assert entry.kind == kind
    assert entry.delta == delta
    assert entry.created_at == NOW


def test_fold_score_starts_at_base():
    score = fold_score("client-1", [])

    assert score.score == 100
    assert score.label == "Bom"
    assert score.score_updated_at is None


def test_fold_score_counts_payments():
    log = [
        adjustment(AdjustmentKind.ON_TIME_PAYMENT, 3, 1),
        adjustment(AdjustmentKind.ON_TIME_PAYMENT, 3, 2),
        adjustment(AdjustmentKind.LATE_PAYMENT, -20, 3),
        adjustment(AdjustmentKind.CRITICAL_LATE_PAYMENT, -30, 4),
    ]
    score = fold_score("client-1", log)

    assert score.score == 56
    assert score.on_time_payments == 2
    assert score.late_payments == 2
    assert score.score_updated_at == NOW + timedelta(minutes=4)


def test_override_then_automatic_deltas_apply_on_top():
    log = [
        adjustment(AdjustmentKind.LATE_PAYMENT, -20, 1),
        manual_override("client-1", 50, "renegotiated", NOW + timedelta(minutes=2), actor="ops"),
        adjustment(AdjustmentKind.ON_TIME_PAYMENT, 3, 3),
    ]

    assert fold_score("client-1", log).score == 53


def test_fold_score_sorts_by_time():
    log = [
        adjustment(AdjustmentKind.ON_TIME_PAYMENT, 3, 5),
        manual_override("client-1", 50, "reset", NOW),
    ]

    assert fold_score("client-1", log).score == 53


def test_fold_score_clamps_after_each_step():
    log = [adjustment(AdjustmentKind.LATE_PAYMENT, -20, i) for i in range(6)]
    log.append(adjustment(AdjustmentKind.ON_TIME_PAYMENT, 3, 10))

    # 100 - 120 clamps at 0 before the +3
    assert fold_score("client-1", log).score == 3

    ceiling = [adjustment(AdjustmentKind.ON_TIME_PAYMENT, 3, i) for i in range(30)]
    assert fold_score("client-1", ceiling).score == 150


def test_manual_override_validation():
    with pytest.raises(DomainException):
        manual_override("client-1", 151, "too high", NOW)
    with pytest.raises(DomainException):
        manual_override("client-1", -1, "too low", NOW)
    with pytest.raises(DomainException):
        manual_override("client-1", 90, "   ", NOW)


@pytest.mark.parametrize(
    "profit,target",
    [("0", 0), ("49.99", 0), ("50", 2), ("120", 4), ("250", 10), ("1000", 10)],
)
def test_recovery_bonus_target(profit, target):
    assert recovery_bonus_target(Decimal(profit)) == target


def test_recovery_adjustment_is_differential():
    log = [adjustment(AdjustmentKind.RECOVERY_BONUS, 4, 1)]

    entry = recovery_adjustment("client-1", log, Decimal("150"), NOW)
    assert entry.kind == AdjustmentKind.RECOVERY_BONUS
    assert entry.delta == 2

    assert recovery_adjustment("client-1", log, Decimal("100"), NOW) is None


@pytest.mark.parametrize(
    "contracts,on_time,late,target",
    [
        (3, 4, 1, 15),  # exactly 80%
        (5, 10, 0, 15),
        (3, 3, 1, 0),
        (2, 10, 0, 0),
        (3, 0, 0, 0),
    ],
)
def test_loyalty_bonus_target(contracts, on_time, late, target):
    assert loyalty_bonus_target(contracts, on_time, late) == target


def test_loyalty_adjustment_awards_once_and_withdraws():
    log = [adjustment(AdjustmentKind.ON_TIME_PAYMENT, 3, 1)]

    entry = loyalty_adjustment("client-1", log, 3, NOW)
    assert entry.kind == AdjustmentKind.LOYALTY_BONUS
    assert entry.delta == 15

    log.append(entry)
    assert loyalty_adjustment("client-1", log, 3, NOW) is None

    log.append(adjustment(AdjustmentKind.LATE_PAYMENT, -20, 2))
    reversal = loyalty_adjustment("client-1", log, 3, NOW)
    assert reversal.delta == -15
    assert fold_score("client-1", log + [reversal]).score == 83


def test_extra_profit_counts_penalties_and_interest_beyond_schedule(monthly_contract):
    fee = assess_late_fee(monthly_contract, Decimal("30"), date(2024, 2, 10))
    pay_late_fee(monthly_contract, fee.id, "fee-pay-1", date(2024, 2, 10))
    apply_payment(
        monthly_contract,
        1,
        Decimal("100"),
        date(2024, 2, 10),
        "pay-1",
        principal_paid=Decimal("30"),
        interest_paid=Decimal("70"),
    )

    # 30 of penalty plus 20 of interest above the 50 scheduled
    assert extra_profit([monthly_contract]) == Decimal("50")


@pytest.mark.parametrize(
    "score,label",
    [(150, "Excelente"), (120, "Excelente"), (119, "Bom"), (100, "Bom"), (99, "Regular"), (70, "Regular"), (69, "Ruim"), (40, "Ruim"), (39, "Crítico")],
)
def test_score_label(score, label):
    assert score_label(score) == label
