"""Client risk scoring - per-client reputation folded over an adjustment log"""

from datetime import date, datetime
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable, List, Optional

from billing_gateway.domain.exceptions import DomainException
from billing_gateway.domain.interest import interest_received
from billing_gateway.domain.models import (
    ZERO,
    AdjustmentKind,
    ClientScore,
    Contract,
    ScoreAdjustment,
)

BASE_SCORE = 100
MIN_SCORE = 0
MAX_SCORE = 150

ON_TIME_POINTS = 3
LATE_PENALTY = -20
CRITICAL_LATE_PENALTY = -30

RECOVERY_POINTS = 2
RECOVERY_STEP = Decimal("50")
RECOVERY_CAP = 10

LOYALTY_POINTS = 15
LOYALTY_MIN_CONTRACTS = 3
LOYALTY_MIN_ON_TIME_RATIO = Decimal("0.8")

LATE_KINDS = (AdjustmentKind.LATE_PAYMENT, AdjustmentKind.CRITICAL_LATE_PAYMENT)


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, score))


def score_payment(
    client_id: str,
    due_date: date,
    paid_date: date,
    now: datetime,
    critical_late_days: int = 30,
    contract_id: Optional[str] = None,
    installment_number: Optional[int] = None,
) -> ScoreAdjustment:
    """
    Score delta for one settled installment.

    Rules:
    - Paid on or before the due date: +3
    - Paid late: -20
    - Paid more than `critical_late_days` late: -30 (instead of -20)
    """
    days_late = (paid_date - due_date).days

    if days_late <= 0:
        kind, delta, reason = AdjustmentKind.ON_TIME_PAYMENT, ON_TIME_POINTS, "paid on time"
    elif days_late > critical_late_days:
        kind, delta, reason = AdjustmentKind.CRITICAL_LATE_PAYMENT, CRITICAL_LATE_PENALTY, f"{days_late} days late"
    else:
        kind, delta, reason = AdjustmentKind.LATE_PAYMENT, LATE_PENALTY, f"{days_late} days late"

    return ScoreAdjustment(
        client_id=client_id,
        kind=kind,
        delta=delta,
        created_at=now,
        reason=reason,
        contract_id=contract_id,
        installment_number=installment_number,
    )


def extra_profit(contracts: Iterable[Contract]) -> Decimal:
    """Interest collected beyond what was scheduled (penalties and fees actually paid)"""
    total = ZERO
    for contract in contracts:
        penalties = sum((p.interest_paid for p in contract.payments if p.is_paid and not p.is_ledger), ZERO)
        ledger_interest = interest_received(contract) - penalties
        total += penalties + max(ZERO, ledger_interest - contract.total_interest)
    return total


def recovery_bonus_target(profit: Decimal) -> int:
    """+2 points per full 50 of extra profit, capped at +10"""
    steps = int((profit / RECOVERY_STEP).to_integral_value(rounding=ROUND_FLOOR)) if profit > 0 else 0
    return min(RECOVERY_CAP, steps * RECOVERY_POINTS)


def recovery_adjustment(
    client_id: str,
    log: Iterable[ScoreAdjustment],
    profit: Decimal,
    now: datetime,
) -> Optional[ScoreAdjustment]:
    """
    Differential recovery bonus.

    Only the gap between the bonus the profit earns and the bonus already in the
    log is appended, so reruns never double-award.
    """
    awarded = sum(entry.delta for entry in log if entry.kind == AdjustmentKind.RECOVERY_BONUS)
    gap = recovery_bonus_target(profit) - awarded
    if gap <= 0:
        return None

    return ScoreAdjustment(
        client_id=client_id,
        kind=AdjustmentKind.RECOVERY_BONUS,
        delta=gap,
        created_at=now,
        reason=f"extra profit {profit}",
    )


def loyalty_bonus_target(contract_count: int, on_time: int, late: int) -> int:
    """+15 for clients with 3+ contracts who paid at least 80% of installments on time"""
    settled = on_time + late
    if contract_count < LOYALTY_MIN_CONTRACTS or settled == 0:
        return 0
    return LOYALTY_POINTS if Decimal(on_time) / settled >= LOYALTY_MIN_ON_TIME_RATIO else 0


def loyalty_adjustment(
    client_id: str,
    log: Iterable[ScoreAdjustment],
    contract_count: int,
    now: datetime,
) -> Optional[ScoreAdjustment]:
    """
    Differential loyalty bonus.

    Unlike the recovery bonus it can be withdrawn: once the on-time ratio drops
    below the threshold the awarded points are reversed.
    """
    entries = list(log)
    on_time = sum(1 for entry in entries if entry.kind == AdjustmentKind.ON_TIME_PAYMENT)
    late = sum(1 for entry in entries if entry.kind in LATE_KINDS)
    awarded = sum(entry.delta for entry in entries if entry.kind == AdjustmentKind.LOYALTY_BONUS)

    gap = loyalty_bonus_target(contract_count, on_time, late) - awarded
    if gap == 0:
        return None

    return ScoreAdjustment(
        client_id=client_id,
        kind=AdjustmentKind.LOYALTY_BONUS,
        delta=gap,
        created_at=now,
        reason=f"{contract_count} contracts, {on_time}/{on_time + late} paid on time",
    )



def manual_override(
    client_id: str,
    new_score: int,
    reason: str,
    now: datetime,
    actor: Optional[str] = None,
) -> ScoreAdjustment:
    """Audited operator override; later automatic deltas apply on top of it"""
    if not MIN_SCORE <= new_score <= MAX_SCORE:
        raise DomainException(f"Score must be between {MIN_SCORE} and {MAX_SCORE}")
    if not reason.strip():
        raise DomainException("Manual score override requires a reason")

    return ScoreAdjustment(
        client_id=client_id,
        kind=AdjustmentKind.MANUAL_OVERRIDE,
        delta=0,
        created_at=now,
        override_score=new_score,
        reason=reason,
        actor=actor,
    )


def fold_score(client_id: str, log: Iterable[ScoreAdjustment]) -> ClientScore:
    """
    Current score as a fold over the full adjustment history.

    Starts at 100; overrides set the score, every other entry adds its delta.
    Clamped to 0-150 after each step.
    """
    entries: List[ScoreAdjustment] = sorted(log, key=lambda e: e.created_at)
    score = BASE_SCORE
    on_time = 0
    late = 0
    updated_at = None

    for entry in entries:
        if entry.kind == AdjustmentKind.MANUAL_OVERRIDE:
            score = entry.override_score
        else:
            score += entry.delta

        if entry.kind == AdjustmentKind.ON_TIME_PAYMENT:
            on_time += 1
        elif entry.kind in LATE_KINDS:
            late += 1

        score = clamp_score(score)
        updated_at = entry.created_at

    return ClientScore(
        client_id=client_id,
        score=score,
        on_time_payments=on_time,
        late_payments=late,
        score_updated_at=updated_at,
        label=score_label(score),
    )


def score_label(score: int) -> str:
    """
    Map score to its display band.

    Bands:
    - 120+:   Excelente
    - 100-119: Bom
    - 70-99:  Regular
    - 40-69:  Ruim
    - <40:    Crítico
    """
    if score >= 120:
        return "Excelente"
    elif score >= 100:
        return "Bom"
    elif score >= 70:
        return "Regular"
    elif score >= 40:
        return "Ruim"
    else:
        return "Crítico"
