"""Delinquency classification - current / overdue / paid standing of a contract"""

from datetime import date
from decimal import Decimal, ROUND_DOWN, ROUND_FLOOR
from typing import List, Optional, Tuple

from billing_gateway.domain.interest import overdue_penalty
from billing_gateway.domain.models import (
    CENT,
    ZERO,
    Cadence,
    Contract,
    ContractStatus,
    Delinquency,
    DelinquencyReport,
    EventType,
    NotificationEvent,
)


def per_installment_amount(contract: Contract) -> Decimal:
    """
    Nominal installment value from the CURRENT installment count (sub-installments
    included), in whole cents like the schedule's base amount.
    """
    count = contract.installment_count or 1
    return (contract.total_due / count).quantize(CENT, rounding=ROUND_DOWN)


def paid_installment_count(contract: Contract) -> int:
    """Installments covered by total_paid: floor(total_paid / per_installment_amount)"""
    value = per_installment_amount(contract)
    if value <= 0:
        return 0
    return int((contract.total_paid / value).to_integral_value(rounding=ROUND_FLOOR))


def unpaid_due_dates(contract: Contract) -> List[Tuple[date, Decimal]]:
    """
    Due dates still owed, each with the amount expected on it.

    Multi-installment contracts skip the first paid_count dates; single-installment
    contracts owe their remaining balance on due_date.
    """
    if contract.remaining_balance <= 0:
        return []

    if contract.cadence == Cadence.SINGLE or not contract.installment_dates:
        return [(contract.due_date, contract.remaining_balance)]

    value = per_installment_amount(contract)
    paid_count = paid_installment_count(contract)
    return [(due, value) for index, due in enumerate(sorted(contract.installment_dates)) if index >= paid_count]


def classify(contract: Contract, today: date) -> Delinquency:
    """
    Derive a contract's standing on `today`.

    Requirements:
    - PAID when remaining_balance <= 0, taking precedence over everything else
    - OVERDUE when any unpaid due date is strictly before today
    - A due date equal to today is due, not overdue
    """
    if contract.remaining_balance <= 0:
        return Delinquency.PAID

    if any(due < today for due, _ in unpaid_due_dates(contract)):
        return Delinquency.OVERDUE
    return Delinquency.CURRENT


def unpaid_late_fees(contract: Contract) -> Decimal:
    return sum((fee.amount for fee in contract.late_fees if not fee.is_paid), ZERO)


def assess(contract: Contract, today: date) -> DelinquencyReport:
    """Full delinquency picture: status, days overdue, late interest and amounts owed"""
    status = classify(contract, today)
    owed = unpaid_due_dates(contract)
    overdue_dates = [due for due, _ in owed if due < today]
    upcoming = [due for due, _ in owed if due >= today]

    days_overdue = (today - min(overdue_dates)).days if overdue_dates else 0
    late_interest = overdue_penalty(contract.remaining_balance, contract.late_interest_rate, days_overdue)
    fees = unpaid_late_fees(contract)

    if status == Delinquency.OVERDUE:
        overdue_amount = contract.remaining_balance + late_interest
    else:
        overdue_amount = ZERO

    return DelinquencyReport(
        status=status,
        due_today=any(due == today for due, _ in owed),
        days_overdue=days_overdue,
        overdue_installments=len(overdue_dates),
        late_interest=late_interest,
        unpaid_late_fees=fees,
        overdue_amount=overdue_amount,
        next_due_date=min(upcoming) if upcoming else None,
    )


def status_for(standing: Delinquency) -> ContractStatus:
    if standing == Delinquency.PAID:
        return ContractStatus.PAID
    if standing == Delinquency.OVERDUE:
        return ContractStatus.OVERDUE
    return ContractStatus.PENDING


def refresh_status(contract: Contract, today: date) -> Optional[NotificationEvent]:
    """
    Refresh the cached status column from a fresh classification.

    Returns a CONTRACT_OVERDUE event when the contract just became overdue.
    """
    report = assess(contract, today)
    previous = contract.status
    contract.status = status_for(report.status)

    if contract.status == ContractStatus.OVERDUE and previous != ContractStatus.OVERDUE:
        return NotificationEvent(
            event_type=EventType.CONTRACT_OVERDUE,
            contract_id=contract.id,
            client_id=contract.client_id,
            client_phone=contract.client_phone,
            occurred_on=today,
            data={
                "remaining_balance": str(contract.remaining_balance),
                "overdue_amount": str(report.overdue_amount),
                "days_overdue": str(report.days_overdue),
                "overdue_installments": str(report.overdue_installments),
            },
        )
    return None
