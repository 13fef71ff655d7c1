"""Installment schedule generation and contract origination"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, ROUND_DOWN
from typing import List, Optional

from billing_gateway.domain.exceptions import InvalidContractTerms
from billing_gateway.domain.interest import calculate_total_interest, split_amount
from billing_gateway.domain.models import (
    CENT,
    ZERO,
    Cadence,
    Contract,
    ContractTerms,
    Payment,
)
from billing_gateway.utils.date_utils import add_months, is_strictly_increasing, next_days_skipping_sundays

EXPLICIT_DATE_CADENCES = (Cadence.DAILY, Cadence.WEEKLY, Cadence.BIWEEKLY)


@dataclass
class ScheduledInstallment:
    """Single expected payment in a repayment schedule"""

    installment_number: int
    due_date: date
    amount: Decimal


def validate_terms(terms: ContractTerms) -> None:
    """Reject terms that cannot produce a schedule; nothing is built on failure"""
    if terms.installment_count <= 0:
        raise InvalidContractTerms("installment_count must be at least 1")
    if terms.principal <= 0:
        raise InvalidContractTerms("principal must be positive")
    if terms.interest_rate < 0:
        raise InvalidContractTerms("interest_rate cannot be negative")
    if terms.cadence != Cadence.DAILY and terms.interest_rate == 0:
        # Daily interest comes from total_repayment, so only rate-driven contracts need a rate
        raise InvalidContractTerms("interest_rate must be positive")
    if terms.late_interest_rate < 0:
        raise InvalidContractTerms("late_interest_rate cannot be negative")
    if terms.cadence == Cadence.SINGLE and terms.installment_count != 1:
        raise InvalidContractTerms("single cadence has exactly one installment")

    if terms.cadence in EXPLICIT_DATE_CADENCES and not terms.installment_dates:
        raise InvalidContractTerms(f"{terms.cadence.value} contracts require explicit installment_dates")

    if terms.installment_dates:
        if len(terms.installment_dates) != terms.installment_count:
            raise InvalidContractTerms(
                f"expected {terms.installment_count} installment dates, got {len(terms.installment_dates)}"
            )
        if not is_strictly_increasing(terms.installment_dates):
            raise InvalidContractTerms("installment_dates must be strictly increasing")

    if terms.cadence == Cadence.DAILY:
        if terms.total_repayment is None:
            raise InvalidContractTerms("daily contracts require total_repayment")
        if terms.total_repayment < terms.principal:
            raise InvalidContractTerms("total_repayment cannot be below principal")


def resolve_due_dates(terms: ContractTerms) -> List[date]:
    """Explicit dates verbatim, otherwise monthly from first_due_date"""
    if terms.installment_dates:
        return list(terms.installment_dates)
    if terms.cadence == Cadence.SINGLE:
        return [terms.first_due_date]
    return [add_months(terms.first_due_date, k) for k in range(terms.installment_count)]


def origination_interest(terms: ContractTerms) -> Decimal:
    """Total interest fixed at origination"""
    if terms.cadence == Cadence.DAILY:
        # Folded into the repayment total; the rate plays no part
        return terms.total_repayment - terms.principal
    due_dates = resolve_due_dates(terms)
    return calculate_total_interest(
        principal=terms.principal,
        interest_rate=terms.interest_rate,
        interest_mode=terms.interest_mode,
        installment_count=terms.installment_count,
        start_date=terms.start_date,
        due_date=due_dates[-1],
    )


def split_evenly(total: Decimal, count: int) -> List[Decimal]:
    """
    Split total into count amounts rounded down to the cent.

    Last amount absorbs the rounding remainder so the sum is exact:
    100.00 / 3 -> [33.33, 33.33, 33.34]
    """
    base_amount = (total / count).quantize(CENT, rounding=ROUND_DOWN)
    remainder = total - base_amount * count
    amounts = [base_amount] * count
    amounts[-1] = base_amount + remainder
    return amounts


def generate_schedule(terms: ContractTerms, total_interest: Optional[Decimal] = None) -> List[ScheduledInstallment]:
    """
    Generate the ordered installment schedule for a contract.

    Requirements:
    - SINGLE: one installment of principal + interest
    - INSTALLMENTS without dates: first_due_date + k months
    - DAILY/WEEKLY/BIWEEKLY: explicit dates mandatory
    - Last installment absorbs the rounding remainder, never a 13th bucket

    Raises:
        InvalidContractTerms: on zero installments, non-positive principal or bad dates
    """
    validate_terms(terms)

    if total_interest is None:
        total_interest = origination_interest(terms)

    due_dates = resolve_due_dates(terms)
    amounts = split_evenly(terms.principal + total_interest, terms.installment_count)

    return [
        ScheduledInstallment(installment_number=i + 1, due_date=due_date, amount=amount)
        for i, (due_date, amount) in enumerate(zip(due_dates, amounts))
    ]


def originate_contract(
    terms: ContractTerms,
    contract_id: Optional[str] = None,
    client_id: Optional[str] = None,
    client_name: Optional[str] = None,
    client_phone: Optional[str] = None,
) -> Contract:
    """Build a contract with one pending payment row per scheduled installment"""
    validate_terms(terms)
    contract_id = contract_id or str(uuid.uuid4())
    total_interest = origination_interest(terms)
    schedule = generate_schedule(terms, total_interest)

    payments = []
    for inst in schedule:
        principal_part, interest_part = split_amount(inst.amount, terms.principal, total_interest)
        payments.append(
            Payment(
                id=str(uuid.uuid4()),
                contract_id=contract_id,
                installment_number=inst.installment_number,
                amount=inst.amount,
                principal_paid=principal_part,
                interest_paid=interest_part,
                due_date=inst.due_date,
            )
        )

    due_dates = [inst.due_date for inst in schedule]
    return Contract(
        id=contract_id,
        client_id=client_id,
        client_name=client_name,
        client_phone=client_phone,
        principal=terms.principal,
        interest_rate=terms.interest_rate,
        interest_mode=terms.interest_mode,
        cadence=terms.cadence,
        installment_count=terms.installment_count,
        start_date=terms.start_date,
        first_due_date=terms.first_due_date,
        due_date=due_dates[-1],
        installment_dates=due_dates,
        total_interest=total_interest,
        total_paid=ZERO,
        remaining_balance=terms.principal + total_interest,
        late_interest_rate=terms.late_interest_rate,
        payments=payments,
    )


def extend_daily_contract(contract: Contract, extra_count: int) -> List[Payment]:
    """
    Append extra daily installments after the last due date, skipping Sundays.

    Each extra installment carries the contract's current daily amount and the
    amount is added to the balance as folded interest.
    """
    if contract.cadence != Cadence.DAILY:
        raise InvalidContractTerms("only daily contracts can be extended")
    if extra_count <= 0:
        raise InvalidContractTerms("extra_count must be at least 1")

    daily_amount = (contract.total_due / contract.installment_count).quantize(CENT, rounding=ROUND_DOWN)
    new_dates = next_days_skipping_sundays(contract.installment_dates[-1], extra_count)
    next_number = max(p.installment_number for p in contract.ledger_payments()) + 1

    added = []
    for offset, due_date in enumerate(new_dates):
        added.append(
            Payment(
                id=str(uuid.uuid4()),
                contract_id=contract.id,
                installment_number=next_number + offset,
                amount=daily_amount,
                principal_paid=ZERO,
                interest_paid=daily_amount,
                due_date=due_date,
            )
        )

    extra_total = daily_amount * extra_count
    contract.payments.extend(added)
    contract.installment_dates = contract.installment_dates + new_dates
    contract.installment_count += extra_count
    contract.due_date = new_dates[-1]
    contract.total_interest += extra_total
    contract.remaining_balance += extra_total
    return added
