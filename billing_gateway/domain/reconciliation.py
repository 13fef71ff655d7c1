"""Payment reconciliation - applies payment events to a contract's installment ledger"""

import bisect
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from billing_gateway.domain.delinquency import classify, status_for
from billing_gateway.domain.exceptions import (
    DuplicatePayment,
    InstallmentAlreadyPaid,
    InvalidPaymentAmount,
    NegativeBalanceAttempt,
    UnknownInstallment,
    UnknownLateFee,
)
from billing_gateway.domain.interest import pending_interest, split_amount
from billing_gateway.domain.models import (
    CENT,
    ZERO,
    Contract,
    ContractStatus,
    EventType,
    LateFee,
    NotificationEvent,
    Overpayment,
    Payment,
    PaymentStatus,
    PenaltyFee,
    ReconciliationResult,
    SplitRemainder,
)


def recompute_balances(contract: Contract) -> None:
    """
    Rebuild the running ledger fields from the payment rows.

    total_paid is the sum of settled ledger rows; remaining_balance is clamped at
    zero. These fields are never incremented ad hoc.

    Raises:
        NegativeBalanceAttempt: a settled row carries a negative amount
    """
    settled = [p for p in contract.ledger_payments() if p.is_paid]
    if any(p.amount < 0 for p in settled):
        raise NegativeBalanceAttempt(f"Contract {contract.id} has a settled row with a negative amount")
    contract.total_paid = sum((p.amount for p in settled), ZERO)
    contract.remaining_balance = max(ZERO, contract.total_due - contract.total_paid)


def _ensure_new_payment_id(contract: Contract, payment_id: str) -> None:
    if any(p.payment_ref == payment_id for p in contract.payments):
        raise DuplicatePayment(f"Payment {payment_id} already applied to contract {contract.id}")


def _resolve_split(
    contract: Contract,
    amount: Decimal,
    principal_paid: Optional[Decimal],
    interest_paid: Optional[Decimal],
) -> tuple[Decimal, Decimal]:
    if principal_paid is None and interest_paid is None:
        return split_amount(amount, contract.principal, contract.total_interest, pending_interest(contract))

    principal_paid = principal_paid if principal_paid is not None else amount - interest_paid
    interest_paid = interest_paid if interest_paid is not None else amount - principal_paid
    if principal_paid < 0 or interest_paid < 0 or principal_paid + interest_paid != amount:
        raise InvalidPaymentAmount("principal_paid + interest_paid must equal the paid amount")
    return principal_paid, interest_paid


def _absorb_gap(principal_part: Decimal, interest_part: Decimal, gap: Decimal) -> tuple[Decimal, Decimal]:
    """Move a rounding gap onto the principal share, or the interest share if principal cannot take it"""
    if principal_part + gap >= 0:
        return principal_part + gap, interest_part
    return principal_part, interest_part + gap


def _event(contract: Contract, event_type: EventType, occurred_on: date, **data) -> NotificationEvent:
    return NotificationEvent(
        event_type=event_type,
        contract_id=contract.id,
        client_id=contract.client_id,
        client_phone=contract.client_phone,
        occurred_on=occurred_on,
        data={key: str(value) for key, value in data.items()},
    )


def apply_payment(
    contract: Contract,
    installment_number: int,
    paid_amount: Decimal,
    paid_date: date,
    payment_id: str,
    principal_paid: Optional[Decimal] = None,
    interest_paid: Optional[Decimal] = None,
    tolerance: Decimal = CENT,
) -> ReconciliationResult:
    """
    Apply a received payment against one installment.

    Requirements:
    - Exact (within tolerance): installment marked paid at its scheduled amount
    - Under: installment rewritten to the paid amount, remainder carried by a new
      installment numbered max + 1 with the SAME due date, so it surfaces as overdue
    - Over: installment rewritten to the paid amount; excess only reduces the
      balance and is never pushed onto future installments
    - total_paid / remaining_balance recomputed from the rows afterwards

    All checks run before anything is mutated, so a rejected payment leaves the
    contract untouched.

    Raises:
        DuplicatePayment: payment_id already settled a row of this contract
        UnknownInstallment: no ledger row with installment_number
        InstallmentAlreadyPaid: row was settled earlier
        InvalidPaymentAmount: non-positive amount or inconsistent split
    """
    _ensure_new_payment_id(contract, payment_id)

    row = contract.find_installment(installment_number)
    if row is None:
        raise UnknownInstallment(f"Contract {contract.id} has no installment {installment_number}")
    if row.is_paid:
        raise InstallmentAlreadyPaid(f"Installment {installment_number} of contract {contract.id} is already paid")
    if paid_amount <= 0:
        raise InvalidPaymentAmount("paid amount must be positive")

    principal_part, interest_part = _resolve_split(contract, paid_amount, principal_paid, interest_paid)

    balance_before = contract.remaining_balance
    was_paid = contract.status == ContractStatus.PAID
    scheduled_amount = row.amount
    difference = paid_amount - scheduled_amount

    remainder_row = None
    excess = ZERO
    if difference < -tolerance:
        outcome = "under"
        remainder = scheduled_amount - paid_amount
        remainder_principal, remainder_interest = split_amount(
            remainder, contract.principal, contract.total_interest
        )
        remainder_row = Payment(
            id=str(uuid.uuid4()),
            contract_id=contract.id,
            installment_number=max(p.installment_number for p in contract.ledger_payments()) + 1,
            amount=remainder,
            principal_paid=remainder_principal,
            interest_paid=remainder_interest,
            due_date=row.due_date,
            kind=SplitRemainder(parent_installment=row.installment_number),
        )
    elif difference > tolerance:
        outcome = "over"
        excess = difference
    else:
        outcome = "exact"

    settled_amount = paid_amount
    if outcome == "exact" and difference:
        # A sub-tolerance gap is forgiven: the row keeps its scheduled amount so the ledger can close
        settled_amount = scheduled_amount
        principal_part, interest_part = _absorb_gap(principal_part, interest_part, scheduled_amount - paid_amount)

    # Validation done; mutate
    row.amount = settled_amount
    row.principal_paid = principal_part
    row.interest_paid = interest_part
    row.status = PaymentStatus.PAID
    row.paid_date = paid_date
    row.payment_ref = payment_id
    if outcome == "under":
        row.partial = True
        contract.payments.append(remainder_row)
        contract.installment_count += 1
        dates = list(contract.installment_dates)
        bisect.insort(dates, remainder_row.due_date)
        contract.installment_dates = dates
    elif outcome == "over":
        row.kind = Overpayment(excess=excess)

    recompute_balances(contract)

    contract.status = status_for(classify(contract, paid_date))

    events = [
        _event(
            contract,
            EventType.PAYMENT_RECORDED,
            paid_date,
            amount=paid_amount,
            installment_number=installment_number,
            installment_count=contract.installment_count,
            total_paid=contract.total_paid,
            remaining_balance=contract.remaining_balance,
            paid_date=paid_date.isoformat(),
        )
    ]
    if contract.status == ContractStatus.PAID and not was_paid:
        events.append(
            _event(
                contract,
                EventType.CONTRACT_PAID,
                paid_date,
                last_payment=paid_amount,
                total_paid=contract.total_paid,
                paid_date=paid_date.isoformat(),
            )
        )

    return ReconciliationResult(
        contract_id=contract.id,
        payment_id=payment_id,
        installment_number=installment_number,
        outcome=outcome,
        amount_applied=paid_amount,
        principal_paid=principal_part,
        interest_paid=interest_part,
        total_paid=contract.total_paid,
        remaining_balance=contract.remaining_balance,
        contract_status=contract.status,
        remainder_installment=remainder_row,
        excess=excess,
        unapplied_excess=max(ZERO, paid_amount - balance_before),
        events=events,
    )


def assess_late_fee(
    contract: Contract,
    amount: Decimal,
    assessed_on: date,
    installment_number: Optional[int] = None,
    reason: str = "",
    fee_id: Optional[str] = None,
) -> LateFee:
    """Record a structured late fee; it is owed on top of the ledger balance"""
    if amount <= 0:
        raise InvalidPaymentAmount("late fee must be positive")
    if installment_number is not None and contract.find_installment(installment_number) is None:
        raise UnknownInstallment(f"Contract {contract.id} has no installment {installment_number}")

    fee = LateFee(
        id=fee_id or str(uuid.uuid4()),
        contract_id=contract.id,
        amount=amount,
        assessed_on=assessed_on,
        installment_number=installment_number,
        reason=reason,
    )
    contract.late_fees.append(fee)
    return fee


def pay_late_fee(contract: Contract, fee_id: str, payment_id: str, paid_date: date) -> Payment:
    """
    Settle a late fee.

    The settlement is booked as a penalty row that is all interest: it counts as
    realized profit but never touches total_paid or remaining_balance.
    """
    _ensure_new_payment_id(contract, payment_id)

    fee = next((f for f in contract.late_fees if f.id == fee_id), None)
    if fee is None:
        raise UnknownLateFee(f"Contract {contract.id} has no late fee {fee_id}")
    if fee.is_paid:
        raise UnknownLateFee(f"Late fee {fee_id} is already settled")

    fee.paid_date = paid_date
    row = Payment(
        id=str(uuid.uuid4()),
        contract_id=contract.id,
        installment_number=fee.installment_number or 0,
        amount=fee.amount,
        principal_paid=ZERO,
        interest_paid=fee.amount,
        due_date=fee.assessed_on,
        paid_date=paid_date,
        status=PaymentStatus.PAID,
        kind=PenaltyFee(fee_id=fee.id),
        payment_ref=payment_id,
    )
    contract.payments.append(row)
    return row
