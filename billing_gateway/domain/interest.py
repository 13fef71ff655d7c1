"""Interest accrual - total, pending and penalty interest for a contract"""

from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from billing_gateway.domain.models import CENT, ZERO, Cadence, Contract, InterestMode, PriceQuote, PriceTableRow
from billing_gateway.utils.date_utils import days_between

HUNDRED = Decimal("100")
DAYS_PER_MONTH = Decimal("30")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_total_interest(
    principal: Decimal,
    interest_rate: Decimal,
    interest_mode: InterestMode,
    installment_count: int,
    start_date: Optional[date] = None,
    due_date: Optional[date] = None,
) -> Decimal:
    """
    Total interest owed over the life of a rate-based contract.

    Modes:
    - PER_INSTALLMENT: rate charged once per installment, simple and additive
    - ON_TOTAL: rate applied once regardless of installment count
    - PROPORTIONAL: monthly rate pro-rated by the days between start and final due date
    - COMPOUND: principal * (1 + i)^n - principal

    Daily contracts never go through here: see `infer_daily_interest`.
    """
    rate = interest_rate / HUNDRED

    if interest_mode == InterestMode.PER_INSTALLMENT:
        interest = principal * rate * installment_count
    elif interest_mode == InterestMode.ON_TOTAL:
        interest = principal * rate
    elif interest_mode == InterestMode.PROPORTIONAL:
        if start_date is None or due_date is None:
            raise ValueError("Proportional interest needs start and due dates")
        days = max(1, abs(days_between(start_date, due_date)))
        interest = principal * (interest_rate / DAYS_PER_MONTH * days) / HUNDRED
    elif interest_mode == InterestMode.COMPOUND:
        interest = principal * (1 + rate) ** installment_count - principal
    else:
        raise ValueError(f"Unsupported interest mode: {interest_mode}")

    return quantize(interest)


def infer_daily_interest(principal: Decimal, remaining_balance: Decimal, total_paid: Decimal) -> Decimal:
    """
    Interest of a daily contract, inferred from its ledger.

    Daily contracts store interest pre-folded into the initial balance, so it is
    recovered as what is still owed plus what was paid, minus principal.
    """
    return max(ZERO, remaining_balance + total_paid - principal)


def contract_total_interest(contract: Contract) -> Decimal:
    """Total interest of an existing contract, honouring the daily-cadence asymmetry"""
    if contract.cadence == Cadence.DAILY:
        # Rate is informational only here; using it would double-count the folded interest
        return infer_daily_interest(contract.principal, contract.remaining_balance, contract.total_paid)
    return contract.total_interest


def interest_received(contract: Contract) -> Decimal:
    """Interest actually collected, read from the payment rows"""
    return sum((p.interest_paid for p in contract.payments if p.is_paid), ZERO)


def principal_received(contract: Contract) -> Decimal:
    return sum((p.principal_paid for p in contract.ledger_payments() if p.is_paid), ZERO)


def pending_interest(contract: Contract) -> Decimal:
    """Scheduled interest not yet collected (penalty interest is not counted as scheduled)"""
    received = sum((p.interest_paid for p in contract.ledger_payments() if p.is_paid), ZERO)
    return max(ZERO, contract_total_interest(contract) - received)


def split_amount(
    amount: Decimal,
    principal: Decimal,
    total_interest: Decimal,
    interest_outstanding: Optional[Decimal] = None,
) -> Tuple[Decimal, Decimal]:
    """
    Pro-rata principal/interest split of a payment.

    Interest share is total_interest / (principal + total_interest), capped at the
    interest still outstanding so overpayments never book phantom profit.

    Returns: (principal_part, interest_part), summing exactly to amount
    """
    total = principal + total_interest
    if total <= 0 or total_interest <= 0:
        return amount, ZERO

    interest_part = quantize(amount * total_interest / total)
    if interest_outstanding is not None:
        interest_part = min(interest_part, max(ZERO, interest_outstanding))
    interest_part = min(interest_part, amount)
    return amount - interest_part, interest_part


def overdue_penalty(balance: Decimal, monthly_rate: Decimal, days_overdue: int) -> Decimal:
    """Dynamic late interest: monthly rate converted to daily, times days overdue"""
    if days_overdue <= 0 or monthly_rate <= 0 or balance <= 0:
        return ZERO
    daily_rate = monthly_rate / DAYS_PER_MONTH / HUNDRED
    return quantize(balance * daily_rate * days_overdue)


def calculate_pmt(principal: Decimal, monthly_rate: Decimal, installments: int) -> Decimal:
    """
    Fixed Price-table installment: PV * i(1+i)^n / ((1+i)^n - 1).

    Zero rate degenerates to an even split.
    """
    if installments <= 0:
        raise ValueError("installments must be positive")
    i = monthly_rate / HUNDRED
    if i == 0:
        return quantize(principal / installments)
    factor = (1 + i) ** installments
    return quantize(principal * (i * factor) / (factor - 1))


def price_table(principal: Decimal, monthly_rate: Decimal, installments: int) -> PriceQuote:
    """
    Price-table amortization schedule for a fixed installment.

    Each row charges interest on the outstanding balance and amortizes the rest
    of the installment. The last row settles whatever balance rounding left, so
    the table always ends at zero.
    """
    pmt = calculate_pmt(principal, monthly_rate, installments)
    i = monthly_rate / HUNDRED
    balance = principal
    rows = []

    for number in range(1, installments + 1):
        interest = quantize(balance * i)
        if number == installments:
            amortization = balance
        else:
            amortization = pmt - interest
        balance -= amortization
        rows.append(
            PriceTableRow(
                installment_number=number,
                payment=amortization + interest,
                interest=interest,
                amortization=amortization,
                balance=balance,
            )
        )

    total_payment = sum((row.payment for row in rows), ZERO)
    return PriceQuote(
        principal=principal,
        monthly_rate=monthly_rate,
        installment_count=installments,
        installment_amount=pmt,
        total_payment=total_payment,
        total_interest=total_payment - principal,
        rows=rows,
    )
