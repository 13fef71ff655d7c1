"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Union


ZERO = Decimal("0")
CENT = Decimal("0.01")


class InterestMode(str, Enum):
    PER_INSTALLMENT = "per_installment"
    ON_TOTAL = "on_total"
    PROPORTIONAL = "proportional"
    COMPOUND = "compound"


class Cadence(str, Enum):
    SINGLE = "single"
    INSTALLMENTS = "installments"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"


class ContractStatus(str, Enum):
    """Persisted status cache; the classifier is the source of truth"""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class Delinquency(str, Enum):
    CURRENT = "current"
    OVERDUE = "overdue"
    PAID = "paid"


class EventType(str, Enum):
    PAYMENT_RECORDED = "payment_recorded"
    CONTRACT_OVERDUE = "contract_overdue"
    CONTRACT_PAID = "contract_paid"


class AdjustmentKind(str, Enum):
    ON_TIME_PAYMENT = "on_time_payment"
    LATE_PAYMENT = "late_payment"
    CRITICAL_LATE_PAYMENT = "critical_late_payment"
    RECOVERY_BONUS = "recovery_bonus"
    LOYALTY_BONUS = "loyalty_bonus"
    MANUAL_OVERRIDE = "manual_override"


# Payment kinds: structural facts about a ledger row


@dataclass(frozen=True)
class Scheduled:
    """Row created by the schedule generator"""

    note = ""


@dataclass(frozen=True)
class SplitRemainder:
    """Remainder carried forward from an underpaid installment"""

    parent_installment: int
    note = "[SUBPARCELA]"


@dataclass(frozen=True)
class Overpayment:
    """Installment settled with more than its nominal amount"""

    excess: Decimal
    note = "[OVERPAYMENT]"


@dataclass(frozen=True)
class PenaltyFee:
    """Settlement of a late fee; never part of the installment ledger"""

    fee_id: str
    note = "[MULTA]"


PaymentKind = Union[Scheduled, SplitRemainder, Overpayment, PenaltyFee]


@dataclass
class Payment:
    """Single installment row of a contract (paid or pending)"""

    id: str
    contract_id: str
    installment_number: int
    amount: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    due_date: date
    paid_date: Optional[date] = None
    status: PaymentStatus = PaymentStatus.PENDING
    kind: PaymentKind = field(default_factory=Scheduled)
    payment_ref: Optional[str] = None
    partial: bool = False  # settled for less than the scheduled amount

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID

    @property
    def is_ledger(self) -> bool:
        """Penalty settlements are excluded from total_paid and the schedule"""
        return not isinstance(self.kind, PenaltyFee)

    @property
    def notes(self) -> str:
        """Display string derived from the structured kind"""
        tags = [self.kind.note] if self.kind.note else []
        if self.partial:
            tags.append("[PAGAMENTO_PARCIAL]")
        return " ".join(tags)


@dataclass
class LateFee:
    """Structured late-fee record assessed against a contract"""

    id: str
    contract_id: str
    amount: Decimal
    assessed_on: date
    installment_number: Optional[int] = None
    reason: str = ""
    paid_date: Optional[date] = None

    @property
    def is_paid(self) -> bool:
        return self.paid_date is not None


@dataclass
class ContractTerms:
    """Origination input for a new contract"""

    principal: Decimal
    interest_rate: Decimal
    interest_mode: InterestMode
    cadence: Cadence
    installment_count: int
    start_date: date
    first_due_date: date
    installment_dates: Optional[List[date]] = None
    total_repayment: Optional[Decimal] = None  # daily contracts: balance with interest folded in
    late_interest_rate: Decimal = ZERO  # monthly %, charged pro-rata per day overdue


@dataclass
class Contract:
    """Loan, product sale, vehicle sale or check discount"""

    id: str
    client_id: Optional[str]
    principal: Decimal
    interest_rate: Decimal
    interest_mode: InterestMode
    cadence: Cadence
    installment_count: int
    start_date: date
    first_due_date: date
    due_date: date
    installment_dates: List[date]
    total_interest: Decimal
    total_paid: Decimal = ZERO
    remaining_balance: Decimal = ZERO
    status: ContractStatus = ContractStatus.PENDING
    late_interest_rate: Decimal = ZERO
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    version: int = 1
    payments: List[Payment] = field(default_factory=list)
    late_fees: List[LateFee] = field(default_factory=list)

    @property
    def total_due(self) -> Decimal:
        return self.principal + self.total_interest

    def ledger_payments(self) -> List[Payment]:
        return [p for p in self.payments if p.is_ledger]

    def find_installment(self, installment_number: int) -> Optional[Payment]:
        for payment in self.ledger_payments():
            if payment.installment_number == installment_number:
                return payment
        return None


@dataclass
class NotificationEvent:
    """Event handed to the external messaging collaborator"""

    event_type: EventType
    contract_id: str
    client_id: Optional[str]
    client_phone: Optional[str]
    occurred_on: date
    data: Dict[str, str] = field(default_factory=dict)


@dataclass
class ReconciliationResult:
    """Outcome of applying one payment event to a contract"""

    contract_id: str
    payment_id: str
    installment_number: int
    outcome: str  # exact | under | over
    amount_applied: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    contract_status: ContractStatus
    remainder_installment: Optional[Payment] = None
    excess: Decimal = ZERO
    unapplied_excess: Decimal = ZERO  # part of the payment the balance could not absorb
    events: List[NotificationEvent] = field(default_factory=list)


@dataclass
class DelinquencyReport:
    """Detailed standing of a contract on a given day"""

    status: Delinquency
    due_today: bool
    days_overdue: int
    overdue_installments: int
    late_interest: Decimal
    unpaid_late_fees: Decimal
    overdue_amount: Decimal
    next_due_date: Optional[date] = None


@dataclass
class AlertBucket:
    count: int = 0
    amount: Decimal = ZERO

    def add(self, amount: Decimal) -> None:
        self.count += 1
        self.amount += amount


@dataclass
class PortfolioSnapshot:
    """Headline metrics folded over every contract; never persisted"""

    as_of: date
    capital_on_street: Decimal
    pending_amount: Decimal
    pending_interest: Decimal
    total_received_all_time: Decimal
    realized_profit: Decimal
    active_count: int
    paid_count: int
    overdue_count: int
    overdue_amount: Decimal
    due_this_week: AlertBucket
    overdue_gt_30d: AlertBucket
    overdue_by_cadence: Dict[Cadence, AlertBucket] = field(default_factory=dict)


@dataclass
class PriceTableRow:
    installment_number: int
    payment: Decimal
    interest: Decimal
    amortization: Decimal
    balance: Decimal


@dataclass
class PriceQuote:
    """Fixed-installment simulation; nothing is originated from it"""

    principal: Decimal
    monthly_rate: Decimal
    installment_count: int
    installment_amount: Decimal
    total_payment: Decimal
    total_interest: Decimal
    rows: List[PriceTableRow] = field(default_factory=list)


@dataclass
class HealthReport:
    """Output of the operational health score"""

    score: int
    receipt_rate: Decimal
    delinquency_rate: Decimal
    profit_margin: Decimal
    total_received: Decimal
    total_overdue: Decimal


@dataclass
class ScoreAdjustment:
    """Entry in a client's append-only score log"""

    client_id: str
    kind: AdjustmentKind
    delta: int
    created_at: datetime
    override_score: Optional[int] = None  # only for manual overrides
    reason: str = ""
    actor: Optional[str] = None
    contract_id: Optional[str] = None
    installment_number: Optional[int] = None


@dataclass
class ClientScore:
    client_id: str
    score: int
    on_time_payments: int
    late_payments: int
    score_updated_at: Optional[datetime]
    label: str
