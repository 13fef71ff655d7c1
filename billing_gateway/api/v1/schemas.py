"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from billing_gateway.domain.models import Cadence, InterestMode


class ContractCreateRequest(BaseModel):
    """Request body for POST /v1/contracts"""

    client_id: Optional[str] = Field(None, description="Client identifier (empty for anonymous check discounts)")
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    principal: Decimal = Field(..., description="Amount financed")
    interest_rate: Decimal = Field(Decimal("0"), description="Percentage; meaning depends on interest_mode")
    interest_mode: InterestMode = InterestMode.PER_INSTALLMENT
    cadence: Cadence = Cadence.INSTALLMENTS
    installment_count: int = Field(..., description="Number of installments")
    start_date: date
    first_due_date: date
    installment_dates: Optional[List[date]] = None
    total_repayment: Optional[Decimal] = Field(None, description="Daily contracts: balance with interest folded in")
    late_interest_rate: Decimal = Field(Decimal("0"), description="Monthly % charged per day overdue")


class InstallmentSchema(BaseModel):
    """Single installment row of a contract"""

    installment_number: int
    due_date: date
    amount: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    status: str
    paid_date: Optional[date] = None
    kind: str
    notes: str = ""


class LateFeeSchema(BaseModel):
    fee_id: str
    amount: Decimal
    assessed_on: date
    installment_number: Optional[int] = None
    reason: str = ""
    paid_date: Optional[date] = None


class DelinquencySchema(BaseModel):
    """Fresh classification of a contract"""

    status: str
    due_today: bool
    days_overdue: int
    overdue_installments: int
    late_interest: Decimal
    unpaid_late_fees: Decimal
    overdue_amount: Decimal
    next_due_date: Optional[date] = None


class ContractResponse(BaseModel):
    """Response for contract endpoints"""

    contract_id: str
    client_id: Optional[str]
    principal: Decimal
    interest_mode: str
    cadence: str
    installment_count: int
    total_interest: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    pending_interest: Decimal
    progress_percent: Decimal
    status: str
    version: int
    delinquency: DelinquencySchema
    installments: List[InstallmentSchema]
    late_fees: List[LateFeeSchema] = []


class PaymentRequest(BaseModel):
    """Request body for POST /v1/contracts/{contract_id}/payments"""

    payment_id: str = Field(..., min_length=1, description="Idempotency key of the payment event")
    installment_number: int = Field(..., ge=1)
    amount: Decimal = Field(..., gt=0)
    paid_date: date
    principal_paid: Optional[Decimal] = None
    interest_paid: Optional[Decimal] = None
    expected_version: Optional[int] = Field(None, description="Reject if the contract changed since this version")


class PaymentResponse(BaseModel):
    """Response for POST /v1/contracts/{contract_id}/payments"""

    contract_id: str
    payment_id: str
    installment_number: int
    outcome: str
    amount_applied: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    contract_status: str
    remainder_installment_number: Optional[int] = None
    excess: Decimal
    unapplied_excess: Decimal
    events: List[str]


class LateFeeRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    assessed_on: date
    installment_number: Optional[int] = None
    reason: str = ""


class LateFeePaymentRequest(BaseModel):
    payment_id: str = Field(..., min_length=1)
    paid_date: date


class ExtendRequest(BaseModel):
    """Request body for POST /v1/contracts/{contract_id}/extend"""

    extra_count: int = Field(..., ge=1, le=30)


class QuoteRequest(BaseModel):
    """Request body for POST /v1/contracts/quote"""

    principal: Decimal = Field(..., gt=0)
    monthly_rate: Decimal = Field(..., gt=0, description="Monthly % compounded over the term")
    installment_count: int = Field(..., ge=1, le=360)


class PriceTableRowSchema(BaseModel):
    installment_number: int
    payment: Decimal
    interest: Decimal
    amortization: Decimal
    balance: Decimal


class QuoteResponse(BaseModel):
    """Fixed-installment simulation with its amortization table"""

    principal: Decimal
    monthly_rate: Decimal
    installment_count: int
    installment_amount: Decimal
    total_payment: Decimal
    total_interest: Decimal
    rows: List[PriceTableRowSchema]


class RefreshResponse(BaseModel):
    checked: int
    newly_overdue: List[str]


class AlertBucketSchema(BaseModel):
    count: int
    amount: Decimal


class HealthSchema(BaseModel):
    score: int
    band: str
    receipt_rate: Decimal
    delinquency_rate: Decimal
    profit_margin: Decimal
    total_received: Decimal
    total_overdue: Decimal


class PortfolioResponse(BaseModel):
    """Response for GET /v1/portfolio"""

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
    due_this_week: AlertBucketSchema
    overdue_gt_30d: AlertBucketSchema
    overdue_by_cadence: Dict[str, AlertBucketSchema]
    health: HealthSchema


class ScoreResponse(BaseModel):
    """Response for client score endpoints"""

    client_id: str
    score: int
    label: str
    on_time_payments: int
    late_payments: int
    score_updated_at: Optional[datetime] = None


class ScoreOverrideRequest(BaseModel):
    new_score: int = Field(..., ge=0, le=150)
    reason: str = Field(..., min_length=1)
    actor: Optional[str] = None
