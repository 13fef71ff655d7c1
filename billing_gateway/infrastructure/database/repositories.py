"""Data access layer: maps ledger ORM rows to and from domain dataclasses"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from billing_gateway.infrastructure.database.models import (
    ContractRecord,
    LateFeeRecord,
    OutboundNotification,
    PaymentRecord,
    ScoreAdjustmentRecord,
)
from billing_gateway.domain.exceptions import ConcurrentModificationError, ContractNotFound
from billing_gateway.domain.models import (
    AdjustmentKind,
    Cadence,
    Contract,
    ContractStatus,
    InterestMode,
    LateFee,
    NotificationEvent,
    Overpayment,
    Payment,
    PaymentKind,
    PaymentStatus,
    PenaltyFee,
    Scheduled,
    ScoreAdjustment,
    SplitRemainder,
)


def _money(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


def _kind_columns(kind: PaymentKind) -> Dict[str, object]:
    if isinstance(kind, SplitRemainder):
        return {"kind": "split_remainder", "parent_installment": kind.parent_installment, "excess": None, "fee_id": None}
    if isinstance(kind, Overpayment):
        return {"kind": "overpayment", "parent_installment": None, "excess": kind.excess, "fee_id": None}
    if isinstance(kind, PenaltyFee):
        return {"kind": "penalty_fee", "parent_installment": None, "excess": None, "fee_id": kind.fee_id}
    return {"kind": "scheduled", "parent_installment": None, "excess": None, "fee_id": None}


def _kind_from_record(record: PaymentRecord) -> PaymentKind:
    if record.kind == "split_remainder":
        return SplitRemainder(parent_installment=record.parent_installment)
    if record.kind == "overpayment":
        return Overpayment(excess=_money(record.excess))
    if record.kind == "penalty_fee":
        return PenaltyFee(fee_id=record.fee_id)
    return Scheduled()


def _payment_from_record(record: PaymentRecord) -> Payment:
    return Payment(
        id=record.id,
        contract_id=record.contract_id,
        installment_number=record.installment_number,
        amount=_money(record.amount),
        principal_paid=_money(record.principal_paid),
        interest_paid=_money(record.interest_paid),
        due_date=record.due_date,
        paid_date=record.paid_date,
        status=PaymentStatus(record.status),
        kind=_kind_from_record(record),
        payment_ref=record.payment_ref,
        partial=record.partial,
    )


def _copy_payment(payment: Payment, record: PaymentRecord) -> None:
    record.installment_number = payment.installment_number
    record.amount = payment.amount
    record.principal_paid = payment.principal_paid
    record.interest_paid = payment.interest_paid
    record.due_date = payment.due_date
    record.paid_date = payment.paid_date
    record.status = payment.status.value
    record.partial = payment.partial
    record.payment_ref = payment.payment_ref
    record.notes = payment.notes or None
    for column, value in _kind_columns(payment.kind).items():
        setattr(record, column, value)


def _late_fee_from_record(record: LateFeeRecord) -> LateFee:
    return LateFee(
        id=record.id,
        contract_id=record.contract_id,
        amount=_money(record.amount),
        assessed_on=record.assessed_on,
        installment_number=record.installment_number,
        reason=record.reason or "",
        paid_date=record.paid_date,
    )


def contract_from_record(record: ContractRecord) -> Contract:
    """Rebuild the domain contract, payments and late fees from ORM rows"""
    return Contract(
        id=record.id,
        client_id=record.client_id,
        client_name=record.client_name,
        client_phone=record.client_phone,
        principal=_money(record.principal),
        interest_rate=_money(record.interest_rate),
        interest_mode=InterestMode(record.interest_mode),
        cadence=Cadence(record.cadence),
        installment_count=record.installment_count,
        start_date=record.start_date,
        first_due_date=record.first_due_date,
        due_date=record.due_date,
        installment_dates=[date.fromisoformat(d) for d in record.installment_dates or []],
        total_interest=_money(record.total_interest),
        total_paid=_money(record.total_paid),
        remaining_balance=_money(record.remaining_balance),
        status=ContractStatus(record.status),
        late_interest_rate=_money(record.late_interest_rate),
        version=record.version_id,
        payments=[_payment_from_record(p) for p in record.payments],
        late_fees=[_late_fee_from_record(f) for f in record.late_fees],
    )


def _copy_contract(contract: Contract, record: ContractRecord) -> None:
    record.client_id = contract.client_id
    record.client_name = contract.client_name
    record.client_phone = contract.client_phone
    record.principal = contract.principal
    record.interest_rate = contract.interest_rate
    record.interest_mode = contract.interest_mode.value
    record.cadence = contract.cadence.value
    record.installment_count = contract.installment_count
    record.start_date = contract.start_date
    record.first_due_date = contract.first_due_date
    record.due_date = contract.due_date
    record.installment_dates = [d.isoformat() for d in contract.installment_dates]
    record.total_interest = contract.total_interest
    record.total_paid = contract.total_paid
    record.remaining_balance = contract.remaining_balance
    record.status = contract.status.value
    record.late_interest_rate = contract.late_interest_rate


class ContractRepository:
    """Repository for contracts and their ledger rows"""

    def __init__(self, db: Session):
        self.db = db

    def _get_record(self, contract_id: str) -> ContractRecord:
        record = self.db.query(ContractRecord).filter(ContractRecord.id == contract_id).first()
        if record is None:
            raise ContractNotFound(f"Contract {contract_id} not found")
        return record

    def get(self, contract_id: str) -> Contract:
        """Load a contract with payments and late fees"""
        return contract_from_record(self._get_record(contract_id))

    def list_all(self, client_id: Optional[str] = None) -> List[Contract]:
        query = self.db.query(ContractRecord)
        if client_id is not None:
            query = query.filter(ContractRecord.client_id == client_id)
        return [contract_from_record(r) for r in query.order_by(ContractRecord.created_at.desc()).all()]

    def add(self, contract: Contract) -> Contract:
        """Persist a newly originated contract"""
        record = ContractRecord(id=contract.id)
        _copy_contract(contract, record)
        for payment in contract.payments:
            payment_record = PaymentRecord(id=payment.id, contract_id=contract.id)
            _copy_payment(payment, payment_record)
            record.payments.append(payment_record)
        self.db.add(record)
        self.db.flush()  # Get version without committing
        contract.version = record.version_id
        return contract

    def save(self, contract: Contract) -> Contract:
        """
        Write back a mutated contract under optimistic versioning.

        Raises:
            ConcurrentModificationError: the row changed since `contract` was read
        """
        record = self._get_record(contract.id)
        if record.version_id != contract.version:
            raise ConcurrentModificationError(
                f"Contract {contract.id} is at version {record.version_id}, expected {contract.version}"
            )

        _copy_contract(contract, record)
        # Child-row changes must bump the version too
        flag_modified(record, "status")

        existing = {p.id: p for p in record.payments}
        for payment in contract.payments:
            payment_record = existing.get(payment.id)
            if payment_record is None:
                payment_record = PaymentRecord(id=payment.id, contract_id=contract.id)
                record.payments.append(payment_record)
            _copy_payment(payment, payment_record)

        fees = {f.id: f for f in record.late_fees}
        for fee in contract.late_fees:
            fee_record = fees.get(fee.id)
            if fee_record is None:
                fee_record = LateFeeRecord(id=fee.id, contract_id=contract.id)
                record.late_fees.append(fee_record)
            fee_record.installment_number = fee.installment_number
            fee_record.amount = fee.amount
            fee_record.assessed_on = fee.assessed_on
            fee_record.reason = fee.reason
            fee_record.paid_date = fee.paid_date

        try:
            self.db.flush()
        except StaleDataError as e:
            raise ConcurrentModificationError(f"Contract {contract.id} was modified concurrently") from e

        contract.version = record.version_id
        return contract


class ScoreRepository:
    """Repository for the append-only client score log"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_client(self, client_id: str) -> List[ScoreAdjustment]:
        records = (
            self.db.query(ScoreAdjustmentRecord)
            .filter(ScoreAdjustmentRecord.client_id == client_id)
            .order_by(ScoreAdjustmentRecord.created_at, ScoreAdjustmentRecord.id)
            .all()
        )
        return [
            ScoreAdjustment(
                client_id=r.client_id,
                kind=AdjustmentKind(r.kind),
                delta=r.delta,
                created_at=r.created_at,
                override_score=r.override_score,
                reason=r.reason or "",
                actor=r.actor,
                contract_id=r.contract_id,
                installment_number=r.installment_number,
            )
            for r in records
        ]

    def append(self, adjustment: ScoreAdjustment) -> ScoreAdjustmentRecord:
        record = ScoreAdjustmentRecord(
            client_id=adjustment.client_id,
            kind=adjustment.kind.value,
            delta=adjustment.delta,
            override_score=adjustment.override_score,
            reason=adjustment.reason,
            actor=adjustment.actor,
            contract_id=adjustment.contract_id,
            installment_number=adjustment.installment_number,
            created_at=adjustment.created_at,
        )
        self.db.add(record)
        self.db.flush()
        return record


class NotificationRepository:
    """Outbox for notification events awaiting delivery"""

    def __init__(self, db: Session):
        self.db = db

    def enqueue(self, event: NotificationEvent, target_url: str) -> OutboundNotification:
        record = OutboundNotification(
            event_type=event.event_type.value,
            contract_id=event.contract_id,
            payload=event_payload(event),
            target_url=target_url,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def list_for_contract(self, contract_id: str) -> List[OutboundNotification]:
        return (
            self.db.query(OutboundNotification)
            .filter(OutboundNotification.contract_id == contract_id)
            .order_by(OutboundNotification.created_at)
            .all()
        )


def event_payload(event: NotificationEvent) -> Dict[str, object]:
    """Webhook body for a notification event"""
    return {
        "event": event.event_type.value,
        "contract_id": event.contract_id,
        "client_id": event.client_id,
        "client_phone": event.client_phone,
        "occurred_on": event.occurred_on.isoformat(),
        "data": dict(event.data),
    }
