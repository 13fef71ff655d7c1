"""SQLAlchemy ORM models for contracts, installment rows, late fees and score history"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

MONEY = Numeric(14, 2)
RATE = Numeric(9, 4)


def new_id() -> str:
    return str(uuid.uuid4())


class ContractRecord(Base):
    """Loan / product sale / vehicle sale / check discount contract"""

    __tablename__ = "contract"

    id = Column(String(36), primary_key=True, default=new_id)
    client_id = Column(Text, nullable=True, index=True)
    client_name = Column(Text, nullable=True)
    client_phone = Column(Text, nullable=True)
    principal = Column(MONEY, nullable=False)
    interest_rate = Column(RATE, nullable=False)
    interest_mode = Column(Text, nullable=False)
    cadence = Column(Text, nullable=False)
    installment_count = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    first_due_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    installment_dates = Column(JSON, nullable=False, default=list)
    total_interest = Column(MONEY, nullable=False)
    total_paid = Column(MONEY, nullable=False, default=0)
    remaining_balance = Column(MONEY, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    late_interest_rate = Column(RATE, nullable=False, default=0)
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    # Compare-and-swap on every UPDATE: concurrent writers get StaleDataError
    __mapper_args__ = {"version_id_col": version_id}

    payments = relationship(
        "PaymentRecord",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="PaymentRecord.installment_number",
    )
    late_fees = relationship("LateFeeRecord", back_populates="contract", cascade="all, delete-orphan")


class PaymentRecord(Base):
    """Installment row: scheduled, split remainder, overpaid or penalty settlement"""

    __tablename__ = "contract_payment"

    id = Column(String(36), primary_key=True, default=new_id)
    contract_id = Column(String(36), ForeignKey("contract.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    amount = Column(MONEY, nullable=False)
    principal_paid = Column(MONEY, nullable=False)
    interest_paid = Column(MONEY, nullable=False)
    due_date = Column(Date, nullable=False)
    paid_date = Column(Date, nullable=True)
    status = Column(Text, nullable=False, default="pending")
    kind = Column(Text, nullable=False, default="scheduled")
    parent_installment = Column(Integer, nullable=True)
    excess = Column(MONEY, nullable=True)
    fee_id = Column(String(36), nullable=True)
    partial = Column(Boolean, nullable=False, default=False)
    payment_ref = Column(Text, nullable=True, unique=True)
    notes = Column(Text, nullable=True)  # display only, derived from kind
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    contract = relationship("ContractRecord", back_populates="payments")


class LateFeeRecord(Base):
    """Structured late fee assessed against a contract"""

    __tablename__ = "late_fee"

    id = Column(String(36), primary_key=True, default=new_id)
    contract_id = Column(String(36), ForeignKey("contract.id", ondelete="CASCADE"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=True)
    amount = Column(MONEY, nullable=False)
    assessed_on = Column(Date, nullable=False)
    reason = Column(Text, nullable=False, default="")
    paid_date = Column(Date, nullable=True)

    contract = relationship("ContractRecord", back_populates="late_fees")


class ScoreAdjustmentRecord(Base):
    """Append-only client score log entry"""

    __tablename__ = "score_adjustment"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(Text, nullable=False, index=True)
    kind = Column(Text, nullable=False)
    delta = Column(Integer, nullable=False, default=0)
    override_score = Column(Integer, nullable=True)
    reason = Column(Text, nullable=False, default="")
    actor = Column(Text, nullable=True)
    contract_id = Column(String(36), nullable=True)
    installment_number = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)


class OutboundNotification(Base):
    """Notification delivery queue with retry tracking"""

    __tablename__ = "outbound_notification"

    id = Column(String(36), primary_key=True, default=new_id)
    event_type = Column(Text, nullable=False)
    contract_id = Column(String(36), nullable=True)
    payload = Column(JSON, nullable=False)
    target_url = Column(Text, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    last_attempt_at = Column(DateTime(timezone=True), nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
