"""Contract endpoints - origination, quotes, reads with fresh classification, late fees"""

import logging
from datetime import date
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from billing_gateway.api.dependencies import get_notification_client, get_request_id, get_today
from billing_gateway.api.errors import http_error
from billing_gateway.api.v1.clients import update_client_score
from billing_gateway.api.v1.schemas import (
    ContractCreateRequest,
    ContractResponse,
    DelinquencySchema,
    ExtendRequest,
    InstallmentSchema,
    LateFeePaymentRequest,
    LateFeeRequest,
    LateFeeSchema,
    PriceTableRowSchema,
    QuoteRequest,
    QuoteResponse,
    RefreshResponse,
)
from billing_gateway.domain.delinquency import assess, refresh_status
from billing_gateway.domain.exceptions import (
    ConcurrentModificationError,
    ContractNotFound,
    DuplicatePayment,
    InvalidContractTerms,
    InvalidPaymentAmount,
    UnknownInstallment,
    UnknownLateFee,
)
from billing_gateway.domain.installments import extend_daily_contract, originate_contract
from billing_gateway.domain.interest import pending_interest, price_table
from billing_gateway.domain.models import Contract, ContractTerms
from billing_gateway.domain.portfolio import collection_progress
from billing_gateway.domain.reconciliation import assess_late_fee, pay_late_fee
from billing_gateway.infrastructure.clients.notifier import NotificationClient
from billing_gateway.infrastructure.database.repositories import (
    ContractRepository,
    NotificationRepository,
    event_payload,
)
from billing_gateway.infrastructure.database.session import get_db
from billing_gateway.infrastructure.observability.metrics import overdue_transitions_counter

router = APIRouter()


def contract_response(contract: Contract, today: date) -> ContractResponse:
    """Render a contract with a fresh delinquency report, never the cached status alone"""
    report = assess(contract, today)
    installments = sorted(contract.ledger_payments(), key=lambda p: (p.due_date, p.installment_number))
    return ContractResponse(
        contract_id=contract.id,
        client_id=contract.client_id,
        principal=contract.principal,
        interest_mode=contract.interest_mode.value,
        cadence=contract.cadence.value,
        installment_count=contract.installment_count,
        total_interest=contract.total_interest,
        total_paid=contract.total_paid,
        remaining_balance=contract.remaining_balance,
        pending_interest=pending_interest(contract),
        progress_percent=collection_progress(contract),
        status=report.status.value,
        version=contract.version,
        delinquency=DelinquencySchema(
            status=report.status.value,
            due_today=report.due_today,
            days_overdue=report.days_overdue,
            overdue_installments=report.overdue_installments,
            late_interest=report.late_interest,
            unpaid_late_fees=report.unpaid_late_fees,
            overdue_amount=report.overdue_amount,
            next_due_date=report.next_due_date,
        ),
        installments=[
            InstallmentSchema(
                installment_number=p.installment_number,
                due_date=p.due_date,
                amount=p.amount,
                principal_paid=p.principal_paid,
                interest_paid=p.interest_paid,
                status=p.status.value,
                paid_date=p.paid_date,
                kind=type(p.kind).__name__,
                notes=p.notes,
            )
            for p in installments
        ],
        late_fees=[
            LateFeeSchema(
                fee_id=f.id,
                amount=f.amount,
                assessed_on=f.assessed_on,
                installment_number=f.installment_number,
                reason=f.reason,
                paid_date=f.paid_date,
            )
            for f in contract.late_fees
        ],
    )


@router.post("/contracts", response_model=ContractResponse, status_code=201)
def create_contract(
    request_body: ContractCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Originate a contract and its installment schedule.

    Invalid terms are rejected before anything is written.
    """
    request_id = get_request_id(request)
    terms = ContractTerms(
        principal=request_body.principal,
        interest_rate=request_body.interest_rate,
        interest_mode=request_body.interest_mode,
        cadence=request_body.cadence,
        installment_count=request_body.installment_count,
        start_date=request_body.start_date,
        first_due_date=request_body.first_due_date,
        installment_dates=request_body.installment_dates,
        total_repayment=request_body.total_repayment,
        late_interest_rate=request_body.late_interest_rate,
    )

    try:
        contract = originate_contract(
            terms,
            client_id=request_body.client_id,
            client_name=request_body.client_name,
            client_phone=request_body.client_phone,
        )
        ContractRepository(db).add(contract)
        db.commit()
    except InvalidContractTerms as e:
        db.rollback()
        raise http_error(e, request_id)

    logging.info(
        "Contract originated",
        extra={
            "request_id": request_id,
            "contract_id": contract.id,
            "cadence": contract.cadence.value,
            "installments": contract.installment_count,
        },
    )
    return contract_response(contract, today)


@router.post("/contracts/quote", response_model=QuoteResponse)
def quote_contract(request_body: QuoteRequest):
    """Price-table simulation: fixed installment and amortization rows, nothing is stored"""
    quote = price_table(request_body.principal, request_body.monthly_rate, request_body.installment_count)
    return QuoteResponse(
        principal=quote.principal,
        monthly_rate=quote.monthly_rate,
        installment_count=quote.installment_count,
        installment_amount=quote.installment_amount,
        total_payment=quote.total_payment,
        total_interest=quote.total_interest,
        rows=[
            PriceTableRowSchema(
                installment_number=row.installment_number,
                payment=row.payment,
                interest=row.interest,
                amortization=row.amortization,
                balance=row.balance,
            )
            for row in quote.rows
        ],
    )


@router.get("/contracts/{contract_id}", response_model=ContractResponse)
def get_contract(contract_id: str, request: Request, db: Session = Depends(get_db), today: date = Depends(get_today)):
    """Contract with installments and its classification on `today`"""
    try:
        contract = ContractRepository(db).get(contract_id)
    except ContractNotFound as e:
        raise http_error(e, get_request_id(request), contract_id)
    return contract_response(contract, today)


@router.post("/contracts/refresh-status", response_model=RefreshResponse)
def refresh_contract_statuses(
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """
    Reclassify every contract and refresh the cached status column.

    Contracts that just moved into overdue get a CONTRACT_OVERDUE event.
    """
    repo = ContractRepository(db)
    outbox = NotificationRepository(db)
    contracts = repo.list_all()
    newly_overdue = []
    payloads = []

    try:
        for contract in contracts:
            previous = contract.status
            event = refresh_status(contract, today)
            if contract.status != previous:
                repo.save(contract)
            if event is not None:
                newly_overdue.append(contract.id)
                outbox.enqueue(event, notifier.webhook_url)
                payloads.append(event_payload(event))
        db.commit()
    except ConcurrentModificationError as e:
        db.rollback()
        raise http_error(e, get_request_id(request))

    for payload in payloads:
        overdue_transitions_counter.inc()
        background_tasks.add_task(notifier.send_event, payload)

    return RefreshResponse(checked=len(contracts), newly_overdue=newly_overdue)


@router.post("/contracts/{contract_id}/extend", response_model=ContractResponse)
def extend_contract(
    contract_id: str,
    request_body: ExtendRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Add extra daily installments after the last due date (Sundays skipped)"""
    request_id = get_request_id(request)
    repo = ContractRepository(db)
    try:
        contract = repo.get(contract_id)
        extend_daily_contract(contract, request_body.extra_count)
        repo.save(contract)
        db.commit()
    except (ContractNotFound, InvalidContractTerms, ConcurrentModificationError) as e:
        db.rollback()
        raise http_error(e, request_id, contract_id)
    return contract_response(contract, today)


@router.post("/contracts/{contract_id}/late-fees", response_model=ContractResponse, status_code=201)
def create_late_fee(
    contract_id: str,
    request_body: LateFeeRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """Assess a structured late fee against a contract"""
    request_id = get_request_id(request)
    repo = ContractRepository(db)
    try:
        contract = repo.get(contract_id)
        assess_late_fee(
            contract,
            amount=request_body.amount,
            assessed_on=request_body.assessed_on,
            installment_number=request_body.installment_number,
            reason=request_body.reason,
        )
        repo.save(contract)
        db.commit()
    except (ContractNotFound, UnknownInstallment, InvalidPaymentAmount, ConcurrentModificationError) as e:
        db.rollback()
        raise http_error(e, request_id, contract_id)
    return contract_response(contract, today)


@router.post("/contracts/{contract_id}/late-fees/{fee_id}/pay", response_model=ContractResponse)
def settle_late_fee(
    contract_id: str,
    fee_id: str,
    request_body: LateFeePaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    """
    Settle a late fee.

    Counts as realized profit and may earn the client a recovery bonus.
    """
    request_id = get_request_id(request)
    repo = ContractRepository(db)
    try:
        contract = repo.get(contract_id)
        pay_late_fee(contract, fee_id, request_body.payment_id, request_body.paid_date)
        repo.save(contract)
        update_client_score(db, contract)
        db.commit()
    except (ContractNotFound, UnknownLateFee, DuplicatePayment, ConcurrentModificationError) as e:
        db.rollback()
        raise http_error(e, request_id, contract_id)
    return contract_response(contract, today)
