"""POST /v1/contracts/{contract_id}/payments - Payment reconciliation endpoint"""

import time
import logging
from fastapi import APIRouter, Depends, BackgroundTasks, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from billing_gateway.api.dependencies import get_notification_client, get_request_id
from billing_gateway.api.errors import http_error
from billing_gateway.api.v1.clients import update_client_score
from billing_gateway.api.v1.schemas import PaymentRequest, PaymentResponse
from billing_gateway.config import settings
from billing_gateway.domain.exceptions import (
    ConcurrentModificationError,
    DomainException,
    DuplicatePayment,
)
from billing_gateway.domain.reconciliation import apply_payment
from billing_gateway.infrastructure.clients.notifier import NotificationClient
from billing_gateway.infrastructure.database.repositories import (
    ContractRepository,
    NotificationRepository,
    event_payload,
)
from billing_gateway.infrastructure.database.session import get_db
from billing_gateway.infrastructure.observability.logging import log_reconciliation
from billing_gateway.infrastructure.observability.metrics import record_payment

router = APIRouter()


@router.post("/contracts/{contract_id}/payments", response_model=PaymentResponse)
async def create_payment(
    contract_id: str,
    request_body: PaymentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    notifier: NotificationClient = Depends(get_notification_client),
):
    """
    Reconcile a received payment against one installment.

    Flow:
    1. Load contract + installment rows
    2. Apply payment (exact / under / over)
    3. Persist under optimistic versioning
    4. Append client score entries
    5. Queue notification events and send them in the background
    6. Return reconciliation result
    """
    start_time = time.time()
    request_id = get_request_id(request)
    repo = ContractRepository(db)

    try:
        # 1. Load contract
        contract = repo.get(contract_id)
        if request_body.expected_version is not None and request_body.expected_version != contract.version:
            raise ConcurrentModificationError(
                f"Contract {contract_id} is at version {contract.version}, expected {request_body.expected_version}"
            )

        row = contract.find_installment(request_body.installment_number)
        due_date = row.due_date if row is not None else None

        # 2. Reconcile
        result = apply_payment(
            contract,
            installment_number=request_body.installment_number,
            paid_amount=request_body.amount,
            paid_date=request_body.paid_date,
            payment_id=request_body.payment_id,
            principal_paid=request_body.principal_paid,
            interest_paid=request_body.interest_paid,
            tolerance=settings.payment_tolerance,
        )

        # 3. Persist
        repo.save(contract)

        # 4. Client score
        update_client_score(
            db,
            contract,
            due_date=due_date,
            paid_date=request_body.paid_date,
            installment_number=request_body.installment_number,
        )

        # 5. Queue notifications
        outbox = NotificationRepository(db)
        payloads = []
        for event in result.events:
            outbox.enqueue(event, notifier.webhook_url)
            payloads.append(event_payload(event))

        db.commit()

    except IntegrityError:
        # Unique payment_ref caught a duplicate that raced past the in-memory check
        db.rollback()
        raise http_error(
            DuplicatePayment(f"Payment {request_body.payment_id} already applied"), request_id, contract_id
        )

    except DomainException as e:
        db.rollback()
        raise http_error(e, request_id, contract_id)

    for payload in payloads:
        background_tasks.add_task(notifier.send_event, payload)

    # Record metrics and logs
    duration_ms = (time.time() - start_time) * 1000
    record_payment(result.outcome)
    log_reconciliation(
        request_id,
        contract_id,
        request_body.payment_id,
        result.outcome,
        str(result.amount_applied),
        str(result.remaining_balance),
        duration_ms,
    )
    if result.unapplied_excess > 0:
        logging.warning(
            "Payment exceeded the remaining balance",
            extra={"request_id": request_id, "contract_id": contract_id, "unapplied_excess": str(result.unapplied_excess)},
        )

    return PaymentResponse(
        contract_id=result.contract_id,
        payment_id=result.payment_id,
        installment_number=result.installment_number,
        outcome=result.outcome,
        amount_applied=result.amount_applied,
        principal_paid=result.principal_paid,
        interest_paid=result.interest_paid,
        total_paid=result.total_paid,
        remaining_balance=result.remaining_balance,
        contract_status=result.contract_status.value,
        remainder_installment_number=(
            result.remainder_installment.installment_number if result.remainder_installment else None
        ),
        excess=result.excess,
        unapplied_excess=result.unapplied_excess,
        events=[event.event_type.value for event in result.events],
    )
