"""GET/POST /v1/clients/{client_id}/score - Client risk score and manual overrides"""

import logging
from datetime import date, datetime
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from billing_gateway.api.v1.schemas import ScoreOverrideRequest, ScoreResponse
from billing_gateway.config import settings
from billing_gateway.domain.exceptions import DomainException
from billing_gateway.domain.models import ClientScore, Contract
from billing_gateway.domain.scoring import (
    extra_profit,
    fold_score,
    loyalty_adjustment,
    manual_override,
    recovery_adjustment,
    score_payment,
)
from billing_gateway.infrastructure.database.repositories import ContractRepository, ScoreRepository
from billing_gateway.infrastructure.database.session import get_db

router = APIRouter()


def score_response(score: ClientScore) -> ScoreResponse:
    return ScoreResponse(
        client_id=score.client_id,
        score=score.score,
        label=score.label,
        on_time_payments=score.on_time_payments,
        late_payments=score.late_payments,
        score_updated_at=score.score_updated_at,
    )


def update_client_score(
    db: Session,
    contract: Contract,
    due_date: Optional[date] = None,
    paid_date: Optional[date] = None,
    installment_number: Optional[int] = None,
) -> Optional[ClientScore]:
    """
    Append the automatic score entries for a payment event.

    Entries are differential: a timeliness delta when an installment was settled,
    plus any recovery or loyalty bonus change not yet logged. Manual overrides
    stay in force and the new deltas apply on top of them.
    """
    if contract.client_id is None:
        return None

    now = datetime.utcnow()
    score_repo = ScoreRepository(db)

    if due_date is not None and paid_date is not None:
        score_repo.append(
            score_payment(
                client_id=contract.client_id,
                due_date=due_date,
                paid_date=paid_date,
                now=now,
                critical_late_days=settings.critical_late_days,
                contract_id=contract.id,
                installment_number=installment_number,
            )
        )

    client_contracts = ContractRepository(db).list_all(client_id=contract.client_id)
    bonus = recovery_adjustment(
        contract.client_id,
        score_repo.list_for_client(contract.client_id),
        extra_profit(client_contracts),
        now,
    )
    if bonus is not None:
        score_repo.append(bonus)

    loyalty = loyalty_adjustment(
        contract.client_id,
        score_repo.list_for_client(contract.client_id),
        len(client_contracts),
        now,
    )
    if loyalty is not None:
        score_repo.append(loyalty)

    return fold_score(contract.client_id, score_repo.list_for_client(contract.client_id))


@router.get("/clients/{client_id}/score", response_model=ScoreResponse)
def get_client_score(client_id: str, db: Session = Depends(get_db)):
    """
    Current client score, folded over the full adjustment history.

    Clients without history start at 100.
    """
    log = ScoreRepository(db).list_for_client(client_id)
    return score_response(fold_score(client_id, log))


@router.post("/clients/{client_id}/score/override", response_model=ScoreResponse)
def override_client_score(client_id: str, request_body: ScoreOverrideRequest, db: Session = Depends(get_db)):
    """Operator override, recorded as an audited log entry"""
    score_repo = ScoreRepository(db)
    try:
        adjustment = manual_override(
            client_id=client_id,
            new_score=request_body.new_score,
            reason=request_body.reason,
            now=datetime.utcnow(),
            actor=request_body.actor,
        )
        score_repo.append(adjustment)
        db.commit()
    except DomainException as e:
        db.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    logging.info(
        "Client score overridden",
        extra={"client_id": client_id, "new_score": request_body.new_score, "actor": request_body.actor},
    )
    return score_response(fold_score(client_id, score_repo.list_for_client(client_id)))
