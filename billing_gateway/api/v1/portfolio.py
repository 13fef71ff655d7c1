"""GET /v1/portfolio - Portfolio snapshot and operational health score"""

from datetime import date
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from billing_gateway.api.dependencies import get_today
from billing_gateway.api.v1.schemas import AlertBucketSchema, HealthSchema, PortfolioResponse
from billing_gateway.config import settings
from billing_gateway.domain.health import calculate_health, health_band
from billing_gateway.domain.models import AlertBucket
from billing_gateway.domain.portfolio import build_snapshot
from billing_gateway.infrastructure.database.repositories import ContractRepository
from billing_gateway.infrastructure.database.session import get_db
from billing_gateway.infrastructure.observability.metrics import portfolio_health_gauge

router = APIRouter()


def bucket_schema(bucket: AlertBucket) -> AlertBucketSchema:
    return AlertBucketSchema(count=bucket.count, amount=bucket.amount)


@router.get("/portfolio", response_model=PortfolioResponse)
def get_portfolio(db: Session = Depends(get_db), today: date = Depends(get_today)):
    """
    Recompute portfolio metrics from every contract and payment row.

    Returns:
        Snapshot totals, alert buckets and the 0-100 health score
    """
    contracts = ContractRepository(db).list_all()
    snapshot = build_snapshot(
        contracts,
        today,
        alert_window_days=settings.alert_window_days,
        overdue_alert_days=settings.overdue_alert_days,
    )
    health = calculate_health(snapshot)
    portfolio_health_gauge.set(health.score)

    return PortfolioResponse(
        as_of=snapshot.as_of,
        capital_on_street=snapshot.capital_on_street,
        pending_amount=snapshot.pending_amount,
        pending_interest=snapshot.pending_interest,
        total_received_all_time=snapshot.total_received_all_time,
        realized_profit=snapshot.realized_profit,
        active_count=snapshot.active_count,
        paid_count=snapshot.paid_count,
        overdue_count=snapshot.overdue_count,
        overdue_amount=snapshot.overdue_amount,
        due_this_week=bucket_schema(snapshot.due_this_week),
        overdue_gt_30d=bucket_schema(snapshot.overdue_gt_30d),
        overdue_by_cadence={cadence.value: bucket_schema(b) for cadence, b in snapshot.overdue_by_cadence.items()},
        health=HealthSchema(
            score=health.score,
            band=health_band(health.score),
            receipt_rate=health.receipt_rate,
            delinquency_rate=health.delinquency_rate,
            profit_margin=health.profit_margin,
            total_received=health.total_received,
            total_overdue=health.total_overdue,
        ),
    )
