"""Unit tests for the operational health score"""

import pytest
from datetime import date
from decimal import Decimal
from billing_gateway.domain.health import calculate_health, health_band
from billing_gateway.domain.models import AlertBucket, PortfolioSnapshot


def make_snapshot(
    received="0",
    pending="0",
    capital="0",
    profit="0",
    active=0,
    paid=0,
    overdue=0,
) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        as_of=date(2024, 2, 10),
        capital_on_street=Decimal(capital),
        pending_amount=Decimal(pending),
        pending_interest=Decimal("0"),
        total_received_all_time=Decimal(received),
        realized_profit=Decimal(profit),
        active_count=active,
        paid_count=paid,
        overdue_count=overdue,
        overdue_amount=Decimal("0"),
        due_this_week=AlertBucket(),
        overdue_gt_30d=AlertBucket(),
    )


def test_perfect_portfolio_scores_100():
    """Everything received, nothing overdue, 50% margin"""
    report = calculate_health(make_snapshot(received="1000", profit="500", paid=1))

    assert report.receipt_rate == Decimal("100")
    assert report.delinquency_rate == Decimal("0")
    assert report.profit_margin == Decimal("50")
    assert report.score == 100


def test_empty_portfolio_defaults():
    report = calculate_health(make_snapshot())

    assert report.receipt_rate == Decimal("100")
    assert report.delinquency_rate == Decimal("0")
    assert report.profit_margin == Decimal("0")
    assert report.score == 80


def test_mixed_portfolio():
    """60% received (24) + 25% overdue (20) + 5% margin (2)"""
    report = calculate_health(
        make_snapshot(received="600", pending="400", capital="400", profit="50", active=3, paid=1, overdue=1)
    )

    assert report.score == 46
    assert health_band(report.score) == "at_risk"


def test_delinquency_term_floors_at_zero():
    report = calculate_health(make_snapshot(pending="1000", capital="1000", active=2, overdue=2))

    # receipt 0, delinquency 100% (term clamped to 0), margin 0
    assert report.score == 0


@pytest.mark.parametrize(
    "score,band",
    [(100, "healthy"), (80, "healthy"), (79, "attention"), (60, "attention"), (59, "at_risk"), (40, "at_risk"), (39, "critical"), (0, "critical")],
)
def test_health_band(score, band):
    assert health_band(score) == band
