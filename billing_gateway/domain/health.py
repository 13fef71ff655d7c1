"""Operational health score derived from a portfolio snapshot"""

from decimal import Decimal, ROUND_HALF_UP

from billing_gateway.domain.models import ZERO, HealthReport, PortfolioSnapshot

HUNDRED = Decimal("100")


def calculate_health(snapshot: PortfolioSnapshot) -> HealthReport:
    """
    Blend collection efficiency, delinquency and margin into a 0-100 score.

    Scoring weights:
    - 40%: Receipt rate, received / (received + pending)
    - 40%: Inverse delinquency, 100 - 2 * overdue share of contracts
    - 20%: Profit margin, realized profit / (capital on street + received), doubled

    An operational heuristic, not a calibrated model. Each term is clamped so the
    score stays within 0-100.
    """
    total_expected = snapshot.total_received_all_time + snapshot.pending_amount
    receipt_rate = (
        snapshot.total_received_all_time / total_expected * HUNDRED if total_expected > 0 else HUNDRED
    )

    total_contracts = snapshot.active_count + snapshot.paid_count
    delinquency_rate = (
        Decimal(snapshot.overdue_count) / Decimal(total_contracts) * HUNDRED if total_contracts > 0 else ZERO
    )

    total_capital = snapshot.capital_on_street + snapshot.total_received_all_time
    profit_margin = snapshot.realized_profit / total_capital * HUNDRED if total_capital > 0 else ZERO

    receipt_score = min(HUNDRED, receipt_rate) * Decimal("0.4")
    delinquency_score = max(ZERO, HUNDRED - delinquency_rate * 2) * Decimal("0.4")
    margin_score = min(HUNDRED, profit_margin * 2) * Decimal("0.2")
    raw = receipt_score + delinquency_score + margin_score
    score = int(raw.to_integral_value(rounding=ROUND_HALF_UP))

    return HealthReport(
        score=max(0, min(100, score)),
        receipt_rate=receipt_rate,
        delinquency_rate=delinquency_rate,
        profit_margin=profit_margin,
        total_received=snapshot.total_received_all_time,
        total_overdue=snapshot.overdue_amount,
    )


def health_band(score: int) -> str:
    """Dashboard band for a health score"""
    if score >= 80:
        return "healthy"
    elif score >= 60:
        return "attention"
    elif score >= 40:
        return "at_risk"
    else:
        return "critical"
