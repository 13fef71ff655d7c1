"""Portfolio aggregation - folds every contract into headline collection metrics"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable

from billing_gateway.domain.delinquency import assess, unpaid_due_dates
from billing_gateway.domain.interest import interest_received, pending_interest, principal_received
from billing_gateway.domain.models import (
    ZERO,
    AlertBucket,
    Cadence,
    Contract,
    Delinquency,
    PortfolioSnapshot,
)


def build_snapshot(
    contracts: Iterable[Contract],
    today: date,
    alert_window_days: int = 7,
    overdue_alert_days: int = 30,
) -> PortfolioSnapshot:
    """
    Fold all contracts (with their payments) into a portfolio snapshot.

    Requirements:
    - capital_on_street: principal not yet recovered, over non-paid contracts
    - pending_amount: remaining balance + unpaid late fees + late interest, over non-paid contracts
    - total_received_all_time: total_paid over ALL contracts
    - realized_profit: interest_paid over all settled rows, penalty rows included
    - alert buckets walk the unpaid installment dates with the paid-count skip,
      never the cached status column
    """
    week_end = today + timedelta(days=alert_window_days)
    overdue_cutoff = today - timedelta(days=overdue_alert_days)

    capital_on_street = ZERO
    pending_amount = ZERO
    pending_interest_total = ZERO
    total_received = ZERO
    realized_profit = ZERO
    overdue_amount = ZERO
    active_count = 0
    paid_count = 0
    overdue_count = 0
    due_this_week = AlertBucket()
    overdue_gt_30d = AlertBucket()
    overdue_by_cadence: Dict[Cadence, AlertBucket] = {}

    for contract in contracts:
        total_received += contract.total_paid
        realized_profit += interest_received(contract)

        report = assess(contract, today)
        if report.status == Delinquency.PAID:
            paid_count += 1
            continue

        active_count += 1
        capital_on_street += contract.principal - principal_received(contract)
        pending_interest_total += pending_interest(contract)
        pending_amount += contract.remaining_balance + report.unpaid_late_fees + report.late_interest

        if report.status == Delinquency.OVERDUE:
            overdue_count += 1
            overdue_amount += report.overdue_amount
            overdue_by_cadence.setdefault(contract.cadence, AlertBucket()).add(report.overdue_amount)

        for due, amount in unpaid_due_dates(contract):
            if today <= due <= week_end:
                due_this_week.add(amount)
            if due < overdue_cutoff:
                overdue_gt_30d.add(amount)

    return PortfolioSnapshot(
        as_of=today,
        capital_on_street=capital_on_street,
        pending_amount=pending_amount,
        pending_interest=pending_interest_total,
        total_received_all_time=total_received,
        realized_profit=realized_profit,
        active_count=active_count,
        paid_count=paid_count,
        overdue_count=overdue_count,
        overdue_amount=overdue_amount,
        due_this_week=due_this_week,
        overdue_gt_30d=overdue_gt_30d,
        overdue_by_cadence=overdue_by_cadence,
    )


def collection_progress(contract: Contract) -> Decimal:
    """Share of the amount due already collected, 0-100"""
    if contract.total_due <= 0:
        return Decimal("100")
    return min(Decimal("100"), contract.total_paid / contract.total_due * 100)
