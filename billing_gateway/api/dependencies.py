"""Dependency injection for FastAPI endpoints"""

from datetime import date
from typing import Optional
from fastapi import Query, Request
from billing_gateway.infrastructure.clients.notifier import NotificationClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_notification_client() -> NotificationClient:
    """Provide notification webhook client instance"""
    return NotificationClient()


def get_today(today: Optional[date] = Query(None, description="Evaluation date (defaults to the current date)")) -> date:
    """Explicit evaluation date for classifier and aggregator reads"""
    return today or date.today()
