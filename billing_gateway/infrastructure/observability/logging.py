"""Structured JSON logging for ledger auditing"""

import logging
import sys
from datetime import datetime
from typing import Any, Dict, Optional, TextIO
from pythonjsonlogger import jsonlogger

from billing_gateway.config import settings

# Chatty third-party loggers kept at WARNING so ledger events stand out
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


class LedgerJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping every record with time, level and service"""

    def __init__(self, *args, service: Optional[str] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.service = service or settings.service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.utcnow().isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    """Route the root logger to a single JSON handler"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(LedgerJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_reconciliation(
    request_id: str,
    contract_id: str,
    payment_id: str,
    outcome: str,
    amount: str,
    remaining_balance: str,
    duration_ms: float,
) -> None:
    """Audit line for every reconciled payment"""
    logging.info(
        "Payment reconciled",
        extra={
            "request_id": request_id,
            "contract_id": contract_id,
            "payment_id": payment_id,
            "step": "reconciliation_complete",
            "outcome": outcome,
            "amount": amount,
            "remaining_balance": remaining_balance,
            "duration_ms": round(duration_ms, 2),
        },
    )


def log_rejection(request_id: str, contract_id: str, reason: str, detail: str) -> None:
    logging.warning(
        "Ledger operation rejected",
        extra={
            "request_id": request_id,
            "contract_id": contract_id,
            "step": "rejected",
            "reason": reason,
            "detail": detail,
        },
    )
