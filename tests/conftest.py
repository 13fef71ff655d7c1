"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from billing_gateway.api.dependencies import get_notification_client
from billing_gateway.api.main import create_app
from billing_gateway.infrastructure.database.models import Base
from billing_gateway.infrastructure.database.session import get_db
from billing_gateway.domain.installments import originate_contract
from billing_gateway.domain.models import Cadence, Contract, ContractTerms, InterestMode


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingNotifier:
    """Stands in for the messaging webhook; keeps every payload it is asked to send"""

    webhook_url = "http://notifications.test/hook"

    def __init__(self) -> None:
        self.sent: List[Dict[str, Any]] = []

    async def send_event(self, payload: Dict[str, Any]) -> None:
        self.sent.append(payload)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database and recording notifier"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_client] = lambda: notifier
    return TestClient(app)


def make_terms(
    principal: str = "250",
    rate: str = "20",
    count: int = 3,
    mode: InterestMode = InterestMode.ON_TOTAL,
    cadence: Cadence = Cadence.INSTALLMENTS,
    start: date = date(2024, 1, 1),
    first_due: date = date(2024, 2, 1),
    dates: Optional[List[date]] = None,
    total_repayment: Optional[str] = None,
    late_rate: str = "0",
) -> ContractTerms:
    return ContractTerms(
        principal=Decimal(principal),
        interest_rate=Decimal(rate),
        interest_mode=mode,
        cadence=cadence,
        installment_count=count,
        start_date=start,
        first_due_date=first_due,
        installment_dates=dates,
        total_repayment=Decimal(total_repayment) if total_repayment is not None else None,
        late_interest_rate=Decimal(late_rate),
    )


@pytest.fixture
def monthly_contract() -> Contract:
    """250 at 20% on total: 3 monthly installments of 100, due 2024-02-01, 2024-03-01, 2024-04-01"""
    return originate_contract(make_terms(), contract_id="c-monthly", client_id="client-1", client_phone="5511999990000")


@pytest.fixture
def interest_contract() -> Contract:
    """1200 at 5% per installment over 12 months: 12 x 160"""
    return originate_contract(
        make_terms(principal="1200", rate="5", count=12, mode=InterestMode.PER_INSTALLMENT),
        contract_id="c-interest",
        client_id="client-2",
    )


@pytest.fixture
def single_contract() -> Contract:
    """Single payment of 1000 + 10% due 2024-02-01"""
    return originate_contract(
        make_terms(principal="1000", rate="10", count=1, cadence=Cadence.SINGLE),
        contract_id="c-single",
        client_id="client-3",
    )
