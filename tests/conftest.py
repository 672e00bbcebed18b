"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from budget_gateway.api.main import create_app
from budget_gateway.infrastructure.database.models import Base
from budget_gateway.infrastructure.database.session import get_db
from budget_gateway.domain.models import OneTimeEntry, RecurringRule


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def rent_rule() -> RecurringRule:
    """Monthly rent on the 31st, clamped to shorter months"""
    return RecurringRule(
        id="rule-rent",
        type="expense",
        category="bill",
        description="Rent",
        amount_cents=10000,
        frequency="monthly",
        start_anchor=date(2025, 1, 1),
        dom=31,
    )


@pytest.fixture
def paycheck_rule() -> RecurringRule:
    """Biweekly Monday paycheck anchored on 2025-01-06"""
    return RecurringRule(
        id="rule-pay",
        type="income",
        category="business_income",
        description="Paycheck",
        amount_cents=250000,
        frequency="biweekly",
        start_anchor=date(2025, 1, 6),
        dow=1,
    )


@pytest.fixture
def gym_rule() -> RecurringRule:
    """Weekly Friday gym fee"""
    return RecurringRule(
        id="rule-gym",
        type="expense",
        category="subscription",
        description="Gym",
        amount_cents=1500,
        frequency="weekly",
        start_anchor=date(2025, 10, 1),
        dow=5,
    )


@pytest.fixture
def sample_entries() -> list[OneTimeEntry]:
    """A paid and an unpaid one-time expense plus a one-off income"""
    return [
        OneTimeEntry(
            id="entry-car",
            type="expense",
            category="bill",
            description="Car repair",
            amount_cents=45000,
            due_date=date(2025, 11, 5),
        ),
        OneTimeEntry(
            id="entry-phone",
            type="expense",
            category="bill",
            description="Phone",
            amount_cents=6000,
            due_date=date(2025, 11, 12),
            is_paid=True,
            paid_on=date(2025, 11, 11),
        ),
        OneTimeEntry(
            id="entry-refund",
            type="income",
            category="other",
            description="Tax refund",
            amount_cents=80000,
            due_date=date(2025, 11, 20),
        ),
    ]
