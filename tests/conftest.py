import datetime as dt
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from mcp_server import app, get_ai_classifier
from models import Transaction, TransactionType


def make_txn(day, amount, category="Uncategorized", subcategory="Uncategorized",
             description="", txn_type=TransactionType.EXPENSE, **extra):
    return Transaction(
        date=dt.date.fromisoformat(day) if isinstance(day, str) else day,
        amount=Decimal(str(amount)),
        category=category,
        subcategory=subcategory,
        description=description,
        type=txn_type,
        **extra,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_classifier] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def january_scenario():
    return [
        make_txn("2024-01-15", 1000, "Salary", "Salary", "Monthly salary", TransactionType.INCOME),
        make_txn("2024-01-20", 200, "Living Expenses", "Grocery", "Weekly groceries"),
        make_txn("2024-01-25", 100, "Savings", "SIPs", "Monthly SIP contribution"),
    ]
