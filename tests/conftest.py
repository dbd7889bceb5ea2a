"""
Shared pytest fixtures for the Kulu Sheet test suite.

All tests run against an in-memory SQLite database. The environment is set
before the application is imported so that Settings and the engine pick it
up. Every request made through the test client shares the test's session,
and after each test every table is wiped so tests are fully independent.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("AUDIT_LOG_DIR", tempfile.mkdtemp(prefix="kulu-audit-"))

import pytest
from dataclasses import replace
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient

from app.db.base import Base, SessionLocal, engine, get_db
from app.main import app
from app.models import Loan, LoanStatus, LoanTransaction, User
from app.services.auth import create_admin_user
from app.services.loan import list_loan_transactions
from app.services.loan_ledger import apply_derived_state, reconcile_loan
from app.services.member import create_member
from app.services.savings import record_deposit

ADMIN_EMAIL = "admin@example.com"
MEMBER_EMAIL = "member@example.com"
PASSWORD = "TestPass1!"


# ---------------------------------------------------------------------------
# Database / application lifecycle
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session", autouse=True)
def schema():
    """Create all tables once for the test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(schema):
    """Session for one test. Wipes every table afterwards."""
    session = SessionLocal()
    yield session
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def client(db):
    """Test client whose requests use the test's session."""
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Common model helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def admin(db) -> User:
    return create_admin_user(db, email=ADMIN_EMAIL, password=PASSWORD, name="Admin User")


@pytest.fixture
def member(db):
    """A member with a USER login account."""
    return create_member(db, member_code="M001", name="Asha Devi", email=MEMBER_EMAIL, password=PASSWORD)


@pytest.fixture
def other_member(db):
    return create_member(db, member_code="M002", name="Ravi Kumar", email="ravi@example.com", password=PASSWORD)


@pytest.fixture
def funded_members(db, member, other_member):
    """Two members with 3000 and 1000 in savings."""
    record_deposit(db, member.id, Decimal("3000.00"), datetime(2024, 1, 5))
    record_deposit(db, other_member.id, Decimal("1000.00"), datetime(2024, 1, 5))
    return member, other_member


@pytest.fixture
def make_loan(db, member):
    """Insert a loan directly, bypassing savings deductions."""
    def _make_loan(principal="1200.00", months=12, disbursed_at=None, borrower=None) -> Loan:
        loan = Loan(
            member_id=(borrower or member).id,
            principal=Decimal(principal),
            months=months,
            remaining=Decimal(principal),
            current_month=0,
            total_principal_paid=Decimal("0.00"),
            late_payment_penalty=Decimal("0.00"),
            status=LoanStatus.PENDING,
            disbursed_at=disbursed_at or datetime(2024, 1, 1),
        )
        db.add(loan)
        db.commit()
        db.refresh(loan)
        return loan
    return _make_loan


@pytest.fixture
def add_payments(db):
    """Record (month, amount) payments and set the loan's derived fields to match."""
    def _add_payments(loan, payments):
        for month, amount in payments:
            db.add(LoanTransaction(
                loan_id=loan.id,
                date=datetime(2024, 1, 1) + timedelta(days=30 * month),
                month=month,
                amount=Decimal(amount),
                penalty=Decimal("0.00"),
            ))
        db.flush()
        state = reconcile_loan(loan, list_loan_transactions(db, loan.id))
        if state.status == LoanStatus.COMPLETED:
            state = replace(state, completed_at=datetime(2024, 12, 31))
        apply_derived_state(loan, state)
        db.commit()
        db.refresh(loan)
        return list_loan_transactions(db, loan.id)
    return _add_payments


def login(client: TestClient, email: str, password: str = PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response


@pytest.fixture
def admin_client(client, admin):
    login(client, ADMIN_EMAIL)
    return client


@pytest.fixture
def member_client(client, member):
    login(client, MEMBER_EMAIL)
    return client
