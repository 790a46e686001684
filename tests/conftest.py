"""
Shared test fixtures
SQLite database per test, a recording notifier and a small organisation
"""

import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set test environment variables BEFORE importing anything else
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_expenseflow.db")
os.environ.setdefault("LOG_DIR", "logs/test")
os.environ["SMTP_USERNAME"] = ""
os.environ["SMTP_PASSWORD"] = ""

import pytest
from types import SimpleNamespace
from sqlalchemy.orm import sessionmaker

from src.config.database import build_engine
from src.database.setup_database import create_tables
from src.models.approval_rule import ApprovalRule, ApprovalStep
from src.models.company import Company
from src.models.user import User, UserRole
from src.services.approval_engine import ApprovalEngine
from src.services.store import SqlAlchemyExpenseStore, SqlAlchemyUserDirectory
from src.utils.security import get_password_hash
from tests.helpers import build_expense

PASSWORD = "password123"
PASSWORD_HASH = get_password_hash(PASSWORD)


class RecordingNotifier:
    """Notifier that remembers every call"""

    def __init__(self):
        self.sent = []

    async def notify(self, expense, kind, recipient_email, recipient_name):
        self.sent.append(SimpleNamespace(
            expense_id=expense.id,
            kind=kind,
            email=recipient_email,
            name=recipient_name,
        ))

    def kinds_for(self, email):
        return [n.kind for n in self.sent if n.email == email]


@pytest.fixture
def db_engine(tmp_path):
    """Fresh SQLite file database"""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    create_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(db, notifier):
    return ApprovalEngine(
        store=SqlAlchemyExpenseStore(db),
        users=SqlAlchemyUserDirectory(db),
        notifier=notifier,
        notification_timeout=1.0,
    )


def _user(db, company, name, role, manager=None):
    user = User(
        email=f"{name.lower()}@{company.name.lower()}.com",
        full_name=name,
        hashed_password=PASSWORD_HASH,
        role=role,
        company_id=company.id,
        manager_id=manager.id if manager else None,
    )
    db.add(user)
    db.flush()
    return user


@pytest.fixture
def org(db):
    """
    Acme: admin Ada, managers Mia and Max, employee Eve reporting to Mia,
    employee Ned with no manager. Rule: gate + [manager, admin].
    """
    company = Company(name="Acme", currency="USD")
    db.add(company)
    db.flush()

    admin = _user(db, company, "Ada", UserRole.ADMIN)
    manager = _user(db, company, "Mia", UserRole.MANAGER, manager=admin)
    other_manager = _user(db, company, "Max", UserRole.MANAGER, manager=admin)
    employee = _user(db, company, "Eve", UserRole.EMPLOYEE, manager=manager)
    loner = _user(db, company, "Ned", UserRole.EMPLOYEE)

    rule = ApprovalRule(
        company_id=company.id,
        is_manager_approver_required=True,
        sequence=[
            ApprovalStep(step=1, role=UserRole.MANAGER),
            ApprovalStep(step=2, role=UserRole.ADMIN),
        ],
    )
    db.add(rule)
    db.commit()

    return SimpleNamespace(
        company=company,
        admin=admin,
        manager=manager,
        other_manager=other_manager,
        employee=employee,
        loner=loner,
        rule=rule,
    )


@pytest.fixture
def other_org(db):
    """A second tenant with its own admin"""
    company = Company(name="Globex", currency="EUR")
    db.add(company)
    db.flush()
    admin = _user(db, company, "Gus", UserRole.ADMIN)
    db.add(ApprovalRule(company_id=company.id, is_manager_approver_required=False))
    db.commit()
    return SimpleNamespace(company=company, admin=admin)


@pytest.fixture
def submit(engine):
    """Submit an expense for an employee through the engine"""
    async def _submit(employee, **kwargs):
        return await engine.submit(build_expense(employee, **kwargs))
    return _submit
