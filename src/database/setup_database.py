"""
Database Setup Script
Creates all tables and, on request, a demo company to click through the approval flow
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from src.config.database import Base, SessionLocal, engine
from src.models.company import Company
from src.models.user import User, UserRole
from src.models.approval_rule import ApprovalRule, ApprovalStep
from src.models.approval import ApprovalRecord  # noqa: F401  registers the table
from src.models.expense import Expense  # noqa: F401
from src.models.notification import Notification  # noqa: F401
from src.utils.security import get_password_hash


def create_tables(bind=None):
    """Create all database tables"""
    Base.metadata.create_all(bind=bind or engine)


def seed_demo_company(db):
    """
    Create a demo company with an admin, a manager and an employee

    The approval rule is the signup default: manager gate, then manager, then admin.
    """
    if db.query(Company).first():
        print("✓ Data already exists, skipping...")
        return

    company = Company(name="Demo Corp", currency="USD")
    db.add(company)
    db.flush()

    admin = User(
        email="admin@democorp.com",
        full_name="Alice Admin",
        hashed_password=get_password_hash("admin123"),
        role=UserRole.ADMIN,
        company_id=company.id,
    )
    db.add(admin)
    db.flush()

    manager = User(
        email="manager@democorp.com",
        full_name="Mark Manager",
        hashed_password=get_password_hash("manager123"),
        role=UserRole.MANAGER,
        company_id=company.id,
        manager_id=admin.id,
    )
    db.add(manager)
    db.flush()

    db.add(User(
        email="employee@democorp.com",
        full_name="Erin Employee",
        hashed_password=get_password_hash("employee123"),
        role=UserRole.EMPLOYEE,
        company_id=company.id,
        manager_id=manager.id,
    ))

    db.add(ApprovalRule(
        company_id=company.id,
        is_manager_approver_required=True,
        sequence=[
            ApprovalStep(step=1, role=UserRole.MANAGER),
            ApprovalStep(step=2, role=UserRole.ADMIN),
        ],
    ))
    db.commit()
    print("✓ Demo company created (admin@democorp.com / admin123)")


if __name__ == "__main__":
    print("Creating database tables...")
    create_tables()
    print("✓ Database tables created successfully")

    if "--seed" in sys.argv:
        session = SessionLocal()
        try:
            seed_demo_company(session)
        finally:
            session.close()
