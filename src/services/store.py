"""
SQLAlchemy Store
Database-backed ExpenseStore and UserDirectory
"""

from typing import List, Optional, Sequence

from sqlalchemy import update
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from src.models.approval_rule import ApprovalRule
from src.models.expense import Expense, ExpenseStatus
from src.models.user import User
from src.utils.exceptions import ConcurrencyError
from src.utils.logger import setup_logger

logger = setup_logger()


class SqlAlchemyUserDirectory:
    """UserDirectory over the users table"""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: int) -> Optional[User]:
        if user_id is None:
            return None
        return self.db.get(User, user_id)

    def get_users_by_company(self, company_id: int) -> List[User]:
        return (
            self.db.query(User)
            .filter(User.company_id == company_id)
            .order_by(User.id)
            .all()
        )


class SqlAlchemyExpenseStore:
    """ExpenseStore over the expenses and approval_rules tables"""

    def __init__(self, db: Session):
        self.db = db

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        return self.db.get(Expense, expense_id)

    def add_expense(self, expense: Expense) -> Expense:
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        return expense

    def save_expense(self, expense: Expense) -> Expense:
        """
        Commit the expense and any records appended to it

        The UPDATE carries the version the expense was read at; if another
        writer committed in between, nothing is written.

        Raises:
            ConcurrencyError: If the expense changed since it was loaded
        """
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Stale write rejected for expense {expense.id}")
            raise ConcurrencyError(
                f"Expense {expense.id} was modified by another request; reload and retry"
            )
        self.db.refresh(expense)
        return expense

    def list_expenses(
        self,
        company_id: int,
        status: Optional[ExpenseStatus] = None,
        employee_ids: Optional[Sequence[int]] = None,
    ) -> List[Expense]:
        query = self.db.query(Expense).filter(Expense.company_id == company_id)
        if status is not None:
            query = query.filter(Expense.status == status)
        if employee_ids is not None:
            if not employee_ids:
                return []
            query = query.filter(Expense.employee_id.in_(list(employee_ids)))
        return query.order_by(Expense.created_at.desc(), Expense.id.desc()).all()

    def set_converted_amount(self, expense_id: int, amount: float) -> None:
        # Plain UPDATE outside the versioned mapper so enrichment never races decisions
        self.db.execute(
            update(Expense)
            .where(Expense.id == expense_id)
            .values(converted_amount=amount)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()

    def get_rule(self, company_id: int) -> Optional[ApprovalRule]:
        return (
            self.db.query(ApprovalRule)
            .filter(ApprovalRule.company_id == company_id)
            .first()
        )

    def save_rule(self, rule: ApprovalRule) -> ApprovalRule:
        self.db.add(rule)
        self.db.commit()
        self.db.refresh(rule)
        return rule
