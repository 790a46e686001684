"""
Expense Service
Business logic for expense submission and currency enrichment
"""

from datetime import date
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session, sessionmaker

from src.models.company import Company
from src.models.expense import Expense
from src.models.user import User
from src.services.approval_engine import ApprovalEngine
from src.services.interfaces import CurrencyConverter
from src.services.store import SqlAlchemyExpenseStore
from src.utils.exceptions import NotFoundError, UnauthorizedError
from src.utils.logger import setup_logger

logger = setup_logger()


class ExpenseService:
    """Service for expense-related business logic"""

    def __init__(self, db: Session, engine: ApprovalEngine):
        self.db = db
        self.engine = engine

    async def create_expense(
        self,
        employee: User,
        amount: float,
        currency: str,
        category: str,
        description: str,
        expense_date: date,
        receipt_url: Optional[str] = None,
        ocr_data: Optional[Dict[str, Any]] = None,
    ) -> Expense:
        """
        Create an expense for the employee and submit it for approval

        Returns:
            Expense: The submitted expense, at the manager gate
        """
        if not employee.is_active:
            raise UnauthorizedError("Inactive users cannot submit expenses")

        expense = Expense(
            employee_id=employee.id,
            employee_name=employee.full_name,
            company_id=employee.company_id,
            amount=amount,
            currency=currency.upper(),
            category=category,
            description=description,
            expense_date=expense_date,
            receipt_url=receipt_url,
            ocr_data=ocr_data,
        )
        return await self.engine.submit(expense)

    def needs_conversion(self, expense: Expense) -> bool:
        company = self.db.get(Company, expense.company_id)
        return company is not None and company.currency != expense.currency

    def get_visible_expense(self, user: User, expense_id: int) -> Expense:
        """
        Return an expense the user may look at

        Admins see the whole company, managers their direct reports, everyone
        their own claims and those currently waiting on them.
        """
        expense = self.engine.store.get_expense(expense_id)
        if expense is None or expense.company_id != user.company_id:
            raise NotFoundError(f"Expense {expense_id} not found")

        if user.is_admin or expense.employee_id == user.id:
            return expense
        employee = self.db.get(User, expense.employee_id)
        if employee is not None and employee.manager_id == user.id:
            return expense
        if any(e.id == expense.id for e in self.engine.pending_for_approver(user.id)):
            return expense
        if any(r.approver_id == user.id for r in expense.approval_history):
            return expense
        raise NotFoundError(f"Expense {expense_id} not found")


async def apply_converted_amount(
    expense_id: int,
    converter: CurrencyConverter,
    session_factory: sessionmaker,
) -> Optional[float]:
    """
    Background enrichment: store the expense amount in company currency

    Runs after the response is sent, with its own session. Failures are
    logged; the expense stays without a converted amount.
    """
    db = session_factory()
    try:
        expense = db.get(Expense, expense_id)
        if expense is None:
            logger.warning(f"Expense {expense_id} vanished before conversion")
            return None
        company = db.get(Company, expense.company_id)
        if company is None or company.currency == expense.currency:
            return None

        converted = await converter.convert(expense.amount, expense.currency, company.currency)
        SqlAlchemyExpenseStore(db).set_converted_amount(expense_id, converted)
        logger.info(
            f"Expense {expense_id}: {expense.amount} {expense.currency} -> {converted} {company.currency}"
        )
        return converted
    except Exception as e:
        logger.error(f"Currency enrichment failed for expense {expense_id}: {e}")
        return None
    finally:
        db.close()
