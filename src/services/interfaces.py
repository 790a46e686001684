"""
Collaborator Interfaces
Narrow contracts the approval engine depends on
"""

from typing import List, Optional, Protocol, Sequence

from src.models.approval_rule import ApprovalRule
from src.models.expense import Expense, ExpenseStatus
from src.models.notification import NotificationKind
from src.models.user import User


class UserDirectory(Protocol):
    """Lookup of users by id and by company"""

    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def get_users_by_company(self, company_id: int) -> List[User]:
        ...


class ExpenseStore(Protocol):
    """Persistence for expenses and approval rules"""

    def get_expense(self, expense_id: int) -> Optional[Expense]:
        ...

    def add_expense(self, expense: Expense) -> Expense:
        ...

    def save_expense(self, expense: Expense) -> Expense:
        """Commit pending changes to the expense; raises ConcurrencyError on a stale version."""
        ...

    def list_expenses(
        self,
        company_id: int,
        status: Optional[ExpenseStatus] = None,
        employee_ids: Optional[Sequence[int]] = None,
    ) -> List[Expense]:
        ...

    def set_converted_amount(self, expense_id: int, amount: float) -> None:
        ...

    def get_rule(self, company_id: int) -> Optional[ApprovalRule]:
        ...

    def save_rule(self, rule: ApprovalRule) -> ApprovalRule:
        ...


class Notifier(Protocol):
    """Best-effort outbound notification"""

    async def notify(
        self,
        expense: Expense,
        kind: NotificationKind,
        recipient_email: str,
        recipient_name: str,
    ) -> None:
        ...


class CurrencyConverter(Protocol):
    """Best-effort conversion; returns the original amount on failure"""

    async def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        ...
