"""
Approval Engine
Routes expense decisions through the manager gate and the configured approval sequence
"""

import asyncio
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from src.models.approval import ApprovalAction, ApprovalRecord, OVERRIDE_STEP
from src.models.approval_rule import ApprovalRule, ByUser
from src.models.expense import Expense, ExpenseStatus
from src.models.notification import NotificationKind
from src.models.user import User, UserRole
from src.services.interfaces import ExpenseStore, Notifier, UserDirectory
from src.utils.exceptions import (
    ConfigError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from src.utils.logger import setup_logger, log_audit

logger = setup_logger()

MANAGER_GATE_STEP = 0


class DecisionKind(str, enum.Enum):
    """What a decision did to the expense"""
    ADVANCED = "advanced"
    FINALIZED_APPROVED = "finalized_approved"
    FINALIZED_REJECTED = "finalized_rejected"


@dataclass(frozen=True)
class DecisionOutcome:
    """Result of decide() or admin_override()"""
    kind: DecisionKind
    expense_id: int
    status: ExpenseStatus
    current_step: int

    @property
    def is_final(self) -> bool:
        return self.kind != DecisionKind.ADVANCED


def is_authorized(
    expense: Expense,
    rule: Optional[ApprovalRule],
    approver: User,
    employee: Optional[User],
) -> bool:
    """
    Decide whether `approver` may act on the expense's current step.

    Used by both decide() and pending_for_approver(), so the list a user sees
    is exactly the set of expenses they can act on.

    Raises:
        ConfigError: If the current step points past the end of the sequence
    """
    if not approver.is_active or approver.company_id != expense.company_id:
        return False

    step = expense.current_approval_step

    if step == MANAGER_GATE_STEP:
        if rule is None or rule.is_manager_approver_required:
            return employee is not None and employee.manager_id == approver.id
        # No gate configured: intake is decided by the company's admins
        return approver.role == UserRole.ADMIN

    current = rule.step_at(step) if rule is not None else None
    if current is None:
        raise ConfigError(
            f"Expense {expense.id} is at approval step {step} but the rule for company "
            f"{expense.company_id} has {len(rule.sequence) if rule else 0} step(s)"
        )

    target = current.target
    if isinstance(target, ByUser):
        return target.user_id == approver.id
    return approver.role == target.role


def _notification_kind(status: ExpenseStatus) -> NotificationKind:
    if status == ExpenseStatus.APPROVED:
        return NotificationKind.EXPENSE_APPROVED
    return NotificationKind.EXPENSE_REJECTED


def _terminal_status(action: ApprovalAction) -> ExpenseStatus:
    if action == ApprovalAction.APPROVED:
        return ExpenseStatus.APPROVED
    return ExpenseStatus.REJECTED


class ApprovalEngine:
    """
    Approval workflow for one tenant-agnostic store.

    Every mutation is a single read-modify-write committed through
    ExpenseStore.save_expense, which rejects stale versions. Notifications are
    sent after the commit and never undo it.
    """

    def __init__(
        self,
        store: ExpenseStore,
        users: UserDirectory,
        notifier: Notifier,
        notification_timeout: float = 10.0,
    ):
        self.store = store
        self.users = users
        self.notifier = notifier
        self.notification_timeout = notification_timeout

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, expense: Expense) -> Expense:
        """
        Persist a new expense at the start of the workflow

        The employee's manager is notified only when the manager gate is on
        and a manager is assigned.
        """
        expense.status = ExpenseStatus.PENDING
        expense.current_approval_step = MANAGER_GATE_STEP
        expense.approval_history = []
        expense = self.store.add_expense(expense)

        logger.info(f"Expense {expense.id} submitted by employee {expense.employee_id}")

        employee = self.users.get_user(expense.employee_id)
        rule = self.store.get_rule(expense.company_id)
        if employee and employee.manager_id and (rule is None or rule.is_manager_approver_required):
            manager = self.users.get_user(employee.manager_id)
            if manager:
                await self._dispatch(expense, NotificationKind.EXPENSE_SUBMITTED, manager)

        return expense

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    async def decide(
        self,
        expense_id: int,
        action: ApprovalAction,
        approver_id: int,
        comment: Optional[str] = None,
    ) -> DecisionOutcome:
        """
        Apply an approver's decision at the expense's current step

        Raises:
            NotFoundError: Unknown expense or approver
            InvalidStateError: Expense already approved or rejected
            UnauthorizedError: Approver may not act on the current step
            ConfigError: Current step is outside the configured sequence
            ConcurrencyError: Another decision was committed first
        """
        action = ApprovalAction(action)
        expense = self._get_expense(expense_id)
        if expense.is_terminal:
            raise InvalidStateError(
                f"Expense {expense_id} is already {expense.status.value}"
            )

        approver = self._get_approver(approver_id, expense)
        employee = self.users.get_user(expense.employee_id)
        rule = self.store.get_rule(expense.company_id)

        if not is_authorized(expense, rule, approver, employee):
            logger.warning(
                f"User {approver.id} ({approver.role.value}) is not an approver for "
                f"expense {expense.id} at step {expense.current_approval_step}"
            )
            raise UnauthorizedError(
                f"User {approver.id} may not decide expense {expense.id} "
                f"at approval step {expense.current_approval_step}"
            )

        decided_at = expense.current_approval_step
        expense.approval_history.append(ApprovalRecord(
            step=decided_at,
            approver_id=approver.id,
            approver_name=approver.full_name,
            action=action,
            comment=comment,
            timestamp=datetime.utcnow(),
        ))

        sequence_length = len(rule.sequence) if rule is not None else 0
        if action == ApprovalAction.REJECTED:
            expense.status = ExpenseStatus.REJECTED
            kind = DecisionKind.FINALIZED_REJECTED
        elif decided_at < sequence_length:
            expense.current_approval_step = decided_at + 1
            kind = DecisionKind.ADVANCED
        else:
            expense.status = ExpenseStatus.APPROVED
            kind = DecisionKind.FINALIZED_APPROVED

        expense.updated_at = datetime.utcnow()
        expense = self.store.save_expense(expense)

        logger.info(
            f"Expense {expense.id}: {action.value} by user {approver.id} at step {decided_at} "
            f"-> {kind.value} (status={expense.status.value}, step={expense.current_approval_step})"
        )
        log_audit(
            approver.id,
            f"{action.value}_expense",
            f"expense={expense.id} step={decided_at} outcome={kind.value}",
            company_id=expense.company_id,
        )

        outcome = DecisionOutcome(
            kind=kind,
            expense_id=expense.id,
            status=expense.status,
            current_step=expense.current_approval_step,
        )
        if outcome.is_final and employee is not None:
            await self._dispatch(expense, _notification_kind(expense.status), employee)
        return outcome

    async def admin_override(
        self,
        expense_id: int,
        action: ApprovalAction,
        approver_id: int,
        comment: Optional[str] = None,
    ) -> DecisionOutcome:
        """
        Force an expense to approved or rejected, whatever its status or step

        The record is written at step -1 and current_approval_step is left alone.

        Raises:
            NotFoundError: Unknown expense or admin
            UnauthorizedError: Caller is not an active admin
            ConcurrencyError: Another decision was committed first
        """
        action = ApprovalAction(action)
        expense = self._get_expense(expense_id)
        admin = self._get_approver(approver_id, expense)
        if admin.role != UserRole.ADMIN or not admin.is_active:
            raise UnauthorizedError("Only admins can override an approval")

        previous_status = expense.status
        expense.approval_history.append(ApprovalRecord(
            step=OVERRIDE_STEP,
            approver_id=admin.id,
            approver_name=f"{admin.full_name} (Admin Override)",
            action=action,
            comment=comment or "Admin override",
            timestamp=datetime.utcnow(),
        ))
        expense.status = _terminal_status(action)
        expense.updated_at = datetime.utcnow()
        expense = self.store.save_expense(expense)

        logger.info(
            f"Expense {expense.id} overridden by admin {admin.id}: "
            f"{previous_status.value} -> {expense.status.value}"
        )
        log_audit(
            admin.id,
            "admin_override",
            f"expense={expense.id} from={previous_status.value} to={expense.status.value}",
            company_id=expense.company_id,
        )

        employee = self.users.get_user(expense.employee_id)
        if employee is not None:
            await self._dispatch(expense, _notification_kind(expense.status), employee)

        kind = (
            DecisionKind.FINALIZED_APPROVED
            if expense.status == ExpenseStatus.APPROVED
            else DecisionKind.FINALIZED_REJECTED
        )
        return DecisionOutcome(
            kind=kind,
            expense_id=expense.id,
            status=expense.status,
            current_step=expense.current_approval_step,
        )

    # ------------------------------------------------------------------
    # Query views
    # ------------------------------------------------------------------

    def pending_for_approver(self, approver_id: int) -> List[Expense]:
        """Pending expenses of the approver's company that the approver may decide now"""
        approver = self.users.get_user(approver_id)
        if approver is None:
            raise NotFoundError(f"User {approver_id} not found")

        rule = self.store.get_rule(approver.company_id)
        employees = {u.id: u for u in self.users.get_users_by_company(approver.company_id)}

        pending = []
        for expense in self.store.list_expenses(approver.company_id, status=ExpenseStatus.PENDING):
            try:
                if is_authorized(expense, rule, approver, employees.get(expense.employee_id)):
                    pending.append(expense)
            except ConfigError as e:
                logger.warning(f"Skipping expense {expense.id} in pending view: {e.message}")
        return pending

    def team_expenses(self, manager_id: int) -> List[Expense]:
        """All expenses of the manager's direct reports"""
        manager = self.users.get_user(manager_id)
        if manager is None:
            raise NotFoundError(f"User {manager_id} not found")

        report_ids = [
            u.id for u in self.users.get_users_by_company(manager.company_id)
            if u.manager_id == manager_id
        ]
        return self.store.list_expenses(manager.company_id, employee_ids=report_ids)

    def employee_expenses(self, employee_id: int) -> List[Expense]:
        employee = self.users.get_user(employee_id)
        if employee is None:
            raise NotFoundError(f"User {employee_id} not found")
        return self.store.list_expenses(employee.company_id, employee_ids=[employee_id])

    def company_expenses(self, company_id: int, status: Optional[ExpenseStatus] = None) -> List[Expense]:
        return self.store.list_expenses(company_id, status=status)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_expense(self, expense_id: int) -> Expense:
        expense = self.store.get_expense(expense_id)
        if expense is None:
            raise NotFoundError(f"Expense {expense_id} not found")
        return expense

    def _get_approver(self, approver_id: int, expense: Expense) -> User:
        approver = self.users.get_user(approver_id)
        # Users of other tenants must not learn that the expense exists
        if approver is None or approver.company_id != expense.company_id:
            raise NotFoundError(f"Approver {approver_id} not found")
        if not approver.is_active:
            raise UnauthorizedError(f"User {approver_id} is inactive")
        return approver

    async def _dispatch(self, expense: Expense, kind: NotificationKind, recipient: User) -> None:
        """Send a notification; failures and timeouts are logged, never raised"""
        try:
            await asyncio.wait_for(
                self.notifier.notify(expense, kind, recipient.email, recipient.full_name),
                timeout=self.notification_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Notification {kind.value} for expense {expense.id} timed out")
        except Exception as e:
            logger.error(f"Failed to send {kind.value} notification for expense {expense.id}: {e}")
