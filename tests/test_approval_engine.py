"""
Approval Engine Tests
Submission, manager gate, sequence routing and rejection
"""

import asyncio

import pytest

from src.models.approval import ApprovalAction
from src.models.expense import ExpenseStatus
from src.models.notification import NotificationKind
from src.models.user import UserRole
from src.services.approval_engine import ApprovalEngine, DecisionKind
from src.services.store import SqlAlchemyExpenseStore, SqlAlchemyUserDirectory
from src.utils.exceptions import (
    ConfigError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from tests.helpers import build_expense, set_rule

APPROVE = ApprovalAction.APPROVED
REJECT = ApprovalAction.REJECTED


class TestSubmit:
    """Initial state and the submission notification"""

    @pytest.mark.asyncio
    async def test_submit_sets_initial_state(self, org, submit):
        expense = await submit(org.employee)

        assert expense.id is not None
        assert expense.status == ExpenseStatus.PENDING
        assert expense.current_approval_step == 0
        assert expense.approval_history == []
        assert expense.version == 1

    @pytest.mark.asyncio
    async def test_submit_notifies_manager_when_gate_on(self, org, submit, notifier):
        expense = await submit(org.employee)

        assert len(notifier.sent) == 1
        sent = notifier.sent[0]
        assert sent.kind == NotificationKind.EXPENSE_SUBMITTED
        assert sent.email == org.manager.email
        assert sent.expense_id == expense.id

    @pytest.mark.asyncio
    async def test_submit_without_gate_notifies_nobody(self, db, org, submit, notifier):
        set_rule(db, org.rule, False, [UserRole.ADMIN])

        await submit(org.employee)

        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_submit_without_rule_notifies_manager(self, db, org, submit, engine, notifier):
        db.delete(org.rule)
        db.commit()

        expense = await submit(org.employee)

        assert notifier.kinds_for(org.manager.email) == [NotificationKind.EXPENSE_SUBMITTED]
        # The manager notified is the one allowed to decide step 0
        outcome = await engine.decide(expense.id, APPROVE, org.manager.id)
        assert outcome.kind == DecisionKind.FINALIZED_APPROVED

    @pytest.mark.asyncio
    async def test_submit_without_manager_notifies_nobody(self, org, submit, notifier):
        await submit(org.loner)

        assert notifier.sent == []


class TestManagerGate:
    """Step 0 belongs to the employee's direct manager when the gate is on"""

    @pytest.mark.asyncio
    async def test_manager_passes_gate(self, org, submit, engine):
        expense = await submit(org.employee)

        outcome = await engine.decide(expense.id, APPROVE, org.manager.id, "ok")

        assert outcome.kind == DecisionKind.ADVANCED
        assert outcome.current_step == 1
        assert outcome.status == ExpenseStatus.PENDING

    @pytest.mark.asyncio
    @pytest.mark.parametrize("who", ["admin", "other_manager", "employee"])
    async def test_only_direct_manager_may_decide_gate(self, org, submit, engine, who):
        expense = await submit(org.employee)

        with pytest.raises(UnauthorizedError):
            await engine.decide(expense.id, APPROVE, getattr(org, who).id)

        assert expense.current_approval_step == 0
        assert expense.approval_history == []

    @pytest.mark.asyncio
    async def test_gate_with_empty_sequence_finalizes(self, db, org, submit, engine, notifier):
        set_rule(db, org.rule, True, [])
        expense = await submit(org.employee)

        outcome = await engine.decide(expense.id, APPROVE, org.manager.id)

        assert outcome.kind == DecisionKind.FINALIZED_APPROVED
        assert expense.status == ExpenseStatus.APPROVED
        assert notifier.kinds_for(org.employee.email) == [NotificationKind.EXPENSE_APPROVED]

    @pytest.mark.asyncio
    async def test_no_gate_empty_sequence_single_admin_approval(self, db, org, submit, engine):
        set_rule(db, org.rule, False, [])
        expense = await submit(org.employee)

        outcome = await engine.decide(expense.id, APPROVE, org.admin.id)

        assert outcome.kind == DecisionKind.FINALIZED_APPROVED
        assert expense.status == ExpenseStatus.APPROVED
        assert [r.step for r in expense.approval_history] == [0]

    @pytest.mark.asyncio
    async def test_no_gate_intake_is_not_for_managers(self, db, org, submit, engine):
        set_rule(db, org.rule, False, [UserRole.MANAGER])
        expense = await submit(org.employee)

        with pytest.raises(UnauthorizedError):
            await engine.decide(expense.id, APPROVE, org.manager.id)


class TestSequence:
    """Role and user routed steps after the gate"""

    @pytest.mark.asyncio
    async def test_full_manager_then_admin_flow(self, org, submit, engine, notifier):
        expense = await submit(org.employee)

        first = await engine.decide(expense.id, APPROVE, org.manager.id)
        assert (first.kind, first.current_step) == (DecisionKind.ADVANCED, 1)

        # Step 1 is role=manager: any manager qualifies
        second = await engine.decide(expense.id, APPROVE, org.other_manager.id)
        assert (second.kind, second.current_step) == (DecisionKind.ADVANCED, 2)

        # Step 2 is role=admin: a manager is refused and nothing changes
        with pytest.raises(UnauthorizedError):
            await engine.decide(expense.id, APPROVE, org.manager.id)
        assert expense.current_approval_step == 2
        assert len(expense.approval_history) == 2

        final = await engine.decide(expense.id, APPROVE, org.admin.id, "paid next cycle")
        assert final.kind == DecisionKind.FINALIZED_APPROVED
        assert final.current_step == 2
        assert expense.status == ExpenseStatus.APPROVED

        assert notifier.kinds_for(org.employee.email) == [NotificationKind.EXPENSE_APPROVED]
        assert notifier.kinds_for(org.manager.email) == [NotificationKind.EXPENSE_SUBMITTED]

    @pytest.mark.asyncio
    async def test_history_records_step_decided_at(self, org, submit, engine):
        expense = await submit(org.employee)

        await engine.decide(expense.id, APPROVE, org.manager.id, "gate")
        await engine.decide(expense.id, APPROVE, org.manager.id, "step one")
        await engine.decide(expense.id, APPROVE, org.admin.id)

        history = expense.approval_history
        assert [r.step for r in history] == [0, 1, 2]
        assert [r.approver_name for r in history] == ["Mia", "Mia", "Ada"]
        assert [r.comment for r in history] == ["gate", "step one", None]
        assert all(r.action == APPROVE for r in history)
        assert history[0].timestamp <= history[1].timestamp <= history[2].timestamp

    @pytest.mark.asyncio
    async def test_user_pinned_step_only_accepts_that_user(self, db, org, submit, engine):
        set_rule(db, org.rule, True, [org.other_manager.id])
        expense = await submit(org.employee)
        await engine.decide(expense.id, APPROVE, org.manager.id)

        for intruder in (org.manager, org.admin):
            with pytest.raises(UnauthorizedError):
                await engine.decide(expense.id, APPROVE, intruder.id)

        outcome = await engine.decide(expense.id, APPROVE, org.other_manager.id)
        assert outcome.kind == DecisionKind.FINALIZED_APPROVED

    @pytest.mark.asyncio
    async def test_role_change_reroutes_future_steps(self, db, org, submit, engine):
        expense = await submit(org.employee)
        await engine.decide(expense.id, APPROVE, org.manager.id)

        org.other_manager.role = UserRole.EMPLOYEE
        db.commit()

        with pytest.raises(UnauthorizedError):
            await engine.decide(expense.id, APPROVE, org.other_manager.id)
        # The recorded gate decision is untouched
        assert expense.approval_history[0].approver_id == org.manager.id

    @pytest.mark.asyncio
    async def test_step_beyond_sequence_is_config_error(self, db, org, submit, engine):
        expense = await submit(org.employee)
        await engine.decide(expense.id, APPROVE, org.manager.id)
        await engine.decide(expense.id, APPROVE, org.manager.id)
        assert expense.current_approval_step == 2

        set_rule(db, org.rule, True, [UserRole.MANAGER])

        with pytest.raises(ConfigError):
            await engine.decide(expense.id, APPROVE, org.admin.id)
        assert expense.status == ExpenseStatus.PENDING


class TestRejection:
    """Reject finalizes at any position"""

    @pytest.mark.asyncio
    async def test_reject_at_gate(self, org, submit, engine, notifier):
        expense = await submit(org.employee)

        outcome = await engine.decide(expense.id, REJECT, org.manager.id, "no receipt")

        assert outcome.kind == DecisionKind.FINALIZED_REJECTED
        assert expense.status == ExpenseStatus.REJECTED
        assert expense.current_approval_step == 0
        assert expense.approval_history[-1].action == REJECT
        assert notifier.kinds_for(org.employee.email) == [NotificationKind.EXPENSE_REJECTED]

    @pytest.mark.asyncio
    async def test_reject_mid_sequence_never_advances(self, org, submit, engine):
        expense = await submit(org.employee)
        await engine.decide(expense.id, APPROVE, org.manager.id)

        outcome = await engine.decide(expense.id, REJECT, org.other_manager.id)

        assert outcome.kind == DecisionKind.FINALIZED_REJECTED
        assert outcome.current_step == 1
        assert [r.step for r in expense.approval_history] == [0, 1]

    @pytest.mark.asyncio
    async def test_reject_requires_authorization(self, org, submit, engine):
        expense = await submit(org.employee)

        with pytest.raises(UnauthorizedError):
            await engine.decide(expense.id, REJECT, org.other_manager.id)
        assert expense.status == ExpenseStatus.PENDING


class TestErrors:
    """Explicit errors instead of silent no-ops"""

    @pytest.mark.asyncio
    async def test_terminal_expense_rejects_further_decisions(self, org, submit, engine):
        expense = await submit(org.employee)
        await engine.decide(expense.id, REJECT, org.manager.id)

        for action in (APPROVE, REJECT):
            with pytest.raises(InvalidStateError):
                await engine.decide(expense.id, action, org.manager.id)
        assert expense.status == ExpenseStatus.REJECTED
        assert len(expense.approval_history) == 1

    @pytest.mark.asyncio
    async def test_unknown_expense(self, org, engine):
        with pytest.raises(NotFoundError):
            await engine.decide(9999, APPROVE, org.manager.id)

    @pytest.mark.asyncio
    async def test_unknown_approver(self, org, submit, engine):
        expense = await submit(org.employee)

        with pytest.raises(NotFoundError):
            await engine.decide(expense.id, APPROVE, 9999)

    @pytest.mark.asyncio
    async def test_approver_from_other_company(self, org, other_org, submit, engine):
        expense = await submit(org.employee)

        with pytest.raises(NotFoundError):
            await engine.decide(expense.id, APPROVE, other_org.admin.id)

    @pytest.mark.asyncio
    async def test_inactive_manager_cannot_decide(self, db, org, submit, engine):
        expense = await submit(org.employee)
        org.manager.is_active = False
        db.commit()

        with pytest.raises(UnauthorizedError):
            await engine.decide(expense.id, APPROVE, org.manager.id)


class FailingNotifier:
    async def notify(self, expense, kind, recipient_email, recipient_name):
        raise RuntimeError("smtp down")


class SlowNotifier:
    async def notify(self, expense, kind, recipient_email, recipient_name):
        await asyncio.sleep(5)


class TestNotificationFailures:
    """Notifier problems never undo a committed transition"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("notifier_cls", [FailingNotifier, SlowNotifier])
    async def test_transition_survives_notifier_failure(self, db, org, notifier_cls):
        engine = ApprovalEngine(
            store=SqlAlchemyExpenseStore(db),
            users=SqlAlchemyUserDirectory(db),
            notifier=notifier_cls(),
            notification_timeout=0.05,
        )
        set_rule(db, org.rule, True, [])
        expense = await engine.submit(build_expense(org.employee))

        outcome = await engine.decide(expense.id, APPROVE, org.manager.id)

        assert outcome.kind == DecisionKind.FINALIZED_APPROVED
        db.expire_all()
        assert SqlAlchemyExpenseStore(db).get_expense(expense.id).status == ExpenseStatus.APPROVED
