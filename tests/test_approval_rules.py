"""
Approval Rule Service Tests
"""

import pytest

from src.models.approval import ApprovalAction
from src.models.approval_rule import ByRole, ByUser
from src.models.company import Company
from src.models.user import UserRole
from src.services.approval_rule_service import (
    ApprovalRuleService,
    StepSpec,
    validate_sequence,
)
from src.utils.exceptions import ConfigError


class TestValidateSequence:

    def test_empty_sequence_is_valid(self):
        validate_sequence([])

    def test_numbered_in_order(self):
        validate_sequence([
            StepSpec(step=1, role=UserRole.MANAGER),
            StepSpec(step=2, user_id=7),
        ])

    @pytest.mark.parametrize("numbers", [[2], [1, 3], [2, 1], [1, 1]])
    def test_bad_numbering(self, numbers):
        with pytest.raises(ConfigError):
            validate_sequence([StepSpec(step=n, role=UserRole.ADMIN) for n in numbers])

    def test_step_needs_exactly_one_target(self):
        with pytest.raises(ConfigError):
            validate_sequence([StepSpec(step=1)])
        with pytest.raises(ConfigError):
            validate_sequence([StepSpec(step=1, role=UserRole.ADMIN, user_id=3)])


class TestApprovalRuleService:

    def test_get_rule_creates_default(self, db):
        company = Company(name="Initech", currency="USD")
        db.add(company)
        db.commit()

        rule = ApprovalRuleService(db).get_rule(company.id)

        assert rule.is_manager_approver_required is True
        assert [s.step for s in rule.sequence] == [1, 2]
        assert [s.target for s in rule.sequence] == [ByRole(UserRole.MANAGER), ByRole(UserRole.ADMIN)]

    def test_get_rule_returns_existing(self, db, org):
        assert ApprovalRuleService(db).get_rule(org.company.id).id == org.rule.id

    def test_update_replaces_wholesale(self, db, org):
        service = ApprovalRuleService(db)

        rule = service.update_rule(org.admin, False, [
            StepSpec(step=1, user_id=org.other_manager.id),
            StepSpec(step=2, role=UserRole.ADMIN),
            StepSpec(step=3, role=UserRole.MANAGER),
        ])

        assert rule.id == org.rule.id
        assert rule.is_manager_approver_required is False
        assert [s.target for s in rule.sequence] == [
            ByUser(org.other_manager.id),
            ByRole(UserRole.ADMIN),
            ByRole(UserRole.MANAGER),
        ]

    def test_update_to_empty_sequence(self, db, org):
        rule = ApprovalRuleService(db).update_rule(org.admin, True, [])

        assert rule.sequence == []
        assert rule.step_at(1) is None

    def test_invalid_update_leaves_rule_untouched(self, db, org):
        service = ApprovalRuleService(db)

        with pytest.raises(ConfigError):
            service.update_rule(org.admin, False, [StepSpec(step=2, role=UserRole.ADMIN)])

        db.expire_all()
        rule = service.get_rule(org.company.id)
        assert rule.is_manager_approver_required is True
        assert len(rule.sequence) == 2

    def test_pinned_user_must_belong_to_company(self, db, org, other_org):
        with pytest.raises(ConfigError):
            ApprovalRuleService(db).update_rule(
                org.admin, True, [StepSpec(step=1, user_id=other_org.admin.id)]
            )

    def test_pinned_user_must_be_active(self, db, org):
        org.other_manager.is_active = False
        db.commit()

        with pytest.raises(ConfigError):
            ApprovalRuleService(db).update_rule(
                org.admin, True, [StepSpec(step=1, user_id=org.other_manager.id)]
            )

    @pytest.mark.asyncio
    async def test_update_applies_to_pending_expenses(self, db, org, submit, engine):
        expense = await submit(org.employee)
        await engine.decide(expense.id, ApprovalAction.APPROVED, org.manager.id)

        ApprovalRuleService(db).update_rule(org.admin, True, [StepSpec(step=1, role=UserRole.ADMIN)])

        assert [e.id for e in engine.pending_for_approver(org.admin.id)] == [expense.id]
        outcome = await engine.decide(expense.id, ApprovalAction.APPROVED, org.admin.id)
        assert outcome.is_final
