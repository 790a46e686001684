"""
Approval Rule Service
Default rule creation and wholesale replacement of a company's approval rule
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from src.models.approval_rule import ApprovalRule, ApprovalStep
from src.models.user import User, UserRole
from src.services.store import SqlAlchemyExpenseStore
from src.utils.exceptions import ConfigError
from src.utils.logger import setup_logger, log_audit

logger = setup_logger()

# Sequence every new company starts with, after the manager gate
DEFAULT_SEQUENCE = (UserRole.MANAGER, UserRole.ADMIN)


@dataclass(frozen=True)
class StepSpec:
    """Requested approval step before validation"""
    step: int
    role: Optional[UserRole] = None
    user_id: Optional[int] = None


def validate_sequence(steps: Sequence[StepSpec]) -> None:
    """
    Check that steps are numbered 1..N in order and route to exactly one target

    Raises:
        ConfigError: On gaps, duplicates, reordering or an ambiguous step
    """
    for position, spec in enumerate(steps, start=1):
        if spec.step != position:
            raise ConfigError(
                f"Approval steps must be numbered 1..{len(steps)} in order; "
                f"got step {spec.step} at position {position}"
            )
        if (spec.role is None) == (spec.user_id is None):
            raise ConfigError(f"Approval step {spec.step} must name exactly one of role or user_id")


class ApprovalRuleService:
    """Service for reading and replacing approval rules"""

    def __init__(self, db: Session):
        self.db = db
        self.store = SqlAlchemyExpenseStore(db)

    def create_default_rule(self, company_id: int) -> ApprovalRule:
        rule = ApprovalRule(
            company_id=company_id,
            is_manager_approver_required=True,
            sequence=[
                ApprovalStep(step=position, role=role)
                for position, role in enumerate(DEFAULT_SEQUENCE, start=1)
            ],
        )
        return self.store.save_rule(rule)

    def get_rule(self, company_id: int) -> ApprovalRule:
        """Return the company's rule, creating the default one if it is missing"""
        rule = self.store.get_rule(company_id)
        if rule is None:
            logger.info(f"No approval rule for company {company_id}; creating default")
            rule = self.create_default_rule(company_id)
        return rule

    def update_rule(
        self,
        admin: User,
        is_manager_approver_required: bool,
        steps: List[StepSpec],
    ) -> ApprovalRule:
        """
        Replace the admin's company rule with a new gate flag and sequence

        Pending expenses keep their current step number; if the new sequence
        is shorter than that step, deciding them raises ConfigError until an
        admin overrides them.
        """
        validate_sequence(steps)
        for spec in steps:
            if spec.user_id is None:
                continue
            pinned = self.db.get(User, spec.user_id)
            if pinned is None or pinned.company_id != admin.company_id or not pinned.is_active:
                raise ConfigError(f"Approval step {spec.step} names unknown user {spec.user_id}")

        rule = self.get_rule(admin.company_id)
        rule.is_manager_approver_required = is_manager_approver_required

        # Old positions must be gone before the new ones reuse their step numbers
        rule.sequence.clear()
        self.db.flush()
        rule.sequence.extend(
            ApprovalStep(step=spec.step, role=spec.role, user_id=spec.user_id)
            for spec in steps
        )
        rule = self.store.save_rule(rule)

        logger.info(
            f"Approval rule for company {admin.company_id} replaced: "
            f"gate={is_manager_approver_required}, {len(steps)} step(s)"
        )
        log_audit(
            admin.id,
            "update_approval_rule",
            f"gate={is_manager_approver_required} steps={[repr(s.target) for s in rule.sequence]}",
            company_id=admin.company_id,
        )
        return rule
