"""
Approval Rule Model
Per-company approval configuration: optional manager gate followed by an ordered step sequence
"""

from dataclasses import dataclass
from typing import Union

from sqlalchemy import Column, Integer, DateTime, Enum, ForeignKey, Boolean, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from src.config.database import Base
from src.models.user import UserRole


@dataclass(frozen=True)
class ByRole:
    """Any user holding this role may decide the step"""
    role: UserRole


@dataclass(frozen=True)
class ByUser:
    """Only this user may decide the step"""
    user_id: int


RouteTarget = Union[ByRole, ByUser]


class ApprovalRule(Base):
    """Approval rule model, one per company"""
    __tablename__ = "approval_rules"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, unique=True)

    # Whether the employee's direct manager must approve before the sequence runs
    is_manager_approver_required = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    company = relationship("Company", back_populates="approval_rule")
    sequence = relationship(
        "ApprovalStep",
        back_populates="rule",
        order_by="ApprovalStep.step",
        cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<ApprovalRule company={self.company_id} gate={self.is_manager_approver_required} steps={len(self.sequence)}>"

    def step_at(self, step: int):
        """Return the sequence step with 1-based index `step`, or None when out of range"""
        if step < 1 or step > len(self.sequence):
            return None
        return self.sequence[step - 1]


class ApprovalStep(Base):
    """One position in the post-gate approval sequence"""
    __tablename__ = "approval_steps"
    __table_args__ = (UniqueConstraint("rule_id", "step", name="uq_approval_step_position"),)

    id = Column(Integer, primary_key=True, index=True)
    rule_id = Column(Integer, ForeignKey("approval_rules.id"), nullable=False)
    step = Column(Integer, nullable=False)

    # Exactly one of these is set; user_id wins when routing
    role = Column(Enum(UserRole), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    rule = relationship("ApprovalRule", back_populates="sequence")

    def __repr__(self):
        return f"<ApprovalStep {self.step} -> {self.target}>"

    @property
    def target(self) -> RouteTarget:
        if self.user_id is not None:
            return ByUser(self.user_id)
        return ByRole(self.role)
