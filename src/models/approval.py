"""
Approval Record Model
Append-only audit trail of decisions taken on an expense
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from src.config.database import Base

# Step number stored on records written by an admin override
OVERRIDE_STEP = -1


class ApprovalAction(str, enum.Enum):
    """Decision taken by an approver"""
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalRecord(Base):
    """Approval record model"""
    __tablename__ = "approval_records"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=False, index=True)

    # Step the decision was made at, not the step transitioned to
    step = Column(Integer, nullable=False)

    approver_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    approver_name = Column(String, nullable=False)
    action = Column(Enum(ApprovalAction), nullable=False)
    comment = Column(Text, nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False)

    expense = relationship("Expense", back_populates="approval_history")

    def __repr__(self):
        return f"<ApprovalRecord step={self.step} {self.action.value} by {self.approver_id}>"

    @property
    def is_override(self) -> bool:
        return self.step == OVERRIDE_STEP
