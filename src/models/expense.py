"""
Expense Model
Represents expense claims submitted by employees
"""

from sqlalchemy import Column, Integer, String, Float, Date, DateTime, Enum, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from src.config.database import Base


class ExpenseStatus(str, enum.Enum):
    """Expense status"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES = (ExpenseStatus.APPROVED, ExpenseStatus.REJECTED)


class Expense(Base):
    """Expense model"""
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)

    # Employee information (name is a snapshot taken at submission)
    employee_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    employee_name = Column(String, nullable=False)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)

    # Expense details
    amount = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)
    converted_amount = Column(Float, nullable=True)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    expense_date = Column(Date, nullable=False)

    # Receipt enrichment, stored as given
    receipt_url = Column(String, nullable=True)
    ocr_data = Column(JSON, nullable=True)

    # Status and workflow
    status = Column(Enum(ExpenseStatus), default=ExpenseStatus.PENDING, nullable=False)
    current_approval_step = Column(Integer, default=0, nullable=False)  # 0 = manager gate

    # Optimistic concurrency counter
    version = Column(Integer, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    employee = relationship("User", back_populates="expenses", foreign_keys=[employee_id])
    approval_history = relationship(
        "ApprovalRecord",
        back_populates="expense",
        order_by="ApprovalRecord.id",
        cascade="all, delete-orphan"
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Expense {self.id} - {self.category} - {self.status.value}>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
