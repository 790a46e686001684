"""
Notification Model
Log of outbound notifications (emails) sent for expenses and accounts
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Enum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from src.config.database import Base


class NotificationKind(str, enum.Enum):
    """Notification kinds"""
    CREDENTIALS = "credentials"
    EXPENSE_SUBMITTED = "expense_submitted"
    EXPENSE_APPROVED = "expense_approved"
    EXPENSE_REJECTED = "expense_rejected"


class Notification(Base):
    """Notification model"""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)

    # Related expense (optional, credentials mails have none)
    expense_id = Column(Integer, ForeignKey("expenses.id"), nullable=True)

    kind = Column(Enum(NotificationKind), nullable=False)
    recipient_email = Column(String, nullable=False, index=True)
    recipient_name = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    body = Column(Text, nullable=False)

    # Set once the email transport accepted the message
    delivered = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    expense = relationship("Expense", foreign_keys=[expense_id], lazy="select")

    def __repr__(self):
        return f"<Notification {self.kind.value} -> {self.recipient_email}>"
