"""
Company Model
One company per tenant, created at signup
"""

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from src.config.database import Base


class Company(Base):
    """Company model"""
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    # ISO-like currency code every expense is converted into
    currency = Column(String(3), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    users = relationship("User", back_populates="company")
    approval_rule = relationship("ApprovalRule", back_populates="company", uselist=False)

    def __repr__(self):
        return f"<Company {self.name} ({self.currency})>"
