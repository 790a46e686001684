"""
Expense Schemas
Pydantic models for expense submission and responses
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime, date

from src.models.approval import ApprovalAction
from src.models.expense import ExpenseStatus


class ExpenseCreate(BaseModel):
    """Schema for submitting an expense"""
    amount: float = Field(gt=0, description="Amount must be positive")
    currency: str = Field(..., min_length=3, max_length=3)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    expense_date: date
    receipt_url: Optional[str] = None
    ocr_data: Optional[Dict[str, Any]] = None

    @field_validator('expense_date')
    @classmethod
    def validate_date(cls, v):
        """Ensure expense date is not in the future"""
        if v > date.today():
            raise ValueError("Expense date cannot be in the future")
        return v

    @field_validator('currency')
    @classmethod
    def upper_currency(cls, v):
        return v.upper()


class ApprovalRecordResponse(BaseModel):
    """One entry of an expense's approval history"""
    step: int
    approver_id: int
    approver_name: str
    action: ApprovalAction
    comment: Optional[str] = None
    timestamp: datetime

    class Config:
        from_attributes = True


class ExpenseResponse(BaseModel):
    """Schema for expense response"""
    id: int
    employee_id: int
    employee_name: str
    company_id: int
    amount: float
    currency: str
    converted_amount: Optional[float] = None
    category: str
    description: str
    expense_date: date
    status: ExpenseStatus
    current_approval_step: int
    approval_history: List[ApprovalRecordResponse] = []
    receipt_url: Optional[str] = None
    ocr_data: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
