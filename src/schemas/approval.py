"""
Approval Schemas
Pydantic models for decisions and approval rule configuration
"""

from pydantic import BaseModel, Field, model_validator
from typing import List, Optional

from src.models.approval import ApprovalAction
from src.models.expense import ExpenseStatus
from src.models.user import UserRole
from src.services.approval_engine import DecisionKind


class DecisionRequest(BaseModel):
    """Schema for approving, rejecting or overriding"""
    comment: Optional[str] = Field(None, max_length=1000)


class OverrideRequest(DecisionRequest):
    action: ApprovalAction


class DecisionResponse(BaseModel):
    success: bool = True
    message: str
    outcome: DecisionKind
    expense_id: int
    status: ExpenseStatus
    current_approval_step: int


class ApprovalStepSchema(BaseModel):
    """One sequence step; exactly one of role or user_id"""
    step: int = Field(..., ge=1)
    role: Optional[UserRole] = None
    user_id: Optional[int] = None

    @model_validator(mode='after')
    def validate_target(self):
        if (self.role is None) == (self.user_id is None):
            raise ValueError("Exactly one of role or user_id is required")
        return self

    class Config:
        from_attributes = True


class ApprovalRuleUpdate(BaseModel):
    is_manager_approver_required: bool
    sequence: List[ApprovalStepSchema] = []


class ApprovalRuleResponse(BaseModel):
    id: int
    company_id: int
    is_manager_approver_required: bool
    sequence: List[ApprovalStepSchema]

    class Config:
        from_attributes = True
