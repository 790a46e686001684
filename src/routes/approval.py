"""
Approval Routes
Pending queue, approve/reject decisions and admin overrides
"""

from fastapi import APIRouter, Depends
from typing import List

from src.models.approval import ApprovalAction
from src.models.user import User
from src.schemas.approval import DecisionRequest, DecisionResponse, OverrideRequest
from src.schemas.expense import ExpenseResponse
from src.services.approval_engine import ApprovalEngine, DecisionKind, DecisionOutcome
from src.services.auth_service import auth_service
from src.services.dependencies import get_approval_engine
from src.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


def _describe(outcome: DecisionOutcome) -> str:
    if outcome.kind == DecisionKind.ADVANCED:
        return f"Expense approved at this step. Now pending approval step {outcome.current_step}"
    if outcome.kind == DecisionKind.FINALIZED_APPROVED:
        return "Expense fully approved and ready for reimbursement"
    return "Expense rejected"


def _response(outcome: DecisionOutcome, message: str = None) -> dict:
    return {
        "success": True,
        "message": message or _describe(outcome),
        "outcome": outcome.kind,
        "expense_id": outcome.expense_id,
        "status": outcome.status,
        "current_approval_step": outcome.current_step,
    }


@router.get("/pending", response_model=List[ExpenseResponse])
async def get_pending_approvals(
    current_user: User = Depends(auth_service.get_current_user),
    engine: ApprovalEngine = Depends(get_approval_engine)
):
    """Expenses waiting on the current user's decision"""
    pending = engine.pending_for_approver(current_user.id)
    logger.info(f"{current_user.email} ({current_user.role.value}) viewing {len(pending)} pending approvals")
    return pending


@router.post("/{expense_id}/approve", response_model=DecisionResponse)
async def approve_expense(
    expense_id: int,
    request: DecisionRequest,
    current_user: User = Depends(auth_service.get_current_user),
    engine: ApprovalEngine = Depends(get_approval_engine)
):
    """Approve an expense at its current step"""
    logger.info(f"User {current_user.email} attempting to approve expense ID {expense_id}")
    outcome = await engine.decide(expense_id, ApprovalAction.APPROVED, current_user.id, request.comment)
    return _response(outcome)


@router.post("/{expense_id}/reject", response_model=DecisionResponse)
async def reject_expense(
    expense_id: int,
    request: DecisionRequest,
    current_user: User = Depends(auth_service.get_current_user),
    engine: ApprovalEngine = Depends(get_approval_engine)
):
    """Reject an expense; rejection is final at any step"""
    logger.info(f"User {current_user.email} attempting to reject expense ID {expense_id}")
    outcome = await engine.decide(expense_id, ApprovalAction.REJECTED, current_user.id, request.comment)
    return _response(outcome)


@router.post("/{expense_id}/override", response_model=DecisionResponse)
async def override_expense(
    expense_id: int,
    request: OverrideRequest,
    current_user: User = Depends(auth_service.require_role("admin")),
    engine: ApprovalEngine = Depends(get_approval_engine)
):
    """Force an expense to approved or rejected, bypassing the sequence"""
    outcome = await engine.admin_override(
        expense_id, request.action, current_user.id, request.comment
    )
    return _response(outcome, message=f"Expense {outcome.status.value} by admin override")
