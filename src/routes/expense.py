"""
Expense Routes
Expense submission and the employee, team and company views
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from typing import List, Optional

from src.models.expense import ExpenseStatus
from src.models.user import User
from src.schemas.expense import ExpenseCreate, ExpenseResponse
from src.services.approval_engine import ApprovalEngine
from src.services.auth_service import auth_service
from src.services.currency_service import CurrencyService
from src.services.dependencies import (
    get_approval_engine,
    get_currency_service,
    get_expense_service,
    get_session_factory,
)
from src.services.expense_service import ExpenseService, apply_converted_amount
from src.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def create_expense(
    request: ExpenseCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(auth_service.get_current_user),
    expenses: ExpenseService = Depends(get_expense_service),
    currency_service: CurrencyService = Depends(get_currency_service),
    session_factory=Depends(get_session_factory)
):
    """
    Submit an expense claim

    Expenses in a foreign currency get their converted amount filled in
    after the response is sent.
    """
    expense = await expenses.create_expense(
        employee=current_user,
        amount=request.amount,
        currency=request.currency,
        category=request.category,
        description=request.description,
        expense_date=request.expense_date,
        receipt_url=request.receipt_url,
        ocr_data=request.ocr_data
    )

    if expenses.needs_conversion(expense):
        background_tasks.add_task(apply_converted_amount, expense.id, currency_service, session_factory)

    logger.info(f"{current_user.email} submitted expense {expense.id} ({expense.amount} {expense.currency})")
    return expense


@router.get("/mine", response_model=List[ExpenseResponse])
async def my_expenses(
    current_user: User = Depends(auth_service.get_current_user),
    engine: ApprovalEngine = Depends(get_approval_engine)
):
    """Expenses submitted by the current user"""
    return engine.employee_expenses(current_user.id)


@router.get("/team", response_model=List[ExpenseResponse])
async def team_expenses(
    current_user: User = Depends(auth_service.require_role("manager", "admin")),
    engine: ApprovalEngine = Depends(get_approval_engine)
):
    """Expenses of the current user's direct reports"""
    return engine.team_expenses(current_user.id)


@router.get("", response_model=List[ExpenseResponse])
async def company_expenses(
    status_filter: Optional[ExpenseStatus] = None,
    current_user: User = Depends(auth_service.require_role("admin")),
    engine: ApprovalEngine = Depends(get_approval_engine)
):
    """All expenses of the company (admin)"""
    return engine.company_expenses(current_user.company_id, status=status_filter)


@router.get("/{expense_id}", response_model=ExpenseResponse)
async def get_expense(
    expense_id: int,
    current_user: User = Depends(auth_service.get_current_user),
    expenses: ExpenseService = Depends(get_expense_service)
):
    """Single expense with its approval history"""
    return expenses.get_visible_expense(current_user, expense_id)
