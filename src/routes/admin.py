"""
Admin Routes
User management, company settings and approval rule configuration
"""

from fastapi import APIRouter, Depends, status
from typing import List

from src.models.user import User
from src.schemas.approval import ApprovalRuleResponse, ApprovalRuleUpdate
from src.schemas.user import (
    CompanyResponse,
    CreatedUserResponse,
    CurrencyUpdate,
    ManagerUpdate,
    RoleUpdate,
    UserCreate,
    UserResponse,
)
from src.services.approval_rule_service import ApprovalRuleService, StepSpec
from src.services.auth_service import auth_service
from src.services.currency_service import CurrencyService
from src.services.dependencies import (
    get_currency_service,
    get_notification_service,
    get_rule_service,
    get_user_service,
)
from src.services.notification_service import NotificationService
from src.services.user_service import UserService
from src.utils.exceptions import ValidationError
from src.utils.logger import setup_logger

logger = setup_logger()
router = APIRouter()

require_admin = auth_service.require_role("admin")


# ============================================
# USERS
# ============================================

@router.get("/users", response_model=List[UserResponse])
async def list_users(
    include_inactive: bool = False,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service)
):
    """List users of the admin's company"""
    return users.list_users(admin.company_id, include_inactive=include_inactive)


@router.post("/users", response_model=CreatedUserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    request: UserCreate,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
    notifications: NotificationService = Depends(get_notification_service)
):
    """Create a user and email a temporary password"""
    created = users.create_user(
        admin,
        email=request.email,
        full_name=request.full_name,
        role=request.role,
        manager_id=request.manager_id
    )
    await notifications.send_credentials(created.user, created.temporary_password)
    return {"user": created.user, "temporary_password": created.temporary_password}


@router.patch("/users/{user_id}/role", response_model=UserResponse)
async def update_role(
    user_id: int,
    request: RoleUpdate,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service)
):
    """Change a user's role"""
    return users.update_role(admin, user_id, request.role)


@router.patch("/users/{user_id}/manager", response_model=UserResponse)
async def update_manager(
    user_id: int,
    request: ManagerUpdate,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service)
):
    """Assign or clear a user's manager"""
    return users.assign_manager(admin, user_id, request.manager_id)


@router.delete("/users/{user_id}", response_model=UserResponse)
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service)
):
    """Deactivate a user"""
    return users.delete_user(admin, user_id)


@router.post("/users/{user_id}/reset-password", response_model=CreatedUserResponse)
async def reset_password(
    user_id: int,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
    notifications: NotificationService = Depends(get_notification_service)
):
    """Issue and email a new temporary password"""
    reset = users.reset_password(admin, user_id)
    await notifications.send_credentials(reset.user, reset.temporary_password)
    return {"user": reset.user, "temporary_password": reset.temporary_password}


# ============================================
# COMPANY
# ============================================

@router.patch("/company/currency", response_model=CompanyResponse)
async def update_currency(
    request: CurrencyUpdate,
    admin: User = Depends(require_admin),
    users: UserService = Depends(get_user_service),
    currency_service: CurrencyService = Depends(get_currency_service)
):
    """Change the company currency"""
    supported = await currency_service.supported_codes()
    if supported is not None and request.currency.upper() not in supported:
        raise ValidationError(f"Unsupported currency {request.currency}")
    return users.update_company_currency(admin, request.currency)


# ============================================
# APPROVAL RULE
# ============================================

@router.get("/approval-rule", response_model=ApprovalRuleResponse)
async def get_approval_rule(
    admin: User = Depends(require_admin),
    rules: ApprovalRuleService = Depends(get_rule_service)
):
    """Current approval rule of the company"""
    return rules.get_rule(admin.company_id)


@router.put("/approval-rule", response_model=ApprovalRuleResponse)
async def update_approval_rule(
    request: ApprovalRuleUpdate,
    admin: User = Depends(require_admin),
    rules: ApprovalRuleService = Depends(get_rule_service)
):
    """Replace the approval rule; steps must be numbered 1..N"""
    steps = [StepSpec(step=s.step, role=s.role, user_id=s.user_id) for s in request.sequence]
    return rules.update_rule(admin, request.is_manager_approver_required, steps)
