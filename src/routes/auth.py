"""
Authentication Routes
Company signup, login and password management
"""

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from src.config.database import get_db
from src.models.user import User
from src.schemas.auth import ChangePasswordRequest, RefreshRequest, SignupRequest, Token
from src.schemas.user import UserResponse
from src.services.auth_service import auth_service
from src.services.currency_service import CurrencyService
from src.services.dependencies import get_currency_service, get_user_service
from src.services.user_service import UserService
from src.utils.exceptions import ValidationError
from src.utils.logger import setup_logger
from src.utils.security import decode_token

logger = setup_logger()
router = APIRouter()


@router.post("/signup", response_model=Token, status_code=status.HTTP_201_CREATED)
async def signup(
    request: SignupRequest,
    users: UserService = Depends(get_user_service),
    currency_service: CurrencyService = Depends(get_currency_service)
):
    """
    Create a company with its first admin user

    The company gets the default approval rule: manager gate, then a
    manager step, then an admin step.
    """
    supported = await currency_service.supported_codes()
    if supported is not None and request.currency.upper() not in supported:
        raise ValidationError(f"Unsupported currency {request.currency}")

    admin = users.signup(
        company_name=request.company_name,
        currency=request.currency,
        full_name=request.full_name,
        email=request.email,
        password=request.password
    )
    return auth_service.create_tokens(admin)


@router.post("/login", response_model=Token)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """Login with email (as username) and password"""
    user = auth_service.authenticate_user(db, form_data.username, form_data.password)
    if not user:
        logger.warning(f"Failed login attempt for {form_data.username}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.create_tokens(user)


@router.post("/refresh", response_model=Token)
async def refresh(
    request: RefreshRequest,
    db: Session = Depends(get_db)
):
    """Issue a new token pair for a valid refresh token"""
    payload = decode_token(request.refresh_token)
    if not payload or payload.get("type") != "refresh" or payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, int(payload["sub"]))
    if not user or not user.can_login():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_service.create_tokens(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(auth_service.get_current_user)):
    """Current user profile"""
    return current_user


@router.post("/change-password", response_model=UserResponse)
async def change_password(
    request: ChangePasswordRequest,
    current_user: User = Depends(auth_service.get_current_user),
    users: UserService = Depends(get_user_service)
):
    """Change own password; clears the first-login flag"""
    return users.change_password(current_user, request.current_password, request.new_password)
