"""
Service Dependencies
FastAPI providers wiring the approval engine to its collaborators per request
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from src.config.database import get_db
from src.config.settings import settings
from src.services.approval_engine import ApprovalEngine
from src.services.approval_rule_service import ApprovalRuleService
from src.services.currency_service import CurrencyService
from src.services.email_service import EmailService
from src.services.expense_service import ExpenseService
from src.services.notification_service import NotificationService
from src.services.store import SqlAlchemyExpenseStore, SqlAlchemyUserDirectory
from src.services.user_service import UserService


def get_email_service(request: Request) -> EmailService:
    return request.app.state.email_service


def get_currency_service(request: Request) -> CurrencyService:
    return request.app.state.currency_service


def get_session_factory(request: Request):
    return request.app.state.session_factory


def get_notification_service(
    db: Session = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> NotificationService:
    return NotificationService(db, email_service, email_timeout=settings.NOTIFICATION_TIMEOUT_SECONDS)


def get_approval_engine(
    db: Session = Depends(get_db),
    notifier: NotificationService = Depends(get_notification_service),
) -> ApprovalEngine:
    return ApprovalEngine(
        store=SqlAlchemyExpenseStore(db),
        users=SqlAlchemyUserDirectory(db),
        notifier=notifier,
        notification_timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
    )


def get_expense_service(
    db: Session = Depends(get_db),
    engine: ApprovalEngine = Depends(get_approval_engine),
) -> ExpenseService:
    return ExpenseService(db, engine)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_rule_service(db: Session = Depends(get_db)) -> ApprovalRuleService:
    return ApprovalRuleService(db)
