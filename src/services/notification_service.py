"""
Notification Service
Records and emails expense and account notifications
"""

import asyncio
from typing import Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.expense import Expense
from src.models.notification import Notification, NotificationKind
from src.models.user import User
from src.services.email_service import EmailService
from src.utils.helpers import format_currency, format_date
from src.utils.logger import setup_logger

logger = setup_logger()

SIGNATURE = "Best regards,\nExpenseFlow Team"


def _expense_details(expense: Expense) -> str:
    lines = [
        f"Employee: {expense.employee_name}",
        f"Amount: {format_currency(expense.amount, expense.currency)}",
    ]
    if expense.converted_amount is not None:
        lines.append(f"Converted: {expense.converted_amount:,.2f}")
    lines.extend([
        f"Category: {expense.category}",
        f"Description: {expense.description}",
        f"Date: {format_date(expense.expense_date)}",
    ])
    return "\n".join(lines)


def render_expense_message(
    expense: Expense,
    kind: NotificationKind,
    recipient_name: str,
) -> Tuple[str, str]:
    """
    Build subject and plain-text body for an expense notification

    Returns:
        tuple: (subject, body)
    """
    details = _expense_details(expense)

    if kind == NotificationKind.EXPENSE_SUBMITTED:
        subject = f"New Expense Submitted - {expense.category}"
        body = (
            f"Hello {recipient_name},\n\n"
            f"A new expense has been submitted for your review.\n\n"
            f"Expense Details:\n{details}\nStatus: Pending Review\n\n"
            f"Please review and approve or reject this expense at your earliest convenience.\n\n"
            f"{SIGNATURE}"
        )
    elif kind == NotificationKind.EXPENSE_APPROVED:
        subject = f"Expense Approved - {expense.category}"
        body = (
            f"Hello {recipient_name},\n\n"
            f"Your expense has been approved and will be processed for reimbursement.\n\n"
            f"Expense Details:\n{details}\nStatus: Approved\n\n"
            f"{SIGNATURE}"
        )
    elif kind == NotificationKind.EXPENSE_REJECTED:
        subject = f"Expense Rejected - {expense.category}"
        latest = expense.approval_history[-1] if expense.approval_history else None
        reason = f"\nComment: {latest.comment}" if latest is not None and latest.comment else ""
        body = (
            f"Hello {recipient_name},\n\n"
            f"Unfortunately, your expense has been rejected.\n\n"
            f"Expense Details:\n{details}\nStatus: Rejected{reason}\n\n"
            f"Please contact your manager if you have questions.\n\n"
            f"{SIGNATURE}"
        )
    else:
        raise ValueError(f"{kind.value} is not an expense notification")

    return subject, body


class NotificationService:
    """Notifier that stores every message and emails it"""

    def __init__(
        self,
        db: Session,
        email_service: Optional[EmailService] = None,
        email_timeout: float = 10.0,
    ):
        self.db = db
        self.email_service = email_service or EmailService()
        self.email_timeout = email_timeout

    async def notify(
        self,
        expense: Expense,
        kind: NotificationKind,
        recipient_email: str,
        recipient_name: str,
    ) -> None:
        """Record and send an expense notification"""
        subject, body = render_expense_message(expense, kind, recipient_name)
        await self._deliver(kind, recipient_email, recipient_name, subject, body, expense_id=expense.id)

    async def send_credentials(self, user: User, password: str) -> None:
        """Send login credentials to a newly created or reset account"""
        subject = "Your ExpenseFlow Account Credentials"
        body = (
            f"Hello {user.full_name},\n\n"
            f"An account has been created for you.\n\n"
            f"Email: {user.email}\n"
            f"Temporary password: {password}\n\n"
            f"You will be asked to change this password after your first login.\n\n"
            f"{SIGNATURE}"
        )
        try:
            await self._deliver(NotificationKind.CREDENTIALS, user.email, user.full_name, subject, body)
        except Exception as e:
            logger.error(f"Failed to send credentials to {user.email}: {e}")

    async def _deliver(
        self,
        kind: NotificationKind,
        recipient_email: str,
        recipient_name: str,
        subject: str,
        body: str,
        expense_id: Optional[int] = None,
    ) -> Notification:
        notification = Notification(
            expense_id=expense_id,
            kind=kind,
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            subject=subject,
            body=body,
        )
        try:
            self.db.add(notification)
            self.db.commit()

            # smtplib blocks; keep it off the event loop
            notification.delivered = await asyncio.to_thread(
                self.email_service.send_email,
                recipient_email,
                subject,
                body,
                None,
                self.email_timeout,
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        logger.info(f"📧 {kind.value} notification for {recipient_email} (delivered={notification.delivered})")
        return notification
