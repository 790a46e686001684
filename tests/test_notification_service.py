"""
Notification Service Tests
Message rendering, the notification log and email delivery
"""

import pytest

from src.models.approval import ApprovalAction
from src.models.notification import Notification, NotificationKind
from src.services.approval_engine import ApprovalEngine
from src.services.email_service import EmailService
from src.services.notification_service import NotificationService, render_expense_message
from src.services.store import SqlAlchemyExpenseStore, SqlAlchemyUserDirectory
from tests.helpers import build_expense


class FakeEmailService:
    """Stands in for SMTP; remembers what it was asked to send"""

    def __init__(self, accept=True):
        self.accept = accept
        self.outbox = []

    def send_email(self, to_email, subject, text_body, html_body=None, timeout=10.0):
        self.outbox.append((to_email, subject, text_body))
        return self.accept


@pytest.fixture
def mailer():
    return FakeEmailService()


@pytest.fixture
def mailing_engine(db, mailer):
    return ApprovalEngine(
        store=SqlAlchemyExpenseStore(db),
        users=SqlAlchemyUserDirectory(db),
        notifier=NotificationService(db, mailer, email_timeout=1.0),
    )


def logged(db, email):
    return (
        db.query(Notification)
        .filter(Notification.recipient_email == email)
        .order_by(Notification.id)
        .all()
    )


class TestRenderExpenseMessage:

    @pytest.mark.asyncio
    async def test_submitted_message(self, org, submit):
        expense = await submit(org.employee, amount=1234.5, currency="EUR")

        subject, body = render_expense_message(expense, NotificationKind.EXPENSE_SUBMITTED, "Mia")

        assert subject == "New Expense Submitted - Travel"
        assert body.startswith("Hello Mia,")
        assert "Employee: Eve" in body
        assert "Amount: €1,234.50" in body
        assert "Status: Pending Review" in body

    @pytest.mark.asyncio
    async def test_rejected_message_carries_comment(self, org, submit, engine):
        expense = await submit(org.employee)
        await engine.decide(expense.id, ApprovalAction.REJECTED, org.manager.id, "Missing receipt")

        subject, body = render_expense_message(expense, NotificationKind.EXPENSE_REJECTED, "Eve")

        assert subject == "Expense Rejected - Travel"
        assert "Comment: Missing receipt" in body

    @pytest.mark.asyncio
    async def test_credentials_kind_is_not_an_expense_message(self, org, submit):
        expense = await submit(org.employee)

        with pytest.raises(ValueError):
            render_expense_message(expense, NotificationKind.CREDENTIALS, "Eve")


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_workflow_notifications_are_logged_and_mailed(self, db, org, mailer, mailing_engine):
        expense = await mailing_engine.submit(build_expense(org.employee))
        await mailing_engine.decide(expense.id, ApprovalAction.REJECTED, org.manager.id)

        [to_manager] = logged(db, org.manager.email)
        assert to_manager.kind == NotificationKind.EXPENSE_SUBMITTED
        assert to_manager.expense_id == expense.id
        assert to_manager.delivered is True

        [to_employee] = logged(db, org.employee.email)
        assert to_employee.kind == NotificationKind.EXPENSE_REJECTED

        assert [to for to, _, _ in mailer.outbox] == [org.manager.email, org.employee.email]

    @pytest.mark.asyncio
    async def test_undelivered_email_is_still_logged(self, db, org, submit):
        expense = await submit(org.employee)
        service = NotificationService(db, FakeEmailService(accept=False))

        await service.notify(expense, NotificationKind.EXPENSE_APPROVED, org.employee.email, "Eve")

        [entry] = logged(db, org.employee.email)
        assert entry.delivered is False

    @pytest.mark.asyncio
    async def test_send_credentials(self, db, org, mailer):
        await NotificationService(db, mailer).send_credentials(org.loner, "Tmp-Pass-123")

        [entry] = logged(db, org.loner.email)
        assert entry.kind == NotificationKind.CREDENTIALS
        assert entry.expense_id is None
        assert "Temporary password: Tmp-Pass-123" in entry.body

    @pytest.mark.asyncio
    async def test_send_credentials_never_raises(self, db, org):
        class ExplodingEmailService:
            def send_email(self, *args, **kwargs):
                raise RuntimeError("boom")

        await NotificationService(db, ExplodingEmailService()).send_credentials(org.loner, "x")


class TestEmailService:

    def test_unconfigured_service_does_not_send(self):
        service = EmailService(smtp_username="", smtp_password="")

        assert service.is_configured is False
        assert service.send_email("eve@acme.com", "Subject", "Body") is False
