"""
Email Service
Sends emails for expense submissions, decisions and account credentials
"""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from src.config.settings import settings
from src.utils.logger import setup_logger

logger = setup_logger()


class EmailService:
    """Email service over SMTP"""

    def __init__(
        self,
        smtp_server: str = None,
        smtp_port: int = None,
        smtp_username: str = None,
        smtp_password: str = None,
        from_email: str = None,
        from_name: str = None,
    ):
        """Initialize email service with SMTP configuration"""
        self.smtp_server = smtp_server or settings.SMTP_SERVER
        self.smtp_port = smtp_port or settings.SMTP_PORT
        self.smtp_username = smtp_username if smtp_username is not None else settings.SMTP_USERNAME
        self.smtp_password = smtp_password if smtp_password is not None else settings.SMTP_PASSWORD
        self.from_email = from_email or settings.FROM_EMAIL or self.smtp_username
        self.from_name = from_name or settings.FROM_NAME

        # Check if email is configured
        self.is_configured = bool(self.smtp_username and self.smtp_password)

        if not self.is_configured:
            logger.warning("⚠️ Email service not configured. Set SMTP credentials in .env file.")

    def send_email(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: Optional[str] = None,
        timeout: float = 10.0,
    ) -> bool:
        """
        Send email via SMTP

        Args:
            to_email: Recipient email address
            subject: Email subject
            text_body: Plain text body
            html_body: HTML alternative (optional)
            timeout: Socket timeout in seconds

        Returns:
            bool: True if the SMTP server accepted the message
        """
        if not self.is_configured:
            logger.warning(f"Email not sent to {to_email} - SMTP not configured")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            msg.attach(MIMEText(text_body, 'plain'))
            if html_body:
                msg.attach(MIMEText(html_body, 'html'))

            with smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=timeout) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            logger.info(f"✅ Email sent to {to_email}: {subject}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"❌ Failed to send email to {to_email}: {str(e)}")
            return False
