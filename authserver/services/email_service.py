"""
Email service - handles sending account and organization notifications.
Currently supports: Mock (development) and SMTP (production ready).
"""
import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional, List

from authserver.config import settings

logger = logging.getLogger(__name__)

SIGNATURE = "\nBest regards,\nThe Auth Server Team\n"


class EmailService(ABC):
    """Base email service interface. Bodies are plain text."""

    @abstractmethod
    async def send_email(self, to: str, subject: str, body: str) -> bool:
        """Send an email. Implementations raise on transport failure."""
        pass

    async def send_new_org_registration(
        self, to: str, admin_name: str, admin_email: str, org_name: str
    ) -> bool:
        """Tell a SuperAdmin an organization admin is awaiting approval."""
        subject = f"New organization registration: {org_name}"
        body = f"""
Hello,

{admin_name or admin_email} ({admin_email}) registered as administrator of "{org_name}".
The registration is pending your approval.

Review it at {settings.FRONTEND_URL}/admin/pending-approvals
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_org_admin_approved(self, to: str, name: str, org_name: str) -> bool:
        subject = f"Your organization {org_name} has been approved"
        body = f"""
Hello {name},

Your organization "{org_name}" has been approved. You can now sign in:

{settings.FRONTEND_URL}/login
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_org_admin_rejected(self, to: str, name: str, reason: Optional[str]) -> bool:
        subject = "Your organization registration was not approved"
        body = f"""
Hello {name},

Unfortunately your organization registration was not approved.
Reason: {reason or "Not specified"}
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_invitation(
        self, to: str, name: str, org_name: str, temporary_password: str
    ) -> bool:
        """Invitation carrying the generated temporary password."""
        subject = f"You've been invited to join {org_name}"
        body = f"""
Hello {name},

You have been added to "{org_name}".

Sign in at {settings.FRONTEND_URL}/login with:
  Email: {to}
  Temporary password: {temporary_password}

You will be asked to change this password on first login.
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_account_deactivated(self, to: str, name: str, reason: Optional[str]) -> bool:
        subject = "Your account has been deactivated"
        body = f"""
Hello {name},

Your account has been deactivated.
Reason: {reason or "Not specified"}

Please contact support if you believe this is a mistake.
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_account_reactivated(self, to: str, name: str) -> bool:
        subject = "Your account has been reactivated"
        body = f"""
Hello {name},

Your account has been reactivated. You can sign in again at {settings.FRONTEND_URL}/login
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_organization_deactivated(
        self, to: str, name: str, org_name: str, reason: Optional[str]
    ) -> bool:
        subject = f"{org_name} has been deactivated"
        body = f"""
Hello {name},

The organization "{org_name}" has been deactivated and its members can no longer sign in.
Reason: {reason or "Not specified"}
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_organization_reactivated(self, to: str, name: str, org_name: str) -> bool:
        subject = f"{org_name} has been reactivated"
        body = f"""
Hello {name},

The organization "{org_name}" has been reactivated.
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_upgrade_request_submitted(
        self, to: str, name: str, org_name: str, requested_plan: str
    ) -> bool:
        """Confirmation to the requesting OrgAdmin."""
        subject = "Your plan change request was received"
        body = f"""
Hello {name},

We received your request to move "{org_name}" to the {requested_plan} plan.
You will be notified once it has been reviewed.
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_upgrade_request_received(
        self,
        to: str,
        org_name: str,
        requester_email: str,
        current_plan: str,
        requested_plan: str,
        reason: Optional[str]
    ) -> bool:
        """Alert to a SuperAdmin."""
        subject = f"Plan change requested by {org_name}"
        body = f"""
Hello,

{requester_email} requested a plan change for "{org_name}".
  Current plan: {current_plan}
  Requested plan: {requested_plan}
  Reason: {reason or "Not specified"}

Review it at {settings.FRONTEND_URL}/admin/upgrade-requests
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_upgrade_approved(self, to: str, name: str, org_name: str, plan: str) -> bool:
        subject = "Your plan change request was approved"
        body = f"""
Hello {name},

"{org_name}" is now on the {plan} plan.
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_upgrade_rejected(
        self, to: str, name: str, org_name: str, plan: str, reason: Optional[str]
    ) -> bool:
        subject = "Your plan change request was rejected"
        body = f"""
Hello {name},

Your request to move "{org_name}" to the {plan} plan was rejected.
Reason: {reason or "Not specified"}
{SIGNATURE}"""
        return await self.send_email(to, subject, body)

    async def send_plan_changed(
        self,
        to: str,
        name: str,
        org_name: str,
        old_plan: str,
        new_plan: str,
        reason: Optional[str]
    ) -> bool:
        """Notice to the owner after an admin-initiated plan change."""
        subject = f"{org_name} subscription plan changed"
        body = f"""
Hello {name},

An administrator moved "{org_name}" from the {old_plan} plan to the {new_plan} plan.
Reason: {reason or "Not specified"}
{SIGNATURE}"""
        return await self.send_email(to, subject, body)


class MockEmailService(EmailService):
    """
    Mock email service for development.
    Logs emails instead of sending and keeps them for inspection.
    """

    def __init__(self):
        self.sent_emails: List[dict] = []

    async def send_email(self, to: str, subject: str, body: str) -> bool:
        """Mock send - logs and stores for debugging."""
        self.sent_emails.append({"to": to, "subject": subject, "body": body})
        logger.info(f"MOCK EMAIL to {to}: {subject}\n{body}")
        return True

    def get_last_email(self) -> Optional[dict]:
        """Get the last sent email (for testing)."""
        return self.sent_emails[-1] if self.sent_emails else None


class SMTPEmailService(EmailService):
    """
    SMTP email service for production.
    Configure with environment variables:
    - SMTP_HOST
    - SMTP_PORT
    - SMTP_USER
    - SMTP_PASSWORD
    - EMAIL_FROM
    """

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME

    def _deliver(self, to: str, subject: str, body: str) -> None:
        msg = MIMEText(body, "plain")
        msg["Subject"] = subject
        msg["From"] = formataddr((self.from_name, self.from_email))
        msg["To"] = to

        with smtplib.SMTP(self.host, self.port) as server:
            server.starttls()
            if self.user and self.password:
                server.login(self.user, self.password)
            server.sendmail(self.from_email, [to], msg.as_string())

    async def send_email(self, to: str, subject: str, body: str) -> bool:
        """Send email via SMTP on a worker thread."""
        await asyncio.to_thread(self._deliver, to, subject, body)
        logger.info(f"Email sent to {to}: {subject}")
        return True


# =============================================================================
# EMAIL SERVICE SINGLETON
# =============================================================================

_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get the email service instance."""
    global _email_service

    if _email_service is None:
        if settings.SMTP_HOST:
            logger.info("Using SMTP Email Service")
            _email_service = SMTPEmailService()
        else:
            logger.info("Using Mock Email Service (emails are logged)")
            _email_service = MockEmailService()

    return _email_service


def set_email_service(service: Optional[EmailService]) -> None:
    """Set custom email service (for testing)."""
    global _email_service
    _email_service = service
