"""
Mailer

Outgoing mail over SMTP. Callers schedule these functions with FastAPI
BackgroundTasks so the request never waits on the mail server.

NOTE: With SMTP_HOST unset (local runs, tests) messages are only logged.
"""
import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional

from taskbrick.config import get_settings
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


def _send_smtp(
    *,
    to_email: str,
    subject: str,
    body: str,
    html: bool = False,
    from_name: Optional[str] = None,
) -> bool:
    if html:
        msg = MIMEMultipart('alternative')
        msg.attach(MIMEText(body, 'html', 'utf-8'))
    else:
        msg = MIMEText(body, 'plain', 'utf-8')
    from_name = from_name or settings.SMTP_FROM_NAME
    msg['Subject'] = subject
    msg['From'] = f"{from_name} <{settings.SMTP_FROM}>" if from_name else settings.SMTP_FROM
    msg['To'] = to_email

    security = settings.SMTP_SECURITY.lower()
    try:
        if security == 'ssl':
            with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT) as server:
                if settings.SMTP_USERNAME:
                    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                server.sendmail(settings.SMTP_FROM, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
                if security == 'starttls':
                    server.starttls()
                if settings.SMTP_USERNAME:
                    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                server.sendmail(settings.SMTP_FROM, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        # Runs in a background task; there is no client left to report to
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False

    logger.info(f"Email sent to {to_email}: {subject}")
    return True


def send_email(to_email: str, subject: str, body: str, html: bool = False) -> bool:
    """
    Send an email using the configured SMTP server.

    Returns True on success, or when SMTP is not configured (no-op).
    """
    if not settings.SMTP_HOST:
        logger.info(f"SMTP not configured, skipping email to {to_email}: {subject}")
        return True
    return _send_smtp(to_email=to_email, subject=subject, body=body, html=html)


def send_invitation_email(to_email: str, tenant_name: str, token: str, tenant_id: str) -> None:
    link = f"{settings.FRONTEND_URL}/register?token={token}&tenantId={tenant_id}"
    subject = f"You're invited to join {tenant_name}"
    body = (
        f"Hi,\n\n"
        f"You have been invited to join '{tenant_name}' on TaskBrick.\n"
        f"Complete your registration here: {link}\n\n"
        f"This link expires in {settings.INVITATION_EXPIRE_HOURS} hours.\n"
    )
    send_email(to_email, subject, body)


def send_registration_confirmation(to_email: str, first_name: Optional[str], tenant_name: str) -> None:
    subject = f"Welcome to {tenant_name}"
    body = (
        f"Hi {first_name or 'there'},\n\n"
        f"Your account for '{tenant_name}' is ready. You can log in now.\n"
    )
    send_email(to_email, subject, body)


def send_password_reset_email(to_email: str, token: str) -> None:
    link = f"{settings.FRONTEND_URL}/reset-password/{token}"
    subject = "Password reset"
    body = (
        f"You are receiving this because you (or someone else) requested a password reset.\n\n"
        f"Open the following link within {settings.PASSWORD_RESET_EXPIRE_MINUTES} minutes "
        f"to choose a new password:\n{link}\n\n"
        f"If you did not request this, ignore this email and your password will remain unchanged.\n"
    )
    send_email(to_email, subject, body)


def send_password_changed_email(to_email: str) -> None:
    send_email(
        to_email,
        "Your password has been changed",
        f"This is a confirmation that the password for your account {to_email} has just been changed.\n",
    )
