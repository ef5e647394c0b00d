# gameservers/services/email.py
"""Outgoing notification mail.

Both senders are meant to run as FastAPI background tasks: they log and
return ``False`` on failure so a broken SMTP relay never fails a request.
"""
import logging
import smtplib
from email.message import EmailMessage

from gameservers.core.config import settings

logger = logging.getLogger(__name__)


def _send(to: str, subject: str, body: str) -> bool:
    if not settings.EMAIL_HOST:
        logger.info("EMAIL_HOST not set; skipping mail %r to %s", subject, to)
        return False

    msg = EmailMessage()
    msg["From"] = settings.EMAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        if settings.EMAIL_PORT == 465:
            smtp = smtplib.SMTP_SSL(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=10)
        else:
            smtp = smtplib.SMTP(settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=10)
        with smtp:
            if settings.EMAIL_PORT != 465:
                smtp.starttls()
            if settings.EMAIL_USER:
                smtp.login(settings.EMAIL_USER, settings.EMAIL_PASS)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError):
        logger.exception("Error sending mail %r to %s", subject, to)
        return False
    return True


def send_verification_email(email: str, username: str, token: str) -> bool:
    url = f"{settings.APP_URL}/verify-email?token={token}"
    body = (
        f"Hello {username},\n\n"
        "Thank you for signing up. Please verify your email address by opening the link below:\n\n"
        f"{url}\n\n"
        "Thanks,\nThe GameServers Team\n"
    )
    return _send(email, "GameServers - Verify Your Email", body)


def send_server_approval_email(email: str, username: str, server_name: str, approved: bool) -> bool:
    if approved:
        text = f"Good news! Your server {server_name} has been approved and is now listed on GameServers."
    else:
        text = (
            f"We're sorry to inform you that your server {server_name} has been rejected.\n"
            "Please review our server guidelines and ensure your submission follows all our requirements."
        )
    body = (
        f"Hello {username},\n\n{text}\n\n"
        f"View servers: {settings.APP_URL}/servers\n\n"
        "Thanks,\nThe GameServers Team\n"
    )
    subject = f"GameServers - Server {'Approved' if approved else 'Rejected'}"
    return _send(email, subject, body)
