"""
Outbound email. Sends are scheduled as FastAPI background tasks after the response,
so a mail failure is logged and never undoes the transition that triggered it.
"""
from __future__ import annotations

import asyncio
import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Optional

from config import settings

logger = logging.getLogger(__name__)

# Never echo these form fields into an email body
HIDDEN_FORM_FIELDS = {"password", "confirmPassword", "ssn", "packageId"}


def _send_smtp(recipient: str, subject: str, html_body: str, text_body: str) -> bool:
    if not settings.smtp_configured:
        logger.warning("SMTP not configured; skipping email to %s (%s)", recipient, subject)
        return False

    msg = MIMEMultipart("alternative")
    msg["From"] = settings.smtp_from_email
    msg["To"] = recipient
    msg["Subject"] = subject
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))

    with smtplib.SMTP(settings.smtp_server, settings.smtp_port, timeout=30) as server:
        if settings.smtp_port != 25:
            server.starttls()
        if settings.smtp_username and settings.smtp_password:
            server.login(settings.smtp_username, settings.smtp_password)
        server.sendmail(settings.smtp_from_email, [recipient], msg.as_string())
    logger.info("Email sent to %s: %s", recipient, subject)
    return True


async def send_email(recipient: Optional[str], subject: str, html_body: str, text_body: str) -> bool:
    """Fire-and-forget send: returns False instead of raising."""
    if not recipient:
        logger.warning("No recipient for email '%s'; skipping", subject)
        return False
    try:
        return await asyncio.to_thread(_send_smtp, recipient, subject, html_body, text_body)
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send email to %s (%s): %s", recipient, subject, e)
        return False


def format_form_data(form_data: dict[str, Any]) -> str:
    rows = [
        f"<tr><td><b>{html.escape(k)}</b></td><td>{html.escape(str(v) if v not in (None, '') else 'N/A')}</td></tr>"
        for k, v in (form_data or {}).items()
        if k not in HIDDEN_FORM_FIELDS
    ]
    if not rows:
        return "<p>No additional form data provided.</p>"
    return "<table>" + "".join(rows) + "</table>"


async def send_welcome_email(email: str, first_name: str, site_name: str) -> bool:
    subject = f"Welcome to {site_name}"
    text = f"Hi {first_name},\n\nYour {site_name} account is ready.\n"
    body = f"<p>Hi {html.escape(first_name)},</p><p>Your {html.escape(site_name)} account is ready.</p>"
    return await send_email(email, subject, body, text)


async def send_review_link_email(
    doctor_email: Optional[str],
    doctor_name: str,
    patient_name: str,
    package_name: str,
    form_data: dict[str, Any],
    review_url: str,
    expires_at: str,
) -> bool:
    subject = f"Review request: {patient_name} ({package_name})"
    text = (
        f"Dr. {doctor_name},\n\n{patient_name} has requested a {package_name}.\n"
        f"Review and approve or deny here: {review_url}\nThis link expires {expires_at}.\n"
    )
    body = (
        f"<p>Dr. {html.escape(doctor_name)},</p>"
        f"<p>{html.escape(patient_name)} has requested a {html.escape(package_name)}.</p>"
        f"{format_form_data(form_data)}"
        f'<p><a href="{html.escape(review_url)}">Open review</a> (expires {html.escape(expires_at)})</p>'
    )
    return await send_email(doctor_email, subject, body, text)
