"""
Email Service using Resend (preferred) or SMTP (fallback)
Templates are MJML compiled to HTML
"""

import logging
import smtplib
import ssl
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import (
    EMAIL_FROM_ADDRESS,
    FRONTEND_URL,
    RESEND_API_KEY,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USER,
)
from .email_templates import (
    doctor_invite_template,
    password_reset_template,
    patient_welcome_template,
    prescription_assigned_template,
    referral_credit_template,
    referral_received_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailNotConfiguredError(Exception):
    pass


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    if result.get("errors"):
        logger.warning(f"MJML compilation warnings: {result['errors']}")
    return result.get("html", "")


def send_via_smtp(to: list[str], subject: str, html_content: str, from_address: str) -> dict:
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = from_address
    msg["To"] = ", ".join(to)
    msg.attach(MIMEText(html_content, "html"))

    if SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=ssl.create_default_context(), timeout=30)
    else:
        server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30)

    try:
        if SMTP_PORT != 465 and SMTP_USE_TLS:
            server.starttls(context=ssl.create_default_context())
        if SMTP_USER:
            server.login(SMTP_USER, SMTP_PASSWORD)
        server.sendmail(from_address.split("<")[-1].rstrip(">"), to, msg.as_string())
    finally:
        server.quit()

    logger.info(f"✅ SMTP email sent via {SMTP_HOST}")
    return {"id": f"smtp-{datetime.utcnow().timestamp()}", "success": True}


def send_email(to: Union[str, list[str]], subject: str, mjml_content: str, from_address: Optional[str] = None) -> dict:
    """
    Send an email using Resend, or SMTP when Resend is not configured

    Raises:
        EmailNotConfiguredError: neither transport is configured
    """
    try:
        html_content = compile_mjml_to_html(mjml_content)
    except Exception as e:
        logger.error(f"MJML compilation error, sending raw markup: {e}")
        html_content = mjml_content

    recipients = [to] if isinstance(to, str) else to
    sender = from_address or EMAIL_FROM_ADDRESS

    if RESEND_API_KEY:
        logger.info(f"📧 Sending email via Resend to: {recipients}")
        response = resend.Emails.send({"from": sender, "to": recipients, "subject": subject, "html": html_content})
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response

    if SMTP_HOST:
        logger.info(f"📧 Sending email via SMTP to: {recipients}")
        return send_via_smtp(recipients, subject, html_content, sender)

    logger.error("❌ No email service configured - set RESEND_API_KEY or SMTP_HOST")
    raise EmailNotConfiguredError("Email service not configured")


# ============================================
# Pre-built emails
# ============================================


def send_password_reset_email(to: str, user_name: str, reset_token: str) -> dict:
    reset_link = f"{FRONTEND_URL}/auth/reset-password?token={reset_token}"
    return send_email(to, "Reset your password - CareHub", password_reset_template(user_name or to, reset_link))


def send_patient_welcome_email(to: str, patient_name: str, doctor_name: str, reset_token: str) -> dict:
    link = f"{FRONTEND_URL}/auth/reset-password?token={reset_token}"
    return send_email(
        to, "You've been invited to CareHub", patient_welcome_template(patient_name or to, doctor_name, link)
    )


def send_doctor_invite_email(to: str, doctor_name: str, plan_name: str, is_trial: bool, trial_days: int, reset_token: str) -> dict:
    link = f"{FRONTEND_URL}/auth/reset-password?token={reset_token}"
    return send_email(
        to,
        "You've been invited to CareHub",
        doctor_invite_template(doctor_name or to, plan_name, is_trial, trial_days, link),
    )


def send_prescription_email(to: str, patient_name: str, doctor_name: str, protocol_name: str, start_date: datetime, prescription_id: int) -> dict:
    link = f"{FRONTEND_URL}/patient/protocols/{prescription_id}"
    return send_email(
        to,
        f"New protocol: {protocol_name}",
        prescription_assigned_template(patient_name or to, doctor_name, protocol_name, start_date.strftime("%Y-%m-%d"), link),
    )


def send_referral_notification(to: str, doctor_name: str, lead_name: str, lead_email: str, referrer_name: Optional[str] = None) -> dict:
    link = f"{FRONTEND_URL}/doctor/referrals"
    return send_email(
        to, "New referral received", referral_received_template(doctor_name, lead_name, lead_email, referrer_name, link)
    )


def send_credit_notification(to: str, referrer_name: str, lead_name: str, balance: int) -> dict:
    link = f"{FRONTEND_URL}/patient/referrals"
    return send_email(to, "You earned a referral credit", referral_credit_template(referrer_name or to, lead_name, balance, link))
