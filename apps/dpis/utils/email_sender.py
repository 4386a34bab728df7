"""Email sending utility for account and password notifications.

Supports both:
- SendGrid API (where outbound SMTP is blocked)
- SMTP (for development)

The system automatically chooses:
- SendGrid if SENDGRID_API_KEY is configured
- SMTP if SMTP_SERVER is configured
"""
import json
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import requests
from flask import current_app


def _send_via_smtp(to_email: str, subject: str, body: str) -> None:
    """Send email via SMTP."""
    app = current_app
    smtp_server = app.config.get('SMTP_SERVER')
    smtp_port = app.config.get('SMTP_PORT', 587)
    smtp_username = app.config.get('SMTP_USERNAME')
    smtp_password = app.config.get('SMTP_PASSWORD')
    from_email = app.config.get('FROM_EMAIL') or smtp_username
    app_name = app.config.get('APP_NAME', 'DPIS')

    if not smtp_username or not smtp_password:
        raise RuntimeError("SMTP_USERNAME and SMTP_PASSWORD are required for SMTP")
    if not from_email:
        raise RuntimeError("FROM_EMAIL is not configured")

    current_app.logger.info(f"Attempting to send email to {to_email} via SMTP ({smtp_server}:{smtp_port})")

    msg = MIMEMultipart()
    msg['From'] = f"{app_name} <{from_email}>"
    msg['To'] = to_email
    msg['Subject'] = subject
    msg.attach(MIMEText(body, 'plain'))

    try:
        with smtplib.SMTP(smtp_server, smtp_port) as server:
            server.starttls()
            server.login(smtp_username, smtp_password)
            server.sendmail(from_email, to_email, msg.as_string())
    except smtplib.SMTPAuthenticationError as e:
        error_msg = f"SMTP authentication failed: {e}"
        current_app.logger.error(error_msg)
        raise RuntimeError(error_msg) from e
    except (smtplib.SMTPException, OSError) as e:
        error_msg = f"SMTP error: {e}"
        current_app.logger.error(error_msg)
        raise RuntimeError(error_msg) from e

    current_app.logger.info(f"Email sent successfully to {to_email} via SMTP")


def _send_via_sendgrid(to_email: str, subject: str, body: str) -> None:
    """Send email via the SendGrid HTTP API."""
    app = current_app
    api_key = app.config.get('SENDGRID_API_KEY')
    from_email = app.config.get('FROM_EMAIL')
    app_name = app.config.get('APP_NAME', 'DPIS')

    if not from_email:
        raise RuntimeError("FROM_EMAIL is not configured")

    url = "https://api.sendgrid.com/v3/mail/send"
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json"
    }
    payload = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": from_email, "name": app_name},
        "subject": subject,
        "content": [{"type": "text/plain", "value": body}]
    }

    current_app.logger.info(f"Attempting to send email to {to_email} via SendGrid API")

    try:
        response = requests.post(url, headers=headers, json=payload, timeout=30)
    except requests.exceptions.RequestException as e:
        error_msg = f"SendGrid API request failed: {e}"
        current_app.logger.error(error_msg)
        raise RuntimeError(error_msg) from e

    # SendGrid returns 202 Accepted on success
    if response.status_code not in (200, 201, 202):
        error_msg = f"SendGrid API error: {response.status_code}"
        try:
            error_msg += f" - {json.dumps(response.json())}"
        except ValueError:
            error_msg += f" - {response.text[:200]}"
        current_app.logger.error(error_msg)
        raise RuntimeError(error_msg)

    current_app.logger.info(f"Email sent successfully to {to_email} via SendGrid")


def _send_email(to_email: str, subject: str, body: str) -> None:
    """
    Send email using the best available method.

    Priority:
    1. SendGrid API (if SENDGRID_API_KEY is set)
    2. SMTP (if SMTP_SERVER is set)
    """
    app = current_app

    if app.config.get('SENDGRID_API_KEY'):
        _send_via_sendgrid(to_email, subject, body)
        return

    if app.config.get('SMTP_SERVER'):
        _send_via_smtp(to_email, subject, body)
        return

    raise RuntimeError(
        "No email provider configured. "
        "Set SENDGRID_API_KEY or SMTP_SERVER/SMTP_USERNAME/SMTP_PASSWORD."
    )


def send_best_effort(send_func, *args) -> bool:
    """Run a notification send, logging instead of raising on failure."""
    try:
        send_func(*args)
        return True
    except Exception as exc:
        current_app.logger.warning("Email notification %s failed: %s", send_func.__name__, exc)
        return False


def _app_name() -> str:
    return current_app.config.get('APP_NAME', 'DPIS')


def send_welcome_email(to_email: str) -> None:
    app_name = _app_name()
    subject = f"Welcome to {app_name}"
    body = (
        f"Hello,\n\n"
        f"Your {app_name} account has been created. An administrator will review "
        f"and approve it before you can sign in.\n\n"
        f"Thank you,\n{app_name} Team"
    )
    _send_email(to_email, subject, body)


def send_user_approved_email(to_email: str) -> None:
    app_name = _app_name()
    login_url = current_app.config.get('ADMIN_URL', '')
    subject = f"{app_name}: Account Approved"
    body = (
        f"Hello,\n\n"
        f"Your {app_name} account has been approved. You can now sign in"
        f"{' at ' + login_url if login_url else ''}.\n\n"
        f"Thank you,\n{app_name} Team"
    )
    _send_email(to_email, subject, body)


def send_password_reset_otp_email(to_email: str, otp: str, ttl_minutes: int) -> None:
    """Send the password reset one-time code."""
    app_name = _app_name()
    subject = f"{app_name}: Password Reset Code"
    body = (
        f"Hello,\n\n"
        f"Use the following code to reset your password:\n\n"
        f"    {otp}\n\n"
        f"The code expires in {ttl_minutes} minutes. If you did not request a "
        f"password reset, you can ignore this email.\n\n"
        f"Thank you,\n{app_name} Team"
    )
    _send_email(to_email, subject, body)


def send_password_changed_email(to_email: str) -> None:
    app_name = _app_name()
    subject = f"{app_name}: Password Changed"
    body = (
        f"Hello,\n\n"
        f"The password for your {app_name} account was just changed. If this "
        f"was not you, contact your administrator immediately.\n\n"
        f"Thank you,\n{app_name} Team"
    )
    _send_email(to_email, subject, body)


def send_citizen_registration_email(to_email: str, name: str) -> None:
    app_name = _app_name()
    subject = f"{app_name}: Registration Received"
    body = (
        f"Dear {name},\n\n"
        f"We have received your citizen registration. Our staff will review your "
        f"details and documents, and you will be notified once it is approved.\n\n"
        f"Thank you,\n{app_name} Team"
    )
    _send_email(to_email, subject, body)


def send_citizen_approved_email(to_email: str, name: str) -> None:
    app_name = _app_name()
    subject = f"{app_name}: Citizen Profile Approved"
    body = (
        f"Dear {name},\n\n"
        f"Your citizen profile has been approved.\n\n"
        f"Thank you,\n{app_name} Team"
    )
    _send_email(to_email, subject, body)
