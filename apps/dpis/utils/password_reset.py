"""Password reset and change flow shared by staff users and citizens.

Each step takes the error class of the calling surface (``AuthError`` or
``CitizenAuthError``); both define the same error names.
"""
from flask import current_app, request

from apps.dpis import db
from apps.dpis.models.password_reset_otp import PasswordResetOtp
from apps.dpis.utils.email_sender import send_password_reset_otp_email
from apps.dpis.utils.passwords import hash_password
from apps.dpis.utils.validators import password_problem

GENERIC_RESET_MESSAGE = "If an account exists for this email, a password reset code has been sent."


def check_new_password(error_cls, new_password, confirm_password) -> str:
    """Validate a new password and its confirmation; returns the password."""
    if not new_password:
        raise error_cls('INVALID_PASSWORD', 'New password is required')
    if new_password != confirm_password:
        raise error_cls('PASSWORDS_DO_NOT_MATCH')
    problem = password_problem(new_password)
    if problem:
        raise error_cls('INVALID_PASSWORD', problem)
    return new_password


def issue_reset_code(account_type: str, account_id: str, email: str) -> None:
    """Create a fresh OTP for the account and email it.

    Delivery failures are logged only, so the caller can keep its response
    identical for known and unknown accounts.
    """
    _, raw_code = PasswordResetOtp.issue(
        account_type,
        account_id,
        email,
        request_ip=request.remote_addr if request else None,
    )
    ttl_minutes = int(current_app.config.get('PASSWORD_RESET_OTP_TTL_MINUTES', 15))
    try:
        send_password_reset_otp_email(email, raw_code, ttl_minutes)
        current_app.logger.info("Password reset code sent account_type=%s id=%s", account_type, account_id)
    except Exception as email_error:
        current_app.logger.error(
            "Password reset email failed account_type=%s id=%s: %s",
            account_type,
            account_id,
            email_error,
        )


def consume_reset_code(error_cls, account_type: str, account_id: str, code: str) -> PasswordResetOtp:
    """Check ``code`` against the account's active OTP and mark it used.

    Wrong codes count towards ``PASSWORD_RESET_MAX_ATTEMPTS``; reaching the
    limit invalidates the OTP.
    """
    otp = PasswordResetOtp.active_for(account_type, account_id)
    if not otp:
        raise error_cls('PASSWORD_RESET_OTP_INVALID')

    if otp.is_expired():
        otp.mark_used()
        db.session.commit()
        raise error_cls('PASSWORD_RESET_OTP_INVALID')

    max_attempts = int(current_app.config.get('PASSWORD_RESET_MAX_ATTEMPTS', 3))
    if otp.attempts >= max_attempts:
        otp.mark_used()
        db.session.commit()
        raise error_cls('TOO_MANY_ATTEMPTS')

    if not otp.matches(code):
        otp.attempts += 1
        if otp.attempts >= max_attempts:
            otp.mark_used()
            db.session.commit()
            current_app.logger.warning(
                "Password reset code locked after %s attempts account_type=%s id=%s",
                otp.attempts,
                account_type,
                account_id,
            )
            raise error_cls('TOO_MANY_ATTEMPTS')
        db.session.commit()
        raise error_cls('PASSWORD_RESET_OTP_INVALID')

    otp.mark_used()
    return otp


def apply_new_password(account, new_password: str) -> None:
    account.password_hash = hash_password(new_password)
