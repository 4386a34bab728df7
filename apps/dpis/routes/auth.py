"""
DPIS - Authentication Routes
Staff registration, login, token refresh, logout and password management.

Security: Critical endpoints have rate limiting applied to prevent:
- Brute force attacks on login
- Credential stuffing
- Spam account creation
- Password reset abuse
"""
from flask import Blueprint, current_app, g, request
from flask_jwt_extended import get_jwt

from apps.dpis import db
from apps.dpis.models.password_reset_otp import ACCOUNT_USER
from apps.dpis.models.user import User
from apps.dpis.utils import tokens
from apps.dpis.utils.auth import user_required
from apps.dpis.utils.email_sender import (
    send_best_effort,
    send_password_changed_email,
    send_welcome_email,
)
from apps.dpis.utils.errors import AuthError
from apps.dpis.utils.passwords import hash_password, verify_password
from apps.dpis.utils.password_reset import (
    GENERIC_RESET_MESSAGE,
    apply_new_password,
    check_new_password,
    consume_reset_code,
    issue_reset_code,
)
from apps.dpis.utils.rate_limit import limit, limit_with_key, password_reset_email_key
from apps.dpis.utils.responses import api_response
from apps.dpis.utils.validators import (
    json_body,
    normalize_email,
    password_problem,
    validate_email,
    validate_phone,
    validate_ward_fields,
)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/v1/auth')


def _find_active_user(email: str):
    user = User.query.filter_by(email=email).first()
    if not user or user.is_deleted:
        return None
    return user


@auth_bp.route('/register', methods=['POST'])
@limit("5 per hour")  # Prevent spam account creation
def register():
    """Self-register a staff account; an administrator approves it later."""
    data = json_body()

    email = validate_email(data.get('email'))
    password = data.get('password')
    problem = password_problem(password)
    if problem:
        raise AuthError('INVALID_PASSWORD', problem)
    is_ward, ward_number = validate_ward_fields(data.get('isWardLevelUser'), data.get('wardNumber'))

    if User.query.filter_by(email=email).first():
        raise AuthError('USER_ALREADY_EXISTS', f'User with email {email} already exists')

    user = User(
        email=email,
        password_hash=hash_password(password),
        phone_number=validate_phone(data.get('phoneNumber')),
        is_ward_level_user=is_ward,
        ward_number=ward_number,
    )
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("User registered user_id=%s", user.id)

    send_best_effort(send_welcome_email, user.email)

    return api_response(user.to_dict(), 'User registered successfully. Awaiting approval.', 201)


@auth_bp.route('/login', methods=['POST'])
@limit("10 per minute")  # Critical: prevent brute force attacks
def login():
    data = json_body()
    email = normalize_email(data.get('email'))
    password = data.get('password')

    user = _find_active_user(email) if email else None
    if not user or not verify_password(password, user.password_hash):
        current_app.logger.warning("Rejected login attempt")
        raise AuthError('INVALID_CREDENTIALS')

    if not user.is_approved:
        raise AuthError('USER_NOT_APPROVED')

    current_app.logger.info("User logged in user_id=%s", user.id)
    return api_response(tokens.auth_payload(user), 'Login successful')


@auth_bp.route('/refresh', methods=['POST'])
@limit("30 per minute")
def refresh():
    """Exchange a refresh token (``X-Refresh-Token``) for a new token pair.

    The presented refresh token is revoked, so each one works once.
    """
    raw_token = (request.headers.get('X-Refresh-Token') or '').strip()
    if not raw_token:
        raise AuthError('INVALID_TOKEN', 'Refresh token is required')

    claims = tokens.decode_valid_token(raw_token, expected_type='refresh')
    if not claims:
        raise AuthError('INVALID_TOKEN')

    user = _find_active_user(claims.get('sub'))
    if not user:
        raise AuthError('USER_NOT_FOUND')
    if not user.is_approved:
        raise AuthError('USER_NOT_APPROVED')

    tokens.invalidate_claims(claims)
    return api_response(tokens.auth_payload(user), 'Token refreshed successfully')


@auth_bp.route('/logout', methods=['POST'])
@user_required
def logout():
    """Revoke the access token and, when supplied, the refresh token."""
    tokens.invalidate_claims(get_jwt())

    raw_refresh = (request.headers.get('X-Refresh-Token') or '').strip()
    if raw_refresh:
        refresh_claims = tokens.decode_valid_token(raw_refresh, expected_type='refresh')
        if refresh_claims and refresh_claims.get('sub') == g.current_user.email:
            tokens.invalidate_claims(refresh_claims)

    current_app.logger.info("User logged out user_id=%s", g.current_user.id)
    return api_response(None, 'Logout successful')


@auth_bp.route('/password-reset/request', methods=['POST'])
@limit("20 per 15 minutes")  # IP-based rate limit
@limit_with_key("5 per 15 minutes", password_reset_email_key)  # Per-email rate limit
def password_reset_request():
    """Email a reset code (generic response to avoid enumeration)."""
    data = json_body()
    email = validate_email(data.get('email'))

    user = _find_active_user(email)
    if user:
        issue_reset_code(ACCOUNT_USER, user.id, user.email)

    # Always return a generic response
    return api_response(None, GENERIC_RESET_MESSAGE)


@auth_bp.route('/password-reset/reset', methods=['POST'])
@limit("10 per 15 minutes")
def password_reset_confirm():
    data = json_body()
    new_password = check_new_password(AuthError, data.get('newPassword'), data.get('confirmPassword'))

    email = normalize_email(data.get('email'))
    user = _find_active_user(email) if email else None
    if not user:
        raise AuthError('PASSWORD_RESET_OTP_INVALID')

    consume_reset_code(AuthError, ACCOUNT_USER, user.id, data.get('otp'))
    apply_new_password(user, new_password)
    db.session.commit()
    current_app.logger.info("Password reset completed user_id=%s", user.id)

    send_best_effort(send_password_changed_email, user.email)
    return api_response(None, 'Password reset successfully')


@auth_bp.route('/change-password', methods=['POST'])
@user_required
@limit("5 per hour")  # Limit password change attempts
def change_password():
    user = g.current_user
    data = json_body()

    current_password = data.get('currentPassword')
    new_password = data.get('newPassword')
    if new_password != data.get('confirmPassword'):
        raise AuthError('PASSWORDS_DO_NOT_MATCH')
    if not verify_password(current_password, user.password_hash):
        raise AuthError('INVALID_PASSWORD', 'Current password is incorrect')
    if new_password == current_password:
        raise AuthError('INVALID_PASSWORD', 'New password must be different from current password')
    check_new_password(AuthError, new_password, new_password)

    apply_new_password(user, new_password)
    user.updated_by = user.id
    db.session.commit()
    current_app.logger.info("Password changed user_id=%s", user.id)

    send_best_effort(send_password_changed_email, user.email)
    return api_response(None, 'Password changed successfully')


@auth_bp.route('/me', methods=['GET'])
@user_required
def me():
    return api_response(g.current_user.to_dict())
