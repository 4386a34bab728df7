"""
DPIS - Citizen Authentication Routes
Citizen portal login, token refresh, logout and password management.

Citizen tokens are separate from staff tokens; see utils/citizen_tokens.py.
"""
from flask import Blueprint, current_app, g, request

from apps.dpis import db
from apps.dpis.models.citizen import Citizen, CitizenState
from apps.dpis.models.password_reset_otp import ACCOUNT_CITIZEN
from apps.dpis.utils import citizen_tokens
from apps.dpis.utils.citizen_tokens import citizen_jwt_required
from apps.dpis.utils.email_sender import send_best_effort, send_password_changed_email
from apps.dpis.utils.errors import CitizenAuthError
from apps.dpis.utils.passwords import verify_password
from apps.dpis.utils.password_reset import (
    GENERIC_RESET_MESSAGE,
    apply_new_password,
    check_new_password,
    consume_reset_code,
    issue_reset_code,
)
from apps.dpis.utils.rate_limit import limit, limit_with_key, password_reset_email_key
from apps.dpis.utils.responses import api_response
from apps.dpis.utils.validators import json_body, normalize_email, validate_email

citizen_auth_bp = Blueprint('citizen_auth', __name__, url_prefix='/api/v1/citizen-auth')


def _rejected_error(citizen: Citizen) -> CitizenAuthError:
    return CitizenAuthError('CITIZEN_ACCOUNT_REJECTED', citizen.state_note or None)


def _find_active_citizen(email: str):
    citizen = Citizen.query.filter_by(email=email).first() if email else None
    if not citizen or citizen.is_deleted:
        return None
    return citizen


@citizen_auth_bp.route('/login', methods=['POST'])
@limit("10 per minute")  # Critical: prevent brute force attacks
def login():
    """Log a citizen in. Approval is not required; rejected accounts are refused."""
    data = json_body()
    email = normalize_email(data.get('email'))
    password = data.get('password')

    citizen = Citizen.query.filter_by(email=email).first() if email else None
    if not citizen or not password or not verify_password(password, citizen.password_hash):
        current_app.logger.warning("Rejected citizen login attempt")
        raise CitizenAuthError('INVALID_CREDENTIALS')

    if citizen.is_deleted:
        raise CitizenAuthError('CITIZEN_ACCOUNT_DISABLED')
    if citizen.state == CitizenState.REJECTED.value:
        raise _rejected_error(citizen)

    current_app.logger.info("Citizen logged in citizen_id=%s", citizen.id)
    return api_response(citizen_tokens.auth_payload(citizen), 'Login successful')


@citizen_auth_bp.route('/refresh', methods=['POST'])
@limit("30 per minute")
def refresh():
    raw_token = (request.headers.get('X-Refresh-Token') or '').strip()
    if not raw_token:
        raise CitizenAuthError('INVALID_TOKEN', 'Refresh token is required')

    claims = citizen_tokens.decode_valid_token(raw_token, expected_type='refresh')
    if not claims:
        raise CitizenAuthError('INVALID_TOKEN')

    citizen = db.session.get(Citizen, claims['citizenId'])
    if not citizen:
        raise CitizenAuthError('CITIZEN_NOT_FOUND')
    if citizen.is_deleted:
        raise CitizenAuthError('CITIZEN_ACCOUNT_DISABLED')
    if citizen.state == CitizenState.REJECTED.value:
        raise _rejected_error(citizen)

    citizen_tokens.invalidate_claims(claims)
    return api_response(citizen_tokens.auth_payload(citizen), 'Token refreshed successfully')


@citizen_auth_bp.route('/logout', methods=['POST'])
@citizen_jwt_required
def logout():
    citizen_tokens.invalidate_claims(g.citizen_claims)

    raw_refresh = (request.headers.get('X-Refresh-Token') or '').strip()
    if raw_refresh:
        refresh_claims = citizen_tokens.decode_valid_token(raw_refresh, expected_type='refresh')
        if refresh_claims and refresh_claims.get('citizenId') == g.citizen_id:
            citizen_tokens.invalidate_claims(refresh_claims)

    current_app.logger.info("Citizen logged out citizen_id=%s", g.citizen_id)
    return api_response(None, 'Logout successful')


@citizen_auth_bp.route('/password-reset/request', methods=['POST'])
@limit("20 per 15 minutes")  # IP-based rate limit
@limit_with_key("5 per 15 minutes", password_reset_email_key)  # Per-email rate limit
def password_reset_request():
    data = json_body()
    email = validate_email(data.get('email'))

    citizen = _find_active_citizen(email)
    if citizen:
        issue_reset_code(ACCOUNT_CITIZEN, citizen.id, citizen.email)

    # Always return a generic response
    return api_response(None, GENERIC_RESET_MESSAGE)


@citizen_auth_bp.route('/password-reset/reset', methods=['POST'])
@limit("10 per 15 minutes")
def password_reset_confirm():
    data = json_body()
    new_password = check_new_password(CitizenAuthError, data.get('newPassword'), data.get('confirmPassword'))

    email = normalize_email(data.get('email'))
    citizen = _find_active_citizen(email)
    if not citizen:
        raise CitizenAuthError('PASSWORD_RESET_OTP_INVALID')

    consume_reset_code(CitizenAuthError, ACCOUNT_CITIZEN, citizen.id, data.get('otp'))
    apply_new_password(citizen, new_password)
    db.session.commit()
    current_app.logger.info("Citizen password reset completed citizen_id=%s", citizen.id)

    send_best_effort(send_password_changed_email, citizen.email)
    return api_response(None, 'Password reset successfully')


@citizen_auth_bp.route('/change-password', methods=['POST'])
@citizen_jwt_required
@limit("5 per hour")
def change_password():
    citizen = db.session.get(Citizen, g.citizen_id)
    if not citizen or citizen.is_deleted:
        raise CitizenAuthError('CITIZEN_NOT_FOUND')

    data = json_body()
    current_password = data.get('currentPassword')
    new_password = data.get('newPassword')
    if new_password != data.get('confirmPassword'):
        raise CitizenAuthError('PASSWORDS_DO_NOT_MATCH')
    if not verify_password(current_password, citizen.password_hash):
        raise CitizenAuthError('INVALID_PASSWORD', 'Current password is incorrect')
    if new_password == current_password:
        raise CitizenAuthError('INVALID_PASSWORD', 'New password must be different from current password')
    check_new_password(CitizenAuthError, new_password, new_password)

    apply_new_password(citizen, new_password)
    citizen.updated_by = citizen.id
    db.session.commit()
    current_app.logger.info("Citizen password changed citizen_id=%s", citizen.id)

    if citizen.email:
        send_best_effort(send_password_changed_email, citizen.email)
    return api_response(None, 'Password changed successfully')
