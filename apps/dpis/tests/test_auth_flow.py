"""Staff registration, login, token refresh/logout and password flows."""
from unittest.mock import patch

from apps.dpis import db
from apps.dpis.models.password_reset_otp import ACCOUNT_USER, PasswordResetOtp
from apps.dpis.models.permission import PermissionType
from apps.dpis.models.token_blacklist import TokenBlacklist
from apps.dpis.models.user import User
from apps.dpis.utils.passwords import verify_password

STRONG_PASSWORD = 'Str0ng@Pass'


def _login(client, email, password=STRONG_PASSWORD):
    return client.post('/api/v1/auth/login', json={'email': email, 'password': password})


def test_register_creates_unapproved_user(client, app):
    resp = client.post('/api/v1/auth/register', json={
        'email': 'New.Staff@Example.com',
        'password': STRONG_PASSWORD,
        'isWardLevelUser': True,
        'wardNumber': 4,
    })
    assert resp.status_code == 201
    body = resp.get_json()
    assert body['success'] is True
    assert body['data']['email'] == 'new.staff@example.com'
    assert body['data']['isApproved'] is False
    assert body['data']['wardNumber'] == 4

    with app.app_context():
        user = User.query.filter_by(email='new.staff@example.com').first()
        assert user.password_hash != STRONG_PASSWORD
        assert verify_password(STRONG_PASSWORD, user.password_hash)


def test_register_rejects_weak_password_and_duplicates(client, make_user):
    resp = client.post('/api/v1/auth/register', json={'email': 'weak@example.com', 'password': 'password'})
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'AUTH_013'

    make_user('taken@example.com')
    resp = client.post('/api/v1/auth/register', json={'email': 'taken@example.com', 'password': STRONG_PASSWORD})
    assert resp.status_code == 409
    assert resp.get_json()['error']['code'] == 'AUTH_002'


def test_register_requires_ward_number_for_ward_users(client):
    resp = client.post('/api/v1/auth/register', json={
        'email': 'ward@example.com',
        'password': STRONG_PASSWORD,
        'isWardLevelUser': True,
        'wardNumber': 40,
    })
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'VALIDATION_ERROR'


def test_login_requires_approval(client, make_user):
    make_user('pending@example.com', approved=False)
    resp = _login(client, 'pending@example.com')
    assert resp.status_code == 403
    assert resp.get_json()['error']['code'] == 'AUTH_011'


def test_login_wrong_password_and_unknown_email_look_the_same(client, make_user):
    make_user('staff@example.com')
    wrong = _login(client, 'staff@example.com', 'Wr0ng@Pass')
    unknown = _login(client, 'ghost@example.com')
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.get_json()['error'] == unknown.get_json()['error']
    assert wrong.get_json()['error']['code'] == 'AUTH_010'


def test_login_returns_tokens_with_effective_permissions(client, make_user):
    make_user('viewer@example.com', permissions=[PermissionType.VIEW_USER])
    resp = _login(client, 'viewer@example.com')
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['token'] and data['refreshToken']
    assert data['permissions'] == ['PERMISSION_VIEW_USER']
    assert data['expiresIn'] == 3600

    me = client.get('/api/v1/auth/me', headers={'Authorization': f"Bearer {data['token']}"})
    assert me.status_code == 200
    assert me.get_json()['data']['email'] == 'viewer@example.com'


def test_refresh_rotates_and_revokes_old_refresh_token(client, make_user):
    make_user('staff@example.com')
    tokens = _login(client, 'staff@example.com').get_json()['data']

    resp = client.post('/api/v1/auth/refresh', headers={'X-Refresh-Token': tokens['refreshToken']})
    assert resp.status_code == 200
    assert resp.get_json()['data']['refreshToken'] != tokens['refreshToken']

    again = client.post('/api/v1/auth/refresh', headers={'X-Refresh-Token': tokens['refreshToken']})
    assert again.status_code == 401
    assert again.get_json()['error']['code'] == 'AUTH_012'


def test_refresh_rejects_access_token_and_missing_header(client, make_user):
    make_user('staff@example.com')
    tokens = _login(client, 'staff@example.com').get_json()['data']

    assert client.post('/api/v1/auth/refresh').status_code == 401
    resp = client.post('/api/v1/auth/refresh', headers={'X-Refresh-Token': tokens['token']})
    assert resp.status_code == 401


def test_logout_blacklists_tokens(client, app, make_user):
    make_user('staff@example.com')
    tokens = _login(client, 'staff@example.com').get_json()['data']
    headers = {'Authorization': f"Bearer {tokens['token']}", 'X-Refresh-Token': tokens['refreshToken']}

    resp = client.post('/api/v1/auth/logout', headers=headers)
    assert resp.status_code == 200

    with app.app_context():
        assert TokenBlacklist.query.count() == 2

    resp = client.get('/api/v1/auth/me', headers={'Authorization': f"Bearer {tokens['token']}"})
    assert resp.status_code == 401
    assert resp.get_json()['error']['code'] == 'AUTH_012'


def test_protected_route_without_token_is_unauthenticated(client):
    resp = client.get('/api/v1/auth/me')
    assert resp.status_code == 401
    assert resp.get_json()['error']['code'] == 'AUTH_008'


def test_password_reset_request_is_generic(client, make_user):
    make_user('staff@example.com')
    with patch('apps.dpis.utils.password_reset.send_password_reset_otp_email') as send:
        known = client.post('/api/v1/auth/password-reset/request', json={'email': 'staff@example.com'})
        unknown = client.post('/api/v1/auth/password-reset/request', json={'email': 'ghost@example.com'})

    assert known.status_code == unknown.status_code == 200
    assert known.get_json()['message'] == unknown.get_json()['message']
    assert send.call_count == 1


def test_password_reset_with_emailed_code(client, app, make_user):
    user_id = make_user('staff@example.com')
    with patch('apps.dpis.utils.password_reset.send_password_reset_otp_email') as send:
        client.post('/api/v1/auth/password-reset/request', json={'email': 'staff@example.com'})
    code = send.call_args[0][1]

    with app.app_context():
        otp = PasswordResetOtp.active_for(ACCOUNT_USER, user_id)
        assert otp.code_hash != code

    resp = client.post('/api/v1/auth/password-reset/reset', json={
        'email': 'staff@example.com',
        'otp': code,
        'newPassword': 'N3w@Password',
        'confirmPassword': 'N3w@Password',
    })
    assert resp.status_code == 200
    assert _login(client, 'staff@example.com', 'N3w@Password').status_code == 200

    # A code works only once
    resp = client.post('/api/v1/auth/password-reset/reset', json={
        'email': 'staff@example.com',
        'otp': code,
        'newPassword': 'An0ther@Pass',
        'confirmPassword': 'An0ther@Pass',
    })
    assert resp.get_json()['error']['code'] == 'AUTH_015'


def test_password_reset_locks_after_max_attempts(client, app, make_user):
    make_user('staff@example.com')
    with patch('apps.dpis.utils.password_reset.send_password_reset_otp_email') as send:
        client.post('/api/v1/auth/password-reset/request', json={'email': 'staff@example.com'})
    code = send.call_args[0][1]
    wrong = '000000' if code != '000000' else '111111'

    payload = {
        'email': 'staff@example.com',
        'newPassword': 'N3w@Password',
        'confirmPassword': 'N3w@Password',
    }
    codes = [
        client.post('/api/v1/auth/password-reset/reset', json={**payload, 'otp': wrong}).get_json()['error']['code']
        for _ in range(3)
    ]
    assert codes == ['AUTH_015', 'AUTH_015', 'AUTH_017']

    # The right code no longer works once locked
    resp = client.post('/api/v1/auth/password-reset/reset', json={**payload, 'otp': code})
    assert resp.status_code == 400


def test_password_reset_mismatched_confirmation(client, make_user):
    make_user('staff@example.com')
    resp = client.post('/api/v1/auth/password-reset/reset', json={
        'email': 'staff@example.com',
        'otp': '123456',
        'newPassword': 'N3w@Password',
        'confirmPassword': 'Other@Pass1',
    })
    assert resp.get_json()['error']['code'] == 'AUTH_016'


def test_change_password(client, app, make_user, auth_headers):
    make_user('staff@example.com')
    headers = auth_headers('staff@example.com')

    resp = client.post('/api/v1/auth/change-password', headers=headers, json={
        'currentPassword': 'Wr0ng@Pass',
        'newPassword': 'N3w@Password',
        'confirmPassword': 'N3w@Password',
    })
    assert resp.get_json()['error']['code'] == 'AUTH_013'

    resp = client.post('/api/v1/auth/change-password', headers=headers, json={
        'currentPassword': STRONG_PASSWORD,
        'newPassword': STRONG_PASSWORD,
        'confirmPassword': STRONG_PASSWORD,
    })
    assert resp.status_code == 400

    resp = client.post('/api/v1/auth/change-password', headers=headers, json={
        'currentPassword': STRONG_PASSWORD,
        'newPassword': 'N3w@Password',
        'confirmPassword': 'N3w@Password',
    })
    assert resp.status_code == 200
    with app.app_context():
        user = User.query.filter_by(email='staff@example.com').first()
        assert verify_password('N3w@Password', user.password_hash)


def test_deleted_user_token_is_rejected(client, app, make_user, auth_headers):
    make_user('gone@example.com')
    headers = auth_headers('gone@example.com')
    with app.app_context():
        user = User.query.filter_by(email='gone@example.com').first()
        user.soft_delete()
        db.session.commit()

    resp = client.get('/api/v1/auth/me', headers=headers)
    assert resp.status_code == 401


def test_password_reset_accepts_numeric_code(client, app, make_user):
    user_id = make_user('staff@example.com')
    with patch('apps.dpis.models.password_reset_otp.PasswordResetOtp.generate_code', return_value='123456'), \
            patch('apps.dpis.utils.password_reset.send_password_reset_otp_email'):
        client.post('/api/v1/auth/password-reset/request', json={'email': 'staff@example.com'})

    payload = {
        'email': 'staff@example.com',
        'newPassword': 'N3w@Password',
        'confirmPassword': 'N3w@Password',
    }
    resp = client.post('/api/v1/auth/password-reset/reset', json={**payload, 'otp': 654321})
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'AUTH_015'
    with app.app_context():
        assert PasswordResetOtp.active_for(ACCOUNT_USER, user_id).attempts == 1

    resp = client.post('/api/v1/auth/password-reset/reset', json={**payload, 'otp': 123456})
    assert resp.status_code == 200
    assert _login(client, 'staff@example.com', 'N3w@Password').status_code == 200


def test_non_string_email_is_a_client_error(client, make_user):
    resp = client.post('/api/v1/auth/register', json={'email': 12345, 'password': STRONG_PASSWORD})
    assert resp.status_code == 400
    assert resp.get_json()['error']['details'] == {'email': 'Invalid email format'}

    make_user('staff@example.com')
    resp = client.post('/api/v1/auth/login', json={'email': ['staff@example.com'], 'password': STRONG_PASSWORD})
    assert resp.status_code == 401
    assert resp.get_json()['error']['code'] == 'AUTH_010'

    resp = client.post('/api/v1/auth/login', json={'email': 'staff@example.com', 'password': 12345678})
    assert resp.status_code == 401
