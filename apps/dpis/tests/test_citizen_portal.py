"""Citizen self-registration, portal login and profile uploads."""
import base64
import io
from unittest.mock import patch

import pytest

from apps.dpis import db
from apps.dpis.models.citizen import Citizen, CitizenState
from apps.dpis.models.token_blacklist import TokenBlacklist

STRONG_PASSWORD = 'Str0ng@Pass'

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    'iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=='
)


def _register(client, **overrides):
    payload = {
        'name': 'Sita Sharma',
        'email': 'sita@example.com',
        'password': STRONG_PASSWORD,
        'citizenshipNumber': '01-01-75-12345',
    }
    payload.update(overrides)
    return client.post('/api/v1/citizen-profile/register', json=payload)


def _login(client, email='sita@example.com', password=STRONG_PASSWORD):
    return client.post('/api/v1/citizen-auth/login', json={'email': email, 'password': password})


@pytest.fixture
def citizen_headers(client):
    _register(client)
    token = _login(client).get_json()['data']['token']
    return {'Authorization': f'Bearer {token}'}


def test_register_starts_pending(client, locations):
    resp = _register(client, permanentAddress={
        'provinceCode': '1',
        'districtCode': '101',
        'municipalityCode': '10101',
        'wardNumber': 2,
    })
    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['state'] == 'PENDING_REGISTRATION'
    assert data['isApproved'] is False
    assert data['permanentAddress']['wardNumber'] == 2
    assert 'password' not in data and 'passwordHash' not in data


def test_register_validation(client):
    resp = _register(client, citizenshipNumber='')
    assert resp.get_json()['error']['code'] == 'CIT_008'
    assert 'citizenshipNumber' in resp.get_json()['error']['details']

    resp = _register(client, password='short')
    assert resp.get_json()['error']['code'] == 'CITIZEN_AUTH_010'

    assert _register(client).status_code == 201
    assert _register(client, email='other@example.com').get_json()['error']['code'] == 'CIT_002'
    assert _register(client, citizenshipNumber='99').get_json()['error']['code'] == 'CIT_003'


def test_register_rejects_inconsistent_address(client, locations):
    resp = _register(client, permanentAddress={
        'provinceCode': '3',
        'districtCode': '101',
        'municipalityCode': '10101',
        'wardNumber': 1,
    })
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'ADDR_005'


def test_login_does_not_require_approval(client):
    _register(client)
    resp = _login(client)
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['state'] == 'PENDING_REGISTRATION'
    assert data['token'] and data['refreshToken']


def test_login_refuses_rejected_and_deleted(client, app):
    _register(client)
    with app.app_context():
        citizen = Citizen.query.filter_by(email='sita@example.com').first()
        citizen.update_state(CitizenState.REJECTED, 'Documents unreadable')
        db.session.commit()

    resp = _login(client)
    assert resp.status_code == 403
    assert resp.get_json()['error']['code'] == 'CITIZEN_AUTH_004'
    assert resp.get_json()['error']['message'] == 'Documents unreadable'

    with app.app_context():
        citizen = Citizen.query.filter_by(email='sita@example.com').first()
        citizen.soft_delete()
        db.session.commit()
    assert _login(client).get_json()['error']['code'] == 'CITIZEN_AUTH_005'


def test_bad_credentials(client):
    _register(client)
    assert _login(client, password='Wr0ng@Pass').get_json()['error']['code'] == 'CITIZEN_AUTH_006'
    assert _login(client, email='nobody@example.com').status_code == 401


def test_staff_token_is_not_a_citizen_token(client, make_user, auth_headers):
    make_user('staff@example.com')
    resp = client.get('/api/v1/citizen-profile/me', headers=auth_headers('staff@example.com'))
    assert resp.status_code == 401
    assert resp.get_json()['error']['code'] == 'CITIZEN_AUTH_007'


def test_citizen_token_is_not_a_staff_token(client, citizen_headers):
    resp = client.get('/api/v1/auth/me', headers=citizen_headers)
    assert resp.status_code == 401


def test_refresh_and_logout(client, app):
    _register(client)
    tokens = _login(client).get_json()['data']

    resp = client.post('/api/v1/citizen-auth/refresh', headers={'X-Refresh-Token': tokens['refreshToken']})
    assert resp.status_code == 200
    fresh = resp.get_json()['data']

    reused = client.post('/api/v1/citizen-auth/refresh', headers={'X-Refresh-Token': tokens['refreshToken']})
    assert reused.get_json()['error']['code'] == 'CITIZEN_AUTH_007'

    headers = {'Authorization': f"Bearer {fresh['token']}", 'X-Refresh-Token': fresh['refreshToken']}
    assert client.post('/api/v1/citizen-auth/logout', headers=headers).status_code == 200
    with app.app_context():
        assert TokenBlacklist.query.filter_by(token_use='citizen').count() == 3

    resp = client.get('/api/v1/citizen-profile/me', headers={'Authorization': f"Bearer {fresh['token']}"})
    assert resp.status_code == 401


def test_profile_read_and_self_update(client, citizen_headers, locations):
    resp = client.get('/api/v1/citizen-profile/me', headers=citizen_headers)
    assert resp.get_json()['data']['email'] == 'sita@example.com'

    resp = client.put('/api/v1/citizen-profile/me', headers=citizen_headers, json={
        'phoneNumber': '9800000001',
        'name': 'Someone Else',
        'temporaryAddress': {
            'provinceCode': '3',
            'districtCode': '301',
            'municipalityCode': '30101',
            'wardNumber': 1,
            'streetAddress': 'Baneshwor',
        },
    })
    data = resp.get_json()['data']
    assert data['phoneNumber'] == '9800000001'
    assert data['name'] == 'Sita Sharma'
    assert data['temporaryAddress']['streetAddress'] == 'Baneshwor'


def test_citizen_password_reset(client):
    _register(client)
    with patch('apps.dpis.utils.password_reset.send_password_reset_otp_email') as send:
        resp = client.post('/api/v1/citizen-auth/password-reset/request', json={'email': 'sita@example.com'})
    assert resp.status_code == 200
    code = send.call_args[0][1]

    resp = client.post('/api/v1/citizen-auth/password-reset/reset', json={
        'email': 'sita@example.com',
        'otp': code,
        'newPassword': 'N3w@Password',
        'confirmPassword': 'N3w@Password',
    })
    assert resp.status_code == 200
    assert _login(client, password='N3w@Password').status_code == 200


def test_citizen_change_password(client, citizen_headers):
    resp = client.post('/api/v1/citizen-auth/change-password', headers=citizen_headers, json={
        'currentPassword': STRONG_PASSWORD,
        'newPassword': 'N3w@Password',
        'confirmPassword': 'Mismatch@1',
    })
    assert resp.get_json()['error']['code'] == 'CITIZEN_AUTH_012'

    resp = client.post('/api/v1/citizen-auth/change-password', headers=citizen_headers, json={
        'currentPassword': STRONG_PASSWORD,
        'newPassword': 'N3w@Password',
        'confirmPassword': 'N3w@Password',
    })
    assert resp.status_code == 200


def test_photo_upload_is_public(client, app, citizen_headers):
    resp = client.post(
        '/api/v1/citizen-profile/me/photo',
        headers=citizen_headers,
        data={'file': (io.BytesIO(PNG_BYTES), 'me.png')},
        content_type='multipart/form-data',
    )
    assert resp.status_code == 200
    data = resp.get_json()['data']
    assert data['key'].startswith('citizens/profiles/photos/')
    assert data['url'].endswith(f"/uploads/{data['key']}")

    public = client.get(f"/uploads/{data['key']}")
    assert public.status_code == 200
    assert public.data == PNG_BYTES

    me = client.get('/api/v1/citizen-profile/me', headers=citizen_headers).get_json()['data']
    assert me['photoUrl'] == data['url']


def test_document_upload_is_private(client, citizen_headers):
    resp = client.post(
        '/api/v1/citizen-profile/me/citizenship-front',
        headers=citizen_headers,
        data={'file': (io.BytesIO(PNG_BYTES), 'front.png')},
        content_type='multipart/form-data',
    )
    assert resp.status_code == 200
    key = resp.get_json()['data']['key']

    assert client.get(f'/uploads/{key}').status_code == 403
    assert client.get('/api/v1/citizen-profile/me/documents/citizenship-front').status_code == 401

    own = client.get('/api/v1/citizen-profile/me/documents/citizenship-front', headers=citizen_headers)
    assert own.status_code == 200
    assert own.data == PNG_BYTES

    missing = client.get('/api/v1/citizen-profile/me/documents/citizenship-back', headers=citizen_headers)
    assert missing.status_code == 404


def test_upload_rejects_bad_files(client, app, citizen_headers):
    resp = client.post(
        '/api/v1/citizen-profile/me/photo',
        headers=citizen_headers,
        data={'file': (io.BytesIO(b'%PDF-1.4'), 'me.pdf')},
        content_type='multipart/form-data',
    )
    assert resp.get_json()['error']['code'] == 'CIT_012'

    resp = client.post('/api/v1/citizen-profile/me/photo', headers=citizen_headers,
                       data={}, content_type='multipart/form-data')
    assert resp.get_json()['error']['code'] == 'CIT_012'

    app.config['CITIZEN_PHOTO_MAX_MB'] = 0
    resp = client.post(
        '/api/v1/citizen-profile/me/photo',
        headers=citizen_headers,
        data={'file': (io.BytesIO(PNG_BYTES), 'me.png')},
        content_type='multipart/form-data',
    )
    assert resp.get_json()['error']['code'] == 'CIT_013'


def test_upload_path_traversal_is_refused(client):
    assert client.get('/uploads/citizens/profiles/../documents/x.png').status_code in (400, 404)


def test_citizen_password_reset_accepts_numeric_code(client):
    _register(client)
    with patch('apps.dpis.models.password_reset_otp.PasswordResetOtp.generate_code', return_value='246810'), \
            patch('apps.dpis.utils.password_reset.send_password_reset_otp_email'):
        client.post('/api/v1/citizen-auth/password-reset/request', json={'email': 'sita@example.com'})

    payload = {'email': 'sita@example.com', 'newPassword': 'N3w@Password', 'confirmPassword': 'N3w@Password'}
    resp = client.post('/api/v1/citizen-auth/password-reset/reset', json={**payload, 'otp': 111111})
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'CITIZEN_AUTH_011'

    resp = client.post('/api/v1/citizen-auth/password-reset/reset', json={**payload, 'otp': 246810})
    assert resp.status_code == 200


def test_self_update_cannot_clear_email(client, citizen_headers):
    for email in ('', None, '   '):
        resp = client.put('/api/v1/citizen-profile/me', headers=citizen_headers, json={'email': email})
        assert resp.status_code == 400
        assert resp.get_json()['error']['details'] == {'email': 'Email is required'}

    resp = client.get('/api/v1/citizen-profile/me', headers=citizen_headers)
    assert resp.get_json()['data']['email'] == 'sita@example.com'
    assert _login(client).status_code == 200

    resp = client.put('/api/v1/citizen-profile/me', headers=citizen_headers, json={'email': 'Sita.New@Example.com'})
    assert resp.get_json()['data']['email'] == 'sita.new@example.com'
