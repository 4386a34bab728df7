"""Staff-side citizen records and review state."""
import io
from datetime import timedelta

import pytest

from apps.dpis import db
from apps.dpis.models.citizen import Citizen, CitizenState, can_transition
from apps.dpis.models.permission import PermissionType
from apps.dpis.utils.time import utc_now


def _create(client, headers, **overrides):
    payload = {
        'name': 'Ram Bahadur',
        'citizenshipNumber': '27-01-70-00001',
        'citizenshipIssuedDate': '2015-04-14',
        'citizenshipIssuedOffice': 'DAO Morang',
    }
    payload.update(overrides)
    return client.post('/api/v1/citizens', headers=headers, json=payload)


@pytest.fixture
def officer_headers(make_user, auth_headers):
    make_user('officer@example.com', permissions=[PermissionType.MANAGE_CITIZENS])
    return auth_headers('officer@example.com')


def test_create_citizen_pending_by_default(client, officer_headers):
    resp = _create(client, officer_headers)
    assert resp.status_code == 201
    data = resp.get_json()['data']
    assert data['state'] == 'PENDING_REGISTRATION'
    assert data['citizenshipIssuedDate'] == '2015-04-14'


def test_create_citizen_approved_immediately(client, officer_headers):
    resp = _create(client, officer_headers, isApproved=True, email='ram@example.com')
    data = resp.get_json()['data']
    assert data['state'] == 'APPROVED'
    assert data['isApproved'] is True
    assert data['stateNote'] == 'Approved by administrator'


def test_create_citizen_requires_complete_citizenship_data(client, officer_headers):
    resp = _create(client, officer_headers, citizenshipIssuedOffice=None)
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'CIT_004'

    resp = _create(client, officer_headers, name='')
    assert resp.get_json()['error']['code'] == 'CIT_008'

    resp = _create(client, officer_headers, password='weak')
    assert resp.get_json()['error']['code'] == 'CITIZEN_AUTH_010'


def test_view_only_staff_cannot_create(client, make_user, auth_headers):
    make_user('viewer@example.com', permissions=[PermissionType.VIEW_CITIZEN])
    resp = _create(client, auth_headers('viewer@example.com'))
    assert resp.status_code == 403


def test_state_transitions(client, officer_headers):
    citizen_id = _create(client, officer_headers).get_json()['data']['id']

    resp = client.put(f'/api/v1/citizens/{citizen_id}/state', headers=officer_headers,
                      json={'state': 'UNDER_REVIEW', 'note': 'Checking documents'})
    data = resp.get_json()['data']
    assert data['state'] == 'UNDER_REVIEW'
    assert data['stateNote'] == 'Checking documents'

    resp = client.put(f'/api/v1/citizens/{citizen_id}/state', headers=officer_headers, json={'state': 'APPROVED'})
    assert resp.get_json()['data']['isApproved'] is True

    resp = client.put(f'/api/v1/citizens/{citizen_id}/state', headers=officer_headers,
                      json={'state': 'PENDING_REGISTRATION'})
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'CIT_015'

    resp = client.put(f'/api/v1/citizens/{citizen_id}/state', headers=officer_headers, json={'state': 'LOST'})
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'VALIDATION_ERROR'


def test_leaving_approved_clears_approval(app):
    with app.app_context():
        citizen = Citizen(name='X')
        citizen.approve(note='ok')
        citizen.update_state(CitizenState.ACTION_REQUIRED, 'Upload a clearer photo')
        assert citizen.is_approved is False
        assert not can_transition(CitizenState.REJECTED, CitizenState.PENDING_REGISTRATION)
        assert can_transition(CitizenState.REJECTED, CitizenState.UNDER_REVIEW)


def test_approve_citizen_once(client, officer_headers):
    citizen_id = _create(client, officer_headers).get_json()['data']['id']
    resp = client.post(f'/api/v1/citizens/{citizen_id}/approve', headers=officer_headers)
    assert resp.get_json()['data']['state'] == 'APPROVED'

    resp = client.post(f'/api/v1/citizens/{citizen_id}/approve', headers=officer_headers)
    assert resp.status_code == 409
    assert resp.get_json()['error']['code'] == 'CIT_005'


def test_update_and_delete(client, officer_headers):
    citizen_id = _create(client, officer_headers).get_json()['data']['id']
    _create(client, officer_headers, citizenshipNumber='27-01-70-00002', email='taken@example.com')

    resp = client.put(f'/api/v1/citizens/{citizen_id}', headers=officer_headers, json={'fatherName': 'Hari'})
    assert resp.get_json()['data']['fatherName'] == 'Hari'

    resp = client.put(f'/api/v1/citizens/{citizen_id}', headers=officer_headers, json={'email': 'taken@example.com'})
    assert resp.get_json()['error']['code'] == 'CIT_003'

    assert client.delete(f'/api/v1/citizens/{citizen_id}', headers=officer_headers).status_code == 200
    resp = client.delete(f'/api/v1/citizens/{citizen_id}', headers=officer_headers)
    assert resp.get_json()['error']['code'] == 'CIT_006'

    resp = client.get(f'/api/v1/citizens/{citizen_id}', headers=officer_headers)
    assert resp.get_json()['data']['isDeleted'] is True


def test_search_and_state_listings(client, officer_headers):
    first = _create(client, officer_headers, name='Gita Rai').get_json()['data']['id']
    second = _create(client, officer_headers, name='Hari Rai', citizenshipNumber='27-01-70-00002').get_json()['data']['id']
    _create(client, officer_headers, name='Maya Thapa', citizenshipNumber='27-01-70-00003')

    client.put(f'/api/v1/citizens/{first}/state', headers=officer_headers, json={'state': 'UNDER_REVIEW'})
    client.put(f'/api/v1/citizens/{second}/state', headers=officer_headers, json={'state': 'ACTION_REQUIRED'})

    resp = client.get('/api/v1/citizens/search?name=rai&sortBy=name&sortDirection=ASC', headers=officer_headers)
    assert [c['name'] for c in resp.get_json()['data']] == ['Gita Rai', 'Hari Rai']

    resp = client.get('/api/v1/citizens/requiring-action', headers=officer_headers)
    assert {c['id'] for c in resp.get_json()['data']} == {first, second}

    resp = client.get('/api/v1/citizens/state/pending_registration', headers=officer_headers)
    assert [c['name'] for c in resp.get_json()['data']] == ['Maya Thapa']

    resp = client.get('/api/v1/citizens/search?citizenshipNumber=27-01-70-00003', headers=officer_headers)
    assert resp.get_json()['meta']['totalElements'] == 1


def test_staff_can_read_uploaded_document(client, app, officer_headers):
    client.post('/api/v1/citizen-profile/register', json={
        'name': 'Sita Sharma',
        'email': 'sita@example.com',
        'password': 'Str0ng@Pass',
        'citizenshipNumber': '01-01-75-12345',
    })
    token = client.post('/api/v1/citizen-auth/login', json={
        'email': 'sita@example.com', 'password': 'Str0ng@Pass',
    }).get_json()['data']['token']
    client.post(
        '/api/v1/citizen-profile/me/citizenship-back',
        headers={'Authorization': f'Bearer {token}'},
        data={'file': (io.BytesIO(b'%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n'), 'back.pdf')},
        content_type='multipart/form-data',
    )

    with app.app_context():
        citizen_id = Citizen.query.filter_by(email='sita@example.com').first().id
        assert db.session.get(Citizen, citizen_id).citizenship_back_key

    resp = client.get(f'/api/v1/citizens/{citizen_id}/documents/citizenship-back', headers=officer_headers)
    assert resp.status_code == 200
    assert resp.data.startswith(b'%PDF')

    resp = client.get(f'/api/v1/citizens/{citizen_id}/documents/photo', headers=officer_headers)
    assert resp.get_json()['error']['code'] == 'CIT_012'


def test_search_created_before_and_literal_name(client, officer_headers):
    _create(client, officer_headers, name='Rai_Gita')
    _create(client, officer_headers, name='RaixGita', citizenshipNumber='27-01-70-00002')
    today = utc_now().date()

    resp = client.get(f'/api/v1/citizens/search?createdBefore={today.isoformat()}', headers=officer_headers)
    assert resp.get_json()['meta']['totalElements'] == 2

    yesterday = (today - timedelta(days=1)).isoformat()
    resp = client.get(f'/api/v1/citizens/search?createdBefore={yesterday}', headers=officer_headers)
    assert resp.get_json()['meta']['totalElements'] == 0

    resp = client.get('/api/v1/citizens/search?name=rai_', headers=officer_headers)
    assert [c['name'] for c in resp.get_json()['data']] == ['Rai_Gita']
