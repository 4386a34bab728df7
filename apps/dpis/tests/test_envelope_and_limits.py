"""Response envelope, framework error handling and rate limiting."""
import pytest

from apps.dpis import db, limiter
from apps.dpis.app import create_app
from apps.dpis.config import TestingConfig


class RateLimitConfig(TestingConfig):
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret'
    CITIZEN_JWT_SECRET_KEY = 'test-citizen-secret'
    RATELIMIT_ENABLED = True


def test_health_endpoints(client):
    assert client.get('/health').get_json()['status'] == 'ok'
    resp = client.get('/health/db')
    assert resp.status_code == 200
    assert resp.get_json()['database'] == 'connected'


def test_unknown_route_is_enveloped(client):
    resp = client.get('/api/v1/nothing-here')
    assert resp.status_code == 404
    body = resp.get_json()
    assert body['success'] is False
    assert body['data'] is None
    assert body['error']['status'] == 404


def test_wrong_method_is_enveloped(client):
    resp = client.delete('/api/v1/provinces')
    assert resp.status_code == 405
    assert resp.get_json()['error']['code'] == 'METHOD_NOT_ALLOWED'


def test_malformed_json_is_rejected(client):
    resp = client.post('/api/v1/auth/login', data='{not json', content_type='application/json')
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'INVALID_FORMAT'


def test_bad_paging_parameters(client, locations):
    resp = client.get('/api/v1/municipalities?page=0')
    assert resp.status_code == 400
    assert resp.get_json()['error']['code'] == 'VALIDATION_ERROR'

    resp = client.get('/api/v1/municipalities?size=1000')
    assert resp.get_json()['meta']['size'] == 100


def test_security_headers(client):
    resp = client.get('/health')
    assert resp.headers['X-Content-Type-Options'] == 'nosniff'
    assert resp.headers['X-Frame-Options'] == 'DENY'


@pytest.fixture
def limited_client(tmp_path):
    config = type('Config', (RateLimitConfig,), {'UPLOAD_FOLDER': tmp_path})
    app = create_app(config)
    with app.app_context():
        db.create_all()
    yield app.test_client()
    # The limiter is process-wide; drop counters so other tests start clean
    limiter.reset()


def test_login_rate_limit_returns_json_429(limited_client):
    client = limited_client

    for _ in range(10):
        resp = client.post('/api/v1/auth/login', json={'email': 'nobody@example.com', 'password': 'x'})
        assert resp.status_code == 401

    resp = client.post('/api/v1/auth/login', json={'email': 'nobody@example.com', 'password': 'x'})
    assert resp.status_code == 429
    assert resp.is_json
    assert resp.get_json()['error']['code'] == 'RATE_LIMITED'
