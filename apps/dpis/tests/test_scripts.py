"""Maintenance scripts: location seeding and token cleanup."""
import json
from datetime import timedelta

from apps.dpis import db
from apps.dpis.models.municipality import Municipality
from apps.dpis.models.password_reset_otp import PasswordResetOtp
from apps.dpis.models.province import Province
from apps.dpis.models.token_blacklist import TokenBlacklist
from apps.dpis.models.ward import Ward
from apps.dpis.scripts.cleanup_blacklisted_tokens import count_pending, run_cleanup
from apps.dpis.scripts.seed_locations import DEFAULT_DATA_FILE, seed_locations
from apps.dpis.utils.time import utc_now


def _sample():
    with open(DEFAULT_DATA_FILE, encoding='utf-8') as f:
        return json.load(f)


def test_seed_locations_is_idempotent(app):
    data = _sample()
    with app.app_context():
        counts = seed_locations(data)
        db.session.commit()
        assert counts == {'provinces': 1, 'districts': 1, 'municipalities': 2, 'wards': 4}

        data['provinces'][0]['population'] = 5000000
        assert seed_locations(data) == {'provinces': 0, 'districts': 0, 'municipalities': 0, 'wards': 0}
        db.session.commit()

        assert db.session.get(Province, '1').population == 5000000
        assert db.session.get(Municipality, '10101').type == 'METROPOLITAN_CITY'
        assert Ward.get('10101', 3).office_location == 'Bhrikuti Chowk'


def test_seeded_locations_are_served(client, app):
    with app.app_context():
        seed_locations(_sample())
        db.session.commit()
    resp = client.get('/api/v1/districts/101/municipalities')
    assert [m['name'] for m in resp.get_json()['data']] == ['Biratnagar', 'Sundar Haraicha']


def test_cleanup_removes_only_expired_rows(app):
    now = utc_now()
    with app.app_context():
        db.session.add_all([
            TokenBlacklist(jti='old', token_type='access', expires_at=now - timedelta(hours=1)),
            TokenBlacklist(jti='live', token_type='access', expires_at=now + timedelta(hours=1)),
            PasswordResetOtp(
                account_type='user', account_id='u1', email='a@example.com', code_hash='x',
                expires_at=now - timedelta(days=2),
            ),
            PasswordResetOtp(
                account_type='user', account_id='u2', email='b@example.com', code_hash='y',
                expires_at=now + timedelta(minutes=10),
            ),
        ])
        db.session.commit()

        assert count_pending() == (1, 1)
        assert run_cleanup() == (1, 1)
        assert TokenBlacklist.is_token_revoked('live')
        assert not TokenBlacklist.is_token_revoked('old')
        assert PasswordResetOtp.query.count() == 1
