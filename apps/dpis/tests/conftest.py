"""Test setup helpers."""
from __future__ import annotations

import sys
from pathlib import Path

# Ensure project root is on sys.path for apps.dpis imports.
PROJECT_ROOT = Path(__file__).resolve().parents[3]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from datetime import timedelta

import pytest

from apps.dpis import db
from apps.dpis.app import create_app
from apps.dpis.config import TestingConfig
from apps.dpis.models.district import District
from apps.dpis.models.municipality import Municipality
from apps.dpis.models.permission import PermissionType
from apps.dpis.models.province import Province
from apps.dpis.models.user import User
from apps.dpis.models.ward import Ward
from apps.dpis.utils.passwords import hash_password

STRONG_PASSWORD = 'Str0ng@Pass'


class DpisTestConfig(TestingConfig):
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET_KEY = 'test-jwt-secret'
    CITIZEN_JWT_SECRET_KEY = 'test-citizen-secret'
    SENDGRID_API_KEY = ''
    SMTP_SERVER = ''
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=1)


@pytest.fixture
def app(tmp_path):
    config = type('UploadConfig', (DpisTestConfig,), {'UPLOAD_FOLDER': tmp_path / 'uploads'})
    app = create_app(config)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a staff user; returns its id."""
    def _make_user(email, permissions=(), approved=True, password=STRONG_PASSWORD, **fields):
        with app.app_context():
            user = User(email=email, password_hash=hash_password(password), **fields)
            for permission in permissions:
                user.add_permission(permission)
            if approved:
                user.approve()
            db.session.add(user)
            db.session.commit()
            return user.id
    return _make_user


@pytest.fixture
def auth_headers(app):
    """Bearer headers for a staff user, issued the way login issues them."""
    def _auth_headers(email):
        with app.app_context():
            from apps.dpis.utils.tokens import generate_token
            user = User.query.filter_by(email=email).first()
            return {'Authorization': f'Bearer {generate_token(user)}'}
    return _auth_headers


@pytest.fixture
def admin_headers(make_user, auth_headers):
    make_user('admin@example.com', permissions=[PermissionType.SYSTEM_ADMIN])
    return auth_headers('admin@example.com')


@pytest.fixture
def locations(app):
    """A small province/district/municipality/ward hierarchy."""
    with app.app_context():
        db.session.add_all([
            Province(code='1', name='Koshi', name_nepali='कोशी'),
            Province(code='3', name='Bagmati', name_nepali='बागमती'),
            District(code='101', name='Morang', name_nepali='मोरङ', province_code='1'),
            District(code='301', name='Kathmandu', name_nepali='काठमाडौं', province_code='3'),
            Municipality(
                code='10101', name='Biratnagar', name_nepali='विराटनगर',
                type='METROPOLITAN_CITY', district_code='101', total_wards=19,
            ),
            Municipality(
                code='30101', name='Kathmandu', name_nepali='काठमाडौं',
                type='METROPOLITAN_CITY', district_code='301', total_wards=32,
            ),
        ])
        db.session.flush()
        db.session.add_all([
            Ward(ward_number=1, municipality_code='10101', population=12000, office_location='Rani'),
            Ward(ward_number=2, municipality_code='10101', population=9000, office_location='Jatuwa'),
            Ward(ward_number=1, municipality_code='30101', population=20000),
        ])
        db.session.commit()

