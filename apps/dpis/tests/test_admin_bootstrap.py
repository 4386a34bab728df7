"""Startup administrator bootstrap and its production settings."""
import pytest

from apps.dpis.config import _require_env
from apps.dpis.models.permission import PermissionType
from apps.dpis.models.user import User
from apps.dpis.utils.admin_init import ensure_admin_user
from apps.dpis.utils.passwords import verify_password

STRONG_PASSWORD = 'Str0ng@Pass'


@pytest.mark.parametrize('name', ['SECRET_KEY', 'JWT_SECRET_KEY', 'CITIZEN_JWT_SECRET_KEY', 'ADMIN_PASSWORD'])
def test_production_refuses_default_secrets(monkeypatch, name):
    monkeypatch.setenv('FLASK_ENV', 'production')
    monkeypatch.delenv(name, raising=False)
    with pytest.raises(RuntimeError, match=name):
        _require_env(name, 'some-default')


def test_production_uses_explicit_admin_password(monkeypatch):
    monkeypatch.setenv('FLASK_ENV', 'production')
    monkeypatch.setenv('ADMIN_PASSWORD', STRONG_PASSWORD)
    assert _require_env('ADMIN_PASSWORD', 'Admin@1234') == STRONG_PASSWORD


def test_development_falls_back_to_default(monkeypatch):
    monkeypatch.setenv('FLASK_ENV', 'development')
    monkeypatch.delenv('ADMIN_PASSWORD', raising=False)
    assert _require_env('ADMIN_PASSWORD', 'Admin@1234') == 'Admin@1234'


def test_bootstrap_creates_admin_with_every_permission(app):
    app.config.update(ADMIN_BOOTSTRAP_ENABLED=True, ADMIN_EMAIL='Root@Example.com', ADMIN_PASSWORD=STRONG_PASSWORD)
    with app.app_context():
        ensure_admin_user()
        admin = User.query.filter_by(email='root@example.com').one()
        assert admin.is_approved
        assert verify_password(STRONG_PASSWORD, admin.password_hash)
        assert admin.has_permission(PermissionType.SYSTEM_ADMIN)

        # Running again changes nothing
        assert ensure_admin_user().id == admin.id
        assert User.query.count() == 1


def test_bootstrap_skips_without_admin_password(app):
    app.config.update(ADMIN_BOOTSTRAP_ENABLED=True, ADMIN_EMAIL='root@example.com', ADMIN_PASSWORD=None)
    with app.app_context():
        assert ensure_admin_user() is None
        assert User.query.filter_by(email='root@example.com').first() is None
