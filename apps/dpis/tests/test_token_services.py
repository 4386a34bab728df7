"""Token services and storage helpers used outside the request handlers."""
import io

import pytest
from werkzeug.datastructures import FileStorage

from apps.dpis import db
from apps.dpis.models.citizen import Citizen
from apps.dpis.models.user import User
from apps.dpis.utils import citizen_tokens, tokens
from apps.dpis.utils.storage_handler import (
    InvalidFileTypeError,
    StorageError,
    delete_file,
    file_path,
    get_file_url,
    save_file,
)


def test_staff_token_validate_and_invalidate(app, make_user):
    make_user('staff@example.com')
    with app.app_context():
        user = User.query.filter_by(email='staff@example.com').first()
        token = tokens.generate_token(user)

        assert tokens.validate_token(token)
        assert tokens.extract_email(token) == 'staff@example.com'
        assert tokens.invalidate_token(token) is True
        assert not tokens.validate_token(token)
        assert tokens.extract_email(token) is None
        assert tokens.invalidate_token('not-a-token') is False


def test_citizen_and_staff_tokens_do_not_cross(app, make_user):
    make_user('staff@example.com')
    with app.app_context():
        citizen = Citizen(name='Sita', email='sita@example.com')
        db.session.add(citizen)
        db.session.commit()
        user = User.query.filter_by(email='staff@example.com').first()

        citizen_token = citizen_tokens.generate_token(citizen)
        staff_token = tokens.generate_token(user)

        assert citizen_tokens.validate_token(citizen_token)
        assert not citizen_tokens.validate_token(staff_token)
        assert not tokens.validate_token(citizen_token)

        refresh = citizen_tokens.generate_refresh_token(citizen)
        assert citizen_tokens.decode_valid_token(refresh) is None
        assert citizen_tokens.decode_valid_token(refresh, expected_type='refresh')['citizenId'] == citizen.id


def test_save_replace_and_delete_file(app):
    with app.app_context():
        first = FileStorage(io.BytesIO(b'%PDF-1.4 first'), filename='a.pdf')
        key = save_file(first, 'citizens/documents/test', 'owner-1', {'pdf', 'png'})
        assert key == 'citizens/documents/test/owner-1.pdf'
        assert file_path(key).read_bytes() == b'%PDF-1.4 first'

        # A new upload for the same owner replaces the old one, whatever its extension
        second = FileStorage(io.BytesIO(b'\x89PNG\r\n\x1a\n'), filename='b.png')
        new_key = save_file(second, 'citizens/documents/test', 'owner-1', {'pdf', 'png'})
        assert not file_path(key).exists()
        assert file_path(new_key).exists()

        assert get_file_url(new_key, 'https://api.example.com') == f'https://api.example.com/uploads/{new_key}'
        assert delete_file(new_key) is True
        assert delete_file(new_key) is False


def test_save_file_rejects_empty_and_unsafe_input(app):
    with app.app_context():
        with pytest.raises(InvalidFileTypeError):
            save_file(FileStorage(io.BytesIO(b''), filename='a.pdf'), 'x', 'o', {'pdf'})
        with pytest.raises(InvalidFileTypeError):
            save_file(FileStorage(io.BytesIO(b'data'), filename='a.exe'), 'x', 'o', {'pdf'})
        with pytest.raises(StorageError):
            delete_file('../outside.txt')
