"""
Storage handler for DPIS uploads.

Files are stored on the local filesystem under ``UPLOAD_FOLDER`` and
addressed by a storage key of the form ``{folder}/{owner_id}{ext}``. Saving
a file for the same owner and folder replaces the previous one.

Usage:
    from apps.dpis.utils.storage_handler import save_file, delete_file, get_file_url
"""
from __future__ import annotations

import os
import logging
from pathlib import Path
from typing import Optional, BinaryIO, Union

from flask import current_app
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from apps.dpis.utils.security import validate_file_mime_type
from apps.dpis.utils.validators import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_EXTENSIONS = {'jpg', 'jpeg', 'png'}
ALLOWED_DOCUMENT_EXTENSIONS = ALLOWED_IMAGE_EXTENSIONS | {'pdf'}


class StorageError(Exception):
    """Storage backend failure."""
    pass


class InvalidFileTypeError(StorageError):
    """Extension or content type not allowed."""
    pass


class FileTooLargeError(StorageError):
    """File exceeds the allowed size."""
    pass


def _upload_root() -> Path:
    return Path(current_app.config.get('UPLOAD_FOLDER', 'uploads'))


def _resolve(key: str) -> Path:
    """Map a storage key to a path, refusing keys that escape the upload root."""
    normalized = str(key or '').replace('\\', '/').lstrip('/')
    if not normalized or '..' in normalized.split('/'):
        raise StorageError('Invalid storage key')
    return _upload_root() / normalized


def save_file(
    file: Union[FileStorage, BinaryIO],
    folder: str,
    owner_id: str,
    allowed_extensions: Optional[set] = None,
    max_size_mb: int = 10,
    allowed_mimes: Optional[set] = None,
) -> str:
    """
    Validate and save an uploaded file.

    Args:
        file: FileStorage or file-like object
        folder: Category folder, e.g. ``citizens/profiles/photos``
        owner_id: Id of the owning record; becomes the file stem
        allowed_extensions: Set of allowed file extensions (without dot)
        max_size_mb: Maximum file size in MB
        allowed_mimes: Set of allowed MIME types, checked against file content

    Returns:
        The storage key

    Raises:
        InvalidFileTypeError: Extension or content not allowed
        FileTooLargeError: File exceeds max_size_mb
        StorageError: Writing the file failed
    """
    if not file:
        raise InvalidFileTypeError('No file provided')

    original_filename = getattr(file, 'filename', None) or ''
    safe_filename = secure_filename(original_filename)
    if not safe_filename:
        raise InvalidFileTypeError('No filename provided')

    _, ext = os.path.splitext(safe_filename)
    ext = ext.lower()
    if allowed_extensions and ext.lstrip('.') not in allowed_extensions:
        raise InvalidFileTypeError(
            f"File type not allowed. Allowed types: {', '.join(sorted(allowed_extensions))}"
        )

    # Check file size
    stream = getattr(file, 'stream', file)
    stream.seek(0, os.SEEK_END)
    file_size = stream.tell()
    stream.seek(0)
    if file_size == 0:
        raise InvalidFileTypeError('File is empty')
    if file_size > max_size_mb * 1024 * 1024:
        raise FileTooLargeError(f'File size exceeds maximum of {max_size_mb}MB')

    if allowed_mimes:
        try:
            validate_file_mime_type(stream, allowed_mimes, ext)
        except ValidationError as e:
            raise InvalidFileTypeError(e.message) from e

    key = f"{folder.strip('/')}/{secure_filename(str(owner_id))}{ext}"
    path = _resolve(key)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # Replace any earlier upload for this owner regardless of extension
        for existing in path.parent.glob(f'{path.stem}.*'):
            existing.unlink()
        stream.seek(0)
        if hasattr(file, 'save'):
            file.save(str(path))
        else:
            with open(path, 'wb') as f:
                f.write(stream.read())
    except OSError as e:
        logger.error(f"Saving upload {key} failed: {e}")
        raise StorageError(f'Failed to store file: {e}') from e

    logger.info(f"File saved to filesystem: {key}")
    return key


def delete_file(key: Optional[str]) -> bool:
    """Delete a stored file; missing files are ignored. Returns True if removed."""
    if not key:
        return False
    path = _resolve(key)
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.error(f"Deleting upload {key} failed: {e}")
        raise StorageError(f'Failed to delete file: {e}') from e
    logger.info(f"File deleted from filesystem: {key}")
    return True


def file_path(key: str) -> Path:
    """Absolute path of a stored file."""
    return _resolve(key)


def get_file_url(key: Optional[str], base_url: Optional[str] = None) -> str:
    """
    Get the URL under which a stored file is served.

    Full URLs are returned as-is; storage keys map to ``/uploads/<key>``.
    """
    if not key:
        return ''

    if key.startswith(('http://', 'https://')):
        return key

    if base_url is None:
        base_url = current_app.config.get('BASE_URL') or os.getenv('BASE_URL', 'http://localhost:5000')

    normalized_path = key.replace('\\', '/').lstrip('/')
    return f"{base_url.rstrip('/')}/uploads/{normalized_path}"
