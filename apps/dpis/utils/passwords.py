"""Password hashing helpers."""
import bcrypt
from werkzeug.security import check_password_hash


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against hash, supporting both bcrypt and Werkzeug formats."""
    if not isinstance(password, str) or not password or not password_hash:
        return False

    # Werkzeug hashes (scrypt, pbkdf2) from imported accounts
    if password_hash.startswith(('scrypt:', 'pbkdf2:')):
        return check_password_hash(password_hash, password)

    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False
