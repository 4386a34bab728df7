"""
DPIS - Configuration
Application configuration management
"""
import os
import logging
import tempfile
from datetime import timedelta
from pathlib import Path

# Monorepo layout: <repo>/apps/dpis/config.py -> BASE_DIR=<repo>
_THIS_DIR = Path(__file__).parent.resolve()
BASE_DIR = _THIS_DIR.parent.parent.resolve()

# Never fall back to a default for these in production
PRODUCTION_REQUIRED = ('SECRET_KEY', 'JWT_SECRET_KEY', 'CITIZEN_JWT_SECRET_KEY', 'ADMIN_PASSWORD')


def _require_env(name: str, default: str = None, allow_default_in_dev: bool = True) -> str:
    """
    Get environment variable, failing loudly in production if not set.

    Args:
        name: Environment variable name
        default: Default value (only used in development)
        allow_default_in_dev: Whether to allow default in development mode

    Returns:
        The environment variable value

    Raises:
        RuntimeError: If variable is not set in production
    """
    value = os.getenv(name)
    is_production = os.getenv('FLASK_ENV', 'development') == 'production'

    if value:
        return value

    if is_production:
        if default is None or name in PRODUCTION_REQUIRED:
            raise RuntimeError(
                f"SECURITY ERROR: {name} environment variable is required in production."
            )
        logging.warning(f"Using default value for {name} in production - consider setting explicitly")
        return default

    if default is not None and allow_default_in_dev:
        logging.debug(f"Using default value for {name} in development")
        return default

    raise RuntimeError(f"{name} environment variable is required")


def get_database_url():
    """
    Get the database URL.
    - Handles URL scheme conversion (postgres:// -> postgresql://)
    - Falls back to a local SQLite file when DATABASE_URL is unset
    """
    url = os.getenv('DATABASE_URL')

    if not url:
        fallback = f"sqlite:///{BASE_DIR / 'dpis.db'}"
        logging.warning("DATABASE_URL not set; using fallback %s", fallback)
        return fallback

    if url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)

    return url


def get_engine_options():
    """SQLAlchemy engine options based on the database type."""
    db_url = get_database_url()

    if db_url.startswith('sqlite://'):
        return {}

    return {
        'pool_pre_ping': True,
        'pool_recycle': 300,
        'pool_timeout': 20,
        'pool_size': 5,
        'max_overflow': 5,
    }


class Config:
    """Base configuration"""

    # Flask - SECRET_KEY is REQUIRED in production
    SECRET_KEY = _require_env('SECRET_KEY', 'dev-secret-key-for-local-development-only')
    DEBUG = os.getenv('DEBUG', 'False') == 'True'
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')

    # Database
    SQLALCHEMY_DATABASE_URI = get_database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = get_engine_options()

    # Staff JWT - JWT_SECRET_KEY is REQUIRED in production
    JWT_SECRET_KEY = _require_env('JWT_SECRET_KEY', 'jwt-dev-secret-for-local-development-only')
    JWT_EXPIRATION_HOURS = int(os.getenv('JWT_EXPIRATION_HOURS', 1))
    JWT_REFRESH_EXPIRATION_HOURS = int(os.getenv('JWT_REFRESH_EXPIRATION_HOURS', 168))
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=JWT_EXPIRATION_HOURS)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(hours=JWT_REFRESH_EXPIRATION_HOURS)
    JWT_ALGORITHM = 'HS256'
    JWT_TOKEN_LOCATION = ['headers']

    # Citizen JWT - signed with its own secret
    CITIZEN_JWT_SECRET_KEY = _require_env('CITIZEN_JWT_SECRET_KEY', 'citizen-jwt-dev-secret-for-local-development-only')
    CITIZEN_JWT_EXPIRATION_HOURS = int(os.getenv('CITIZEN_JWT_EXPIRATION_HOURS', 24))
    CITIZEN_JWT_REFRESH_EXPIRATION_HOURS = int(os.getenv('CITIZEN_JWT_REFRESH_EXPIRATION_HOURS', 168))

    # Password reset OTP
    PASSWORD_RESET_OTP_TTL_MINUTES = int(os.getenv('PASSWORD_RESET_OTP_TTL_MINUTES', 15))
    PASSWORD_RESET_MAX_ATTEMPTS = int(os.getenv('PASSWORD_RESET_MAX_ATTEMPTS', 3))

    # Admin bootstrap
    ADMIN_BOOTSTRAP_ENABLED = os.getenv('ADMIN_BOOTSTRAP_ENABLED', 'True') == 'True'
    ADMIN_EMAIL = os.getenv('ADMIN_EMAIL', 'admin@dpis.local')
    ADMIN_PASSWORD = (
        _require_env('ADMIN_PASSWORD', 'Admin@1234') if ADMIN_BOOTSTRAP_ENABLED else os.getenv('ADMIN_PASSWORD')
    )

    # Rate Limiting Configuration
    RATELIMIT_ENABLED = os.getenv('RATELIMIT_ENABLED', 'True') == 'True'
    RATELIMIT_STORAGE_URI = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')
    if FLASK_ENV == 'production' and RATELIMIT_ENABLED and RATELIMIT_STORAGE_URI.strip().lower() == 'memory://':
        raise RuntimeError(
            "RATELIMIT_STORAGE_URI must use a shared backend (e.g., Redis) in production."
        )
    RATELIMIT_DEFAULT = os.getenv('RATELIMIT_DEFAULT', '200 per day, 50 per hour')
    RATELIMIT_HEADERS_ENABLED = True

    # File Uploads
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_FILE_SIZE', 11 * 1024 * 1024))
    UPLOAD_FOLDER = BASE_DIR / os.getenv('UPLOAD_FOLDER', 'uploads')
    CITIZEN_PHOTO_MAX_MB = int(os.getenv('CITIZEN_PHOTO_MAX_MB', 5))
    CITIZEN_DOCUMENT_MAX_MB = int(os.getenv('CITIZEN_DOCUMENT_MAX_MB', 10))

    # Email Configuration
    # SendGrid API (preferred where SMTP egress is blocked)
    SENDGRID_API_KEY = os.getenv('SENDGRID_API_KEY', '')
    SMTP_SERVER = os.getenv('SMTP_SERVER', '')
    SMTP_PORT = int(os.getenv('SMTP_PORT', 587))
    SMTP_USERNAME = os.getenv('SMTP_USERNAME', '')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD', '')
    FROM_EMAIL = os.getenv('FROM_EMAIL', '')

    # Application
    APP_NAME = os.getenv('APP_NAME', 'DPIS')

    # Public base URL of this API (for upload links)
    BASE_URL = os.getenv('BASE_URL', 'http://localhost:5000')

    # Frontend URLs (for CORS and email links)
    WEB_URL = os.getenv('WEB_URL', 'http://localhost:5173')
    ADMIN_URL = os.getenv('ADMIN_URL', 'http://localhost:3001')

    @staticmethod
    def init_app(app):
        """Initialize application configuration"""
        # Create the upload directory. If the configured path is not
        # writable in the container runtime, fall back to /tmp.
        configured_upload = app.config.get('UPLOAD_FOLDER', Config.UPLOAD_FOLDER)
        upload_dir = Path(configured_upload)
        try:
            upload_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            fallback_dir = Path(tempfile.gettempdir()) / 'dpis_uploads'
            fallback_dir.mkdir(parents=True, exist_ok=True)
            app.logger.warning(
                "UPLOAD_FOLDER '%s' is not writable (%s); using fallback '%s'",
                configured_upload,
                exc,
                fallback_dir,
            )
            upload_dir = fallback_dir
        app.config['UPLOAD_FOLDER'] = upload_dir


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_ECHO = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SQLALCHEMY_ECHO = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    ADMIN_BOOTSTRAP_ENABLED = False


# Config dictionary
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
