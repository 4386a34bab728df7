"""
DPIS - Flask API Application
Main application entry point
"""
import sys
import os
import time
from pathlib import Path
from dotenv import load_dotenv

# Determine project root (2 levels up from this file)
API_DIR = Path(__file__).parent.resolve()
PROJECT_ROOT = API_DIR.parent.parent.resolve()

# Load environment variables from .env file at project root
env_path = PROJECT_ROOT / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Add project root to path for absolute imports
sys.path.insert(0, str(PROJECT_ROOT))

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS
from flask_limiter.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from apps.dpis.config import Config
from apps.dpis import db, migrate, jwt, limiter
from apps.dpis.utils.errors import AuthError
from apps.dpis.utils.responses import error_envelope
from apps.dpis.utils.security import (
    APIError,
    api_error_response,
    error_404,
    error_405,
    error_409,
    error_429,
    error_500,
    safe_error_response,
)

# Upload folders that may be served without authentication
PUBLIC_UPLOAD_PREFIXES = (
    'citizens/profiles/',
)


def create_app(config_class=Config):
    """Application factory pattern"""
    app = Flask(__name__)
    app.config.from_object(config_class)

    db_url = app.config.get('SQLALCHEMY_DATABASE_URI', '')
    if 'postgresql' in db_url:
        app.logger.info("Database: PostgreSQL")
    elif 'sqlite' in db_url:
        app.logger.info("Database: SQLite (local)")

    # Ensure directories and other config-dependent setup are initialized
    config_class.init_app(app)

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db, directory=str(API_DIR / 'migrations'))
    jwt.init_app(app)

    # Initialize rate limiter
    if app.config.get('RATELIMIT_ENABLED', True):
        limiter.init_app(app)
        app.logger.info("Rate limiting enabled")
    else:
        app.logger.warning("Rate limiting is DISABLED - not recommended for production")

    # Security Headers Middleware
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        # Prevent MIME type sniffing
        response.headers['X-Content-Type-Options'] = 'nosniff'

        # Prevent clickjacking
        response.headers['X-Frame-Options'] = 'DENY'

        # XSS protection (legacy, but still useful for older browsers)
        response.headers['X-XSS-Protection'] = '1; mode=block'

        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Permissions-Policy'] = 'geolocation=(), microphone=(), camera=()'

        # HSTS - only in production (when not localhost)
        if not app.config.get('DEBUG'):
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        csp_directives = [
            "default-src 'self'",
            "img-src 'self' data: blob:",
            "connect-src 'self' https://api.sendgrid.com",
            "frame-ancestors 'none'",
            "base-uri 'self'",
            "form-action 'self'",
        ]
        response.headers['Content-Security-Policy'] = '; '.join(csp_directives)
        return response

    # CORS configuration
    # NOTE: Cannot use wildcard ("*") with supports_credentials=True
    cors_origins = []
    is_production = (app.config.get('FLASK_ENV') == 'production') and not app.config.get('DEBUG')

    for key in ('WEB_URL', 'ADMIN_URL'):
        value = (app.config.get(key) or '').strip()
        if value:
            cors_origins.append(value)

    # Optional explicit allowlist: comma-separated origins.
    extra_origins = (os.getenv('CORS_ALLOWED_ORIGINS') or '').split(',')
    cors_origins.extend([o.strip() for o in extra_origins if o.strip()])

    if not is_production:
        cors_origins.extend([
            "http://localhost:3000",
            "http://localhost:3001",
            "http://localhost:5173",
            "http://127.0.0.1:3000",
            "http://127.0.0.1:3001",
            "http://127.0.0.1:5173",
        ])

    # Remove duplicates
    cors_origins = list(dict.fromkeys(cors_origins))

    if is_production and not cors_origins:
        raise RuntimeError(
            "CORS configuration error: set WEB_URL/ADMIN_URL or CORS_ALLOWED_ORIGINS in production."
        )

    CORS(app,
         origins=cors_origins,
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
         allow_headers=["Content-Type", "Authorization", "X-Requested-With", "X-Refresh-Token"],
         supports_credentials=True,
         expose_headers=["Content-Type", "Authorization"])

    # JWT token blacklist check
    @jwt.token_in_blocklist_loader
    def check_if_token_revoked(jwt_header, jwt_payload):
        from apps.dpis.models.token_blacklist import TokenBlacklist
        return TokenBlacklist.is_token_revoked(jwt_payload.get('jti'))

    # JWT failures rendered as envelopes
    @jwt.unauthorized_loader
    def missing_token(reason):
        return api_error_response(AuthError('UNAUTHENTICATED'))

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return api_error_response(AuthError('INVALID_TOKEN'))

    @jwt.expired_token_loader
    def expired_token(jwt_header, jwt_payload):
        return api_error_response(AuthError('INVALID_TOKEN', 'Token has expired'))

    @jwt.revoked_token_loader
    def revoked_token(jwt_header, jwt_payload):
        return api_error_response(AuthError('INVALID_TOKEN', 'Token has been revoked'))

    # Register blueprints
    from apps.dpis.routes import (
        auth_bp,
        users_bp,
        citizen_auth_bp,
        citizen_profile_bp,
        citizens_bp,
        provinces_bp,
        districts_bp,
        municipalities_bp,
        wards_bp,
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(citizen_auth_bp)
    app.register_blueprint(citizen_profile_bp)
    app.register_blueprint(citizens_bp)
    app.register_blueprint(provinces_bp)
    app.register_blueprint(districts_bp)
    app.register_blueprint(municipalities_bp)
    app.register_blueprint(wards_bp)

    # Health check endpoint
    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring"""
        return jsonify({
            'status': 'ok',
            'service': 'DPIS API',
            'version': '1.0.0'
        }), 200

    # Database health check endpoint
    @app.route('/health/db', methods=['GET'])
    def db_health_check():
        """Health check endpoint that tests database connectivity"""
        start = time.time()
        try:
            db.session.execute(text('SELECT 1')).fetchone()
            db.session.rollback()  # Don't leave transaction open
            elapsed = time.time() - start
            return jsonify({
                'status': 'healthy',
                'database': 'connected',
                'latency_ms': round(elapsed * 1000, 2),
                'service': 'DPIS API'
            }), 200
        except Exception as e:
            elapsed = time.time() - start
            app.logger.error(f"Database health check failed: {e}")
            return jsonify({
                'status': 'unhealthy',
                'database': 'disconnected',
                'latency_ms': round(elapsed * 1000, 2),
            }), 503

    # Root endpoint
    @app.route('/', methods=['GET'])
    def root():
        """API root endpoint"""
        return jsonify({
            'message': 'DPIS API',
            'version': '1.0.0',
            'docs': '/api/v1'
        }), 200

    # Serve uploaded files
    @app.route('/uploads/<path:filename>')
    def serve_uploaded_file(filename):
        """Serve only non-sensitive uploaded files (citizen photos)."""
        normalized = str(filename or '').replace('\\', '/').lstrip('/')
        if not normalized or '..' in normalized.split('/'):
            return error_envelope('INVALID_FORMAT', 'Invalid file path', 400)

        # Citizenship documents are only served through authenticated routes
        if not any(normalized.startswith(prefix) for prefix in PUBLIC_UPLOAD_PREFIXES):
            return error_envelope('FORBIDDEN', 'Forbidden', 403)

        return send_from_directory(str(app.config.get('UPLOAD_FOLDER', 'uploads')), normalized)

    # Error handlers
    @app.errorhandler(APIError)
    def handle_api_error(error):
        if error.status_code >= 500:
            db.session.rollback()
        return api_error_response(error)

    @app.errorhandler(RateLimitExceeded)
    def ratelimit_handler(error):
        resp, status = error_429('Rate limit exceeded')
        resp.status_code = status
        # Preserve limiter-provided headers when available
        for k, v in (error.get_headers() or []):
            if str(k).lower() == 'content-type':
                continue
            resp.headers[k] = v
        return resp

    @app.errorhandler(IntegrityError)
    def integrity_error(error):
        db.session.rollback()
        return error_409('Data integrity violation', error, code='DATA_INTEGRITY_ERROR')

    @app.errorhandler(404)
    def not_found(error):
        return error_404('Resource not found')

    @app.errorhandler(405)
    def method_not_allowed(error):
        return error_405('Method not allowed')

    @app.errorhandler(HTTPException)
    def http_error(error):
        code = (error.name or 'ERROR').upper().replace(' ', '_')
        if error.code == 413:
            code = 'PAYLOAD_TOO_LARGE'
        return safe_error_response(error.description or error.name, status_code=error.code, code=code, log_level='warning')

    @app.errorhandler(Exception)
    def unhandled_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled error")
        return error_500('Internal server error', error)

    # Admin bootstrap
    if app.config.get('ADMIN_BOOTSTRAP_ENABLED', True):
        from apps.dpis.utils.admin_init import ensure_admin_user
        with app.app_context():
            ensure_admin_user()

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(
        host='0.0.0.0',
        port=5000,
        debug=app.config['DEBUG']
    )
