"""Password reset OTP model (6-digit, short-lived, limited attempts).

Codes are stored as a keyed sha256 digest, never in clear. One model
serves both staff users and citizens, told apart by ``account_type``.
"""
import hashlib
import secrets
from datetime import timedelta

from flask import current_app
from sqlalchemy import Index

from apps.dpis import db
from apps.dpis.utils.time import utc_now

ACCOUNT_USER = 'user'
ACCOUNT_CITIZEN = 'citizen'


class PasswordResetOtp(db.Model):
    __tablename__ = 'password_reset_otps'

    id = db.Column(db.Integer, primary_key=True)
    account_type = db.Column(db.String(20), nullable=False)
    account_id = db.Column(db.String(36), nullable=False)
    email = db.Column(db.String(255), nullable=False)

    code_hash = db.Column(db.String(64), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used_at = db.Column(db.DateTime, nullable=True)
    attempts = db.Column(db.Integer, default=0, nullable=False)

    request_ip = db.Column(db.String(45), nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index('idx_password_reset_otp_account', 'account_type', 'account_id'),
        Index('idx_password_reset_otp_expires', 'expires_at'),
    )

    def is_expired(self) -> bool:
        return utc_now() > self.expires_at

    def is_used(self) -> bool:
        return self.used_at is not None

    def mark_used(self):
        self.used_at = utc_now()

    def matches(self, code: str) -> bool:
        return secrets.compare_digest(self.code_hash, self.hash_code(code))

    @staticmethod
    def generate_code() -> str:
        """Generate a cryptographically secure 6-digit code."""
        return ''.join(str(secrets.randbelow(10)) for _ in range(6))

    @staticmethod
    def hash_code(code) -> str:
        # JSON clients may send the code as a number
        text = '' if code is None else str(code).strip()
        secret = current_app.config.get('SECRET_KEY', '')
        return hashlib.sha256(f"{text}{secret}".encode('utf-8')).hexdigest()

    @classmethod
    def issue(cls, account_type: str, account_id: str, email: str, request_ip: str = None) -> tuple:
        """Invalidate earlier codes for the account and create a new one.

        Returns ``(otp, raw_code)``; the raw code is only ever emailed.
        """
        cls.query.filter_by(
            account_type=account_type,
            account_id=account_id,
            used_at=None,
        ).update({'used_at': utc_now()})

        ttl_minutes = int(current_app.config.get('PASSWORD_RESET_OTP_TTL_MINUTES', 15))
        raw_code = cls.generate_code()
        otp = cls(
            account_type=account_type,
            account_id=account_id,
            email=email,
            code_hash=cls.hash_code(raw_code),
            expires_at=utc_now() + timedelta(minutes=ttl_minutes),
            request_ip=request_ip,
        )
        db.session.add(otp)
        db.session.commit()
        return otp, raw_code

    @classmethod
    def active_for(cls, account_type: str, account_id: str):
        return (
            cls.query.filter_by(account_type=account_type, account_id=account_id, used_at=None)
            .order_by(cls.created_at.desc(), cls.id.desc())
            .first()
        )

    @classmethod
    def cleanup(cls, older_than: timedelta = timedelta(days=1)) -> int:
        """Delete codes that expired or were used before the cutoff."""
        cutoff = utc_now() - older_than
        removed = cls.query.filter(
            (cls.expires_at < cutoff) | (cls.used_at < cutoff)
        ).delete(synchronize_session=False)
        db.session.commit()
        return removed
