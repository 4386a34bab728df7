"""Revoked token registry shared by staff and citizen tokens.

Entries live until the token's own expiry; after that the signature check
rejects the token anyway and the row can be cleaned up.
"""
from apps.dpis import db
from apps.dpis.utils.time import utc_now


class TokenBlacklist(db.Model):
    __tablename__ = 'token_blacklist'

    id = db.Column(db.Integer, primary_key=True)
    jti = db.Column(db.String(64), unique=True, nullable=False, index=True)
    token_type = db.Column(db.String(20), nullable=False)  # access | refresh
    token_use = db.Column(db.String(20), nullable=False, default='user')  # user | citizen
    subject = db.Column(db.String(255), nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def __repr__(self):
        return f'<TokenBlacklist {self.jti}>'

    @classmethod
    def is_token_revoked(cls, jti: str) -> bool:
        if not jti:
            return True
        return db.session.query(cls.id).filter_by(jti=jti).first() is not None

    @classmethod
    def add_token_to_blacklist(cls, jti, token_type, subject, expires_at, token_use='user'):
        """Revoke ``jti``; adding an already revoked token is a no-op."""
        if cls.is_token_revoked(jti):
            return None
        entry = cls(
            jti=jti,
            token_type=token_type,
            token_use=token_use,
            subject=subject,
            expires_at=expires_at,
        )
        db.session.add(entry)
        db.session.commit()
        return entry

    @classmethod
    def cleanup_expired(cls) -> int:
        """Delete entries whose token has expired; returns the number removed."""
        removed = cls.query.filter(cls.expires_at < utc_now()).delete(synchronize_session=False)
        db.session.commit()
        return removed
