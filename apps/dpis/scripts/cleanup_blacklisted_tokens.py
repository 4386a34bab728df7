#!/usr/bin/env python3
"""
Cleanup script for revoked tokens and spent password reset codes.

Blacklist entries are only needed until the revoked token would have
expired on its own; password reset codes are kept for a day after they
expire or are used.

Usage:
    python apps/dpis/scripts/cleanup_blacklisted_tokens.py [--dry-run]

Schedule:
    Run hourly via cron or the platform scheduler
"""
import sys
from datetime import timedelta
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import click

from apps.dpis import db
from apps.dpis.models.password_reset_otp import PasswordResetOtp
from apps.dpis.models.token_blacklist import TokenBlacklist
from apps.dpis.utils.time import utc_now

OTP_RETENTION = timedelta(days=1)


def count_pending() -> tuple:
    """Rows the cleanup would remove: ``(blacklist_entries, reset_codes)``."""
    now = utc_now()
    cutoff = now - OTP_RETENTION
    tokens = TokenBlacklist.query.filter(TokenBlacklist.expires_at < now).count()
    codes = PasswordResetOtp.query.filter(
        (PasswordResetOtp.expires_at < cutoff) | (PasswordResetOtp.used_at < cutoff)
    ).count()
    return tokens, codes


def run_cleanup() -> tuple:
    """Delete expired rows; returns ``(blacklist_entries, reset_codes)`` removed."""
    tokens = TokenBlacklist.cleanup_expired()
    codes = PasswordResetOtp.cleanup(OTP_RETENTION)
    return tokens, codes


@click.command()
@click.option('--dry-run', is_flag=True, help='Count expired rows without deleting them')
def cleanup_blacklisted_tokens(dry_run):
    """Delete expired blacklist entries and old password reset codes."""
    from apps.dpis.app import create_app

    app = create_app()

    with app.app_context():
        try:
            if dry_run:
                tokens, codes = count_pending()
                print(f"[DRY RUN] Would delete {tokens} blacklisted tokens and {codes} reset codes")
                return
            tokens, codes = run_cleanup()
        except Exception as e:
            db.session.rollback()
            app.logger.error(f"Token cleanup failed: {e}")
            raise click.ClickException(str(e))

        app.logger.info("Token cleanup removed %s blacklist entries and %s reset codes", tokens, codes)
        print(f"Cleanup complete: {tokens} blacklisted tokens and {codes} reset codes deleted")


if __name__ == '__main__':
    cleanup_blacklisted_tokens()
