"""Bootstrap of the initial system administrator."""
from flask import current_app
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from apps.dpis import db
from apps.dpis.models.permission import PermissionType, Role, RoleType
from apps.dpis.models.user import User
from apps.dpis.utils.passwords import hash_password


def ensure_admin_user():
    """Make sure role rows exist and ``ADMIN_EMAIL`` holds every permission.

    Returns the admin user, or None when bootstrap was skipped or failed.
    """
    app = current_app
    if not app.config.get('ADMIN_BOOTSTRAP_ENABLED', True):
        return None

    try:
        if not inspect(db.engine).has_table(User.__tablename__):
            app.logger.info("Admin bootstrap skipped: tables are not created yet")
            return None

        roles = Role.ensure_all()

        email = (app.config.get('ADMIN_EMAIL') or '').strip().lower()
        if not email:
            app.logger.warning("Admin bootstrap skipped: ADMIN_EMAIL is not set")
            db.session.commit()
            return None

        admin = User.query.filter_by(email=email).first()
        if admin is None:
            if not app.config.get('ADMIN_PASSWORD'):
                app.logger.warning("Admin bootstrap skipped: ADMIN_PASSWORD is not set")
                db.session.commit()
                return None
            admin = User(
                email=email,
                password_hash=hash_password(app.config['ADMIN_PASSWORD']),
            )
            db.session.add(admin)
            db.session.flush()
            admin.approve(approved_by=admin.id)
            admin.add_role(roles[RoleType.SYSTEM_ADMINISTRATOR.value])
            app.logger.info("Created system administrator %s", email)

        added = [p for p in PermissionType if admin.add_permission(p)]
        if added:
            app.logger.info("Granted %s missing permissions to %s", len(added), email)

        db.session.commit()
        return admin
    except SQLAlchemyError as e:
        db.session.rollback()
        app.logger.error(f"Admin bootstrap failed: {e}")
        return None
