"""Startup bootstrap utilities called from the FastAPI lifespan.

``ensure_admin_user()`` creates the configured administrator on first
start so a fresh deployment has someone who can open the user directory.
The account must change its password on first login.
"""
from __future__ import annotations

import logging

from draftroom.config import Settings
from draftroom.database import Database
from draftroom.models import User
from draftroom.services.auth_service import find_identity_conflict
from draftroom.services.security import hash_password

logger = logging.getLogger(__name__)


def ensure_admin_user(settings: Settings, database: Database) -> bool:
    """Create the bootstrap admin if configured and absent.

    Returns True when an account was created.
    """
    if not settings.ADMIN_EMAIL or not settings.ADMIN_PASSWORD:
        return False

    email = settings.ADMIN_EMAIL.strip().lower()
    db = database.session()
    try:
        if find_identity_conflict(db, email, settings.ADMIN_USERNAME):
            logger.debug("Bootstrap admin %s already exists", settings.ADMIN_USERNAME)
            return False
        db.add(User(
            email=email,
            username=settings.ADMIN_USERNAME,
            password_hash=hash_password(settings.ADMIN_PASSWORD, settings.BCRYPT_ROUNDS),
            role="admin",
            provider="email",
            must_change_password=True,
        ))
        db.commit()
        logger.info("Created bootstrap admin %s", settings.ADMIN_USERNAME)
        return True
    except Exception as exc:
        db.rollback()
        logger.warning("Could not create bootstrap admin: %s", exc)
        return False
    finally:
        db.close()
