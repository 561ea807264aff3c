"""
Application initialization module
Handles initial setup tasks like granting the configured admin roles
"""

import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.user_role import UserRole

logger = logging.getLogger(__name__)


def init_admin_roles(db: Session) -> None:
    """
    Grant the ``admin`` role to every user id listed in ``ADMIN_USER_IDS``.

    Users are managed by the identity provider, so admins are bootstrapped
    by id. Existing grants are left untouched.

    Args:
        db: Database session
    """
    try:
        granted = 0
        for user_id in settings.admin_user_ids:
            existing = (
                db.query(UserRole)
                .filter(UserRole.user_id == user_id, UserRole.role == "admin")
                .first()
            )
            if existing:
                continue

            db.add(UserRole(user_id=user_id, role="admin"))
            granted += 1

        db.commit()

        if granted:
            logger.info(f"✅ Granted admin role to {granted} user(s)")
        elif not settings.admin_user_ids:
            logger.warning("⚠️  No ADMIN_USER_IDS configured; admin panel is unreachable")

    except Exception as e:
        logger.error(f"❌ Failed to initialize admin roles: {e}")
        db.rollback()
        raise


def initialize_application(db: Session) -> None:
    """
    Run all application initialization tasks.

    Args:
        db: Database session
    """
    logger.info("🚀 Starting application initialization...")

    init_admin_roles(db)

    logger.info("✅ Application initialization completed!")
