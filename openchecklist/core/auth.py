"""Shared-secret admin gate.

Admin endpoints compare the ``X-Admin-Key`` header against the configured
``ADMIN_KEY``. This is a plain on/off gate, not an account system.
"""
import logging
import secrets

from fastapi import Header

from openchecklist.core.config import settings
from openchecklist.core.errors import Unauthorized

logger = logging.getLogger(__name__)


def is_authorized(admin_key: str | None) -> bool:
    """Check a presented key against the configured shared secret."""
    if not admin_key or not settings.admin_key:
        return False
    return secrets.compare_digest(admin_key.encode(), settings.admin_key.encode())


def ensure_authorized(authorized: bool) -> None:
    """Raise Unauthorized unless the caller passed the gate."""
    if not authorized:
        raise Unauthorized("Admin key required")


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    """Dependency for admin-only routes."""
    authorized = is_authorized(x_admin_key)
    if not authorized:
        logger.warning("Rejected admin request with missing or invalid key")
    ensure_authorized(authorized)
