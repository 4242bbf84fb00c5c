"""
mfg_erp/seed.py

Seed default users.

Rules:
- Safe to run multiple times (idempotent): users are matched by username.
- One active user per role, so transfers always have a default assignee.

NOTE:
- Existing users are never modified (passwords and roles stay as they are).
"""

from __future__ import annotations

from .extensions import db
from .logger import get_logger
from .models import Role, User

logger = get_logger(__name__)


DEFAULT_USERS = [
    # username, full name, role
    ("owner", "Business Owner", Role.OWNER),
    ("incharge", "Production In-charge", Role.INCHARGE),
    ("shopkeeper", "Wholesale Shopkeeper", Role.SHOPKEEPER),
]


def seed_default_users(password: str) -> int:
    """Create the default users that don't exist yet. Returns how many were created."""
    created = 0
    for username, full_name, role in DEFAULT_USERS:
        if User.query.filter_by(username=username).first():
            continue
        user = User(username=username, full_name=full_name, role=role, is_active=True)
        user.set_password(password)
        db.session.add(user)
        created += 1

    db.session.commit()
    logger.info("Seeded %s default user(s)", created)
    return created
