"""
mfg_erp/audit.py

Activity and notification sinks.

Goals:
- Record WHO did WHAT in WHICH module, for successful and failed operations.
- Notify users about work assigned to them (pending inventory transfers).

IMPORTANT:
- Unlike the primary operation, each sink write runs in its OWN transaction,
  AFTER the primary transaction has committed or rolled back.
- A sink failure is logged and swallowed: it must never undo or mask the
  outcome of the primary operation.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .logger import get_logger
from .models import ActionType, ActivityLog, Notification

logger = get_logger(__name__)


def _write(entry) -> bool:
    try:
        db.session.add(entry)
        db.session.commit()
        return True
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not write %s", entry.__class__.__name__)
        return False


def log_activity(
    user_id: Optional[int],
    action_type: ActionType | str,
    module: str,
    description: str,
    entity_id: Optional[int] = None,
) -> bool:
    """
    Write one ActivityLog row.

    Returns True when the row was stored. Never raises for database errors.
    """
    entry = ActivityLog(
        user_id=user_id,
        action_type=ActionType(action_type),
        module=module,
        description=description[:2000],
        entity_id=entity_id,
    )
    return _write(entry)


def notify(user_id: int, type_: str, message: str, related_id: Optional[int] = None) -> bool:
    """Write one Notification row for a user. Same fire-and-forget rules as log_activity()."""
    entry = Notification(user_id=user_id, type=type_, message=message, related_id=related_id)
    return _write(entry)
