"""
mfg_erp/services/base.py

Transaction boundary and row-locking helpers shared by every engine operation.

Usage:

    with atomic(actor, "purchases", "Failed to save purchase") as outcome:
        ...mutations on db.session...
        outcome.record(ActionType.CREATE, "Added purchase ...", purchase.id)

IMPORTANT:
- One operation == one database transaction. atomic() commits on success and
  rolls back EVERYTHING on any failure, then re-raises.
- Activity records and notifications are written after the commit/rollback,
  each in its own transaction (see audit.py).
- Stale version writes and unique-key races surface as ConcurrencyConflict.
"""

from __future__ import annotations

import secrets
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date
from typing import Iterator, List, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..audit import log_activity, notify
from ..errors import ConcurrencyConflict, ErpError, NotFound
from ..extensions import db
from ..logger import get_logger
from ..models import ActionType
from ..security import ActingUser

logger = get_logger(__name__)


@dataclass
class Outcome:
    """What a successful operation reports to the activity and notification sinks."""

    module: str
    action: ActionType = ActionType.UPDATE
    description: str = ""
    entity_id: Optional[int] = None
    notifications: List[Tuple[int, str, str, Optional[int]]] = field(default_factory=list)

    def record(self, action: ActionType, description: str, entity_id: Optional[int] = None) -> None:
        self.action = action
        self.description = description
        if entity_id is not None:
            self.entity_id = entity_id

    def notify(self, user_id: int, type_: str, message: str, related_id: Optional[int] = None) -> None:
        self.notifications.append((user_id, type_, message, related_id))


def _report_failure(actor: ActingUser, module: str, failure: str, error: Exception, entity_id: Optional[int]) -> None:
    log_activity(actor.id, ActionType.ERROR, module, f"{failure}: {error}", entity_id)


@contextmanager
def atomic(actor: ActingUser, module: str, failure: str = "Operation failed") -> Iterator[Outcome]:
    """Run the body as one transaction; report the outcome to the activity sink."""
    outcome = Outcome(module=module)
    try:
        yield outcome
        db.session.commit()
    except (StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        conflict = ConcurrencyConflict()
        logger.warning("%s: concurrent modification (%s)", failure, exc.__class__.__name__)
        _report_failure(actor, module, failure, conflict, outcome.entity_id)
        raise conflict from exc
    except ErpError as exc:
        db.session.rollback()
        logger.warning("%s: [%s] %s", failure, exc.code, exc.message)
        _report_failure(actor, module, failure, exc, outcome.entity_id)
        raise
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("%s: database error", failure)
        _report_failure(actor, module, failure, exc, outcome.entity_id)
        raise
    except Exception as exc:
        db.session.rollback()
        logger.exception("%s: unexpected error", failure)
        _report_failure(actor, module, failure, exc, outcome.entity_id)
        raise

    logger.info("%s: %s (user=%s)", module, outcome.description, actor.id)
    log_activity(actor.id, outcome.action, module, outcome.description, outcome.entity_id)
    for user_id, type_, message, related_id in outcome.notifications:
        notify(user_id, type_, message, related_id)


# ---------------------------------------------------------------------
# Loading & locking
# ---------------------------------------------------------------------
def get_or_404(model, ident, label: Optional[str] = None):
    """Plain load by primary key; NotFound when missing."""
    row = db.session.get(model, ident) if ident is not None else None
    if row is None:
        raise NotFound(f"{label or model.__name__} not found.", id=ident)
    return row


def get_for_update(model, ident, label: Optional[str] = None):
    """
    Load a row with SELECT ... FOR UPDATE, refreshing any stale identity-map copy.

    Pending changes are flushed first so the refresh cannot discard them.
    """
    if ident is None:
        raise NotFound(f"{label or model.__name__} not found.")
    db.session.flush()
    row = db.session.get(model, ident, with_for_update=True, populate_existing=True)
    if row is None:
        raise NotFound(f"{label or model.__name__} not found.", id=ident)
    return row


# ---------------------------------------------------------------------
# Reference numbers
# ---------------------------------------------------------------------
def generate_reference(prefix: str, column, on: Optional[date] = None) -> str:
    """PREFIX-YYYYMMDD-XXXX, unique within the given column."""
    day = (on or date.today()).strftime("%Y%m%d")
    while True:
        candidate = f"{prefix}-{day}-{secrets.token_hex(2).upper()}"
        exists = db.session.query(column).filter(column == candidate).first()
        if exists is None:
            return candidate


def tolerance(key: str = "MONEY_TOLERANCE"):
    return current_app.config[key]
