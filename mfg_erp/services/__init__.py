"""
mfg_erp/services

Business operations of the balance & inventory engine.

Every public operation takes an explicit ActingUser, runs as one database
transaction (services.base.atomic) and either returns the affected record or
raises an ErpError subclass.
"""

from __future__ import annotations

from . import funds, inventory, manufacturing, procurement, sales, transfers  # noqa: F401
