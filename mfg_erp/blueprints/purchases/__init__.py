"""
mfg_erp/blueprints/purchases/__init__.py

Blueprint package export.

IMPORTANT:
- Must expose purchases_bp for app factory registration.
- Keep import minimal to avoid side effects.
"""

from __future__ import annotations

from .routes import purchases_bp  # noqa: F401
