"""
mfg_erp/blueprints/inventory/__init__.py

Blueprint package export.

IMPORTANT:
- Must expose inventory_bp for app factory registration.
- Keep import minimal to avoid side effects.
"""

from __future__ import annotations

from .routes import inventory_bp  # noqa: F401
