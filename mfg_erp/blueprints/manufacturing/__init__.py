"""
mfg_erp/blueprints/manufacturing/__init__.py

Blueprint package export.

IMPORTANT:
- Must expose manufacturing_bp for app factory registration.
- Keep import minimal to avoid side effects.
"""

from __future__ import annotations

from .routes import manufacturing_bp  # noqa: F401
