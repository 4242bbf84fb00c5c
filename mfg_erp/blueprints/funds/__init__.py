"""
mfg_erp/blueprints/funds/__init__.py

Blueprint package export.

IMPORTANT:
- Must expose funds_bp for app factory registration.
- Keep import minimal to avoid side effects.
"""

from __future__ import annotations

from .routes import funds_bp  # noqa: F401
