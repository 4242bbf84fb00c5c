"""
mfg_erp/blueprints/common.py

Request/response helpers shared by the JSON API blueprints.

IMPORTANT:
- Routes never touch balances directly; they parse input, call a service and
  serialize the result. Service errors are turned into JSON by the app-level
  ErpError handler.
"""

from __future__ import annotations

import json
from typing import Any, Dict

from flask import jsonify, request

from ..errors import ValidationError

# Form fields that carry JSON-encoded lists (e.g. items=[{...}, ...])
_LIST_FIELDS = ("items", "materials")


def request_data() -> Dict[str, Any]:
    """Body as a dict: JSON if sent as JSON, otherwise the form."""
    if request.is_json:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object.")
        return payload

    data: Dict[str, Any] = request.form.to_dict()
    for name in _LIST_FIELDS:
        raw = data.get(name)
        if isinstance(raw, str) and raw.strip():
            try:
                data[name] = json.loads(raw)
            except ValueError:
                raise ValidationError(f"Field '{name}' must be a JSON list.") from None
    return data


def ok(message: str | None = None, status: int = 200, **payload: Any):
    body: Dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body.update(payload)
    return jsonify(body), status
