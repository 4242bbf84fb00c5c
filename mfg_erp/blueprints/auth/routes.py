"""
Authentication Routes

Provides:
- POST /auth/login
- POST /auth/logout
- GET  /auth/me
- GET  /auth/csrf-token (for JSON clients when CSRF protection is on)

Rules:
- Only active users may log in
- Credentials validated via password hash
"""

from flask import Blueprint
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf

from ...errors import Unauthorized, ValidationError
from ...models import User
from ...serializers import serialize_model
from ..common import ok, request_data

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


# ============================================================
# LOGIN
# ============================================================

@auth_bp.route("/login", methods=["POST"])
def login():
    """Authenticate a user and start a session."""
    data = request_data()
    username = str(data.get("username") or "").strip()
    password = str(data.get("password") or "")
    if not username or not password:
        raise ValidationError("Username and password are required.")

    user = User.query.filter_by(username=username).first()
    if not user or not user.check_password(password):
        raise Unauthorized("Invalid username or password.")
    if not user.is_active:
        raise Unauthorized("This account is inactive.")

    login_user(user)
    return ok("Logged in.", user=serialize_model(user))


# ============================================================
# LOGOUT
# ============================================================

@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    """Log out the current user."""
    logout_user()
    return ok("Logged out.")


@auth_bp.route("/me")
@login_required
def me():
    return ok(user=serialize_model(current_user))


@auth_bp.route("/csrf-token")
def csrf_token():
    return ok(csrf_token=generate_csrf())
