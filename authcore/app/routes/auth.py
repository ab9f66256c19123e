"""
routes/auth.py — Authentication route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session when the call wrote to it
  - Return the standard response envelope: {"data": {...}, "warnings": []}

No business logic here. No DB queries.
AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

Endpoints (base url_prefix=/api/v1/auth):
  POST   /auth/register        → 201
  POST   /auth/login           → 200
  POST   /auth/refresh         → 200
  POST   /auth/logout          → 200
  POST   /auth/token-status    → 200
  GET    /auth/me              → 200
  GET    /auth/me/permissions  → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from authcore.app.extensions import db
from authcore.app.middleware.auth_middleware import require_auth
from authcore.app.schemas.auth_schema import (
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    TokenSchema,
)
from authcore.app.services import get_session_service
from authcore.app.services.serializers import build_user_dict

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create an INACTIVE account with the default role."""
    data = RegisterSchema().load(request.get_json(force=True) or {})
    user = get_session_service().register(
        email=data["email"],
        password=data["password"],
        username=data["username"],
        name=data["name"],
        phone=data["phone"],
    )
    db.session.commit()
    return jsonify({"data": build_user_dict(user), "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate; return access + refresh tokens."""
    data = LoginSchema().load(request.get_json(force=True) or {})
    result = get_session_service().login(
        email=data["email"],
        password=data["password"],
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/refresh", methods=["POST"])
def refresh():
    """POST /auth/refresh — Exchange a refresh token for a new access token."""
    data = RefreshTokenSchema().load(request.get_json(force=True) or {})
    result = get_session_service().refresh(data["refresh_token"])
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    """POST /auth/logout — Revoke an access or refresh token until it expires."""
    data = TokenSchema().load(request.get_json(force=True) or {})
    revoked = get_session_service().logout(data["token"])
    return jsonify({"data": {"logged_out": revoked}, "warnings": []}), 200


@auth_bp.route("/token-status", methods=["POST"])
def token_status():
    """POST /auth/token-status — Report whether a token has been revoked."""
    data = TokenSchema().load(request.get_json(force=True) or {})
    blacklisted = get_session_service().is_blacklisted(data["token"])
    return jsonify({"data": {"blacklisted": blacklisted}, "warnings": []}), 200


@auth_bp.route("/me", methods=["GET"])
@require_auth
def me():
    """GET /auth/me — Current user with roles and permissions."""
    user = get_session_service().find_by_id(g.user_id)
    return jsonify({"data": build_user_dict(user, include_permissions=True), "warnings": []}), 200


@auth_bp.route("/me/permissions", methods=["GET"])
@require_auth
def my_permissions():
    """GET /auth/me/permissions — Permission keys granted through active roles."""
    keys = get_session_service().permissions_for(g.user_id)
    return jsonify({"data": {"permissions": sorted(keys)}, "warnings": []}), 200
