"""
routes/users.py — User lookup route handlers.

Endpoints (base url_prefix=/api/v1/users):
  POST   /users/exists   → 200   (no auth; used by sign-up forms)
  GET    /users/<id>     → 200   (requires the "users:read" permission)
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from authcore.app.middleware.auth_middleware import require_permission
from authcore.app.schemas.user_schema import CheckUserExistsSchema
from authcore.app.services import get_session_service
from authcore.app.services.serializers import build_user_dict

users_bp = Blueprint("users", __name__)

USERS_READ = "users:read"


@users_bp.route("/exists", methods=["POST"])
def check_exists():
    data = CheckUserExistsSchema().load(request.get_json(silent=True) or {})
    exists = get_session_service().check_exists(
        email=data["email"],
        phone=data["phone"],
        username=data["username"],
    )
    return jsonify({"data": {"exists": exists}, "warnings": []}), 200


@users_bp.route("/<string:user_id>", methods=["GET"])
@require_permission(USERS_READ)
def get_user(user_id: str):
    user = get_session_service().find_by_id(user_id)
    return jsonify({"data": build_user_dict(user, include_permissions=True), "warnings": []}), 200
