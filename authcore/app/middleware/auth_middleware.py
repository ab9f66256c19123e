"""
middleware/auth_middleware.py — JWT authentication and authorization decorators.

@require_auth:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Delegates to SessionService.authenticate(): signature, expiry, token
     type and revocation (blacklist:<jti>) checks
  3. Attaches user_id, roles and the raw token to flask.g

@require_roles(*keys):
  Passes if the caller holds ANY of the given role keys. Uses the role
  snapshot embedded in the access token; no database lookup.

@require_permission(key):
  Passes if any of the caller's ACTIVE roles grants the permission.
  Resolved through the database on every call, so it sees grants that
  changed after the token was issued.

Error codes:
  TOKEN_MISSING  (401) — no Authorization header
  TOKEN_INVALID  (401) — malformed header, invalid signature, or bad payload
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
  TOKEN_REVOKED  (401) — token identity is blacklisted (logged out)
  FORBIDDEN      (403) — authenticated but lacking the role / permission
  REVOCATION_STORE_UNAVAILABLE (503) — blacklist could not be checked
"""

from __future__ import annotations

import functools
from typing import Callable

from flask import g, request

from authcore.app.errors import AppError, ErrorCode
from authcore.app.services import get_session_service


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @auth_bp.route("/me")
        @require_auth
        def me():
            user_id = g.user_id
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def require_roles(*role_keys: str) -> Callable:
    """Route decorator: authenticated AND holding at least one of `role_keys`."""
    wanted = set(role_keys)

    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            _authenticate_request()
            if not wanted.intersection(g.roles):
                raise _forbidden()
            return f(*args, **kwargs)

        return decorated

    return decorator


def require_permission(permission_key: str) -> Callable:
    """Route decorator: authenticated AND granted `permission_key` through a role."""

    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def decorated(*args, **kwargs):
            _authenticate_request()
            if permission_key not in get_session_service().permissions_for(g.user_id):
                raise _forbidden()
            return f(*args, **kwargs)

        return decorated

    return decorator


def extract_bearer_token() -> str:
    """Returns the raw token from "Authorization: Bearer <token>"."""
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    return parts[1]


def _authenticate_request() -> None:
    """
    Performs the full authentication sequence and populates flask.g.

    Separated from the decorator wrapper so tests can call it directly.
    Raises AppError on any failure; the global error handler renders it.
    """
    raw_token = extract_bearer_token()
    context = get_session_service().authenticate(raw_token)

    g.user_id = context.user_id
    g.roles = context.roles
    g.access_token = raw_token


def _forbidden() -> AppError:
    return AppError(
        ErrorCode.FORBIDDEN,
        "You do not have permission to perform this action.",
        403,
    )
