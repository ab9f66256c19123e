"""
errors.py — AppError base class and error code registry.

Every error returned by the authcore API must use a code defined here.
Services raise AppError for expected conditions; the global Flask error
handler in app/__init__.py is the single place where an AppError becomes an
HTTP response. Do not raise strings or generic exceptions from service or
route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Messages never contain stack traces, SQL, tokens or passwords.
  - Never conflate 401 (unauthenticated) with 403 (unauthorized).
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD                = "MISSING_FIELD"
    INVALID_FIELD                = "INVALID_FIELD"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL              = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME           = "DUPLICATE_USERNAME"
    DUPLICATE_PHONE              = "DUPLICATE_PHONE"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND               = "USER_NOT_FOUND"

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are (unauthenticated)
    # 403 = we know who you are, but you are not allowed (unauthorized)
    INVALID_CREDENTIALS          = "INVALID_CREDENTIALS"    # 401
    TOKEN_MISSING                = "TOKEN_MISSING"          # 401
    TOKEN_INVALID                = "TOKEN_INVALID"          # 401
    TOKEN_EXPIRED                = "TOKEN_EXPIRED"          # 401
    TOKEN_REVOKED                = "TOKEN_REVOKED"          # 401
    REFRESH_TOKEN_INVALID        = "REFRESH_TOKEN_INVALID"  # 401
    FORBIDDEN                    = "FORBIDDEN"              # 403

    # ── System Errors (500 / 503) ──────────────────────────────────────────
    # CONFIGURATION_ERROR: the role catalog is missing the default role.
    # Not recoverable by the client; an operator must seed the roles table.
    CONFIGURATION_ERROR          = "CONFIGURATION_ERROR"           # 500
    # The revocation store (Redis) could not be reached. Retryable.
    REVOCATION_STORE_UNAVAILABLE = "REVOCATION_STORE_UNAVAILABLE"  # 503
    # The user database could not be reached or rejected the query. Retryable.
    USER_STORE_UNAVAILABLE       = "USER_STORE_UNAVAILABLE"        # 503
    INTERNAL_ERROR               = "INTERNAL_ERROR"                # 500


# Retry-After hint (seconds) sent with 503 responses.
RETRY_AFTER_SECONDS = 1
