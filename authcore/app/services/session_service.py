"""
services/session_service.py — Registration, login, logout and token validity.

Responsibilities:
  - User registration (default role, derived username, INACTIVE status)
  - Credential validation with enumeration-safe errors
  - Access / refresh token issuance via TokenIssuer
  - Token revocation via the RevocationStore (blacklist:<jti>, TTL = remaining life)
  - Role / permission resolution for the authorization decorators

Layer rules:
  - No imports from routes or schemas.
  - No use of flask.request, flask.g or current_app. Every collaborator is
    passed to the constructor; create_app() does the wiring.
  - Expected failures are raised as AppError with a registered ErrorCode.
    Collaborator exceptions (DuplicateUser, InvalidToken, RevocationStoreError,
    LookupUnavailable / SQLAlchemyError) are translated here and never leave
    this module raw.

Concurrency:
  SessionService keeps no per-request state. Two concurrent registrations
  for the same email can both pass the existence check; the UNIQUE
  constraint on users.email decides, and the loser gets DUPLICATE_EMAIL.

Token lifecycle:
  issued → valid | revoked | expired. logout() moves a token to revoked
  while it still has lifetime left; a token already past exp needs no entry.
  There is no way back from revoked.
"""

from __future__ import annotations

import functools
import logging
import re
import secrets
import time
from dataclasses import dataclass
from typing import Callable

from authcore.app.errors import AppError, ErrorCode
from authcore.app.models.user import USERNAME_MAX_LENGTH, User, UserStatus
from authcore.app.repositories.user_repository import LOOKUP_ERRORS, DuplicateUser, UserLookup
from authcore.app.security.passwords import PasswordHasher
from authcore.app.security.tokens import DecodedToken, InvalidToken, TokenExpired, TokenIssuer
from authcore.app.stores.revocation_store import (
    RevocationStore,
    RevocationStoreError,
    blacklist_key,
)

logger = logging.getLogger(__name__)

# One message for both "no such user" and "wrong password".
_INVALID_CREDENTIALS_MESSAGE = "The email or password is incorrect."

# Derived usernames obey the same rules as explicit ones (RegisterSchema):
# 3..USERNAME_MAX_LENGTH chars from [a-zA-Z0-9._-]. The base is capped so
# that "-" plus the hex suffix still fits the column.
_USERNAME_DISALLOWED = re.compile(r"[^a-zA-Z0-9._-]")
_USERNAME_MIN_LENGTH = 3
_SUFFIX_BYTES = 3
_USERNAME_BASE_MAX_LENGTH = USERNAME_MAX_LENGTH - (1 + 2 * _SUFFIX_BYTES)


@dataclass(frozen=True)
class AuthContext:
    """The authenticated caller, as seen by the request layer."""

    user_id: str
    roles: tuple[str, ...]
    token: DecodedToken


def _guard_user_store(method):
    """Maps user-store infrastructure failures to USER_STORE_UNAVAILABLE (503)."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except LOOKUP_ERRORS as exc:
            logger.error("User store failure in %s: %s", method.__name__, exc)
            raise _user_store_unavailable() from exc

    return wrapper


class SessionService:

    def __init__(
            self,
            users: UserLookup,
            tokens: TokenIssuer,
            revocations: RevocationStore,
            hasher: PasswordHasher,
            default_role_key: str = "user",
            clock: Callable[[], float] = time.time,
    ) -> None:
        self.users = users
        self.tokens = tokens
        self.revocations = revocations
        self.hasher = hasher
        self.default_role_key = default_role_key
        self._clock = clock

    # ── Registration ───────────────────────────────────────────────────────

    @_guard_user_store
    def register(
            self,
            email: str,
            password: str,
            username: str | None = None,
            name: str | None = None,
            phone: str | None = None,
    ) -> User:
        """
        Creates an INACTIVE user holding the default role.

        Raises:
          AppError(DUPLICATE_EMAIL, 409)      — email already registered
          AppError(DUPLICATE_USERNAME, 409)   — explicit username already taken
          AppError(DUPLICATE_PHONE, 409)      — phone already registered
          AppError(CONFIGURATION_ERROR, 500)  — default role missing from the catalog
          AppError(USER_STORE_UNAVAILABLE, 503) — user database unreachable
        """
        if self.users.find_user_by_email(email) is not None:
            raise _duplicate_email(email)

        role = self.users.find_role_by_key(self.default_role_key)
        if role is None:
            logger.error(
                "Default role %r is missing from the role catalog; registration refused.",
                self.default_role_key,
            )
            raise AppError(
                ErrorCode.CONFIGURATION_ERROR,
                "Registration is temporarily unavailable.",
                500,
            )

        derived = username is None
        if derived:
            username = self._derive_username(email)
        elif self.users.find_user_by_any_of(username=username) is not None:
            raise _duplicate_username(username)

        if phone is not None and self.users.find_user_by_any_of(phone=phone) is not None:
            raise _duplicate_phone()

        password_hash = self.hasher.hash(password)

        # A derived username the caller never saw gets one retry with a fresh
        # suffix; an explicit one is reported as taken straight away.
        attempts = 2 if derived else 1
        for attempt in range(1, attempts + 1):
            try:
                user = self.users.create_user(
                    email=email,
                    username=username,
                    name=name or username,
                    phone=phone,
                    password_hash=password_hash,
                    roles=[role],
                    status=UserStatus.INACTIVE,
                )
                break
            except DuplicateUser:
                # Lost a race with a concurrent registration. Work out which
                # constraint fired so the client gets the right error.
                logger.info("Concurrent registration collided on a unique constraint.")
                if self.users.find_user_by_email(email) is not None:
                    raise _duplicate_email(email)
                if phone is not None and self.users.find_user_by_any_of(phone=phone) is not None:
                    raise _duplicate_phone()
                if attempt == attempts:
                    raise _duplicate_username(username)
                username = _with_suffix(_username_base(email))

        logger.info("Registered user %s with role %r.", user.id, role.key)
        return user

    def _derive_username(self, email: str) -> str:
        """
        Sanitised email local-part; suffixed with a short random tag when it
        is already taken or shorter than the minimum username length.
        """
        base = _username_base(email)
        if len(base) < _USERNAME_MIN_LENGTH:
            return _with_suffix(base)
        if self.users.find_user_by_any_of(username=base) is None:
            return base
        return _with_suffix(base)

    # ── Login / refresh ────────────────────────────────────────────────────

    @_guard_user_store
    def login(self, email: str, password: str) -> dict:
        """
        Validates credentials and issues an access + refresh token pair.

        Raises:
          AppError(INVALID_CREDENTIALS, 401) — email not found or password wrong.
          Both cases produce the same code and message, and both run one
          bcrypt check, so neither the body nor the timing reveals which.

        Returns: {"access_token": "...", "refresh_token": "...", "user_id": "..."}
        """
        user = self.users.find_user_by_email(email)

        if user is None:
            self.hasher.verify_dummy(password)
            logger.info("Login failed: unknown account.")
            raise _invalid_credentials()

        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed for user %s: bad password.", user.id)
            raise _invalid_credentials()

        return {
            "access_token": self.tokens.issue_access(user.id, user.role_keys),
            "refresh_token": self.tokens.issue_refresh(user.id),
            "user_id": user.id,
        }

    @_guard_user_store
    def refresh(self, refresh_token: str) -> dict:
        """
        Exchanges a refresh token for a new access token.

        The refresh token is not rotated. Roles are reloaded from the
        database so the new access token reflects current grants.

        Raises:
          AppError(REFRESH_TOKEN_INVALID, 401)        — bad, expired, revoked, or user gone
          AppError(REVOCATION_STORE_UNAVAILABLE, 503) — blacklist could not be checked
        """
        try:
            decoded = self.tokens.verify_refresh(refresh_token)
        except InvalidToken:
            raise _refresh_invalid()

        if self._is_revoked(decoded):
            raise _refresh_invalid()

        user = self.users.find_user_by_id(decoded.subject)
        if user is None:
            raise _refresh_invalid()

        return {
            "access_token": self.tokens.issue_access(user.id, user.role_keys),
            "user_id": user.id,
        }

    # ── Logout / revocation ────────────────────────────────────────────────

    def logout(self, token: str) -> bool:
        """
        Revokes `token` (access or refresh) until its natural expiry.

        Writes blacklist:<jti> with TTL = exp - now. A token already past its
        exp gets no entry: it is rejected by signature verification anyway.

        Raises:
          AppError(INVALID_CREDENTIALS, 401)          — token malformed or lacks exp / jti
          AppError(REVOCATION_STORE_UNAVAILABLE, 503) — store unreachable; safe to retry
        """
        decoded = self._decode_or_invalid(token)

        remaining = decoded.expiration - int(self._clock())
        if remaining <= 0:
            logger.debug("Logout of already-expired token %s; nothing to revoke.", decoded.identity)
            return True

        try:
            self.revocations.set(blacklist_key(decoded.identity), True, remaining)
        except RevocationStoreError as exc:
            logger.error("Revocation store write failed during logout: %s", exc)
            raise _store_unavailable()

        logger.info(
            "Revoked %s token %s for user %s (%ss remaining).",
            decoded.token_type or "unknown",
            decoded.identity,
            decoded.subject,
            remaining,
        )
        return True

    def is_blacklisted(self, token: str) -> bool:
        """
        Returns True iff the token's identity has a live revocation entry.

        Raises:
          AppError(INVALID_CREDENTIALS, 401)          — token malformed or lacks exp / jti
          AppError(REVOCATION_STORE_UNAVAILABLE, 503) — store unreachable
        """
        decoded = self._decode_or_invalid(token)
        return self._is_revoked(decoded)

    def authenticate(self, access_token: str) -> AuthContext:
        """
        Full check of a bearer access token: signature, expiry, type, revocation.

        Raises:
          AppError(TOKEN_EXPIRED, 401)
          AppError(TOKEN_INVALID, 401)
          AppError(TOKEN_REVOKED, 401)
          AppError(REVOCATION_STORE_UNAVAILABLE, 503)
        """
        try:
            decoded = self.tokens.verify_access(access_token)
        except TokenExpired:
            raise AppError(
                ErrorCode.TOKEN_EXPIRED,
                "The access token has expired. Use POST /auth/refresh to obtain a new one.",
                401,
            )
        except InvalidToken:
            raise AppError(
                ErrorCode.TOKEN_INVALID,
                "The access token is invalid or has been tampered with.",
                401,
            )

        if self._is_revoked(decoded):
            raise AppError(
                ErrorCode.TOKEN_REVOKED,
                "The access token has been revoked. Log in again.",
                401,
            )

        return AuthContext(user_id=decoded.subject, roles=decoded.roles, token=decoded)

    def _decode_or_invalid(self, token: str) -> DecodedToken:
        try:
            return self.tokens.decode(token)
        except InvalidToken:
            raise AppError(
                ErrorCode.INVALID_CREDENTIALS,
                "The token is invalid.",
                401,
            )

    def _is_revoked(self, decoded: DecodedToken) -> bool:
        try:
            return bool(self.revocations.get(blacklist_key(decoded.identity)))
        except RevocationStoreError as exc:
            logger.error("Revocation store read failed: %s", exc)
            raise _store_unavailable()

    # ── Lookups ────────────────────────────────────────────────────────────

    @_guard_user_store
    def find_by_id(self, user_id: str) -> User:
        """
        Returns the user with roles and their permissions loaded.

        Raises:
          AppError(USER_NOT_FOUND, 404)
        """
        user = self.users.find_user_by_id(user_id)
        if user is None:
            raise AppError(
                ErrorCode.USER_NOT_FOUND,
                f"User {user_id} not found.",
                404,
            )
        return user

    @_guard_user_store
    def check_exists(
            self,
            email: str | None = None,
            phone: str | None = None,
            username: str | None = None,
    ) -> bool:
        """True if any user matches ANY of the supplied identifiers."""
        if email is None and phone is None and username is None:
            return False
        return self.users.find_user_by_any_of(
            email=email,
            phone=phone,
            username=username,
        ) is not None

    @_guard_user_store
    def permissions_for(self, user_id: str) -> set[str]:
        return self.users.find_permission_keys_for_user(user_id)


# ── Error constructors ─────────────────────────────────────────────────────

def _invalid_credentials() -> AppError:
    return AppError(ErrorCode.INVALID_CREDENTIALS, _INVALID_CREDENTIALS_MESSAGE, 401)


def _refresh_invalid() -> AppError:
    return AppError(
        ErrorCode.REFRESH_TOKEN_INVALID,
        "The refresh token is invalid, expired, or has been revoked.",
        401,
    )


def _store_unavailable() -> AppError:
    return AppError(
        ErrorCode.REVOCATION_STORE_UNAVAILABLE,
        "Token revocation is temporarily unavailable. Please retry.",
        503,
    )


def _duplicate_email(email: str) -> AppError:
    return AppError(
        ErrorCode.DUPLICATE_EMAIL,
        f"The email address '{email}' is already registered.",
        409,
        field="email",
    )


def _duplicate_username(username: str) -> AppError:
    return AppError(
        ErrorCode.DUPLICATE_USERNAME,
        f"The username '{username}' is already taken.",
        409,
        field="username",
    )


def _duplicate_phone() -> AppError:
    return AppError(
        ErrorCode.DUPLICATE_PHONE,
        "The phone number is already registered.",
        409,
        field="phone",
    )


def _user_store_unavailable() -> AppError:
    return AppError(
        ErrorCode.USER_STORE_UNAVAILABLE,
        "The user directory is temporarily unavailable. Please retry.",
        503,
    )


# ── Username derivation ────────────────────────────────────────────────────

def _username_base(email: str) -> str:
    local_part = email.rsplit("@", 1)[0]
    return _USERNAME_DISALLOWED.sub("_", local_part)[:_USERNAME_BASE_MAX_LENGTH]


def _with_suffix(base: str) -> str:
    return f"{base}-{secrets.token_hex(_SUFFIX_BYTES)}"
