"""
security/tokens.py — JWT issuance, decoding and verification.

Token design:
  - Access token:  HS256, signed with JWT_SECRET_KEY, TTL JWT_ACCESS_TOKEN_EXPIRES.
                   Claims: sub, roles (comma-joined role keys), type, iat, exp, jti.
  - Refresh token: HS256, signed with JWT_REFRESH_SECRET_KEY, TTL
                   JWT_REFRESH_TOKEN_EXPIRES. Claims: sub, type, iat, exp, jti.
                   No role snapshot: roles are reloaded when it is exchanged.

Every token carries a fresh random `jti`. Revocation targets that identity,
so logging out one token never invalidates a sibling issued to the same user.

Two read paths:
  - decode():        signature checked, expiry NOT enforced. Used by logout
                     and the blacklist check, which must still work on a
                     token whose exp has passed.
  - verify_access() / verify_refresh(): full verification (signature, exp,
                     token type). Used by the request middleware and the
                     refresh flow.

This module has no Flask dependency. TokenIssuer is built in create_app()
from config values and injected into SessionService.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable

import jwt

ACCESS = "access"
REFRESH = "refresh"

_REQUIRED_CLAIMS = ["sub", "exp", "jti"]


class InvalidToken(Exception):
    """Malformed token, bad signature, missing claims or wrong token type."""


class TokenExpired(InvalidToken):
    """Signature is valid but the exp claim is in the past."""


@dataclass(frozen=True)
class DecodedToken:
    subject: str
    expiration: int              # exp claim, seconds since the epoch
    identity: str                # jti claim
    token_type: str | None = None
    roles: tuple[str, ...] = field(default_factory=tuple)


def _split_roles(raw) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(key for key in str(raw).split(",") if key)


class TokenIssuer:

    def __init__(
            self,
            access_secret: str,
            refresh_secret: str,
            access_ttl: timedelta,
            refresh_ttl: timedelta,
            algorithm: str = "HS256",
    ) -> None:
        if access_secret == refresh_secret:
            raise ValueError("Access and refresh tokens must use different secrets.")
        self._access_secret = access_secret
        self._refresh_secret = refresh_secret
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.algorithm = algorithm

    # ── Issuance ───────────────────────────────────────────────────────────

    def issue_access(self, user_id: str, role_keys: Iterable[str]) -> str:
        payload = self._base_claims(user_id, ACCESS, self.access_ttl)
        payload["roles"] = ",".join(role_keys)
        return jwt.encode(payload, self._access_secret, algorithm=self.algorithm)

    def issue_refresh(self, user_id: str) -> str:
        payload = self._base_claims(user_id, REFRESH, self.refresh_ttl)
        return jwt.encode(payload, self._refresh_secret, algorithm=self.algorithm)

    @staticmethod
    def _base_claims(user_id: str, token_type: str, ttl: timedelta) -> dict:
        now = datetime.now(timezone.utc)
        return {
            "sub": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": now + ttl,
            "jti": secrets.token_hex(16),
        }

    # ── Reading ────────────────────────────────────────────────────────────

    def decode(self, token: str) -> DecodedToken:
        """
        Decodes an access OR refresh token without enforcing expiry.

        The signature must match one of the two secrets; a token signed with
        anything else is rejected, so a forged token cannot plant entries in
        the revocation store.

        Raises InvalidToken if the token is malformed, unsigned by us, or
        lacks sub / exp / jti.
        """
        for secret in (self._access_secret, self._refresh_secret):
            try:
                payload = jwt.decode(
                    token,
                    secret,
                    algorithms=[self.algorithm],
                    options={"verify_exp": False, "require": _REQUIRED_CLAIMS},
                )
            except jwt.InvalidSignatureError:
                continue
            except jwt.InvalidTokenError as exc:
                raise InvalidToken(str(exc)) from exc
            return self._to_decoded(payload)
        raise InvalidToken("Signature verification failed.")

    def verify_access(self, token: str) -> DecodedToken:
        return self._verify(token, self._access_secret, ACCESS)

    def verify_refresh(self, token: str) -> DecodedToken:
        return self._verify(token, self._refresh_secret, REFRESH)

    def _verify(self, token: str, secret: str, expected_type: str) -> DecodedToken:
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[self.algorithm],
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidToken(str(exc)) from exc

        if payload.get("type") != expected_type:
            raise InvalidToken(f"Expected a {expected_type} token.")
        return self._to_decoded(payload)

    @staticmethod
    def _to_decoded(payload: dict) -> DecodedToken:
        try:
            expiration = int(payload["exp"])
        except (TypeError, ValueError) as exc:
            raise InvalidToken("The 'exp' claim is not a timestamp.") from exc
        return DecodedToken(
            subject=str(payload["sub"]),
            expiration=expiration,
            identity=str(payload["jti"]),
            token_type=payload.get("type"),
            roles=_split_roles(payload.get("roles")),
        )
