"""
Unit tests for TokenIssuer: claim layout, secret separation, decode vs verify.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from authcore.app.security.tokens import (
    ACCESS,
    REFRESH,
    InvalidToken,
    TokenExpired,
    TokenIssuer,
)

ACCESS_SECRET = "unit-access-secret-0123456789abcdef"
REFRESH_SECRET = "unit-refresh-secret-0123456789abcdef"


@pytest.fixture
def issuer():
    return TokenIssuer(
        access_secret=ACCESS_SECRET,
        refresh_secret=REFRESH_SECRET,
        access_ttl=timedelta(minutes=15),
        refresh_ttl=timedelta(days=7),
    )


def _raw(token: str, secret: str) -> dict:
    return jwt.decode(token, secret, algorithms=["HS256"])


def _forge(payload: dict, secret: str = ACCESS_SECRET) -> str:
    return jwt.encode(payload, secret, algorithm="HS256")


def test_same_secret_for_both_classes_is_rejected():
    with pytest.raises(ValueError):
        TokenIssuer("same", "same", timedelta(minutes=1), timedelta(minutes=2))


class TestIssue:

    def test_access_token_claims(self, issuer):
        payload = _raw(issuer.issue_access("u-1", ["admin", "user"]), ACCESS_SECRET)
        assert payload["sub"] == "u-1"
        assert payload["roles"] == "admin,user"
        assert payload["type"] == ACCESS
        assert payload["jti"]
        assert payload["exp"] - payload["iat"] == 15 * 60

    def test_refresh_token_has_no_role_snapshot(self, issuer):
        payload = _raw(issuer.issue_refresh("u-1"), REFRESH_SECRET)
        assert payload["sub"] == "u-1"
        assert payload["type"] == REFRESH
        assert "roles" not in payload
        assert payload["exp"] - payload["iat"] == 7 * 86400

    def test_access_and_refresh_use_different_secrets(self, issuer):
        access = issuer.issue_access("u-1", ["user"])
        refresh = issuer.issue_refresh("u-1")
        with pytest.raises(jwt.InvalidSignatureError):
            _raw(access, REFRESH_SECRET)
        with pytest.raises(jwt.InvalidSignatureError):
            _raw(refresh, ACCESS_SECRET)

    def test_every_token_gets_a_fresh_identity(self, issuer):
        identities = {
            issuer.decode(issuer.issue_access("u-1", ["user"])).identity
            for _ in range(20)
        }
        assert len(identities) == 20

    def test_empty_role_set_yields_empty_snapshot(self, issuer):
        decoded = issuer.verify_access(issuer.issue_access("u-1", []))
        assert decoded.roles == ()


class TestDecode:

    def test_decode_reads_access_token(self, issuer):
        decoded = issuer.decode(issuer.issue_access("u-1", ["user", "admin"]))
        assert decoded.subject == "u-1"
        assert decoded.token_type == ACCESS
        assert decoded.roles == ("user", "admin")
        assert decoded.expiration > int(datetime.now(timezone.utc).timestamp())

    def test_decode_reads_refresh_token(self, issuer):
        decoded = issuer.decode(issuer.issue_refresh("u-1"))
        assert decoded.token_type == REFRESH
        assert decoded.roles == ()

    def test_decode_does_not_enforce_expiry(self, issuer):
        past = datetime.now(timezone.utc) - timedelta(hours=1)
        token = _forge({"sub": "u-1", "exp": past, "jti": "abc", "type": ACCESS})
        decoded = issuer.decode(token)
        assert decoded.identity == "abc"
        assert decoded.expiration == int(past.timestamp())

    @pytest.mark.parametrize("missing", ["exp", "jti", "sub"])
    def test_decode_requires_core_claims(self, issuer, missing):
        payload = {
            "sub": "u-1",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            "jti": "abc",
        }
        del payload[missing]
        with pytest.raises(InvalidToken):
            issuer.decode(_forge(payload))

    def test_decode_rejects_foreign_signature(self, issuer):
        token = _forge(
            {"sub": "u-1", "exp": datetime.now(timezone.utc) + timedelta(minutes=5), "jti": "x"},
            secret="someone-elses-secret-0123456789",
        )
        with pytest.raises(InvalidToken):
            issuer.decode(token)

    @pytest.mark.parametrize("garbage", ["", "not-a-jwt", "bad.token.here"])
    def test_decode_rejects_malformed_input(self, issuer, garbage):
        with pytest.raises(InvalidToken):
            issuer.decode(garbage)


class TestVerify:

    def test_verify_access_accepts_access_token(self, issuer):
        decoded = issuer.verify_access(issuer.issue_access("u-1", ["user"]))
        assert decoded.subject == "u-1"

    def test_verify_access_rejects_refresh_token(self, issuer):
        with pytest.raises(InvalidToken):
            issuer.verify_access(issuer.issue_refresh("u-1"))

    def test_verify_refresh_rejects_access_token(self, issuer):
        with pytest.raises(InvalidToken):
            issuer.verify_refresh(issuer.issue_access("u-1", ["user"]))

    def test_verify_access_rejects_token_with_wrong_type_claim(self, issuer):
        token = _forge({
            "sub": "u-1",
            "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            "jti": "x",
            "type": REFRESH,
        })
        with pytest.raises(InvalidToken):
            issuer.verify_access(token)

    def test_verify_raises_token_expired(self, issuer):
        token = _forge({
            "sub": "u-1",
            "exp": datetime.now(timezone.utc) - timedelta(seconds=30),
            "jti": "x",
            "type": ACCESS,
        })
        with pytest.raises(TokenExpired):
            issuer.verify_access(token)

    def test_token_expired_is_an_invalid_token(self):
        assert issubclass(TokenExpired, InvalidToken)
