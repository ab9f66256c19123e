"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats.
  - services/session_service.py: DUPLICATE_EMAIL / DUPLICATE_USERNAME checks
    (cross-entity: require a DB lookup — not a schema concern).

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — it requires an active Flask app context
           and breaks unit tests. See extensions.py for the full explanation.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from authcore.app.models.user import USERNAME_MAX_LENGTH

# bcrypt ignores everything past 72 bytes; refuse longer passwords outright
# rather than silently truncating them.
PASSWORD_MAX_LENGTH = 72


class RegisterSchema(Schema):
    """
    POST /auth/register

    Field rules:
      email    : valid email format, max 255
      password : 1–72 chars (strength policy is not enforced by this service)
      username : optional; 3–64 chars, letters / digits / . _ -
                 derived from the email local-part when omitted
      name     : optional display name; defaults to the username
      phone    : optional; digits with an optional leading +
    """

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(
        required=True,
        load_only=True,
        validate=validate.Length(
            min=1,
            max=PASSWORD_MAX_LENGTH,
            error="Password must be between 1 and 72 characters.",
        ),
    )

    username = fields.Str(
        load_default=None,
        validate=[
            validate.Length(
                min=3,
                max=USERNAME_MAX_LENGTH,
                error=f"Username must be between 3 and {USERNAME_MAX_LENGTH} characters.",
            ),
            validate.Regexp(
                r"^[a-zA-Z0-9._-]+$",
                error="Username may only contain letters, numbers, '.', '_' and '-'.",
            ),
        ],
    )

    name = fields.Str(load_default=None, validate=validate.Length(min=1, max=255))

    phone = fields.Str(
        load_default=None,
        validate=validate.Regexp(
            r"^\+?[0-9]{6,20}$",
            error="Phone must be 6–20 digits with an optional leading '+'.",
        ),
    )


class LoginSchema(Schema):
    """
    POST /auth/login

    Credential correctness is checked in session_service.py
    (INVALID_CREDENTIALS, 401).
    """

    email = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class RefreshTokenSchema(Schema):
    """POST /auth/refresh"""

    refresh_token = fields.Str(required=True)


class TokenSchema(Schema):
    """
    POST /auth/logout and POST /auth/token-status

    `token` may be an access or a refresh token.
    """

    token = fields.Str(required=True, validate=validate.Length(min=1))
