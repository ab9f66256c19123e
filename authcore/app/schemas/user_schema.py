"""
schemas/user_schema.py — Marshmallow schemas for user lookup endpoints.
"""

from __future__ import annotations

from marshmallow import Schema, fields


class CheckUserExistsSchema(Schema):
    """
    POST /users/exists

    All three identifiers are optional. An empty body is valid and simply
    answers False (see SessionService.check_exists).
    """

    email = fields.Str(load_default=None)
    phone = fields.Str(load_default=None)
    username = fields.Str(load_default=None)
