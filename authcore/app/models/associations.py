"""
models/associations.py — Many-to-many junction tables.

  user_roles        users  ⇄ roles        (ON DELETE CASCADE both sides)
  role_permissions  roles  ⇄ permissions  (ON DELETE CASCADE both sides)

Plain Table objects rather than mapped classes: the junction rows carry no
data of their own, so relationship(secondary=...) is all the ORM needs.
"""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, String, Table

from authcore.app.extensions import db

user_roles = Table(
    "user_roles",
    db.metadata,
    Column("user_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
)

role_permissions = Table(
    "role_permissions",
    db.metadata,
    Column("role_id", String(36), ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "permission_id",
        String(36),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)
