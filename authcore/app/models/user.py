"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

The password_hash column holds a bcrypt digest; the clear-text password is
never stored and never serialised.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authcore.app.extensions import db
from authcore.app.models.associations import user_roles


class UserStatus(str, enum.Enum):
    INACTIVE  = "INACTIVE"
    ACTIVE    = "ACTIVE"
    SUSPENDED = "SUSPENDED"


USERNAME_MAX_LENGTH = 64


def _new_id() -> str:
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)

    # UNIQUE is the authoritative duplicate-registration guard; the service
    # level existence check only produces a nicer error on the common path.
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
    )

    username: Mapped[str] = mapped_column(
        String(USERNAME_MAX_LENGTH),
        nullable=False,
        unique=True,
    )

    phone: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
        unique=True,
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    status: Mapped[UserStatus] = mapped_column(
        Enum(UserStatus, name="user_status_enum"),
        nullable=False,
        default=UserStatus.INACTIVE,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    roles: Mapped[list["Role"]] = relationship(  # noqa: F821
        "Role",
        secondary=user_roles,
        back_populates="users",
    )

    @property
    def role_keys(self) -> list[str]:
        return sorted(role.key for role in self.roles)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} username={self.username!r}>"
