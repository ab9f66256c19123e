"""
models/role.py — Role table definition.

A role is a named bundle of permissions. `key` is the stable programmatic
name ("user", "admin") embedded in access tokens; `name` is for display.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authcore.app.extensions import db
from authcore.app.models.associations import role_permissions, user_roles


class RoleStatus(str, enum.Enum):
    ACTIVE   = "ACTIVE"
    INACTIVE = "INACTIVE"


class Role(db.Model):
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    key: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[RoleStatus] = mapped_column(
        Enum(RoleStatus, name="role_status_enum"),
        nullable=False,
        default=RoleStatus.ACTIVE,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    users: Mapped[list["User"]] = relationship(  # noqa: F821
        "User",
        secondary=user_roles,
        back_populates="roles",
    )

    permissions: Mapped[list["Permission"]] = relationship(  # noqa: F821
        "Permission",
        secondary=role_permissions,
        back_populates="roles",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Role id={self.id} key={self.key!r}>"
