"""
models/permission.py — Permission table definition.

An atomic capability. By convention `key` is "<resource>:<action>"
(e.g. "users:read"), with `resource` and `action` also stored separately
for filtering.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from authcore.app.extensions import db
from authcore.app.models.associations import role_permissions


class PermissionStatus(str, enum.Enum):
    ACTIVE   = "ACTIVE"
    INACTIVE = "INACTIVE"


class Permission(db.Model):
    __tablename__ = "permissions"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    resource: Mapped[str] = mapped_column(String(64), nullable=False)

    action: Mapped[str] = mapped_column(String(64), nullable=False)

    status: Mapped[PermissionStatus] = mapped_column(
        Enum(PermissionStatus, name="permission_status_enum"),
        nullable=False,
        default=PermissionStatus.ACTIVE,
    )

    roles: Mapped[list["Role"]] = relationship(  # noqa: F821
        "Role",
        secondary=role_permissions,
        back_populates="permissions",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Permission id={self.id} key={self.key!r}>"
