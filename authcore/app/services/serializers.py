"""
services/serializers.py — Plain-dict views of domain objects.

No business logic. password_hash is never included.
"""

from __future__ import annotations

from authcore.app.models.permission import Permission
from authcore.app.models.role import Role
from authcore.app.models.user import User


def build_permission_dict(permission: Permission) -> dict:
    return {
        "id": permission.id,
        "key": permission.key,
        "name": permission.name,
        "description": permission.description,
        "resource": permission.resource,
        "action": permission.action,
        "status": permission.status.value,
    }


def build_role_dict(role: Role, include_permissions: bool = False) -> dict:
    result = {
        "id": role.id,
        "key": role.key,
        "name": role.name,
        "description": role.description,
        "status": role.status.value,
    }
    if include_permissions:
        result["permissions"] = [
            build_permission_dict(p) for p in sorted(role.permissions, key=lambda p: p.key)
        ]
    return result


def build_user_dict(user: User, include_permissions: bool = False) -> dict:
    """
    Serialises a User. With include_permissions=True the full
    roles → permissions graph is nested under "roles".
    """
    return {
        "id": user.id,
        "email": user.email,
        "username": user.username,
        "name": user.name,
        "phone": user.phone,
        "status": user.status.value,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "roles": [
            build_role_dict(role, include_permissions=include_permissions)
            for role in sorted(user.roles, key=lambda r: r.key)
        ],
    }
