from authcore.app.models.permission import Permission, PermissionStatus
from authcore.app.models.role import Role, RoleStatus
from authcore.app.models.user import User, UserStatus

__all__ = [
    "Permission",
    "PermissionStatus",
    "Role",
    "RoleStatus",
    "User",
    "UserStatus",
]
