from tokenlife.models.refresh_token import RefreshToken
from tokenlife.models.role import Role, RoleName, user_roles
from tokenlife.models.user import User, UserStatus

__all__ = [
    "RefreshToken",
    "Role",
    "RoleName",
    "User",
    "UserStatus",
    "user_roles",
]
