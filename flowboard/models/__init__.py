from flowboard.models.base import Base
from flowboard.models.entities import TeamInvitation, User, Workspace, WorkspaceMember
from flowboard.models.enums import MANAGER_ROLES, Role

__all__ = [
    "Base",
    "MANAGER_ROLES",
    "Role",
    "TeamInvitation",
    "User",
    "Workspace",
    "WorkspaceMember",
]
