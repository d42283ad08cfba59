from __future__ import annotations

from sqlalchemy.orm import Session

from flowboard.core.errors import Forbidden, NotFound
from flowboard.models import Role, Workspace, WorkspaceMember


def get_workspace(db: Session, workspace_id: str) -> Workspace:
    workspace = db.query(Workspace).filter(Workspace.id == workspace_id).first()
    if not workspace:
        raise NotFound("Workspace not found")
    return workspace


def get_workspace_membership(db: Session, workspace_id: str, user_id: str) -> WorkspaceMember | None:
    return (
        db.query(WorkspaceMember)
        .filter(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == user_id)
        .first()
    )


def require_workspace_member(db: Session, workspace_id: str, user_id: str) -> WorkspaceMember:
    membership = get_workspace_membership(db, workspace_id, user_id)
    if not membership:
        raise Forbidden("Workspace access denied")
    return membership


def require_workspace_role(
    db: Session,
    workspace_id: str,
    user_id: str,
    allowed_roles: set[Role] | frozenset[Role],
) -> WorkspaceMember:
    membership = require_workspace_member(db, workspace_id, user_id)
    if membership.role not in allowed_roles:
        raise Forbidden("Insufficient workspace role")
    return membership


def count_owners(db: Session, workspace_id: str) -> int:
    return (
        db.query(WorkspaceMember)
        .filter(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.role == Role.OWNER)
        .count()
    )
