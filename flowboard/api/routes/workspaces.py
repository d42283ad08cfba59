import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from flowboard.api.deps import request_origin
from flowboard.core.auth import Identity, get_current_user
from flowboard.core.errors import Conflict, Forbidden, NotFound, Unknown, ValidationFailed
from flowboard.db.errors import is_unique_violation
from flowboard.db.session import get_db
from flowboard.models import MANAGER_ROLES, Role, User, Workspace, WorkspaceMember
from flowboard.schemas.workspaces import (
    InvitationResponse,
    SendInvitationResponse,
    UpdateWorkspaceMemberRequest,
    WorkspaceCreatedResponse,
    WorkspaceCreateRequest,
    WorkspaceListResponse,
    WorkspaceMemberResponse,
    WorkspaceResponse,
    WorkspaceUpdateRequest,
)
from flowboard.services.invitations import cancel_invitation, list_pending_invitations, resend_invitation
from flowboard.services.workspace_access import (
    count_owners,
    get_workspace,
    require_workspace_member,
    require_workspace_role,
)
from flowboard.services.workspace_bootstrap import create_workspace_with_owner, slugify

logger = logging.getLogger(__name__)

router = APIRouter(prefix="")


def _bootstrap(payload: WorkspaceCreateRequest, user: Identity, db: Session) -> str:
    slug = slugify(payload.slug or payload.name)
    if not slug:
        raise ValidationFailed("Workspace slug is required")
    return create_workspace_with_owner(db, user, payload.name, slug, payload.description)


@router.post("/workspaces", response_model=WorkspaceResponse)
def create_workspace(
    payload: WorkspaceCreateRequest,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WorkspaceResponse:
    workspace_id = _bootstrap(payload, user, db)
    return WorkspaceResponse.model_validate(get_workspace(db, workspace_id))


@router.post("/rpc/create_workspace_with_owner", response_model=WorkspaceCreatedResponse)
def create_workspace_rpc(
    payload: WorkspaceCreateRequest,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WorkspaceCreatedResponse:
    return WorkspaceCreatedResponse(id=_bootstrap(payload, user, db))


@router.get("/workspaces", response_model=list[WorkspaceListResponse])
def list_workspaces(
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[WorkspaceListResponse]:
    memberships = (
        db.query(WorkspaceMember, Workspace)
        .join(Workspace, Workspace.id == WorkspaceMember.workspace_id)
        .filter(WorkspaceMember.user_id == user.id)
        .order_by(Workspace.created_at.asc())
        .all()
    )
    return [
        WorkspaceListResponse(
            workspace=WorkspaceResponse.model_validate(workspace),
            role=membership.role,
        )
        for membership, workspace in memberships
    ]


@router.get("/workspaces/{workspace_id}", response_model=WorkspaceResponse)
def read_workspace(
    workspace_id: str,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WorkspaceResponse:
    require_workspace_member(db, workspace_id, user.id)
    return WorkspaceResponse.model_validate(get_workspace(db, workspace_id))


@router.patch("/workspaces/{workspace_id}", response_model=WorkspaceResponse)
def update_workspace(
    workspace_id: str,
    payload: WorkspaceUpdateRequest,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WorkspaceResponse:
    require_workspace_role(db, workspace_id, user.id, MANAGER_ROLES)
    workspace = get_workspace(db, workspace_id)

    if payload.name is not None:
        workspace.name = payload.name.strip()
    if payload.slug is not None:
        slug = slugify(payload.slug)
        if not slug:
            raise ValidationFailed("Workspace slug is required")
        workspace.slug = slug
    if "description" in payload.model_fields_set:
        workspace.description = payload.description
    if "logo_url" in payload.model_fields_set:
        workspace.logo_url = payload.logo_url

    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            raise Conflict("Workspace slug already exists") from exc
        raise Unknown("Failed to update workspace") from exc
    db.refresh(workspace)
    return WorkspaceResponse.model_validate(workspace)


@router.get("/workspaces/{workspace_id}/members", response_model=list[WorkspaceMemberResponse])
def list_workspace_members(
    workspace_id: str,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[WorkspaceMemberResponse]:
    require_workspace_member(db, workspace_id, user.id)
    rows = (
        db.query(WorkspaceMember, User)
        .join(User, User.id == WorkspaceMember.user_id)
        .filter(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.created_at.asc())
        .all()
    )
    return [
        WorkspaceMemberResponse(
            userId=member.user_id,
            email=u.email,
            name=u.name,
            role=member.role,
        )
        for member, u in rows
    ]


def _get_member(db: Session, workspace_id: str, member_user_id: str) -> WorkspaceMember:
    member = (
        db.query(WorkspaceMember)
        .filter(WorkspaceMember.workspace_id == workspace_id, WorkspaceMember.user_id == member_user_id)
        .first()
    )
    if not member:
        raise NotFound("Member not found")
    return member


@router.patch("/workspaces/{workspace_id}/members/{member_user_id}", response_model=WorkspaceMemberResponse)
def update_workspace_member(
    workspace_id: str,
    member_user_id: str,
    payload: UpdateWorkspaceMemberRequest,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> WorkspaceMemberResponse:
    acting_member = require_workspace_role(db, workspace_id, user.id, MANAGER_ROLES)
    target_member = _get_member(db, workspace_id, member_user_id)

    acting_role = Role(acting_member.role)
    if not (acting_role.at_least(payload.role) and acting_role.at_least(target_member.role)):
        raise Forbidden("Cannot manage a role above your own")
    if target_member.role == Role.OWNER and payload.role != Role.OWNER:
        raise Forbidden("Cannot demote workspace owner")
    if payload.role == Role.OWNER and target_member.role != Role.OWNER:
        raise Forbidden("Owner transfer flow is not implemented")

    target_member.role = payload.role
    db.commit()

    target_user = db.query(User).filter(User.id == member_user_id).first()
    if not target_user:
        raise NotFound("User not found")

    logger.info(
        "member_role_changed: workspace_id=%s user_id=%s role=%s",
        workspace_id,
        member_user_id,
        payload.role.value,
    )
    return WorkspaceMemberResponse(
        userId=target_member.user_id,
        email=target_user.email,
        name=target_user.name,
        role=target_member.role,
    )


@router.delete("/workspaces/{workspace_id}/members/{member_user_id}")
def remove_workspace_member(
    workspace_id: str,
    member_user_id: str,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    acting_member = require_workspace_member(db, workspace_id, user.id)
    target_member = _get_member(db, workspace_id, member_user_id)

    if member_user_id != user.id and acting_member.role not in MANAGER_ROLES:
        raise Forbidden("Not allowed")
    if target_member.role == Role.OWNER:
        if member_user_id != user.id:
            raise Forbidden("Cannot remove workspace owner")
        if count_owners(db, workspace_id) <= 1:
            raise Conflict("A workspace must keep at least one owner")

    db.delete(target_member)
    db.commit()
    logger.info("member_removed: workspace_id=%s user_id=%s", workspace_id, member_user_id)
    return {"ok": True}


@router.get("/workspaces/{workspace_id}/invites", response_model=list[InvitationResponse])
def list_invites(
    workspace_id: str,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[InvitationResponse]:
    require_workspace_role(db, workspace_id, user.id, MANAGER_ROLES)
    return [InvitationResponse.model_validate(invite) for invite in list_pending_invitations(db, workspace_id)]


@router.post("/workspaces/{workspace_id}/invites/{invite_id}/resend", response_model=SendInvitationResponse)
def resend_invite(
    workspace_id: str,
    invite_id: str,
    request: Request,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SendInvitationResponse:
    require_workspace_role(db, workspace_id, user.id, MANAGER_ROLES)
    workspace = get_workspace(db, workspace_id)
    result = resend_invitation(
        db,
        workspace_id=workspace_id,
        invitation_id=invite_id,
        workspace_name=workspace.name,
        inviter_name=user.name or user.email,
        origin=request_origin(request),
    )
    return SendInvitationResponse(
        invitation=InvitationResponse.model_validate(result.invitation),
        inviteUrl=result.invite_url,
        emailSent=result.email_sent,
        deliveryStatus=result.delivery_status,
    )


@router.delete("/workspaces/{workspace_id}/invites/{invite_id}")
def revoke_invite(
    workspace_id: str,
    invite_id: str,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> dict:
    require_workspace_role(db, workspace_id, user.id, MANAGER_ROLES)
    cancel_invitation(db, workspace_id=workspace_id, invitation_id=invite_id)
    return {"ok": True}
