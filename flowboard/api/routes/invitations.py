from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from flowboard.api.deps import request_origin
from flowboard.core.auth import Identity, get_current_user, get_optional_user
from flowboard.core.cors import PUBLIC_CORS_HEADERS
from flowboard.db.session import get_db
from flowboard.models import MANAGER_ROLES
from flowboard.schemas.workspaces import (
    InvitationCreateRequest,
    InvitationResponse,
    InviteAcceptRequest,
    InviteAcceptResponse,
    SendInvitationResponse,
)
from flowboard.services.invitations import create_or_resend_invitation
from flowboard.services.invite_acceptance import InviteAcceptance
from flowboard.services.workspace_access import get_workspace, require_workspace_role

router = APIRouter(prefix="")


@router.options("/send-invitation")
def send_invitation_preflight() -> Response:
    return Response(status_code=status.HTTP_200_OK, headers=PUBLIC_CORS_HEADERS)


@router.post("/send-invitation", response_model=SendInvitationResponse)
def send_invitation(
    payload: InvitationCreateRequest,
    request: Request,
    response: Response,
    user: Identity = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SendInvitationResponse:
    require_workspace_role(db, payload.workspace_id, user.id, MANAGER_ROLES)
    workspace_name = payload.workspace_name.strip() or get_workspace(db, payload.workspace_id).name

    result = create_or_resend_invitation(
        db,
        email=str(payload.email),
        workspace_id=payload.workspace_id,
        workspace_name=workspace_name,
        role=payload.role,
        inviter_name=payload.inviter_name.strip() or user.name or user.email,
        origin=request_origin(request),
        invited_by=user.id,
    )

    for header, value in PUBLIC_CORS_HEADERS.items():
        response.headers.setdefault(header, value)
    return SendInvitationResponse(
        invitation=InvitationResponse.model_validate(result.invitation),
        inviteUrl=result.invite_url,
        emailSent=result.email_sent,
        deliveryStatus=result.delivery_status,
    )


@router.post("/invites/accept", response_model=InviteAcceptResponse)
def accept_invite(
    payload: InviteAcceptRequest,
    user: Identity | None = Depends(get_optional_user),
    db: Session = Depends(get_db),
) -> InviteAcceptResponse:
    outcome = InviteAcceptance(payload.token).evaluate(db, user)
    return InviteAcceptResponse(
        status=outcome.state.value,
        message=outcome.message,
        errorKind=outcome.error_kind,
        workspaceId=outcome.workspace_id,
        workspaceName=outcome.workspace_name,
        redirectTo=outcome.redirect_to,
        redirectAfterSeconds=outcome.redirect_after_seconds,
        loginUrl=outcome.login_url,
    )
