"""Invitation creation, resend and cancellation.

Creation is idempotent per (workspace, email): the unique constraint on that
pair decides whether a row is new, and a repeat request falls back to the
existing row. A pending row is simply resent; an accepted one (the person
left or was removed since) is reissued in place with a fresh token and
expiry. The row is committed before any email goes out, so delivery problems
never undo an invitation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from flowboard.core.config import get_settings
from flowboard.core.errors import Conflict, NotFound, Unknown
from flowboard.core.security import generate_invite_token
from flowboard.core.timeutils import utcnow
from flowboard.db.errors import is_unique_violation
from flowboard.models import Role, TeamInvitation
from flowboard.services.notification_service import NotificationDeliveryResult, send_invitation_email

logger = logging.getLogger(__name__)

settings = get_settings()

ACCEPT_INVITE_PATH = "/accept-invite"


@dataclass
class InvitationResult:
    invitation: TeamInvitation
    invite_url: str
    email_sent: bool
    delivery_status: str
    resent: bool = False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_invite_url(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}{ACCEPT_INVITE_PATH}?token={token}"


def find_invitation_for_email(db: Session, workspace_id: str, email: str) -> TeamInvitation | None:
    """Return the pair's invitation row whether it is pending or accepted."""
    return (
        db.query(TeamInvitation)
        .filter(TeamInvitation.workspace_id == workspace_id, TeamInvitation.email == email)
        .first()
    )


def list_pending_invitations(db: Session, workspace_id: str) -> list[TeamInvitation]:
    return (
        db.query(TeamInvitation)
        .filter(TeamInvitation.workspace_id == workspace_id, TeamInvitation.accepted_at.is_(None))
        .order_by(TeamInvitation.created_at.desc())
        .all()
    )


def _deliver(
    invitation: TeamInvitation,
    workspace_name: str,
    inviter_name: str,
    origin: str,
) -> tuple[str, NotificationDeliveryResult]:
    invite_url = build_invite_url(origin, invitation.token)
    delivery = send_invitation_email(
        recipient_email=invitation.email,
        workspace_name=workspace_name,
        inviter_name=inviter_name,
        role=Role(invitation.role).value,
        invite_url=invite_url,
    )
    return invite_url, delivery


def _reissue(db: Session, invitation: TeamInvitation, *, role: Role, invited_by: str | None) -> None:
    invitation.token = generate_invite_token()
    invitation.role = role
    invitation.accepted_at = None
    invitation.expires_at = utcnow() + timedelta(days=settings.invite_expiry_days)
    if invited_by is not None:
        invitation.invited_by = invited_by
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("invitation_reissue_failed: invitation_id=%s error=%s", invitation.id, exc)
        raise Unknown("Failed to create invitation") from exc
    db.refresh(invitation)


def create_or_resend_invitation(
    db: Session,
    *,
    email: str,
    workspace_id: str,
    workspace_name: str,
    role: Role,
    inviter_name: str,
    origin: str,
    invited_by: str | None = None,
) -> InvitationResult:
    normalized = normalize_email(email)
    invitation = TeamInvitation(
        workspace_id=workspace_id,
        email=normalized,
        role=Role(role),
        invited_by=invited_by,
        token=generate_invite_token(),
        expires_at=utcnow() + timedelta(days=settings.invite_expiry_days),
    )

    resent = False
    try:
        db.add(invitation)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_unique_violation(exc):
            logger.error("invitation_create_failed: workspace_id=%s error=%s", workspace_id, exc.orig)
            raise Unknown("Failed to create invitation") from exc

        existing = find_invitation_for_email(db, workspace_id, normalized)
        if existing is None:
            logger.error("invitation_create_failed: workspace_id=%s error=%s", workspace_id, exc.orig)
            raise Unknown("Failed to create invitation") from exc
        invitation = existing
        resent = True
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("invitation_create_failed: workspace_id=%s error=%s", workspace_id, exc)
        raise Unknown("Failed to create invitation") from exc

    event = "invitation_resent" if resent else "invitation_created"
    if resent and invitation.accepted_at is not None:
        _reissue(db, invitation, role=Role(role), invited_by=invited_by)
        event = "invitation_reissued"
        resent = False

    logger.info(
        "%s: invitation_id=%s workspace_id=%s email=%s",
        event,
        invitation.id,
        workspace_id,
        normalized,
    )

    invite_url, delivery = _deliver(invitation, workspace_name, inviter_name, origin)
    return InvitationResult(
        invitation=invitation,
        invite_url=invite_url,
        email_sent=delivery.sent,
        delivery_status=delivery.status,
        resent=resent,
    )


def _get_workspace_invitation(db: Session, workspace_id: str, invitation_id: str) -> TeamInvitation:
    invitation = (
        db.query(TeamInvitation)
        .filter(TeamInvitation.workspace_id == workspace_id, TeamInvitation.id == invitation_id)
        .first()
    )
    if not invitation:
        raise NotFound("Invitation not found")
    return invitation


def resend_invitation(
    db: Session,
    *,
    workspace_id: str,
    invitation_id: str,
    workspace_name: str,
    inviter_name: str,
    origin: str,
) -> InvitationResult:
    invitation = _get_workspace_invitation(db, workspace_id, invitation_id)
    if invitation.accepted_at is not None:
        raise Conflict("Invitation already accepted")

    logger.info("invitation_resent: invitation_id=%s workspace_id=%s", invitation.id, workspace_id)
    invite_url, delivery = _deliver(invitation, workspace_name, inviter_name, origin)
    return InvitationResult(
        invitation=invitation,
        invite_url=invite_url,
        email_sent=delivery.sent,
        delivery_status=delivery.status,
        resent=True,
    )


def cancel_invitation(db: Session, *, workspace_id: str, invitation_id: str) -> None:
    invitation = _get_workspace_invitation(db, workspace_id, invitation_id)
    if invitation.accepted_at is not None:
        raise Conflict("Invitation already accepted")

    db.delete(invitation)
    db.commit()
    logger.info("invitation_cancelled: invitation_id=%s workspace_id=%s", invitation_id, workspace_id)
