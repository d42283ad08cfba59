"""Invitation acceptance as an explicit state machine.

``loading`` moves to ``login_required``, ``error`` or ``success``.
``login_required`` resumes into ``loading`` once the caller signs in;
``error`` and ``success`` are terminal.

The unique constraint on (workspace, user) is the only guard against two
acceptances racing each other; the membership insert and the acceptance
stamp share one transaction so a crash cannot separate them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from urllib.parse import quote

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from flowboard.core.auth import Identity
from flowboard.core.config import get_settings
from flowboard.core.errors import Conflict, EmailMismatch, Expired, FlowBoardError, NotFound, Unknown
from flowboard.core.timeutils import as_aware_utc, utcnow
from flowboard.db.errors import is_unique_violation
from flowboard.models import TeamInvitation, WorkspaceMember
from flowboard.services.invitations import ACCEPT_INVITE_PATH

logger = logging.getLogger(__name__)

settings = get_settings()

INVALID_LINK = "Invalid invitation link"
LOGIN_REQUIRED = "Please sign in to accept this invitation"
NOT_FOUND_OR_USED = "This invitation has expired or has already been used"
EXPIRED = "This invitation has expired"
ALREADY_MEMBER = "You are already a member of this workspace"
GENERIC_FAILURE = "Failed to accept invitation"


class AcceptanceState(str, Enum):
    LOADING = "loading"
    LOGIN_REQUIRED = "login_required"
    ERROR = "error"
    SUCCESS = "success"


TERMINAL_STATES = frozenset({AcceptanceState.ERROR, AcceptanceState.SUCCESS})


@dataclass(frozen=True)
class AcceptanceOutcome:
    state: AcceptanceState
    message: str = ""
    error_kind: str | None = None
    workspace_id: str | None = None
    workspace_name: str | None = None
    redirect_to: str | None = None
    redirect_after_seconds: int | None = None
    login_url: str | None = None


def login_url_for(token: str) -> str:
    return "/auth?redirect=" + quote(f"{ACCEPT_INVITE_PATH}?token={token}", safe="/")


class InviteAcceptance:
    def __init__(self, token: str | None) -> None:
        self.token = token.strip() if token else None
        self.state = AcceptanceState.LOADING
        self.message = ""
        self.error_kind: str | None = None
        self.workspace_id: str | None = None
        self.workspace_name: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def outcome(self) -> AcceptanceOutcome:
        succeeded = self.state == AcceptanceState.SUCCESS
        return AcceptanceOutcome(
            state=self.state,
            message=self.message,
            error_kind=self.error_kind,
            workspace_id=self.workspace_id,
            workspace_name=self.workspace_name,
            redirect_to=settings.accept_redirect_path if succeeded else None,
            redirect_after_seconds=settings.accept_redirect_delay_seconds if succeeded else None,
            login_url=login_url_for(self.token)
            if self.state == AcceptanceState.LOGIN_REQUIRED and self.token
            else None,
        )

    def evaluate(self, db: Session, identity: Identity | None, now: datetime | None = None) -> AcceptanceOutcome:
        """Run the acceptance rules once; a terminal outcome is returned unchanged."""
        if self.is_terminal:
            return self.outcome()

        invitation = self.prepare(db, identity, now)
        if invitation is None:
            return self.outcome()
        return self.redeem(db, identity, invitation, now)

    def prepare(
        self,
        db: Session,
        identity: Identity | None,
        now: datetime | None = None,
    ) -> TeamInvitation | None:
        """Validate token, caller, expiry and email; return the invitation to redeem."""
        if self.is_terminal:
            return None
        self.state = AcceptanceState.LOADING

        if not self.token:
            self._fail(FlowBoardError(INVALID_LINK), kind="invalid_link")
            return None

        if identity is None:
            self.state = AcceptanceState.LOGIN_REQUIRED
            self.message = LOGIN_REQUIRED
            return None

        try:
            return self._validate(db, identity, now or utcnow())
        except FlowBoardError as exc:
            self._fail(exc)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("invite_accept_failed: error=%s", exc)
            self._fail(Unknown(GENERIC_FAILURE))
        return None

    def redeem(
        self,
        db: Session,
        identity: Identity,
        invitation: TeamInvitation,
        now: datetime | None = None,
    ) -> AcceptanceOutcome:
        """Insert the membership and stamp the invitation as one unit."""
        if self.is_terminal:
            return self.outcome()

        accepted_at = now or utcnow()
        invitation_id = invitation.id
        workspace_id = invitation.workspace_id
        try:
            db.add(WorkspaceMember(workspace_id=workspace_id, user_id=identity.id, role=invitation.role))
            db.flush()
            stamped = (
                db.query(TeamInvitation)
                .filter(TeamInvitation.id == invitation_id, TeamInvitation.accepted_at.is_(None))
                .update({TeamInvitation.accepted_at: accepted_at}, synchronize_session=False)
            )
            if stamped != 1:
                db.rollback()
                self._fail(NotFound(NOT_FOUND_OR_USED))
                return self.outcome()
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            if is_unique_violation(exc):
                self._fail(Conflict(ALREADY_MEMBER))
            else:
                logger.error("invite_accept_failed: invitation_id=%s error=%s", invitation_id, exc.orig)
                self._fail(Unknown(GENERIC_FAILURE))
            return self.outcome()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("invite_accept_failed: invitation_id=%s error=%s", invitation_id, exc)
            self._fail(Unknown(GENERIC_FAILURE))
            return self.outcome()

        self.state = AcceptanceState.SUCCESS
        self.message = f"You've been added to {self.workspace_name}"
        logger.info(
            "invite_accepted: invitation_id=%s workspace_id=%s user_id=%s",
            invitation_id,
            workspace_id,
            identity.id,
        )
        return self.outcome()

    def _validate(self, db: Session, identity: Identity, now: datetime) -> TeamInvitation:
        # Accepted rows never match, so a redeemed token cannot be replayed.
        invitation = (
            db.query(TeamInvitation)
            .filter(TeamInvitation.token == self.token, TeamInvitation.accepted_at.is_(None))
            .first()
        )
        if invitation is None:
            raise NotFound(NOT_FOUND_OR_USED)

        if as_aware_utc(invitation.expires_at) <= as_aware_utc(now):
            raise Expired(EXPIRED)

        if identity.email.lower() != invitation.email.lower():
            raise EmailMismatch(
                f"This invitation was sent to {invitation.email}. Please sign in with that email address."
            )

        self.workspace_id = invitation.workspace_id
        self.workspace_name = invitation.workspace.name if invitation.workspace else "the workspace"
        return invitation

    def _fail(self, exc: FlowBoardError, kind: str | None = None) -> None:
        self.state = AcceptanceState.ERROR
        self.message = exc.message
        self.error_kind = kind or exc.kind
        logger.info("invite_accept_rejected: kind=%s", self.error_kind)
