"""Atomic workspace creation.

A workspace must never exist without an owner membership, and the membership
cannot be written before the workspace row exists. Both rows are therefore
written inside one transaction: either both commit or neither does.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from flowboard.core.auth import Identity
from flowboard.core.errors import Conflict, Unauthenticated, Unknown
from flowboard.db.errors import is_unique_violation
from flowboard.models import Role, Workspace, WorkspaceMember

logger = logging.getLogger(__name__)

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_INVALID.sub("-", value.strip().lower()).strip("-")


def create_workspace_with_owner(
    db: Session,
    identity: Identity | None,
    name: str,
    slug: str,
    description: str | None = None,
) -> str:
    """Create a workspace owned by ``identity`` and return its id.

    Raises ``Unauthenticated`` without a caller, ``Conflict`` when the slug is
    taken. No rows survive a failure.
    """
    if identity is None:
        raise Unauthenticated("Not authenticated")

    workspace = Workspace(
        name=name.strip(),
        slug=slug,
        description=description,
        created_by=identity.id,
    )
    try:
        db.add(workspace)
        db.flush()
        db.add(WorkspaceMember(workspace_id=workspace.id, user_id=identity.id, role=Role.OWNER))
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            logger.warning("workspace_create_conflict: slug=%s", slug)
            raise Conflict("Workspace slug already exists") from exc
        logger.error("workspace_create_failed: slug=%s error=%s", slug, exc.orig)
        raise Unknown("Failed to create workspace") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("workspace_create_failed: slug=%s error=%s", slug, exc)
        raise Unknown("Failed to create workspace") from exc

    logger.info("workspace_created: workspace_id=%s slug=%s owner_id=%s", workspace.id, slug, identity.id)
    return workspace.id
