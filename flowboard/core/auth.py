from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from flowboard.core.errors import Unauthenticated
from flowboard.core.security import SessionSigner
from flowboard.db.session import get_db
from flowboard.models import User


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, passed explicitly into every core operation."""

    id: str
    email: str
    name: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(id=user.id, email=user.email, name=user.name)


session_signer = SessionSigner()


def get_optional_user(
    request: Request,
    db: Session = Depends(get_db),
    x_dev_user_email: str | None = Header(default=None),
) -> Identity | None:
    token = request.cookies.get("session_token")
    if token:
        user_id = session_signer.unsign(token)
        if user_id:
            user = db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()
            if user:
                return Identity.from_user(user)

    if x_dev_user_email:
        user = db.query(User).filter(User.email == x_dev_user_email).first()
        if not user:
            user = User(email=x_dev_user_email, name=x_dev_user_email.split("@")[0])
            db.add(user)
            db.commit()
            db.refresh(user)
        return Identity.from_user(user)

    return None


def get_current_user(identity: Identity | None = Depends(get_optional_user)) -> Identity:
    if identity is None:
        raise Unauthenticated("Authentication required")
    return identity
