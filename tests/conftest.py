import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ["RESEND_API_KEY"] = ""
os.environ["SMTP_HOST"] = ""

from flowboard.core.auth import Identity
from flowboard.db.base import Base
from flowboard.db.session import get_db
from flowboard.main import app
from flowboard.models import User
from flowboard.services.workspace_bootstrap import create_workspace_with_owner


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session(engine) -> Session:
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
        session.close()


@pytest.fixture()
def client(db_session: Session):
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_identity(db_session: Session):
    def _make(email: str, name: str | None = None) -> Identity:
        user = User(email=email, name=name or email.split("@")[0])
        db_session.add(user)
        db_session.commit()
        return Identity.from_user(user)

    return _make


@pytest.fixture()
def owner(make_identity) -> Identity:
    return make_identity("owner@example.com", "Olivia Owner")


@pytest.fixture()
def workspace_id(db_session: Session, owner: Identity) -> str:
    return create_workspace_with_owner(db_session, owner, "Team W", "team-w")
