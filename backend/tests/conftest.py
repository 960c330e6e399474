import os

# cheap hashing and no on-disk database; must be set before crm is imported
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from crm.api.deps_auth import get_db, get_mailer
from crm.core.database import Base
from crm.core.permissions import Role
from crm.core.security import create_access_token
from crm.main import app
from crm.services import accounts

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeMailer:
    """Records reset mails instead of talking to SMTP."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_password_reset(self, *, to_email, name, reset_token):
        if self.fail:
            return False
        self.sent.append({"to": to_email, "name": name, "token": reset_token})
        return True


@pytest.fixture()
def db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def client(db, mailer):
    def override_get_db():
        s = TestingSessionLocal()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture()
def make_user(db):
    def _make(email, permissions=(), role=Role.CSR, name=None, password="secret123"):
        return accounts.create_user(
            db,
            name=name or email.split("@")[0].title(),
            email=email,
            password=password,
            role=role,
            permissions=list(permissions),
        )

    return _make


@pytest.fixture()
def admin(make_user):
    return make_user("admin@example.com", role=Role.ADMIN, name="Admin")


@pytest.fixture()
def admin_headers(admin):
    return auth_headers(admin)
