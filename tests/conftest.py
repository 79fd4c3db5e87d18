"""
Shared fixtures.

Settings and the engine are created at import time, so the environment is
prepared before anything from taskbrick is imported.
"""
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="taskbrick-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'test.db')}"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret"
os.environ["REFRESH_SECRET_KEY"] = "test-refresh-secret"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP, "uploads")
os.environ["SMTP_HOST"] = ""

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

import taskbrick.models  # noqa: E402,F401
from taskbrick.database import Base, SessionLocal, engine  # noqa: E402
from taskbrick.models.invitation import Invitation  # noqa: E402
from taskbrick.main import app  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture()
def client():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def login(client, email, password=PASSWORD, tenant_id=None):
    body = {"email": email, "password": password}
    if tenant_id:
        body["tenant_id"] = tenant_id
    r = client.post("/api/auth/login", json=body)
    assert r.status_code == 200, r.text
    return r.json()


def signup(client, domain="acme", email=None, password=PASSWORD, first_name="Ada"):
    """Create a tenant with its admin and log the admin in."""
    email = email or f"admin@{domain}.com"
    r = client.post("/api/tenants", json={
        "name": domain.title(),
        "domain": domain,
        "admin_email": email,
        "admin_password": password,
        "admin_first_name": first_name,
        "admin_last_name": "Admin",
    })
    assert r.status_code == 201, r.text
    tenant = r.json()
    tokens = login(client, email, password, tenant_id=tenant["id"])
    return {
        "tenant_id": tenant["id"],
        "tenant": tenant,
        "user": tokens["user"],
        "headers": bearer(tokens["access_token"]),
        "refresh_token": tokens["refresh_token"],
    }


def add_member(client, ctx, email, role="User", first_name="Bob"):
    """Admin of ctx creates a user with the given role; returns its own context."""
    r = client.post(
        f"/api/tenants/{ctx['tenant_id']}/users",
        json={"email": email, "password": PASSWORD, "first_name": first_name, "last_name": "Member", "role": role},
        headers=ctx["headers"],
    )
    assert r.status_code == 201, r.text
    tokens = login(client, email, tenant_id=ctx["tenant_id"])
    return {
        "tenant_id": ctx["tenant_id"],
        "user": tokens["user"],
        "headers": bearer(tokens["access_token"]),
        "refresh_token": tokens["refresh_token"],
    }


def accept_invitation(client, tenant_id, email):
    """Register with the newest open invitation of email to tenant_id."""
    session = SessionLocal()
    try:
        invitation = session.query(Invitation).filter(
            Invitation.tenant_id == tenant_id,
            Invitation.email == email,
            Invitation.used == False,  # noqa: E712
        ).order_by(Invitation.created_at.desc()).first()
        token = invitation.token
    finally:
        session.close()
    r = client.post("/api/register", json={"token": token})
    assert r.status_code == 200, r.text
    return r.json()


def create_project(client, ctx, name="Website"):
    r = client.post(f"/api/tenants/{ctx['tenant_id']}/projects", json={"name": name}, headers=ctx["headers"])
    assert r.status_code == 201, r.text
    return r.json()


def create_task(client, ctx, project_id, title="Fix login", **extra):
    body = {"title": title, "project_id": project_id, "type": "Task", "priority": "Medium", "status": "ToDo"}
    body.update(extra)
    r = client.post(f"/api/tenants/{ctx['tenant_id']}/tasks", json=body, headers=ctx["headers"])
    assert r.status_code == 201, r.text
    return r.json()


@pytest.fixture()
def acme(client):
    return signup(client, "acme")


@pytest.fixture()
def globex(client):
    return signup(client, "globex")
