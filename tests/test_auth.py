"""Tests for login, refresh-token rotation, logout and password reset."""
from taskbrick.models.user import User

from conftest import PASSWORD, bearer, login, signup


def test_login_single_tenant_defaults(client, acme):
    tokens = login(client, "admin@acme.com")
    assert tokens["token_type"] == "bearer"
    assert tokens["access_token"] and tokens["refresh_token"]
    assert tokens["user"]["tenant_ids"] == [acme["tenant_id"]]
    assert "hashed_password" not in tokens["user"]


def test_login_bad_credentials(client, acme):
    r = client.post("/api/auth/login", json={"email": "admin@acme.com", "password": "wrong-password"})
    assert r.status_code == 400

    r = client.post("/api/auth/login", json={"email": "nobody@acme.com", "password": PASSWORD})
    assert r.status_code == 400


def test_login_foreign_tenant_denied(client, acme, globex):
    r = client.post("/api/auth/login", json={
        "email": "admin@acme.com", "password": PASSWORD, "tenant_id": globex["tenant_id"],
    })
    assert r.status_code == 403
    assert r.json()["detail"] == "Access denied for this tenant."


def test_login_multi_tenant_requires_selection(client, acme):
    # Same credentials on sign-up: the existing account joins the new tenant
    second = signup(client, "initech", email="admin@acme.com")

    r = client.post("/api/auth/login", json={"email": "admin@acme.com", "password": PASSWORD})
    assert r.status_code == 400
    assert r.json()["detail"] == "Please select a tenant."

    tokens = login(client, "admin@acme.com", tenant_id=second["tenant_id"])
    assert set(tokens["user"]["tenant_ids"]) == {acme["tenant_id"], second["tenant_id"]}


def test_inactive_user_cannot_login(client, acme, db):
    user = db.query(User).filter(User.email == "admin@acme.com").first()
    user.is_active = False
    db.commit()

    r = client.post("/api/auth/login", json={"email": "admin@acme.com", "password": PASSWORD})
    assert r.status_code == 403


def test_refresh_rotates_token(client, acme):
    old = acme["refresh_token"]
    r = client.post("/api/auth/refresh-token", json={"refresh_token": old, "tenant_id": acme["tenant_id"]})
    assert r.status_code == 200
    new = r.json()
    assert new["refresh_token"] != old

    # New access token works
    r = client.get(f"/api/tenants/{acme['tenant_id']}", headers=bearer(new["access_token"]))
    assert r.status_code == 200

    # The presented token was consumed
    r = client.post("/api/auth/refresh-token", json={"refresh_token": old, "tenant_id": acme["tenant_id"]})
    assert r.status_code == 403


def test_refresh_keeps_other_sessions(client, acme):
    other_session = login(client, "admin@acme.com")["refresh_token"]

    r = client.post("/api/auth/refresh-token", json={
        "refresh_token": acme["refresh_token"], "tenant_id": acme["tenant_id"],
    })
    assert r.status_code == 200

    r = client.post("/api/auth/refresh-token", json={
        "refresh_token": other_session, "tenant_id": acme["tenant_id"],
    })
    assert r.status_code == 200


def test_refresh_errors(client, acme, globex):
    r = client.post("/api/auth/refresh-token", json={"tenant_id": acme["tenant_id"]})
    assert r.status_code == 401

    r = client.post("/api/auth/refresh-token", json={"refresh_token": acme["refresh_token"]})
    assert r.status_code == 400

    r = client.post("/api/auth/refresh-token", json={"refresh_token": "garbage", "tenant_id": acme["tenant_id"]})
    assert r.status_code == 403
    assert r.json()["detail"] == "Refresh token invalid"

    r = client.post("/api/auth/refresh-token", json={
        "refresh_token": acme["refresh_token"], "tenant_id": globex["tenant_id"],
    })
    assert r.status_code == 403


def test_logout_revokes_refresh_token(client, acme):
    r = client.post("/api/auth/logout", json={"refresh_token": acme["refresh_token"]})
    assert r.status_code == 200

    r = client.post("/api/auth/refresh-token", json={
        "refresh_token": acme["refresh_token"], "tenant_id": acme["tenant_id"],
    })
    assert r.status_code == 403


def test_logout_errors(client, acme):
    assert client.post("/api/auth/logout", json={}).status_code == 400
    assert client.post("/api/auth/logout", json={"refresh_token": "garbage"}).status_code == 401


def test_verify_email(client, acme):
    r = client.post("/api/auth/verify-email", json={"email": "admin@acme.com", "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["tenant_id"] == acme["tenant_id"]

    signup(client, "initech", email="admin@acme.com")
    r = client.post("/api/auth/verify-email", json={"email": "admin@acme.com", "password": PASSWORD})
    body = r.json()
    assert body["message"] == "Multiple tenants found. Please select a tenant."
    assert {t["domain"] for t in body["tenants"]} == {"acme", "initech"}

    r = client.post("/api/auth/verify-email", json={"email": "admin@acme.com", "password": "nope-nope"})
    assert r.status_code == 400
    r = client.post("/api/auth/verify-email", json={"email": "ghost@acme.com", "password": PASSWORD})
    assert r.status_code == 404


def test_password_reset_flow(client, acme, db):
    assert client.post("/api/auth/forgot-password", json={"email": "ghost@acme.com"}).status_code == 404

    r = client.post("/api/auth/forgot-password", json={"email": "admin@acme.com"})
    assert r.status_code == 200
    token = db.query(User).filter(User.email == "admin@acme.com").first().password_reset_token
    assert token

    assert client.get(f"/api/auth/reset-password/{token}").status_code == 200
    assert client.get("/api/auth/reset-password/not-a-token").status_code == 400

    r = client.post(f"/api/auth/reset-password/{token}", json={"password": "short"})
    assert r.status_code == 422

    r = client.post(f"/api/auth/reset-password/{token}", json={"password": "brand-new-pass"})
    assert r.status_code == 200

    # Token is single use and every session was revoked
    assert client.get(f"/api/auth/reset-password/{token}").status_code == 400
    r = client.post("/api/auth/refresh-token", json={
        "refresh_token": acme["refresh_token"], "tenant_id": acme["tenant_id"],
    })
    assert r.status_code == 403

    login(client, "admin@acme.com", password="brand-new-pass")


def test_status_and_me(client, acme):
    r = client.get("/api/auth/status")
    assert r.json() == {"is_authenticated": False, "user": None}

    r = client.get("/api/auth/status", headers=acme["headers"])
    assert r.json()["is_authenticated"] is True
    assert r.json()["user"]["email"] == "admin@acme.com"

    assert client.get("/api/auth/me").status_code == 401
    r = client.get("/api/auth/me", headers=acme["headers"])
    assert r.status_code == 200
    assert r.json()["first_name"] == "Ada"
