"""Tests for invitations and invitation-based registration."""
from taskbrick.models.invitation import Invitation

from conftest import PASSWORD, add_member, bearer, login


def _invite(client, ctx, email, role="Developer"):
    r = client.post(
        f"/api/tenants/{ctx['tenant_id']}/invite",
        json={"email": email, "role": role},
        headers=ctx["headers"],
    )
    assert r.status_code == 201, r.text
    return r.json()


def _token(db, invitation_id):
    invitation = db.query(Invitation).filter(Invitation.id == invitation_id).first()
    token = invitation.token
    db.rollback()
    return token


def test_invite_and_register_new_user(client, acme, db):
    sent = _invite(client, acme, "newbie@acme.com")
    assert sent["message"] == "Invitation sent successfully."
    token = _token(db, sent["invitation_id"])

    r = client.post("/api/validate-invitation", json={"token": token})
    assert r.status_code == 200
    details = r.json()
    assert details["email"] == "newbie@acme.com"
    assert details["tenant_name"] == "Acme"
    assert details["role"] == "Developer"
    assert details["is_existing_user"] is False

    r = client.post("/api/register", json={
        "token": token, "first_name": "new", "last_name": "bie", "password": PASSWORD,
    })
    assert r.status_code == 201
    assert r.json()["user"]["first_name"] == "New"

    tokens = login(client, "newbie@acme.com")
    assert tokens["user"]["role"] == "Developer"

    # Consumed
    assert client.post("/api/validate-invitation", json={"token": token}).status_code == 400
    assert client.post("/api/register", json={"token": token}).status_code == 400


def test_register_existing_user_joins_tenant(client, acme, globex, db):
    sent = _invite(client, acme, "admin@globex.com")
    token = _token(db, sent["invitation_id"])

    r = client.post("/api/validate-invitation", json={"token": token})
    assert r.json()["is_existing_user"] is True
    assert r.json()["user"]["email"] == "admin@globex.com"

    r = client.post("/api/register", json={"token": token})
    assert r.status_code == 200
    assert r.json()["message"] == "You have been successfully added to the new tenant."

    tokens = login(client, "admin@globex.com", tenant_id=acme["tenant_id"])
    assert acme["tenant_id"] in tokens["user"]["tenant_ids"]


def test_register_existing_member(client, acme, db):
    sent = _invite(client, acme, "admin@acme.com")
    token = _token(db, sent["invitation_id"])

    r = client.post("/api/register", json={"token": token})
    assert r.status_code == 200
    assert r.json()["message"] == "You are already a member of this tenant."


def test_register_new_user_needs_details(client, acme, db):
    sent = _invite(client, acme, "newbie@acme.com")
    token = _token(db, sent["invitation_id"])

    r = client.post("/api/register", json={"token": token, "first_name": "New"})
    assert r.status_code == 400

    # Still usable after the failed attempt
    assert client.post("/api/validate-invitation", json={"token": token}).status_code == 200


def test_invite_validation(client, acme):
    url = f"/api/tenants/{acme['tenant_id']}/invite"
    assert client.post(url, json={"email": "not-an-email", "role": "User"}, headers=acme["headers"]).status_code == 422
    assert client.post(url, json={"email": "a@acme.com", "role": "Overlord"}, headers=acme["headers"]).status_code == 422


def test_invite_requires_project_manager(client, acme):
    dev = add_member(client, acme, "dev@acme.com", role="Developer")
    r = client.post(
        f"/api/tenants/{acme['tenant_id']}/invite",
        json={"email": "x@acme.com", "role": "User"},
        headers=dev["headers"],
    )
    assert r.status_code == 403

    pm = add_member(client, acme, "pm@acme.com", role="ProjectManager")
    r = client.post(
        f"/api/tenants/{acme['tenant_id']}/invite",
        json={"email": "x@acme.com", "role": "User"},
        headers=pm["headers"],
    )
    assert r.status_code == 201


def test_unknown_invitation(client):
    assert client.post("/api/validate-invitation", json={"token": "nope"}).status_code == 400


def test_existing_user_gets_invited_role(client, acme, globex, db):
    sent = _invite(client, acme, "admin@globex.com", role="User")
    assert client.post("/api/register", json={"token": _token(db, sent["invitation_id"])}).status_code == 200

    tokens = login(client, "admin@globex.com", tenant_id=acme["tenant_id"])
    assert tokens["user"]["role"] == "User"
    r = client.delete(f"/api/tenants/{acme['tenant_id']}", headers=bearer(tokens["access_token"]))
    assert r.status_code == 403

    # Admin of globex is unchanged
    tokens = login(client, "admin@globex.com", tenant_id=globex["tenant_id"])
    assert tokens["user"]["role"] == "Admin"
