"""Tests for tenant user management."""
from conftest import PASSWORD, accept_invitation, add_member, login


def _url(ctx, suffix=""):
    return f"/api/tenants/{ctx['tenant_id']}/users{suffix}"


def test_create_and_list_users(client, acme):
    add_member(client, acme, "bob@acme.com", first_name="bob")
    add_member(client, acme, "carol@acme.com", role="Developer", first_name="Carol")

    r = client.get(_url(acme), headers=acme["headers"])
    assert r.status_code == 200
    body = r.json()
    assert body["total"] == 3
    assert all("hashed_password" not in u for u in body["users"])

    r = client.get(_url(acme), params={"filter": "car"}, headers=acme["headers"])
    assert [u["email"] for u in r.json()["users"]] == ["carol@acme.com"]

    r = client.get(_url(acme), params={"role": "Developer"}, headers=acme["headers"])
    assert r.json()["total"] == 1

    r = client.get(_url(acme), params={"page": 1, "page_size": 2}, headers=acme["headers"])
    assert len(r.json()["users"]) == 2


def test_users_of_other_tenant_are_invisible(client, acme, globex):
    r = client.get(_url(globex), headers=globex["headers"])
    assert [u["email"] for u in r.json()["users"]] == ["admin@globex.com"]

    r = client.get(_url(globex, f"/{acme['user']['id']}"), headers=globex["headers"])
    assert r.status_code == 404


def test_create_user_conflicts(client, acme, globex):
    body = {"email": "admin@acme.com", "password": PASSWORD}
    assert client.post(_url(acme), json=body, headers=acme["headers"]).status_code == 409

    body = {"email": "admin@globex.com", "password": PASSWORD}
    assert client.post(_url(acme), json=body, headers=acme["headers"]).status_code == 409


def test_create_user_requires_admin(client, acme):
    bob = add_member(client, acme, "bob@acme.com")
    r = client.post(_url(acme), json={"email": "eve@acme.com", "password": PASSWORD}, headers=bob["headers"])
    assert r.status_code == 403


def test_self_update(client, acme):
    bob = add_member(client, acme, "bob@acme.com")
    url = _url(acme, f"/{bob['user']['id']}")

    r = client.patch(url, json={"first_name": "robert"}, headers=bob["headers"])
    assert r.status_code == 200
    assert r.json()["first_name"] == "Robert"

    r = client.patch(url, json={"role": "Admin"}, headers=bob["headers"])
    assert r.status_code == 403

    r = client.patch(_url(acme, f"/{acme['user']['id']}"), json={"first_name": "x"}, headers=bob["headers"])
    assert r.status_code == 403


def test_admin_changes_role_and_password(client, acme):
    bob = add_member(client, acme, "bob@acme.com")
    url = _url(acme, f"/{bob['user']['id']}")

    r = client.put(url, json={
        "email": "bob@acme.com", "first_name": "Bob", "last_name": "Builder",
        "role": "ProjectManager", "password": "another-secret",
    }, headers=acme["headers"])
    assert r.status_code == 200
    assert r.json()["role"] == "ProjectManager"

    r = client.post("/api/auth/login", json={"email": "bob@acme.com", "password": "another-secret"})
    assert r.status_code == 200


def test_admin_cannot_change_own_role(client, acme):
    r = client.patch(_url(acme, f"/{acme['user']['id']}"), json={"role": "User"}, headers=acme["headers"])
    assert r.status_code == 400


def test_delete_user(client, acme, globex):
    bob = add_member(client, acme, "bob@acme.com")

    assert client.delete(_url(acme, f"/{acme['user']['id']}"), headers=acme["headers"]).status_code == 400
    assert client.delete(_url(acme, f"/{bob['user']['id']}"), headers=bob["headers"]).status_code == 403

    assert client.delete(_url(acme, f"/{bob['user']['id']}"), headers=acme["headers"]).status_code == 204
    assert client.get(_url(acme, f"/{bob['user']['id']}"), headers=acme["headers"]).status_code == 404

    # Account without memberships is gone
    r = client.post("/api/auth/login", json={"email": "bob@acme.com", "password": PASSWORD})
    assert r.status_code == 400


def _join(client, ctx, email, role="User"):
    r = client.post(
        f"/api/tenants/{ctx['tenant_id']}/add-user", json={"email": email, "role": role}, headers=ctx["headers"]
    )
    assert r.status_code == 200, r.text
    accept_invitation(client, ctx["tenant_id"], email)


def test_delete_user_keeps_other_memberships(client, acme, globex):
    _join(client, acme, "admin@globex.com")
    r = client.delete(_url(acme, f"/{globex['user']['id']}"), headers=acme["headers"])
    assert r.status_code == 204

    r = client.post("/api/auth/login", json={"email": "admin@globex.com", "password": PASSWORD})
    assert r.status_code == 200
    assert r.json()["user"]["tenant_ids"] == [globex["tenant_id"]]


def test_admin_cannot_touch_credentials_of_shared_account(client, acme, globex):
    victim_id = acme["user"]["id"]

    # Inviting alone grants nothing
    r = client.post(
        f"/api/tenants/{globex['tenant_id']}/add-user", json={"email": "admin@acme.com"}, headers=globex["headers"]
    )
    assert r.status_code == 200
    assert client.patch(
        _url(globex, f"/{victim_id}"), json={"password": "hijacked1"}, headers=globex["headers"]
    ).status_code == 404

    accept_invitation(client, globex["tenant_id"], "admin@acme.com")
    url = _url(globex, f"/{victim_id}")

    for change in ({"password": "hijacked1"}, {"email": "evil@globex.com"}, {"is_active": False}):
        r = client.patch(url, json=change, headers=globex["headers"])
        assert r.status_code == 403, change

    r = client.put(url, json={"email": "admin@acme.com", "password": "hijacked1"}, headers=globex["headers"])
    assert r.status_code == 403

    # Tenant-local edits are still allowed
    r = client.patch(url, json={"first_name": "ada", "role": "Developer"}, headers=globex["headers"])
    assert r.status_code == 200
    assert r.json()["role"] == "Developer"

    r = client.post("/api/auth/login", json={
        "email": "admin@acme.com", "password": "hijacked1", "tenant_id": acme["tenant_id"],
    })
    assert r.status_code == 400

    # The role in globex doesn't leak into acme
    tokens = login(client, "admin@acme.com", tenant_id=acme["tenant_id"])
    assert tokens["user"]["role"] == "Admin"


def test_owner_changes_own_credentials(client, acme, globex):
    _join(client, globex, "admin@acme.com")
    r = client.patch(_url(acme, f"/{acme['user']['id']}"), json={"password": "brand-new-1"}, headers=acme["headers"])
    assert r.status_code == 200
    login(client, "admin@acme.com", "brand-new-1", tenant_id=globex["tenant_id"])


def test_roles_are_per_tenant(client, acme, globex):
    _join(client, acme, "admin@globex.com")

    r = client.get(_url(acme), params={"role": "Admin"}, headers=acme["headers"])
    assert [u["email"] for u in r.json()["users"]] == ["admin@acme.com"]

    r = client.get(_url(acme, f"/{globex['user']['id']}"), headers=acme["headers"])
    assert r.json()["role"] == "User"

    r = client.get(_url(globex, f"/{globex['user']['id']}"), headers=globex["headers"])
    assert r.json()["role"] == "Admin"
