"""Tests for boards, task links, the event log and user profiles."""
from conftest import add_member, create_project, create_task


def _url(ctx, suffix):
    return f"/api/tenants/{ctx['tenant_id']}{suffix}"


# ============================================================================
# BOARDS
# ============================================================================

def test_board_crud(client, acme):
    project = create_project(client, acme)

    r = client.post(_url(acme, "/boards"), json={"project_id": "missing", "name": "Main"}, headers=acme["headers"])
    assert r.status_code == 404

    r = client.post(_url(acme, "/boards"), json={"project_id": project["id"], "name": "Main"}, headers=acme["headers"])
    assert r.status_code == 201
    board = r.json()
    assert board["type"] == "Kanban"

    r = client.put(_url(acme, f"/boards/{board['id']}"), json={
        "project_id": project["id"], "name": "Sprint board", "type": "Scrum", "configuration": {"wip": 3},
    }, headers=acme["headers"])
    assert r.json()["type"] == "Scrum"
    assert r.json()["configuration"] == {"wip": 3}

    assert [b["name"] for b in client.get(_url(acme, "/boards"), headers=acme["headers"]).json()] == ["Sprint board"]
    assert client.delete(_url(acme, f"/boards/{board['id']}"), headers=acme["headers"]).status_code == 204
    assert client.get(_url(acme, f"/boards/{board['id']}"), headers=acme["headers"]).status_code == 404


def test_board_tasks(client, acme):
    project = create_project(client, acme)
    t1 = create_task(client, acme, project["id"], title="One")
    t2 = create_task(client, acme, project["id"], title="Two")
    board = client.post(
        _url(acme, "/boards"), json={"project_id": project["id"], "name": "Main"}, headers=acme["headers"]
    ).json()
    url = _url(acme, f"/boards/{board['id']}/tasks")

    r = client.post(url, json={"task_id": t1["id"], "column": "todo", "position": 1}, headers=acme["headers"])
    assert r.status_code == 201
    first = r.json()
    client.post(url, json={"task_id": t2["id"], "column": "todo", "position": 0}, headers=acme["headers"])

    r = client.post(url, json={"task_id": t1["id"], "column": "done"}, headers=acme["headers"])
    assert r.status_code == 409

    r = client.get(url, headers=acme["headers"])
    assert [bt["task_id"] for bt in r.json()] == [t2["id"], t1["id"]]

    r = client.put(f"{url}/{first['id']}", json={"position": 5}, headers=acme["headers"])
    assert r.json()["column"] == "todo"
    assert r.json()["position"] == 5

    assert client.delete(f"{url}/{first['id']}", headers=acme["headers"]).status_code == 204
    assert client.get(f"{url}/{first['id']}", headers=acme["headers"]).status_code == 404


# ============================================================================
# TASK LINKS
# ============================================================================

def test_task_links(client, acme):
    project = create_project(client, acme)
    t1 = create_task(client, acme, project["id"], title="One")
    t2 = create_task(client, acme, project["id"], title="Two")
    url = _url(acme, "/task-links")

    body = {"source_task_id": t1["id"], "target_task_id": t1["id"], "type": "BlockedBy"}
    assert client.post(url, json=body, headers=acme["headers"]).status_code == 400

    body = {"source_task_id": t1["id"], "target_task_id": "missing", "type": "BlockedBy"}
    assert client.post(url, json=body, headers=acme["headers"]).status_code == 404

    body = {"source_task_id": t1["id"], "target_task_id": t2["id"], "type": "Causes"}
    assert client.post(url, json=body, headers=acme["headers"]).status_code == 422

    body = {"source_task_id": t1["id"], "target_task_id": t2["id"], "type": "RelatedTo"}
    r = client.post(url, json=body, headers=acme["headers"])
    assert r.status_code == 201
    link = r.json()

    assert [row["id"] for row in client.get(url, headers=acme["headers"]).json()] == [link["id"]]
    assert client.get(f"{url}/{link['id']}", headers=acme["headers"]).json()["type"] == "RelatedTo"
    assert client.delete(f"{url}/{link['id']}", headers=acme["headers"]).status_code == 204
    assert client.get(f"{url}/{link['id']}", headers=acme["headers"]).status_code == 404


# ============================================================================
# EVENT LOGS
# ============================================================================

def test_event_logs(client, acme):
    url = _url(acme, "/event-logs")

    r = client.post(url, json={"event_type": "deploy", "entity_id": "web", "details": {"version": "1.2"}},
                    headers=acme["headers"])
    assert r.status_code == 201
    event = r.json()
    assert event["user_id"] == acme["user"]["id"]
    client.post(url, json={"event_type": "rollback", "entity_id": "web"}, headers=acme["headers"])

    r = client.get(url, params={"event_type": "deploy"}, headers=acme["headers"])
    assert [e["details"] for e in r.json()] == [{"version": "1.2"}]
    assert len(client.get(url, params={"entity_id": "web"}, headers=acme["headers"]).json()) == 2

    bob = add_member(client, acme, "bob@acme.com")
    assert client.get(f"{url}/{event['id']}", headers=bob["headers"]).status_code == 200
    assert client.delete(f"{url}/{event['id']}", headers=bob["headers"]).status_code == 403
    assert client.delete(f"{url}/{event['id']}", headers=acme["headers"]).status_code == 204
    assert client.get(f"{url}/{event['id']}", headers=acme["headers"]).status_code == 404


def test_event_logs_are_tenant_scoped(client, acme, globex):
    client.post(_url(acme, "/event-logs"), json={"event_type": "deploy", "entity_id": "web"},
                headers=acme["headers"])
    assert client.get(_url(globex, "/event-logs"), headers=globex["headers"]).json() == []


# ============================================================================
# PROFILES
# ============================================================================

def test_profile_lifecycle(client, acme):
    bob = add_member(client, acme, "bob@acme.com")
    url = _url(acme, f"/profiles/{bob['user']['id']}")

    r = client.post(
        url,
        data={"bio": "<p>Hello <b>world</b></p><script>alert(1)</script>"},
        files={"image": ("me.jpg", b"jpeg-bytes", "image/jpeg")},
        headers=bob["headers"],
    )
    assert r.status_code == 201
    profile = r.json()
    assert profile["bio"] == "Hello world"
    assert profile["profile_picture_url"].startswith(f"/api/uploads/{acme['tenant_id']}/profiles/")

    assert client.post(url, data={"bio": "again"}, headers=bob["headers"]).status_code == 409

    r = client.patch(url, data={"bio": "Updated"}, headers=bob["headers"])
    assert r.json()["bio"] == "Updated"
    assert r.json()["profile_picture_url"] == profile["profile_picture_url"]

    r = client.put(url, data={}, files={"image": ("new.png", b"png-bytes", "image/png")}, headers=bob["headers"])
    assert r.json()["bio"] is None
    assert r.json()["profile_picture_url"].endswith(".png")

    r = client.get(_url(acme, "/profiles"), headers=acme["headers"])
    assert [p["user_id"] for p in r.json()] == [bob["user"]["id"]]

    assert client.delete(url, headers=bob["headers"]).status_code == 204
    assert client.get(url, headers=bob["headers"]).status_code == 404


def test_profile_owner_or_admin(client, acme):
    bob = add_member(client, acme, "bob@acme.com")
    carol = add_member(client, acme, "carol@acme.com")
    url = _url(acme, f"/profiles/{bob['user']['id']}")

    assert client.post(url, data={"bio": "Hi"}, headers=carol["headers"]).status_code == 403
    assert client.post(url, data={"bio": "Set by admin"}, headers=acme["headers"]).status_code == 201
    assert client.patch(url, data={"bio": "Nope"}, headers=carol["headers"]).status_code == 403

    r = client.post(_url(acme, "/profiles/nobody"), data={"bio": "Hi"}, headers=acme["headers"])
    assert r.status_code == 404
