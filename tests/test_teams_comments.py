"""Tests for teams and task comments."""
from conftest import add_member, create_project, create_task


def _teams(ctx, suffix=""):
    return f"/api/tenants/{ctx['tenant_id']}/teams{suffix}"


def _comments(ctx, task_id, suffix=""):
    return f"/api/tenants/{ctx['tenant_id']}/tasks/{task_id}/comments{suffix}"


def test_team_crud(client, acme):
    r = client.post(_teams(acme), json={"name": "Core", "description": "Platform"}, headers=acme["headers"])
    assert r.status_code == 201
    team = r.json()
    client.post(_teams(acme), json={"name": "Apps"}, headers=acme["headers"])

    r = client.get(_teams(acme), headers=acme["headers"])
    assert [t["name"] for t in r.json()] == ["Apps", "Core"]

    r = client.put(_teams(acme, f"/{team['id']}"), json={"description": "Infra"}, headers=acme["headers"])
    assert r.json()["name"] == "Core"
    assert r.json()["description"] == "Infra"

    assert client.delete(_teams(acme, f"/{team['id']}"), headers=acme["headers"]).status_code == 204
    assert client.get(_teams(acme, f"/{team['id']}"), headers=acme["headers"]).status_code == 404


def test_team_members(client, acme, globex):
    team = client.post(_teams(acme), json={"name": "Core"}, headers=acme["headers"]).json()
    bob = add_member(client, acme, "bob@acme.com")
    url = _teams(acme, f"/{team['id']}/users")

    assert client.post(f"{url}/{bob['user']['id']}", headers=acme["headers"]).status_code == 201
    assert client.post(f"{url}/{bob['user']['id']}", headers=acme["headers"]).status_code == 409
    assert client.post(f"{url}/{globex['user']['id']}", headers=acme["headers"]).status_code == 404

    r = client.get(url, headers=acme["headers"])
    assert [u["email"] for u in r.json()] == ["bob@acme.com"]

    assert client.delete(f"{url}/{bob['user']['id']}", headers=acme["headers"]).status_code == 204
    assert client.delete(f"{url}/{bob['user']['id']}", headers=acme["headers"]).status_code == 404
    assert client.get(url, headers=acme["headers"]).json() == []


def test_team_tasks_and_projects(client, acme):
    team = client.post(_teams(acme), json={"name": "Core"}, headers=acme["headers"]).json()
    project = create_project(client, acme)
    task = create_task(client, acme, project["id"])

    r = client.post(_teams(acme, f"/{team['id']}/tasks/{task['id']}"), headers=acme["headers"])
    assert r.status_code == 201
    r = client.get(_teams(acme, f"/{team['id']}/tasks"), headers=acme["headers"])
    assert [t["id"] for t in r.json()] == [task["id"]]

    url = _teams(acme, f"/{team['id']}/projects/{project['id']}")
    assert client.post(url, headers=acme["headers"]).status_code == 201
    assert client.post(url, headers=acme["headers"]).status_code == 409
    r = client.get(_teams(acme, f"/{team['id']}/projects"), headers=acme["headers"])
    assert [p["name"] for p in r.json()] == ["Website"]

    assert client.delete(url, headers=acme["headers"]).status_code == 204
    assert client.get(_teams(acme, f"/{team['id']}/projects"), headers=acme["headers"]).json() == []


def test_deleting_team_removes_links(client, acme):
    team = client.post(_teams(acme), json={"name": "Core"}, headers=acme["headers"]).json()
    project = create_project(client, acme)
    client.post(_teams(acme, f"/{team['id']}/projects/{project['id']}"), headers=acme["headers"])

    assert client.delete(_teams(acme, f"/{team['id']}"), headers=acme["headers"]).status_code == 204
    r = client.get(f"/api/tenants/{acme['tenant_id']}/projects/{project['id']}/teams", headers=acme["headers"])
    assert r.json() == []


def test_create_and_list_comments(client, acme):
    project = create_project(client, acme)
    task = create_task(client, acme, project["id"])

    r = client.post(
        _comments(acme, task["id"]),
        data={"body": "  Looks good  "},
        files=[("attachments", ("notes.txt", b"hello", "text/plain"))],
        headers=acme["headers"],
    )
    assert r.status_code == 201
    comment = r.json()
    assert comment["body"] == "Looks good"
    assert comment["author_first_name"] == "Ada"
    assert len(comment["attachments"]) == 1
    assert comment["attachments"][0].endswith(".txt")

    r = client.get(_comments(acme, task["id"]), headers=acme["headers"])
    assert [c["body"] for c in r.json()] == ["Looks good"]
    assert r.json()[0]["author_first_name"] == "Ada"


def test_comment_validation(client, acme):
    project = create_project(client, acme)
    task = create_task(client, acme, project["id"])

    r = client.post(_comments(acme, task["id"]), data={"body": "   "}, headers=acme["headers"])
    assert r.status_code == 400

    r = client.post(_comments(acme, "missing"), data={"body": "Hi"}, headers=acme["headers"])
    assert r.status_code == 404


def test_reactions_and_edits(client, acme):
    project = create_project(client, acme)
    task = create_task(client, acme, project["id"])
    bob = add_member(client, acme, "bob@acme.com")
    comment = client.post(_comments(acme, task["id"]), data={"body": "Hi"}, headers=bob["headers"]).json()
    url = _comments(acme, task["id"], f"/{comment['id']}")

    client.patch(url, data={"reaction": "+1"}, headers=bob["headers"])
    r = client.patch(url, data={"reaction": "+1", "body": "Hello"}, headers=bob["headers"])
    assert r.status_code == 200
    assert r.json()["reactions"] == ["+1"]
    assert r.json()["body"] == "Hello"

    # Admins may edit anyone's comment, other users may not
    carol = add_member(client, acme, "carol@acme.com", role="Developer")
    assert client.patch(url, data={"body": "Nope"}, headers=carol["headers"]).status_code == 403
    assert client.delete(url, headers=carol["headers"]).status_code == 403
    assert client.patch(url, data={"body": "Edited"}, headers=acme["headers"]).status_code == 200


def test_soft_delete_comment(client, acme):
    project = create_project(client, acme)
    task = create_task(client, acme, project["id"])
    comment = client.post(_comments(acme, task["id"]), data={"body": "Hi"}, headers=acme["headers"]).json()
    url = _comments(acme, task["id"], f"/{comment['id']}")

    assert client.delete(url, headers=acme["headers"]).status_code == 204
    assert client.get(url, headers=acme["headers"]).status_code == 404
    assert client.get(_comments(acme, task["id"]), headers=acme["headers"]).json() == []
