"""Tests for sprints and sprint membership of tasks."""
from conftest import add_member, create_project, create_task


def _sprint(client, ctx, project_id, name, start, end, **extra):
    return client.post(
        f"/api/tenants/{ctx['tenant_id']}/projects/{project_id}/sprints",
        json={"name": name, "start_date": start, "end_date": end, **extra},
        headers=ctx["headers"],
    )


def test_create_and_list_sprints(client, acme):
    project = create_project(client, acme)
    r = _sprint(client, acme, project["id"], "Sprint 1", "2024-01-01T00:00:00", "2024-01-14T00:00:00")
    assert r.status_code == 201
    assert r.json()["status"] == "Planned"
    assert r.json()["created_by"] == acme["user"]["id"]

    _sprint(client, acme, project["id"], "Sprint 2", "2024-01-14T00:00:00", "2024-01-28T00:00:00")

    r = client.get(f"/api/tenants/{acme['tenant_id']}/projects/{project['id']}/sprints", headers=acme["headers"])
    assert [s["name"] for s in r.json()] == ["Sprint 1", "Sprint 2"]


def test_overlapping_sprint_is_rejected(client, acme):
    project = create_project(client, acme)
    first = _sprint(client, acme, project["id"], "Sprint 1", "2024-01-01T00:00:00", "2024-01-14T00:00:00").json()

    r = _sprint(client, acme, project["id"], "Sprint X", "2024-01-10T00:00:00", "2024-01-20T00:00:00")
    assert r.status_code == 409
    overlapping = r.json()["detail"]["overlapping_sprints"]
    assert [s["id"] for s in overlapping] == [first["id"]]

    # Other projects are unaffected
    other = create_project(client, acme, "Other")
    r = _sprint(client, acme, other["id"], "Sprint X", "2024-01-10T00:00:00", "2024-01-20T00:00:00")
    assert r.status_code == 201


def test_sprint_dates_must_be_ordered(client, acme):
    project = create_project(client, acme)
    r = _sprint(client, acme, project["id"], "Bad", "2024-01-14T00:00:00", "2024-01-14T00:00:00")
    assert r.status_code == 422

    sprint = _sprint(client, acme, project["id"], "Ok", "2024-01-01T00:00:00", "2024-01-14T00:00:00").json()
    r = client.patch(
        f"/api/tenants/{acme['tenant_id']}/sprints/{sprint['id']}",
        json={"end_date": "2023-12-01T00:00:00"},
        headers=acme["headers"],
    )
    assert r.status_code == 422


def test_sprint_writes_require_project_manager(client, acme):
    project = create_project(client, acme)
    dev = add_member(client, acme, "dev@acme.com", role="Developer")
    r = _sprint(client, dev, project["id"], "Nope", "2024-01-01T00:00:00", "2024-01-14T00:00:00")
    assert r.status_code == 403

    pm = add_member(client, acme, "pm@acme.com", role="ProjectManager")
    r = _sprint(client, pm, project["id"], "Yes", "2024-01-01T00:00:00", "2024-01-14T00:00:00")
    assert r.status_code == 201


def test_update_excludes_itself_from_overlap(client, acme):
    project = create_project(client, acme)
    sprint = _sprint(client, acme, project["id"], "Sprint 1", "2024-01-01T00:00:00", "2024-01-14T00:00:00").json()
    url = f"/api/tenants/{acme['tenant_id']}/sprints/{sprint['id']}"

    r = client.patch(url, json={"end_date": "2024-01-21T00:00:00", "status": "Active"}, headers=acme["headers"])
    assert r.status_code == 200
    assert r.json()["status"] == "Active"
    assert r.json()["name"] == "Sprint 1"

    r = client.put(url, json={
        "name": "Renamed", "start_date": "2024-01-02T00:00:00", "end_date": "2024-01-15T00:00:00",
    }, headers=acme["headers"])
    assert r.status_code == 200
    assert r.json()["name"] == "Renamed"

    assert client.delete(url, headers=acme["headers"]).status_code == 204
    assert client.get(url, headers=acme["headers"]).status_code == 404


def test_sprint_tasks(client, acme):
    project = create_project(client, acme)
    bob = add_member(client, acme, "bob@acme.com", first_name="Bob")
    t1 = create_task(client, acme, project["id"], title="One", assignee_id=bob["user"]["id"])
    t2 = create_task(client, acme, project["id"], title="Two")
    sprint = _sprint(client, acme, project["id"], "Sprint 1", "2024-01-01T00:00:00", "2024-01-14T00:00:00").json()
    url = f"/api/tenants/{acme['tenant_id']}/sprints/{sprint['id']}/tasks"

    r = client.post(url, json={"task_ids": [t1["id"]]}, headers=acme["headers"])
    assert r.status_code == 201
    assert len(r.json()) == 1

    # Already present ids are skipped
    r = client.post(url, json={"task_ids": [t1["id"], t2["id"]]}, headers=acme["headers"])
    assert [row["task_id"] for row in r.json()] == [t2["id"]]

    r = client.post(url, json={"task_ids": ["missing"]}, headers=acme["headers"])
    assert r.status_code == 404

    r = client.get(url, headers=acme["headers"])
    details = r.json()
    assert [d["title"] for d in details] == ["One", "Two"]
    assert details[0]["assignee_name"] == "Bob Member"
    assert details[0]["project_name"] == "Website"
    assert details[1]["assignee_name"] is None

    r = client.delete(
        f"/api/tenants/{acme['tenant_id']}/sprint-tasks/{details[0]['sprint_task_id']}", headers=acme["headers"]
    )
    assert r.status_code == 204
    assert len(client.get(url, headers=acme["headers"]).json()) == 1


def test_completed_sprint_refuses_tasks(client, acme):
    project = create_project(client, acme)
    task = create_task(client, acme, project["id"])
    sprint = _sprint(
        client, acme, project["id"], "Done", "2024-01-01T00:00:00", "2024-01-14T00:00:00", status="Completed"
    ).json()

    r = client.post(
        f"/api/tenants/{acme['tenant_id']}/sprints/{sprint['id']}/tasks",
        json={"task_ids": [task["id"]]},
        headers=acme["headers"],
    )
    assert r.status_code == 403
