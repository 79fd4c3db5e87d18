"""Tests for the reorder request workflow."""
URL = "/api/reorders"


def _supply(client, ctx, quantity=10):
    r = client.post("/api/supplies", json={
        "name": "Gloves", "quantity": quantity, "unit_of_measure": "box", "threshold": 2,
    }, headers=ctx["headers"])
    assert r.status_code == 201, r.text
    return r.json()["data"]


def _reorder(client, ctx, supply_id, quantity=10):
    r = client.post(URL, json={"supply_id": supply_id, "quantity_requested": quantity}, headers=ctx["headers"])
    assert r.status_code == 201, r.text
    return r.json()["data"]


def _set_status(client, ctx, reorder_id, new_status):
    return client.patch(f"{URL}/{reorder_id}", json={"status": new_status}, headers=ctx["headers"])


def _stock(client, ctx, supply_id):
    return client.get(f"/api/supplies/{supply_id}", headers=ctx["headers"]).json()["data"]["quantity"]


def _ordered(client, ctx, quantity=10):
    supply = _supply(client, ctx)
    reorder = _reorder(client, ctx, supply["id"], quantity)
    _set_status(client, ctx, reorder["id"], "APPROVED")
    _set_status(client, ctx, reorder["id"], "ORDERED")
    return supply, reorder


def test_create_reorder(client, acme):
    supply = _supply(client, acme)
    reorder = _reorder(client, acme, supply["id"])
    assert reorder["status"] == "PENDING"
    assert reorder["quantity_received"] == 0
    assert reorder["is_closed"] is False
    assert reorder["created_by"] == acme["user"]["id"]

    r = client.post(URL, json={"supply_id": "missing", "quantity_requested": 1}, headers=acme["headers"])
    assert r.status_code == 404
    r = client.post(URL, json={"supply_id": supply["id"], "quantity_requested": 0}, headers=acme["headers"])
    assert r.status_code == 422


def test_full_workflow(client, acme):
    supply = _supply(client, acme)
    reorder = _reorder(client, acme, supply["id"])
    url = f"{URL}/{reorder['id']}"

    r = _set_status(client, acme, reorder["id"], "APPROVED")
    assert r.json()["data"]["status"] == "APPROVED"

    # Receipt statuses can't be set directly
    r = _set_status(client, acme, reorder["id"], "RECEIVED")
    assert r.status_code == 409
    detail = r.json()["detail"]
    assert detail["current_status"] == "APPROVED"
    assert detail["allowed_statuses"] == ["ORDERED", "CANCELED"]

    assert _set_status(client, acme, reorder["id"], "ORDERED").status_code == 200

    r = client.patch(f"{url}/receive", json={"quantity_received": 4}, headers=acme["headers"])
    assert r.json()["data"]["status"] == "PARTIAL"
    assert r.json()["data"]["is_closed"] is False
    assert _stock(client, acme, supply["id"]) == 14

    r = client.patch(f"{url}/receive", json={"quantity_received": 3}, headers=acme["headers"])
    assert r.status_code == 400

    r = client.patch(f"{url}/receive", json={"quantity_received": 10}, headers=acme["headers"])
    data = r.json()["data"]
    assert (data["status"], data["is_closed"], data["quantity_received"]) == ("RECEIVED", True, 10)
    assert _stock(client, acme, supply["id"]) == 20

    r = _set_status(client, acme, reorder["id"], "CANCELED")
    assert r.status_code == 409
    assert r.json()["detail"]["allowed_statuses"] == []

    assert client.delete(url, headers=acme["headers"]).status_code == 409


def test_same_status_is_noop(client, acme):
    supply = _supply(client, acme)
    reorder = _reorder(client, acme, supply["id"])

    r = _set_status(client, acme, reorder["id"], "PENDING")
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "PENDING"

    r = client.get(
        f"/api/tenants/{acme['tenant_id']}/event-logs",
        params={"event_type": "reorder_status_changed"},
        headers=acme["headers"],
    )
    assert r.json() == []


def test_cannot_receive_before_ordered(client, acme):
    supply = _supply(client, acme)
    reorder = _reorder(client, acme, supply["id"])
    r = client.patch(f"{URL}/{reorder['id']}/receive", json={"quantity_received": 1}, headers=acme["headers"])
    assert r.status_code == 409
    assert _stock(client, acme, supply["id"]) == 10


def test_finalize_short_needs_reason(client, acme):
    supply, reorder = _ordered(client, acme)
    url = f"{URL}/{reorder['id']}/receive"

    r = client.patch(url, json={"quantity_received": 6, "finalize": True}, headers=acme["headers"])
    assert r.status_code == 400
    assert _stock(client, acme, supply["id"]) == 10

    r = client.patch(url, json={"quantity_received": 6, "finalize": True, "discrepancy_reason": "Backordered"},
                     headers=acme["headers"])
    data = r.json()["data"]
    assert (data["status"], data["is_closed"], data["discrepancy_reason"]) == ("PARTIAL", True, "Backordered")
    assert _stock(client, acme, supply["id"]) == 16

    r = client.patch(url, json={"quantity_received": 8}, headers=acme["headers"])
    assert r.status_code == 409


def test_over_receipt_needs_reason(client, acme):
    supply, reorder = _ordered(client, acme)
    url = f"{URL}/{reorder['id']}/receive"

    assert client.patch(url, json={"quantity_received": 12}, headers=acme["headers"]).status_code == 400

    r = client.patch(url, json={"quantity_received": 12, "discrepancy_reason": "Bonus pack"}, headers=acme["headers"])
    assert r.json()["data"]["status"] == "RECEIVED"
    assert _stock(client, acme, supply["id"]) == 22


def test_receive_zero_keeps_status(client, acme):
    supply, reorder = _ordered(client, acme)
    r = client.patch(f"{URL}/{reorder['id']}/receive", json={"quantity_received": 0}, headers=acme["headers"])
    assert r.json()["data"]["status"] == "ORDERED"


def test_partial_can_be_canceled(client, acme):
    supply, reorder = _ordered(client, acme)
    client.patch(f"{URL}/{reorder['id']}/receive", json={"quantity_received": 2}, headers=acme["headers"])

    r = _set_status(client, acme, reorder["id"], "CANCELED")
    assert r.json()["data"]["status"] == "CANCELED"
    assert r.json()["data"]["is_closed"] is True

    # Stock already came in, so the request stays on record
    r = client.delete(f"{URL}/{reorder['id']}", headers=acme["headers"])
    assert r.status_code == 409
    assert client.get(f"{URL}/{reorder['id']}", headers=acme["headers"]).status_code == 200
    assert _stock(client, acme, supply["id"]) == 12


def test_canceled_before_receipt_can_be_deleted(client, acme):
    supply, reorder = _ordered(client, acme)
    _set_status(client, acme, reorder["id"], "CANCELED")

    r = client.delete(f"{URL}/{reorder['id']}", headers=acme["headers"])
    assert r.json()["message"] == "Reorder request deleted successfully"
    assert _stock(client, acme, supply["id"]) == 10


def test_delete_pending(client, acme):
    supply = _supply(client, acme)
    reorder = _reorder(client, acme, supply["id"])
    assert client.delete(f"{URL}/{reorder['id']}", headers=acme["headers"]).status_code == 200
    assert client.get(f"{URL}/{reorder['id']}", headers=acme["headers"]).status_code == 404


def test_list_filters(client, acme):
    supply = _supply(client, acme)
    first = _reorder(client, acme, supply["id"])
    _reorder(client, acme, supply["id"], 3)
    _set_status(client, acme, first["id"], "APPROVED")

    r = client.get(URL, params={"status": "APPROVED"}, headers=acme["headers"])
    assert [row["id"] for row in r.json()["data"]] == [first["id"]]
    assert len(client.get(URL, params={"supply_id": supply["id"]}, headers=acme["headers"]).json()["data"]) == 2
    assert client.get(URL, params={"status": "LOST"}, headers=acme["headers"]).status_code == 422


def test_status_changes_are_logged(client, acme):
    supply, reorder = _ordered(client, acme)
    client.patch(f"{URL}/{reorder['id']}/receive", json={"quantity_received": 10}, headers=acme["headers"])

    r = client.get(
        f"/api/tenants/{acme['tenant_id']}/event-logs",
        params={"entity_id": reorder["id"]},
        headers=acme["headers"],
    )
    events = {e["event_type"] for e in r.json()}
    assert events == {"reorder_created", "reorder_status_changed", "reorder_received"}

    received = [e for e in r.json() if e["event_type"] == "reorder_received"][0]
    assert received["details"]["stock_added"] == 10
    assert received["details"]["to"] == "RECEIVED"


def test_reorders_are_tenant_scoped(client, acme, globex):
    supply = _supply(client, acme)
    reorder = _reorder(client, acme, supply["id"])

    assert client.get(f"{URL}/{reorder['id']}", headers=globex["headers"]).status_code == 404
    r = client.post(URL, json={"supply_id": supply["id"], "quantity_requested": 1}, headers=globex["headers"])
    assert r.status_code == 404
