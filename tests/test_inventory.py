"""Unit tests for the inventory workflow helpers (no database)."""
import pytest

from taskbrick.core.exceptions import ConflictError, InvalidInputError, InvalidTransitionError
from taskbrick.models.reorder import ReorderRequest, ReorderStatus
from taskbrick.models.supply import Supply
from taskbrick.services import inventory
from taskbrick.utils.sanitize import strip_tags


def _supply(quantity=10, threshold=5, unit_cost=None):
    return Supply(
        name="Gloves", quantity=quantity, threshold=threshold,
        unit_of_measure="box", unit_cost=unit_cost, auto_reorder=True,
    )


def _reorder(status="ORDERED", requested=10, received=0, closed=False):
    return ReorderRequest(
        status=status, quantity_requested=requested, quantity_received=received, is_closed=closed,
    )


def test_allowed_targets():
    assert inventory.allowed_targets(_reorder("PENDING")) == ["APPROVED", "CANCELED"]
    assert inventory.allowed_targets(_reorder("ORDERED")) == ["CANCELED"]
    assert inventory.allowed_targets(_reorder("PARTIAL", closed=True)) == []
    assert inventory.allowed_targets(_reorder("RECEIVED", closed=True)) == []


def test_change_status():
    reorder = _reorder("PENDING")
    assert inventory.change_status(reorder, ReorderStatus.PENDING) is False
    assert inventory.change_status(reorder, ReorderStatus.APPROVED) is True
    assert reorder.status == "APPROVED"
    assert reorder.is_closed is False

    with pytest.raises(InvalidTransitionError) as exc:
        inventory.change_status(reorder, ReorderStatus.PARTIAL)
    assert exc.value.status_code == 409
    assert exc.value.detail["allowed_statuses"] == ["ORDERED", "CANCELED"]

    assert inventory.change_status(reorder, ReorderStatus.CANCELED) is True
    assert reorder.is_closed is True


def test_receive_is_cumulative():
    supply = _supply(unit_cost=2.0)
    reorder = _reorder()

    assert inventory.receive_items(reorder, supply, 4) == 4
    assert (reorder.status, supply.quantity, supply.total_cost) == ("PARTIAL", 14, 28.0)

    assert inventory.receive_items(reorder, supply, 4) == 0
    assert supply.quantity == 14

    assert inventory.receive_items(reorder, supply, 10) == 6
    assert (reorder.status, reorder.is_closed, supply.quantity) == ("RECEIVED", True, 20)


def test_receive_rejects_decrease_and_missing_reasons():
    supply = _supply()
    reorder = _reorder(received=5, status="PARTIAL")

    with pytest.raises(InvalidInputError):
        inventory.receive_items(reorder, supply, 4)
    with pytest.raises(InvalidInputError):
        inventory.receive_items(reorder, supply, 11)
    with pytest.raises(InvalidInputError):
        inventory.receive_items(reorder, supply, 7, discrepancy_reason="  ", finalize=True)
    assert supply.quantity == 10

    inventory.receive_items(reorder, supply, 7, discrepancy_reason="Short shipped", finalize=True)
    assert (reorder.status, reorder.is_closed, supply.quantity) == ("PARTIAL", True, 12)


def test_receive_needs_ordered_request():
    for status, closed in (("PENDING", False), ("APPROVED", False), ("PARTIAL", True)):
        with pytest.raises(ConflictError):
            inventory.receive_items(_reorder(status, closed=closed), _supply(), 1)


def test_auto_reorder_quantity():
    assert inventory.auto_reorder_quantity(_supply(quantity=3, threshold=5)) == 7
    assert inventory.auto_reorder_quantity(_supply(quantity=0, threshold=0)) == 1


def test_threshold_messages():
    supplies = [_supply(quantity=5, threshold=5), _supply(quantity=6, threshold=5)]
    messages = inventory.threshold_messages(supplies)
    assert messages == ["Supply 'Gloves' is at or below its threshold (5 box left, threshold 5)"]


@pytest.mark.parametrize("raw, expected", [
    ("<b>Bold</b> move", "Bold move"),
    ("Hi<script>alert('x')</script>", "Hi"),
    ("&lt;i&gt;encoded&lt;/i&gt;", "encoded"),
    ("plain", "plain"),
    ("", ""),
])
def test_strip_tags(raw, expected):
    assert strip_tags(raw) == expected
