"""
Inventory Workflow

Stock movements and the reorder request state machine.

Status changes made through PATCH /reorders/{id}:

    PENDING  -> APPROVED | CANCELED
    APPROVED -> ORDERED  | CANCELED
    ORDERED  -> CANCELED
    PARTIAL  -> CANCELED

PARTIAL and RECEIVED are reached only by recording a receipt. RECEIVED and
CANCELED close the request; a finalized PARTIAL is closed as well.

Functions here mutate ORM objects but never commit; endpoints commit once
per request so stock and request stay consistent.
"""
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from taskbrick.core.exceptions import ConflictError, InvalidInputError, InvalidTransitionError
from taskbrick.models.reorder import ReorderRequest, ReorderStatus
from taskbrick.models.supply import Supply, UsageLog
from taskbrick.services.events import record_event
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)


ALLOWED_TRANSITIONS: Dict[ReorderStatus, List[ReorderStatus]] = {
    ReorderStatus.PENDING: [ReorderStatus.APPROVED, ReorderStatus.CANCELED],
    ReorderStatus.APPROVED: [ReorderStatus.ORDERED, ReorderStatus.CANCELED],
    ReorderStatus.ORDERED: [ReorderStatus.CANCELED],
    ReorderStatus.PARTIAL: [ReorderStatus.CANCELED],
    ReorderStatus.RECEIVED: [],
    ReorderStatus.CANCELED: [],
}

CLOSING_STATUSES = (ReorderStatus.RECEIVED, ReorderStatus.CANCELED)
RECEIVABLE_STATUSES = (ReorderStatus.ORDERED, ReorderStatus.PARTIAL)
OPEN_STATUSES = (
    ReorderStatus.PENDING,
    ReorderStatus.APPROVED,
    ReorderStatus.ORDERED,
    ReorderStatus.PARTIAL,
)
DELETABLE_STATUSES = (ReorderStatus.PENDING, ReorderStatus.CANCELED)


def allowed_targets(reorder: ReorderRequest) -> List[str]:
    """Statuses the request may be moved to with a plain status change."""
    if reorder.is_closed:
        return []
    return [s.value for s in ALLOWED_TRANSITIONS[ReorderStatus(reorder.status)]]


def change_status(reorder: ReorderRequest, new_status: ReorderStatus) -> bool:
    """
    Move a reorder request to new_status.

    Returns False when the request already has that status (no-op).
    Raises InvalidTransitionError for anything the table doesn't allow.
    """
    current = ReorderStatus(reorder.status)
    if new_status == current:
        return False

    allowed = allowed_targets(reorder)
    if new_status.value not in allowed:
        raise InvalidTransitionError(current.value, new_status.value, allowed)

    reorder.status = new_status.value
    if new_status in CLOSING_STATUSES:
        reorder.is_closed = True
    return True


def receive_items(
    reorder: ReorderRequest,
    supply: Supply,
    quantity_received: int,
    discrepancy_reason: Optional[str] = None,
    finalize: bool = False,
) -> int:
    """
    Record a (partial) receipt for an ordered request.

    quantity_received is the cumulative total received so far, not the size
    of this shipment. The difference to the previous total is added to the
    supply's stock and returned.
    """
    current = ReorderStatus(reorder.status)
    if current not in RECEIVABLE_STATUSES or reorder.is_closed:
        raise ConflictError({
            "message": f"Cannot receive items for a request in status {current.value}"
                       + (" (closed)" if reorder.is_closed else ""),
            "current_status": current.value,
        })

    previous = reorder.quantity_received or 0
    if quantity_received < previous:
        raise InvalidInputError(
            f"quantity_received is cumulative and cannot decrease (already received {previous})"
        )

    requested = reorder.quantity_requested
    reason = (discrepancy_reason or "").strip() or None

    if quantity_received > requested and not reason:
        raise InvalidInputError("A discrepancy_reason is required when receiving more than requested")
    if finalize and quantity_received < requested and not reason:
        raise InvalidInputError("A discrepancy_reason is required to close a request short of the requested quantity")

    delta = quantity_received - previous
    supply.quantity = (supply.quantity or 0) + delta
    supply.recalculate_total_cost()

    reorder.quantity_received = quantity_received
    if reason:
        reorder.discrepancy_reason = reason

    if quantity_received >= requested:
        reorder.status = ReorderStatus.RECEIVED.value
        reorder.is_closed = True
    elif quantity_received > 0 or finalize:
        reorder.status = ReorderStatus.PARTIAL.value
        reorder.is_closed = finalize

    logger.info(
        f"Reorder {reorder.id}: received {quantity_received}/{requested} "
        f"(+{delta} stock), status={reorder.status}, closed={reorder.is_closed}"
    )
    return delta


def auto_reorder_quantity(supply: Supply) -> int:
    """Quantity to order so stock lands at twice the threshold."""
    return max(supply.threshold * 2 - supply.quantity, 1)


def has_open_reorder(db: Session, supply: Supply) -> bool:
    return db.query(ReorderRequest).filter(
        ReorderRequest.supply_id == supply.id,
        ReorderRequest.is_closed == False,  # noqa: E712
        ReorderRequest.status.in_([s.value for s in OPEN_STATUSES]),
    ).first() is not None


def maybe_auto_reorder(db: Session, supply: Supply, user_id: Optional[str] = None) -> Optional[ReorderRequest]:
    """
    Create a PENDING reorder request for an auto_reorder supply at or below
    its threshold, unless one is already open.
    """
    if not supply.auto_reorder or not supply.is_below_threshold:
        return None
    if has_open_reorder(db, supply):
        return None

    reorder = ReorderRequest(
        tenant_id=supply.tenant_id,
        supply_id=supply.id,
        quantity_requested=auto_reorder_quantity(supply),
        status=ReorderStatus.PENDING.value,
        created_by=user_id,
    )
    db.add(reorder)
    db.flush()
    record_event(
        db, supply.tenant_id, "reorder_auto_created", reorder.id, user_id,
        {"supply_id": supply.id, "quantity_requested": reorder.quantity_requested},
    )
    logger.info(f"Auto reorder created for supply {supply.id}: {reorder.quantity_requested} {supply.unit_of_measure}")
    return reorder


def record_usage(
    db: Session,
    supply: Supply,
    quantity_used: int,
    reason: Optional[str] = None,
    user_id: Optional[str] = None,
) -> UsageLog:
    """Withdraw stock and log it. Raises InvalidInputError on insufficient stock."""
    if quantity_used > supply.quantity:
        raise InvalidInputError(
            f"Insufficient stock: requested {quantity_used}, available {supply.quantity}"
        )

    supply.quantity -= quantity_used
    supply.recalculate_total_cost()
    usage = UsageLog(supply_id=supply.id, quantity_used=quantity_used, reason=reason, user_id=user_id)
    db.add(usage)
    return usage


def threshold_messages(supplies: List[Supply]) -> List[str]:
    return [
        f"Supply '{s.name}' is at or below its threshold "
        f"({s.quantity} {s.unit_of_measure} left, threshold {s.threshold})"
        for s in supplies
        if s.is_below_threshold
    ]
