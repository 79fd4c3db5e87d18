"""
Reorder Request Endpoints

Restock requests for supplies. Status changes go through the workflow in
taskbrick.services.inventory; every change is written to the event log.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional

from taskbrick.database import get_db
from taskbrick.models.user import User
from taskbrick.models.reorder import ReorderRequest, ReorderStatus
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.inventory import (
    ReceiveRequest,
    ReorderCreate,
    ReorderEnvelope,
    ReorderListEnvelope,
    ReorderStatusUpdate,
)
from taskbrick.schemas.auth import MessageResponse
from taskbrick.api.deps import get_current_tenant, get_current_user, get_or_404, get_supply_or_404
from taskbrick.core.exceptions import ConflictError, ReorderRequestNotFoundError
from taskbrick.services import inventory
from taskbrick.services.events import record_event
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/reorders", tags=["reorders"])


def _get_reorder(db: Session, tenant_id: str, reorder_id: str) -> ReorderRequest:
    return get_or_404(db, ReorderRequest, reorder_id, tenant_id, ReorderRequestNotFoundError)


@router.get("", response_model=ReorderListEnvelope)
async def list_reorders(
    status_filter: Optional[ReorderStatus] = Query(None, alias="status"),
    supply_id: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    query = db.query(ReorderRequest).filter(ReorderRequest.tenant_id == tenant.id)
    if status_filter:
        query = query.filter(ReorderRequest.status == status_filter.value)
    if supply_id:
        query = query.filter(ReorderRequest.supply_id == supply_id)
    return {"success": True, "data": query.order_by(ReorderRequest.requested_date.desc()).all()}


@router.get("/{reorder_id}", response_model=ReorderEnvelope)
async def get_reorder(
    reorder_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return {"success": True, "data": _get_reorder(db, tenant.id, reorder_id)}


@router.post("", response_model=ReorderEnvelope, status_code=status.HTTP_201_CREATED)
async def create_reorder(
    body: ReorderCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supply = get_supply_or_404(db, tenant.id, body.supply_id)

    reorder = ReorderRequest(
        tenant_id=tenant.id,
        supply_id=supply.id,
        quantity_requested=body.quantity_requested,
        status=ReorderStatus.PENDING.value,
        created_by=current_user.id,
    )
    db.add(reorder)
    db.flush()
    record_event(
        db, tenant.id, "reorder_created", reorder.id, current_user.id,
        {"supply_id": supply.id, "quantity_requested": reorder.quantity_requested},
    )
    db.commit()

    logger.info(f"Reorder request created: {reorder.id} for supply {supply.id} by {current_user.id}")
    return {"success": True, "data": reorder}


@router.patch("/{reorder_id}", response_model=ReorderEnvelope)
async def update_reorder_status(
    reorder_id: str,
    body: ReorderStatusUpdate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Move a request along the workflow.

    Setting the current status again is accepted and changes nothing.
    Disallowed transitions return 409 with the allowed targets.
    """
    reorder = _get_reorder(db, tenant.id, reorder_id)
    previous = reorder.status

    if inventory.change_status(reorder, body.status):
        record_event(
            db, tenant.id, "reorder_status_changed", reorder.id, current_user.id,
            {"from": previous, "to": reorder.status},
        )
        db.commit()
        logger.info(f"Reorder {reorder.id}: {previous} -> {reorder.status} by {current_user.id}")

    return {"success": True, "data": reorder}


@router.patch("/{reorder_id}/receive", response_model=ReorderEnvelope)
async def receive_reorder(
    reorder_id: str,
    body: ReceiveRequest,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Record the cumulative quantity received so far.

    The stock increase and the status change are committed together.
    """
    reorder = _get_reorder(db, tenant.id, reorder_id)
    supply = get_supply_or_404(db, tenant.id, reorder.supply_id)
    previous = reorder.status

    delta = inventory.receive_items(
        reorder,
        supply,
        body.quantity_received,
        discrepancy_reason=body.discrepancy_reason,
        finalize=body.finalize,
    )

    record_event(
        db, tenant.id, "reorder_received", reorder.id, current_user.id,
        {
            "from": previous,
            "to": reorder.status,
            "quantity_received": reorder.quantity_received,
            "stock_added": delta,
            "closed": reorder.is_closed,
        },
    )
    db.commit()
    return {"success": True, "data": reorder}


@router.delete("/{reorder_id}", response_model=MessageResponse)
async def delete_reorder(
    reorder_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    reorder = _get_reorder(db, tenant.id, reorder_id)

    if ReorderStatus(reorder.status) not in inventory.DELETABLE_STATUSES:
        raise ConflictError({
            "message": f"Only PENDING or CANCELED requests can be deleted (status is {reorder.status})",
            "current_status": reorder.status,
        })
    if reorder.quantity_received:
        # A canceled PARTIAL request is the only record of the stock it brought in
        raise ConflictError({
            "message": f"Request has already received {reorder.quantity_received} items and cannot be deleted",
            "current_status": reorder.status,
        })

    db.delete(reorder)
    db.commit()

    logger.info(f"Reorder request deleted: {reorder_id} by {current_user.id}")
    return {"message": "Reorder request deleted successfully"}
