"""
Supply Endpoints

Inventory of consumables. The tenant comes from the X-Tenant-ID header or
the access token (no tenant segment in the path), and responses use the
{"success": true, "data": ...} envelope.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload
from typing import Literal, Optional
import math

from taskbrick.database import get_db
from taskbrick.models.user import User, TenantMembership
from taskbrick.models.supply import Supply
from taskbrick.models.tenant import Tenant
from taskbrick.schemas.inventory import (
    AddStockRequest,
    SupplyCreate,
    SupplyEnvelope,
    SupplyListEnvelope,
    SupplyUpdate,
    SupplyWithUsageEnvelope,
    ThresholdReport,
    UsagePage,
    UsageRequest,
    UsageResult,
)
from taskbrick.schemas.auth import MessageResponse
from taskbrick.api.deps import (
    blank_to_none,
    get_current_tenant,
    get_current_user,
    get_supply_or_404,
)
from taskbrick.core.exceptions import ConflictError
from taskbrick.services import inventory
from taskbrick.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/supplies", tags=["supplies"])

SORT_COLUMNS = {
    "name": Supply.name,
    "quantity": Supply.quantity,
    "threshold": Supply.threshold,
    "created_at": Supply.created_at,
}


def _name_taken(db: Session, tenant_id: str, name: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(Supply).filter(Supply.tenant_id == tenant_id, Supply.name == name)
    if exclude_id:
        query = query.filter(Supply.id != exclude_id)
    return query.first() is not None


def _commit_supply(db: Session, name: str):
    # The unique constraint still catches a concurrent insert of the same name
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(f"A supply named '{name}' already exists")


@router.get("", response_model=SupplyListEnvelope)
async def list_supplies(
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supplies = db.query(Supply).filter(Supply.tenant_id == tenant.id).order_by(Supply.name).all()
    return {"success": True, "data": supplies}


# NOTE: Static paths are declared before /{supply_id} so they aren't
# captured as ids.

@router.get("/usage-logs", response_model=UsagePage)
async def list_usage_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    sort_by: Literal["name", "quantity", "threshold", "created_at"] = Query("name", alias="sortBy"),
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """Supplies with their usage history, paginated and searchable by name."""
    query = db.query(Supply).filter(Supply.tenant_id == tenant.id)
    if search:
        query = query.filter(Supply.name.ilike(f"%{search}%"))

    total_count = query.count()
    supplies = query.options(selectinload(Supply.usage_logs)).order_by(
        SORT_COLUMNS[sort_by], Supply.id
    ).offset((page - 1) * limit).limit(limit).all()

    return {
        "success": True,
        "page": page,
        "limit": limit,
        "total_count": total_count,
        "total_pages": math.ceil(total_count / limit) if total_count else 0,
        "data": supplies,
    }


@router.get("/with-usage", response_model=SupplyWithUsageEnvelope)
async def list_supplies_with_usage(
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supplies = db.query(Supply).options(selectinload(Supply.usage_logs)).filter(
        Supply.tenant_id == tenant.id
    ).order_by(Supply.name).all()
    return {"success": True, "data": supplies}


@router.get("/check-thresholds", response_model=ThresholdReport)
async def check_thresholds(
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supplies = db.query(Supply).filter(Supply.tenant_id == tenant.id).order_by(Supply.name).all()
    return {"success": True, "messages": inventory.threshold_messages(supplies)}


@router.get("/location/{location}", response_model=SupplyListEnvelope)
async def list_supplies_by_location(
    location: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supplies = db.query(Supply).filter(
        Supply.tenant_id == tenant.id,
        func.lower(Supply.location) == location.lower()
    ).order_by(Supply.name).all()
    return {"success": True, "data": supplies}


@router.post("", response_model=SupplyEnvelope, status_code=status.HTTP_201_CREATED)
async def create_supply(
    body: SupplyCreate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    if _name_taken(db, tenant.id, body.name):
        raise ConflictError(f"A supply named '{body.name}' already exists")

    supply = Supply(tenant_id=tenant.id, **body.model_dump())
    supply.recalculate_total_cost()
    db.add(supply)
    _commit_supply(db, body.name)

    logger.info(f"Supply created: {supply.id} ({supply.name}) by {current_user.id}")
    return {"success": True, "data": supply}


@router.get("/{supply_id}", response_model=SupplyEnvelope)
async def get_supply(
    supply_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    return {"success": True, "data": get_supply_or_404(db, tenant.id, supply_id)}


@router.put("/{supply_id}", response_model=SupplyEnvelope)
async def update_supply(
    supply_id: str,
    body: SupplyUpdate,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supply = get_supply_or_404(db, tenant.id, supply_id)
    update_data = body.model_dump(exclude_unset=True)

    new_name = update_data.get("name")
    if new_name and new_name != supply.name and _name_taken(db, tenant.id, new_name, supply.id):
        raise ConflictError(f"A supply named '{new_name}' already exists")

    for field, value in update_data.items():
        if value is None and field in ("name", "quantity", "unit_of_measure", "threshold", "auto_reorder"):
            continue
        setattr(supply, field, value)
    supply.recalculate_total_cost()
    _commit_supply(db, supply.name)

    logger.info(f"Supply updated: {supply.id} by {current_user.id}")
    return {"success": True, "data": supply}


@router.delete("/{supply_id}", response_model=MessageResponse)
async def delete_supply(
    supply_id: str,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supply = get_supply_or_404(db, tenant.id, supply_id)
    db.delete(supply)
    db.commit()

    logger.info(f"Supply deleted: {supply_id} by {current_user.id}")
    return {"message": "Supply deleted successfully"}


@router.post("/{supply_id}/add-stock", response_model=SupplyEnvelope)
async def add_stock(
    supply_id: str,
    body: AddStockRequest,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    supply = get_supply_or_404(db, tenant.id, supply_id)
    supply.quantity += body.quantity
    supply.recalculate_total_cost()
    db.commit()

    logger.info(f"Stock added to supply {supply.id}: +{body.quantity} by {current_user.id}")
    return {"success": True, "data": supply}


@router.post("/{supply_id}/usage", response_model=UsageResult)
async def record_usage(
    supply_id: str,
    body: UsageRequest,
    current_user: User = Depends(get_current_user),
    tenant: Tenant = Depends(get_current_tenant),
    db: Session = Depends(get_db)
):
    """
    Withdraw stock. An auto-reorder supply that drops to its threshold gets
    a PENDING reorder request in the same transaction.
    """
    supply = get_supply_or_404(db, tenant.id, supply_id)

    # Usage may be recorded on behalf of another member; anyone else falls
    # back to the caller
    user_id = blank_to_none(body.user_id)
    if user_id and user_id != current_user.id:
        is_member = db.query(TenantMembership).filter(
            TenantMembership.user_id == user_id,
            TenantMembership.tenant_id == tenant.id
        ).first() is not None
        if not is_member:
            user_id = None
    user_id = user_id or current_user.id

    usage = inventory.record_usage(db, supply, body.quantity_used, body.reason, user_id)
    reorder = inventory.maybe_auto_reorder(db, supply, current_user.id)
    db.commit()

    return {
        "success": True,
        "data": supply,
        "usage": usage,
        "reorder_request_id": reorder.id if reorder else None,
    }
