"""
Inventory Schemas

Supplies and reorder requests. These routes answer with a
{"success": true, "data": ...} envelope, modelled by the *Envelope classes.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from taskbrick.models.reorder import ReorderStatus


class SupplyBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: int = Field(0, ge=0)
    unit_of_measure: str = Field(..., min_length=1, max_length=50)
    threshold: int = Field(0, ge=0)
    vendor_name: Optional[str] = None
    vendor_contact: Optional[str] = None
    unit_cost: Optional[float] = Field(None, ge=0)
    expiration_date: Optional[datetime] = None
    location: Optional[str] = None
    auto_reorder: bool = False


class SupplyCreate(SupplyBase):
    pass


class SupplyUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: Optional[int] = Field(None, ge=0)
    unit_of_measure: Optional[str] = Field(None, min_length=1, max_length=50)
    threshold: Optional[int] = Field(None, ge=0)
    vendor_name: Optional[str] = None
    vendor_contact: Optional[str] = None
    unit_cost: Optional[float] = Field(None, ge=0)
    expiration_date: Optional[datetime] = None
    location: Optional[str] = None
    auto_reorder: Optional[bool] = None


class SupplyResponse(SupplyBase):
    id: str
    tenant_id: str
    total_cost: Optional[float] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UsageLogResponse(BaseModel):
    id: str
    supply_id: str
    date: datetime
    quantity_used: int
    reason: Optional[str] = None
    user_id: Optional[str] = None

    class Config:
        from_attributes = True


class SupplyWithUsage(SupplyResponse):
    usage_logs: list[UsageLogResponse] = []


class AddStockRequest(BaseModel):
    quantity: int = Field(..., gt=0)


class UsageRequest(BaseModel):
    quantity_used: int = Field(..., gt=0)
    reason: Optional[str] = Field(None, max_length=255)
    user_id: Optional[str] = None


class SupplyEnvelope(BaseModel):
    success: bool = True
    data: SupplyResponse


class SupplyListEnvelope(BaseModel):
    success: bool = True
    data: list[SupplyResponse]


class SupplyWithUsageEnvelope(BaseModel):
    success: bool = True
    data: list[SupplyWithUsage]


class UsagePage(BaseModel):
    success: bool = True
    page: int
    limit: int
    total_count: int
    total_pages: int
    data: list[SupplyWithUsage]


class UsageResult(BaseModel):
    success: bool = True
    data: SupplyResponse
    usage: UsageLogResponse
    reorder_request_id: Optional[str] = None


class ThresholdReport(BaseModel):
    success: bool = True
    messages: list[str]


class ReorderCreate(BaseModel):
    supply_id: str = Field(..., min_length=1)
    quantity_requested: int = Field(..., gt=0)


class ReorderStatusUpdate(BaseModel):
    status: ReorderStatus


class ReceiveRequest(BaseModel):
    quantity_received: int = Field(..., ge=0, description="Cumulative total received")
    discrepancy_reason: Optional[str] = None
    finalize: bool = False


class ReorderResponse(BaseModel):
    id: str
    tenant_id: str
    supply_id: str
    requested_date: datetime
    quantity_requested: int
    quantity_received: int
    discrepancy_reason: Optional[str] = None
    status: ReorderStatus
    is_closed: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReorderEnvelope(BaseModel):
    success: bool = True
    data: ReorderResponse


class ReorderListEnvelope(BaseModel):
    success: bool = True
    data: list[ReorderResponse]
