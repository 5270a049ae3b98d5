# File: tradedesk/schemas/estimate.py
"""
Estimate and conversion schemas for the TradeDesk API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tradedesk.db.models.enums import EstimateStatus


class EstimateLineItem(BaseModel):
    """
    One priced line of an estimate.

    Lines with an inventory_id consume stock when the estimate is converted.
    Unknown keys are kept so lines round-trip unchanged.
    """
    description: str = Field(..., description="What is being supplied.", examples=["Drywall sheet"])
    quantity: float = Field(1, ge=0.0, allow_inf_nan=False)
    unit_cost: float = Field(0, ge=0.0, allow_inf_nan=False)
    total: Optional[float] = Field(None, description="Recomputed as quantity * unit_cost.")
    inventory_id: Optional[str] = None
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = None
    material_id: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class EstimateBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    client_profile_id: Optional[str] = None
    tax_rate: float = Field(0, ge=0.0, description="Tax percentage applied to the subtotal.")
    notes: Optional[str] = None


class EstimateCreate(EstimateBase):
    status: EstimateStatus = EstimateStatus.DRAFT
    items: List[EstimateLineItem] = Field(default_factory=list)


class EstimateUpdate(BaseModel):
    """Partial update; totals are always recomputed."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    client_profile_id: Optional[str] = None
    tax_rate: Optional[float] = Field(None, ge=0.0)
    notes: Optional[str] = None
    status: Optional[EstimateStatus] = None
    items: Optional[List[EstimateLineItem]] = None


class EstimateResponse(EstimateBase):
    id: str
    status: EstimateStatus
    items: List[dict]
    total_amount: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AddKitRequest(BaseModel):
    kit_id: str


class AddScopingItemRequest(BaseModel):
    """Library material picked in the scoping wizard."""
    material_id: str
    supplier_id: Optional[str] = Field(None, description="Supplier whose price range is used.")


class ConvertEstimateRequest(BaseModel):
    estimate_id: str = Field(..., description="Estimate to convert into a job.")


class DeductionEntry(BaseModel):
    """
    Outcome of one stocked line. Successful lines carry deducted/remaining/
    isLowStock; failed lines carry error.
    """
    inventory_id: Optional[str] = None
    item: str
    deducted: Optional[float] = None
    remaining: Optional[float] = None
    isLowStock: Optional[bool] = None
    error: Optional[str] = None


class ConvertEstimateResponse(BaseModel):
    job_id: str
    message: str
    batch_id: str
    deductions: List[DeductionEntry]
