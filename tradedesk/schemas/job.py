# File: tradedesk/schemas/job.py
"""
Job schemas for the TradeDesk API.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from tradedesk.db.models.enums import JobStatus, PaymentStatus
from tradedesk.schemas.estimate import DeductionEntry


class JobResponse(BaseModel):
    id: str
    title: str
    client_profile_id: Optional[str] = None
    linked_estimate_id: Optional[str] = None
    material_list: List[dict]
    budget: float
    status: JobStatus
    payment_status: PaymentStatus
    scoping_notes: Optional[str] = None
    conversion_batch_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ChangeOrderCreate(BaseModel):
    """Material or work added to a job after conversion."""
    description: str = Field(..., min_length=1)
    quantity: float = Field(1, gt=0.0, allow_inf_nan=False)
    unit_cost: float = Field(0, ge=0.0, allow_inf_nan=False)
    supplier_name: Optional[str] = None


class RetryDeductionsResponse(BaseModel):
    job_id: str
    batch_id: str
    deductions: List[DeductionEntry]
