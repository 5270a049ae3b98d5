# File: tradedesk/schemas/procurement.py
"""
Procurement summary schemas for the TradeDesk API.
"""

from typing import List, Optional

from pydantic import BaseModel


class ProcurementEstimateGroup(BaseModel):
    estimate_id: Optional[str] = None
    title: Optional[str] = None
    items: List[dict]
    subtotal: float


class SupplierGroup(BaseModel):
    """Line items of open estimates that are bought from one supplier."""
    supplier_id: str
    supplier_name: str
    store_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    items: List[dict]
    item_count: int
    total_cost: float
    estimates: List[ProcurementEstimateGroup]
