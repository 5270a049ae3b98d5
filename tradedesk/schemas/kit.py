# File: tradedesk/schemas/kit.py
"""
Material kit schemas for the TradeDesk API.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class KitItem(BaseModel):
    material_id: str
    quantity: Optional[float] = None
    waste_factor_percentage: Optional[float] = Field(None, ge=0.0)
    default_markup_percentage: Optional[float] = Field(None, ge=0.0)


class MaterialKitResponse(BaseModel):
    id: str
    kit_name: str
    description: Optional[str] = None
    items: List[KitItem]

    model_config = ConfigDict(from_attributes=True)


class KitExpandRequest(BaseModel):
    kit_id: str


class KitLineItem(BaseModel):
    """Priced line produced from a kit entry."""
    description: str
    quantity: float
    unit_cost: float
    total: float
    material_id: Optional[str] = None
    supplier_id: Optional[str] = None
