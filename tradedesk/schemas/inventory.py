# File: tradedesk/schemas/inventory.py
"""
Inventory schemas for the TradeDesk API.

Contains Pydantic models for inventory items, stock adjustments, the stock
transaction history, ledger reconciliation and batch reversal.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tradedesk.db.models.enums import TransactionType


# --- Inventory Items ---

class InventoryItemBase(BaseModel):
    """Catalogue fields shared by create and read."""
    item_name: str = Field(..., description="Display name of the item.", min_length=1, max_length=255, examples=["2x4 Stud 8ft"])
    unit: Optional[str] = Field(None, description="Unit of measure.", examples=["each"])
    reorder_point: Optional[float] = Field(None, description="Balance at or below which the item is low on stock.", ge=0.0, examples=[5])
    supplier_id: Optional[str] = Field(None, description="Preferred supplier.")
    material_library_id: Optional[str] = Field(None, description="Material library entry for this item.")
    barcode: Optional[str] = Field(None, description="Scanner code.", max_length=100)

    @field_validator("item_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Item name cannot be blank")
        return v


class InventoryItemCreate(InventoryItemBase):
    """Schema for creating an inventory item. The quantity becomes its initial balance."""
    quantity: float = Field(0.0, description="Starting balance.", ge=0.0, allow_inf_nan=False, examples=[10])


class InventoryItemUpdate(BaseModel):
    """
    Schema for updating an inventory item.

    All fields are optional. A new quantity is recorded as a manual
    adjustment in the stock ledger.
    """
    item_name: Optional[str] = Field(None, min_length=1, max_length=255)
    unit: Optional[str] = None
    reorder_point: Optional[float] = Field(None, ge=0.0)
    supplier_id: Optional[str] = None
    material_library_id: Optional[str] = None
    barcode: Optional[str] = Field(None, max_length=100)
    quantity: Optional[float] = Field(None, description="New balance, applied through the stock ledger.", ge=0.0, allow_inf_nan=False)
    reference_note: Optional[str] = Field(None, description="Note stored with the quantity change.")


class InventoryItemResponse(InventoryItemBase):
    """Schema for inventory item responses."""
    id: str
    normalized_name: str
    quantity: float
    initial_quantity: float
    version: int
    is_low_stock: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# --- Stock Adjustments ---

class StockAdjustmentRequest(BaseModel):
    """Manual stock adjustment request."""
    inventory_id: str = Field(..., description="Item to adjust.")
    quantity_change: float = Field(..., description="Signed change (+ to add stock, - to remove).", allow_inf_nan=False, examples=[-2])
    transaction_type: TransactionType = Field(TransactionType.MANUAL_ADJUSTMENT, description="Reason for the change.")
    reference_note: Optional[str] = Field(None, description="Free-text note stored on the transaction.")


class StockAdjustmentResponse(BaseModel):
    """Result of a stock adjustment."""
    inventory_id: str
    item_name: str
    new_quantity: float
    is_low_stock: bool
    transaction_id: str
    requested_change: float
    quantity_change: float


class StockTransactionResponse(BaseModel):
    """One entry of an item's stock history."""
    id: str
    inventory_id: str
    quantity_change: float
    requested_change: float
    balance_before: float
    balance_after: float
    transaction_type: TransactionType
    reference_id: Optional[str] = None
    reference_note: Optional[str] = None
    batch_id: Optional[str] = None
    batch_line: Optional[int] = None
    performed_by: Optional[str] = None
    date: datetime

    model_config = ConfigDict(from_attributes=True)


class LedgerReconciliationResponse(BaseModel):
    """Stored balance compared with the replay of the item's transactions."""
    inventory_id: str
    recorded_quantity: float
    replayed_quantity: float
    transaction_count: int
    consistent: bool


# --- Batches ---

class BatchReversalRequest(BaseModel):
    reference_note: Optional[str] = Field(None, description="Note stored on the compensating transactions.")


class BatchReversalEntry(BaseModel):
    inventory_id: str
    item: str
    restored: Optional[float] = None
    remaining: Optional[float] = None
    isLowStock: Optional[bool] = None
    error: Optional[str] = None


class BatchReversalResponse(BaseModel):
    batch_id: str
    reversal_batch_id: str
    entries: List[BatchReversalEntry]


class ReorderRequestResponse(BaseModel):
    """Order message for an item's supplier."""
    inventory_id: str
    supplier_id: str
    channel: str = Field(..., description="'email' or 'sms'.")
    recipient: str
    subject: str
    body: str
    uri: str
