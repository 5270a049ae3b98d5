# File: tradedesk/db/models/inventory.py
"""
InventoryItem and StockTransaction models.

InventoryItem holds the running balance of a stock item; StockTransaction is
the append-only audit trail of every change to that balance. The two are
written together by the stock ledger service and nowhere else.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from tradedesk.db.models.base import AbstractBase, TimestampMixin
from tradedesk.db.models.enums import TransactionType, enum_values


class InventoryItem(AbstractBase, TimestampMixin):
    """
    Stock item with a running balance.

    Attributes:
        item_name: Display name
        normalized_name: Lower-cased, trimmed name used for lookups
        quantity: Current balance, never negative
        initial_quantity: Balance at creation; the ledger replays from here
        unit: Unit of measure
        reorder_point: Balance at or below which the item is low on stock
        supplier_id: Weak reference to the preferred supplier
        material_library_id: Weak reference to the material library entry
        barcode: Optional scanner code
        version: Optimistic concurrency stamp, bumped on every balance write
    """

    __tablename__ = "inventory_items"
    __table_args__ = (
        Index("idx_inventory_normalized_name", "normalized_name"),
        Index("idx_inventory_supplier", "supplier_id"),
    )

    item_name = Column(String(255), nullable=False)
    normalized_name = Column(String(255), nullable=False)
    quantity = Column(Float, nullable=False, default=0)
    initial_quantity = Column(Float, nullable=False, default=0)
    unit = Column(String(50), default="each")
    reorder_point = Column(Float, default=5)
    supplier_id = Column(String(36), nullable=True)
    material_library_id = Column(String(36), nullable=True)
    barcode = Column(String(100), nullable=True)
    version = Column(Integer, nullable=False, default=1)

    @property
    def is_low_stock(self) -> bool:
        return (self.quantity or 0) <= (self.reorder_point or 0)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["is_low_stock"] = self.is_low_stock
        return result

    def __repr__(self) -> str:
        return f"<InventoryItem(id={self.id}, item_name='{self.item_name}', quantity={self.quantity})>"


class StockTransaction(AbstractBase):
    """
    One audited change to an item's balance.

    quantity_change is the delta actually applied (after flooring at zero);
    requested_change is what the caller asked for. item_version is the
    item's version after this write and orders an item's history.
    (batch_id, inventory_id, batch_line) identifies a batch line so that a
    retried batch never writes the same line twice.
    """

    __tablename__ = "stock_transactions"
    __table_args__ = (
        UniqueConstraint(
            "batch_id", "inventory_id", "batch_line", name="uq_stock_tx_batch_line"
        ),
        Index("idx_stock_tx_inventory", "inventory_id"),
        Index("idx_stock_tx_batch", "batch_id"),
        Index("idx_stock_tx_reference", "reference_id"),
    )

    # Weak reference: the audit trail outlives a deleted item.
    inventory_id = Column(String(36), nullable=False)
    quantity_change = Column(Float, nullable=False)
    requested_change = Column(Float, nullable=False)
    balance_before = Column(Float, nullable=False)
    balance_after = Column(Float, nullable=False)
    item_version = Column(Integer, nullable=False)
    transaction_type = Column(
        Enum(TransactionType, values_callable=enum_values, native_enum=False),
        nullable=False,
    )
    reference_id = Column(String(36), nullable=True)
    reference_note = Column(Text, nullable=True)
    batch_id = Column(String(36), nullable=True)
    batch_line = Column(Integer, nullable=True)
    performed_by = Column(String(100), nullable=True)
    date = Column(DateTime, default=datetime.now, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<StockTransaction(id={self.id}, inventory_id={self.inventory_id}, "
            f"quantity_change={self.quantity_change}, type={self.transaction_type})>"
        )
