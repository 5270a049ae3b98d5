# File: tradedesk/db/models/__init__.py
"""
Database models for TradeDesk.

Importing this package registers every table on Base.metadata.
"""

from tradedesk.db.models.base import AbstractBase, Base, TimestampMixin
from tradedesk.db.models.enums import (
    EstimateStatus,
    JobStatus,
    PaymentStatus,
    TransactionType,
)
from tradedesk.db.models.estimate import Job, JobEstimate
from tradedesk.db.models.inventory import InventoryItem, StockTransaction
from tradedesk.db.models.material import MaterialKit, MaterialLibrary, MaterialPricing
from tradedesk.db.models.supplier import Supplier

__all__ = [
    "Base",
    "AbstractBase",
    "TimestampMixin",
    "EstimateStatus",
    "JobStatus",
    "PaymentStatus",
    "TransactionType",
    "InventoryItem",
    "StockTransaction",
    "JobEstimate",
    "Job",
    "MaterialLibrary",
    "MaterialPricing",
    "MaterialKit",
    "Supplier",
]
