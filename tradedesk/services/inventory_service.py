# File: tradedesk/services/inventory_service.py

import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from tradedesk.core.config import settings
from tradedesk.core.events import EventBus
from tradedesk.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    ValidationException,
)
from tradedesk.db.models.enums import TransactionType
from tradedesk.db.models.inventory import InventoryItem
from tradedesk.repositories.inventory_repository import InventoryRepository
from tradedesk.services.base_service import BaseService
from tradedesk.services.stock_ledger_service import StockLedgerService

logger = logging.getLogger(__name__)

MANUAL_EDIT_NOTE = "Manual edit"


def normalize_name(name: Optional[str]) -> str:
    return (name or "").strip().lower()


class InventoryService(BaseService[InventoryItem]):
    """
    Service for the inventory catalogue.

    Handles item creation, edits and deletion. Balance changes requested
    through an edit are not written here: they are routed through the stock
    ledger as manual adjustments so they appear in the item's history.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[InventoryRepository] = None,
        ledger_service: Optional[StockLedgerService] = None,
        event_bus: Optional[EventBus] = None,
    ):
        super().__init__(session, repository=repository or InventoryRepository(session), event_bus=event_bus)
        self.ledger_service = ledger_service or StockLedgerService(
            session, inventory_repository=self.repository, event_bus=self.event_bus
        )

    # --- Core Inventory Management ---

    def create_item(self, data: Dict[str, Any], performed_by: Optional[str] = None) -> InventoryItem:
        """
        Create an inventory item.

        The starting quantity becomes the item's initial_quantity, the point
        the stock ledger replays from.

        Args:
            data: Item fields (item_name required)
            performed_by: Identity of the caller

        Returns:
            The created item

        Raises:
            ValidationException: If the name is blank or the quantity negative
        """
        name = (data.get("item_name") or "").strip()
        if not name:
            raise ValidationException("Item name is required", {"item_name": ["required"]})

        quantity = float(data.get("quantity") or 0)
        if quantity < 0:
            raise ValidationException("Quantity cannot be negative", {"quantity": ["must be >= 0"]})

        existing = self._guard_read("inventory read", self.repository.get_by_normalized_name, name)
        if existing:
            raise BusinessRuleException(
                f"An item named '{existing.item_name}' already exists",
                "DUPLICATE_ITEM",
                {"inventory_id": existing.id},
            )

        item_data = dict(data)
        item_data.update(
            {
                "item_name": name,
                "normalized_name": normalize_name(name),
                "quantity": quantity,
                "initial_quantity": quantity,
                "version": 1,
            }
        )
        if item_data.get("unit") is None:
            item_data["unit"] = settings.DEFAULT_UNIT
        if item_data.get("reorder_point") is None:
            item_data["reorder_point"] = settings.DEFAULT_REORDER_POINT

        with self.transaction():
            item = self.repository.create(item_data)

        self._log_operation("create", "InventoryItem", item.id, performed_by, {"quantity": quantity})
        return item

    def update_item(
        self, item_id: str, data: Dict[str, Any], performed_by: Optional[str] = None
    ) -> InventoryItem:
        """
        Update catalogue fields of an item.

        A changed ``quantity`` is applied as a manual adjustment through the
        stock ledger; ``initial_quantity`` and ``version`` cannot be edited.

        The whole request is validated before anything is written. The
        catalogue fields and the ledger adjustment are then committed as two
        units of work: if the adjustment fails (for example on a concurrent
        balance change) the catalogue fields stay saved and the error is
        raised.

        Raises:
            EntityNotFoundException: If the item does not exist
            ValidationException: If the name is blank or the quantity is not a
                non-negative number
            BusinessRuleException: If another item already has the new name
        """
        item = self._get_item(item_id)

        fields = {
            k: v
            for k, v in data.items()
            if k not in ("id", "quantity", "initial_quantity", "version", "normalized_name", "reference_note")
        }
        if "item_name" in fields:
            name = (fields["item_name"] or "").strip()
            if not name:
                raise ValidationException("Item name is required", {"item_name": ["required"]})
            existing = self._guard_read("inventory read", self.repository.get_by_normalized_name, name)
            if existing and existing.id != item_id:
                raise BusinessRuleException(
                    f"An item named '{existing.item_name}' already exists",
                    "DUPLICATE_ITEM",
                    {"inventory_id": existing.id},
                )
            fields["item_name"] = name
            fields["normalized_name"] = normalize_name(name)

        target_quantity = data.get("quantity")
        if target_quantity is not None:
            try:
                target_quantity = float(target_quantity)
            except (TypeError, ValueError):
                raise ValidationException("Quantity must be a number", {"quantity": ["must be a number"]})
            if not math.isfinite(target_quantity) or target_quantity < 0:
                raise ValidationException(
                    "Quantity must be a finite number >= 0", {"quantity": ["must be >= 0"]}
                )

        if fields:
            with self.transaction():
                self.repository.update(item_id, fields)
            self._log_operation("update", "InventoryItem", item_id, performed_by, {"fields": sorted(fields)})

        if target_quantity is not None:
            current = float(item.quantity or 0)
            delta = target_quantity - current
            if delta:
                self.ledger_service.adjust(
                    item_id,
                    delta,
                    TransactionType.MANUAL_ADJUSTMENT,
                    note=data.get("reference_note") or MANUAL_EDIT_NOTE,
                    performed_by=performed_by,
                )

        return self._get_item(item_id)

    def delete_item(self, item_id: str, performed_by: Optional[str] = None) -> bool:
        """
        Delete an item. Its stock transactions are kept as history.

        Raises:
            EntityNotFoundException: If the item does not exist
        """
        self._get_item(item_id)
        with self.transaction():
            self.repository.delete(item_id)
        self._log_operation("delete", "InventoryItem", item_id, performed_by)
        return True

    def get_item(self, item_id: str) -> InventoryItem:
        return self._get_item(item_id)

    def list_items(self, skip: int = 0, limit: int = 100, search: Optional[str] = None) -> List[InventoryItem]:
        return self._guard_read("list inventory", self.repository.list_ordered, skip=skip, limit=limit, search=search)

    def get_low_stock_items(self, skip: int = 0, limit: int = 100) -> List[InventoryItem]:
        """Items at or below their reorder point, lowest balance first."""
        return self._guard_read("list low stock", self.repository.list_low_stock, skip=skip, limit=limit)

    def _get_item(self, item_id: str) -> InventoryItem:
        item = self._guard_read("inventory read", self.repository.get_fresh, item_id)
        if item is None:
            raise EntityNotFoundException("InventoryItem", item_id)
        return item
