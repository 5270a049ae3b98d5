# File: tradedesk/repositories/inventory_repository.py

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from tradedesk.db.models.inventory import InventoryItem
from tradedesk.repositories.base_repository import BaseRepository


class InventoryRepository(BaseRepository[InventoryItem]):
    """
    Repository for InventoryItem entity operations.

    Balance writes go through compare_and_swap_quantity() only; it is the
    single place where InventoryItem.quantity changes after creation.
    """

    model = InventoryItem

    def __init__(self, session: Session):
        super().__init__(session, InventoryItem)

    def get_fresh(self, item_id: str) -> Optional[InventoryItem]:
        """
        Load an item bypassing any state cached in the session.

        The ledger reads the balance and version it is about to swap, so a
        stale identity-map copy must never be returned.
        """
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def compare_and_swap_quantity(
        self, item_id: str, expected_version: int, new_quantity: float
    ) -> bool:
        """
        Write a new balance if the item is still at ``expected_version``.

        Args:
            item_id (str): Inventory item ID
            expected_version (int): Version read before computing the new balance
            new_quantity (float): Balance to store

        Returns:
            bool: True if the row was updated, False if another writer got there first
        """
        stmt = (
            update(InventoryItem)
            .where(
                InventoryItem.id == item_id,
                InventoryItem.version == expected_version,
            )
            .values(
                quantity=new_quantity,
                version=expected_version + 1,
                updated_at=datetime.now(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return result.rowcount == 1

    def get_by_normalized_name(self, name: str) -> Optional[InventoryItem]:
        normalized = (name or "").strip().lower()
        stmt = select(InventoryItem).where(InventoryItem.normalized_name == normalized)
        return self.session.execute(stmt).scalars().first()

    def list_low_stock(self, skip: int = 0, limit: int = 100) -> List[InventoryItem]:
        """
        Items whose balance is at or below their reorder point, lowest first.
        """
        stmt = (
            select(InventoryItem)
            .where(InventoryItem.quantity <= InventoryItem.reorder_point)
            .order_by(InventoryItem.quantity.asc(), InventoryItem.item_name.asc())
            .offset(skip)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_ordered(self, skip: int = 0, limit: int = 100, search: Optional[str] = None) -> List[InventoryItem]:
        stmt = select(InventoryItem)
        if search:
            stmt = stmt.where(InventoryItem.normalized_name.like(f"%{search.strip().lower()}%"))
        stmt = stmt.order_by(InventoryItem.item_name.asc()).offset(skip).limit(limit)
        return list(self.session.execute(stmt).scalars().all())
