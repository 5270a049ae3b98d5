# File: tradedesk/repositories/stock_transaction_repository.py

from typing import List, Optional, Tuple

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from tradedesk.db.models.enums import TransactionType
from tradedesk.db.models.inventory import StockTransaction
from tradedesk.repositories.base_repository import BaseRepository


class StockTransactionRepository(BaseRepository[StockTransaction]):
    """
    Repository for StockTransaction entity operations.

    Stock transactions are append-only: this repository exposes creation and
    queries, and the service layer never calls update() or delete() on it.
    """

    model = StockTransaction

    def __init__(self, session: Session):
        super().__init__(session, StockTransaction)

    def find_batch_line(
        self, batch_id: str, inventory_id: str, batch_line: int
    ) -> Optional[StockTransaction]:
        """
        Find the transaction already recorded for a batch line, if any.

        Args:
            batch_id (str): Batch the line belongs to
            inventory_id (str): Inventory item the line adjusted
            batch_line (int): Position of the line inside the batch

        Returns:
            Optional[StockTransaction]: The recorded transaction, or None
        """
        stmt = select(StockTransaction).where(
            StockTransaction.batch_id == batch_id,
            StockTransaction.inventory_id == inventory_id,
            StockTransaction.batch_line == batch_line,
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def get_history(self, inventory_id: str, limit: int = 50) -> List[StockTransaction]:
        """
        Get the most recent transactions for an item, newest first.

        Args:
            inventory_id (str): Inventory item ID
            limit (int): Maximum number of records to return

        Returns:
            List[StockTransaction]: Transactions ordered newest first
        """
        stmt = (
            select(StockTransaction)
            .where(StockTransaction.inventory_id == inventory_id)
            .order_by(desc(StockTransaction.item_version), desc(StockTransaction.date))
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_batch(self, batch_id: str) -> List[StockTransaction]:
        """All transactions of a batch in write order."""
        stmt = (
            select(StockTransaction)
            .where(StockTransaction.batch_id == batch_id)
            .order_by(StockTransaction.batch_line, StockTransaction.date)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_reversal_of(self, batch_id: str) -> Optional[StockTransaction]:
        """Return any compensating transaction that references ``batch_id``."""
        stmt = (
            select(StockTransaction)
            .where(
                StockTransaction.reference_id == batch_id,
                StockTransaction.transaction_type == TransactionType.RETURN,
            )
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def sum_changes(self, inventory_id: str) -> Tuple[float, int]:
        """
        Sum the effective deltas recorded for an item.

        Returns:
            Tuple[float, int]: (sum of quantity_change, number of transactions)
        """
        stmt = select(
            func.coalesce(func.sum(StockTransaction.quantity_change), 0.0),
            func.count(StockTransaction.id),
        ).where(StockTransaction.inventory_id == inventory_id)
        total, count = self.session.execute(stmt).one()
        return float(total or 0.0), int(count or 0)
