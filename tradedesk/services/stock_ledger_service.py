# File: tradedesk/services/stock_ledger_service.py
"""
Stock ledger for TradeDesk.

The ledger is the only writer of InventoryItem.quantity. Every change is a
pair: the new balance and a StockTransaction describing it, written in one
unit of work so the audit trail always replays to the stored balance.

Balances are written with a compare-and-swap on InventoryItem.version; a
writer that loses the race re-reads the item and tries again. Batch lines
carry an idempotency key (batch_id, inventory_id, batch_line) so retrying a
batch never deducts the same line twice.
"""

import logging
import math
import uuid
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tradedesk.core.config import settings
from tradedesk.core.events import BatchReversed, EventBus, LowStockAlert, StockAdjusted
from tradedesk.core.exceptions import (
    BusinessRuleException,
    ConcurrentModificationException,
    EntityNotFoundException,
    LedgerException,
    LedgerInconsistencyException,
    TradeDeskException,
    ValidationException,
)
from tradedesk.db.models.enums import TransactionType
from tradedesk.db.models.inventory import InventoryItem, StockTransaction
from tradedesk.repositories.inventory_repository import InventoryRepository
from tradedesk.repositories.stock_transaction_repository import (
    StockTransactionRepository,
)
from tradedesk.services.base_service import BaseService

logger = logging.getLogger(__name__)

# Tolerance used when comparing a replayed balance with the stored one.
BALANCE_TOLERANCE = 1e-6

INVENTORY_UPDATE_FAILED = "Failed to update inventory"


@dataclass
class AdjustmentResult:
    """Outcome of one ledger adjustment."""

    inventory_id: str
    item_name: str
    new_quantity: float
    is_low_stock: bool
    transaction_id: str
    requested_change: float
    quantity_change: float
    replayed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class _DuplicateBatchLine(LedgerException):
    """A concurrent writer recorded the same batch line first."""

    def __init__(self):
        super().__init__("Batch line already recorded", f"{self.CODE_PREFIX}002")


class StockLedgerService(BaseService[StockTransaction]):
    """
    Service that owns the pairing of inventory balances and their audit trail.
    """

    def __init__(
        self,
        session: Session,
        inventory_repository: Optional[InventoryRepository] = None,
        transaction_repository: Optional[StockTransactionRepository] = None,
        event_bus: Optional[EventBus] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize the stock ledger.

        Args:
            session: Database session
            inventory_repository: Inventory repository (created if not provided)
            transaction_repository: Stock transaction repository (created if not provided)
            event_bus: Event bus for StockAdjusted / LowStockAlert / BatchReversed
            max_retries: Attempts for a contended balance write (defaults to settings)
        """
        self.transaction_repository = transaction_repository or StockTransactionRepository(session)
        super().__init__(session, repository=self.transaction_repository, event_bus=event_bus)
        self.inventory_repository = inventory_repository or InventoryRepository(session)
        self.max_retries = max(1, max_retries or settings.LEDGER_MAX_RETRIES)

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def adjust(
        self,
        item_id: str,
        delta: float,
        transaction_type: Union[TransactionType, str],
        note: Optional[str] = None,
        batch_id: Optional[str] = None,
        batch_line: Optional[int] = None,
        reference_id: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> AdjustmentResult:
        """
        Apply a signed delta to an item's balance and record it.

        The balance is floored at zero; the transaction records both the
        requested delta and the delta actually applied.

        Args:
            item_id: Inventory item ID
            delta: Signed quantity change
            transaction_type: Reason for the change
            note: Free-text note stored on the transaction
            batch_id: Batch the change belongs to
            batch_line: Position of the originating line inside the batch
            reference_id: Related entity (job, original batch, ...)
            performed_by: Identity of the caller

        Returns:
            AdjustmentResult describing the new balance

        Raises:
            ValidationException: If delta is not a finite number or the type is unknown
            EntityNotFoundException: If the item does not exist
            ConcurrentModificationException: If the balance kept changing underneath
            LedgerInconsistencyException: If the audit record could not be written
            UpstreamUnavailableException: If the entity store is unreachable
        """
        delta = self._validate_delta(delta)
        tx_type = self._coerce_transaction_type(transaction_type)
        keyed = batch_id is not None and batch_line is not None

        if keyed:
            recorded = self._guard_read(
                "adjust",
                self.transaction_repository.find_batch_line,
                batch_id,
                item_id,
                batch_line,
            )
            if recorded:
                logger.info(
                    f"Batch {batch_id} line {batch_line} for item {item_id} already recorded; "
                    f"returning transaction {recorded.id}"
                )
                return self._result_from_transaction(recorded)

        try:
            item, transaction = self._write_with_retry(
                item_id, delta, tx_type, note, batch_id, batch_line, reference_id, performed_by
            )
        except _DuplicateBatchLine:
            recorded = self._guard_read(
                "adjust", self.transaction_repository.find_batch_line, batch_id, item_id, batch_line
            )
            if recorded is None:
                raise LedgerInconsistencyException(
                    item_id,
                    "Batch line conflict without a recorded transaction",
                    {"batch_id": batch_id, "batch_line": batch_line},
                )
            return self._result_from_transaction(recorded)

        result = AdjustmentResult(
            inventory_id=item_id,
            item_name=item.item_name,
            new_quantity=transaction.balance_after,
            is_low_stock=transaction.balance_after <= (item.reorder_point or 0),
            transaction_id=transaction.id,
            requested_change=delta,
            quantity_change=transaction.quantity_change,
        )

        self._log_operation(
            tx_type.value,
            "InventoryItem",
            item_id,
            performed_by,
            {
                "requested_change": delta,
                "quantity_change": result.quantity_change,
                "new_quantity": result.new_quantity,
                "batch_id": batch_id,
            },
        )
        self._publish(
            StockAdjusted(
                inventory_id=item_id,
                transaction_id=result.transaction_id,
                transaction_type=tx_type.value,
                previous_quantity=transaction.balance_before,
                new_quantity=result.new_quantity,
                batch_id=batch_id,
                performed_by=performed_by,
            )
        )
        if result.is_low_stock:
            logger.warning(
                f"Low stock: {item.item_name} ({item_id}) at {result.new_quantity}, "
                f"reorder point {item.reorder_point}"
            )
            self._publish(
                LowStockAlert(
                    inventory_id=item_id,
                    item_name=item.item_name,
                    current_quantity=result.new_quantity,
                    reorder_point=item.reorder_point or 0,
                )
            )
        return result

    def deduct(
        self,
        item_id: str,
        quantity: float,
        job_id: Optional[str],
        note: Optional[str] = None,
        batch_id: Optional[str] = None,
        batch_line: Optional[int] = None,
        performed_by: Optional[str] = None,
    ) -> AdjustmentResult:
        """
        Consume stock for a job.

        Args:
            item_id: Inventory item ID
            quantity: Positive quantity to remove
            job_id: Job consuming the stock (stored as reference_id)
            note: Note stored on the transaction
            batch_id: Conversion batch
            batch_line: Position of the estimate line inside the batch
            performed_by: Identity of the caller

        Returns:
            AdjustmentResult describing the new balance
        """
        quantity = self._validate_delta(quantity)
        if quantity <= 0:
            raise ValidationException(
                "Deduction quantity must be greater than zero",
                {"quantity": ["must be greater than zero"]},
            )
        return self.adjust(
            item_id,
            -quantity,
            TransactionType.JOB_DEDUCTION,
            note=note,
            batch_id=batch_id,
            batch_line=batch_line,
            reference_id=job_id,
            performed_by=performed_by,
        )

    def _write_with_retry(
        self,
        item_id: str,
        delta: float,
        tx_type: TransactionType,
        note: Optional[str],
        batch_id: Optional[str],
        batch_line: Optional[int],
        reference_id: Optional[str],
        performed_by: Optional[str],
    ):
        """
        Swap the balance and insert its transaction, retrying lost races.

        Returns:
            Tuple of (item as read before the write, recorded transaction)
        """
        last_version = None
        for attempt in range(1, self.max_retries + 1):
            with self.transaction():
                item = self.inventory_repository.get_fresh(item_id)
                if item is None:
                    raise EntityNotFoundException("InventoryItem", item_id)

                current = float(item.quantity or 0)
                new_quantity = max(0.0, current + delta)
                applied = new_quantity - current
                last_version = item.version

                if not self.inventory_repository.compare_and_swap_quantity(
                    item_id, item.version, new_quantity
                ):
                    logger.warning(
                        f"Version conflict on item {item_id} (version {item.version}), "
                        f"attempt {attempt}/{self.max_retries}"
                    )
                    continue

                transaction = self._record_transaction(
                    item,
                    {
                        "inventory_id": item_id,
                        "quantity_change": applied,
                        "requested_change": delta,
                        "balance_before": current,
                        "balance_after": new_quantity,
                        "item_version": item.version + 1,
                        "transaction_type": tx_type,
                        "reference_id": reference_id,
                        "reference_note": note,
                        "batch_id": batch_id,
                        "batch_line": batch_line,
                        "performed_by": performed_by,
                    },
                )
            return item, transaction

        raise ConcurrentModificationException(
            f"Inventory item {item_id} was modified concurrently; giving up after "
            f"{self.max_retries} attempts",
            expected_version=last_version,
        )

    def _record_transaction(self, item: InventoryItem, data: Dict[str, Any]) -> StockTransaction:
        try:
            return self.transaction_repository.create(data)
        except IntegrityError as e:
            if data.get("batch_id") is not None and data.get("batch_line") is not None:
                raise _DuplicateBatchLine() from e
            raise self._inconsistency(item, data, e) from e
        except SQLAlchemyError as e:
            raise self._inconsistency(item, data, e) from e

    def _inconsistency(
        self, item: InventoryItem, data: Dict[str, Any], cause: Exception
    ) -> LedgerInconsistencyException:
        logger.error(
            f"Audit record for item {item.id} could not be written; balance write rolled back: {cause}",
            exc_info=True,
        )
        return LedgerInconsistencyException(
            item.id,
            "Balance change could not be recorded in the stock ledger",
            {"requested_change": data.get("requested_change"), "cause": str(cause)},
        )

    def _result_from_transaction(self, transaction: StockTransaction) -> AdjustmentResult:
        item = self._guard_read(
            "adjust", self.inventory_repository.get_fresh, transaction.inventory_id
        )
        reorder_point = (item.reorder_point or 0) if item else 0
        return AdjustmentResult(
            inventory_id=transaction.inventory_id,
            item_name=item.item_name if item else transaction.inventory_id,
            new_quantity=transaction.balance_after,
            is_low_stock=transaction.balance_after <= reorder_point,
            transaction_id=transaction.id,
            requested_change=transaction.requested_change,
            quantity_change=transaction.quantity_change,
            replayed=True,
        )

    @staticmethod
    def _validate_delta(value: Any) -> float:
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationException(
                "Quantity change must be a number",
                {"quantity_change": ["must be a number"]},
            )
        if not math.isfinite(number):
            raise ValidationException(
                "Quantity change must be a finite number",
                {"quantity_change": ["must be finite"]},
            )
        return number

    @staticmethod
    def _coerce_transaction_type(value: Union[TransactionType, str]) -> TransactionType:
        if isinstance(value, TransactionType):
            return value
        try:
            return TransactionType(value)
        except ValueError:
            raise ValidationException(
                f"Unknown transaction type: {value}",
                {"transaction_type": [f"must be one of {[t.value for t in TransactionType]}"]},
            )

    # ------------------------------------------------------------------
    # Audit trail
    # ------------------------------------------------------------------

    def replay(self, item_id: str) -> float:
        """
        Rebuild an item's balance from its audit trail.

        Returns:
            initial_quantity plus the sum of every recorded quantity_change
        """
        item = self._get_item(item_id)
        total, _ = self.transaction_repository.sum_changes(item_id)
        return float(item.initial_quantity or 0) + total

    def reconcile(self, item_id: str) -> Dict[str, Any]:
        """
        Compare an item's stored balance with the replay of its audit trail.

        Returns:
            Dictionary with recorded and replayed quantities and a consistency flag
        """
        item = self._get_item(item_id)
        total, count = self.transaction_repository.sum_changes(item_id)
        replayed = float(item.initial_quantity or 0) + total
        recorded = float(item.quantity or 0)
        consistent = math.isclose(recorded, replayed, abs_tol=BALANCE_TOLERANCE)
        if not consistent:
            logger.warning(
                f"Ledger mismatch for item {item_id}: recorded {recorded}, replayed {replayed}"
            )
        return {
            "inventory_id": item_id,
            "recorded_quantity": recorded,
            "replayed_quantity": replayed,
            "transaction_count": count,
            "consistent": consistent,
        }

    def verify(self, item_id: str) -> Dict[str, Any]:
        """
        Reconcile an item and raise if the ledger does not match the balance.

        Raises:
            LedgerInconsistencyException: If the balances differ
        """
        report = self.reconcile(item_id)
        if not report["consistent"]:
            raise LedgerInconsistencyException(
                item_id,
                "Stored balance does not match the stock ledger",
                {
                    "recorded_quantity": report["recorded_quantity"],
                    "replayed_quantity": report["replayed_quantity"],
                },
            )
        return report

    def get_history(self, item_id: str, limit: Optional[int] = None) -> List[StockTransaction]:
        """Most recent transactions for an item, newest first."""
        self._get_item(item_id)
        return self.transaction_repository.get_history(
            item_id, limit=limit or settings.STOCK_HISTORY_LIMIT
        )

    def get_batch(self, batch_id: str) -> List[StockTransaction]:
        """
        All transactions of a batch in write order.

        Raises:
            EntityNotFoundException: If no transaction carries this batch id
        """
        transactions = self.transaction_repository.get_batch(batch_id)
        if not transactions:
            raise EntityNotFoundException("StockBatch", batch_id)
        return transactions

    def reverse_batch(
        self,
        batch_id: str,
        note: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Compensate every transaction of a batch with an opposite return.

        This is an operator action, not an automatic rollback. The
        compensating transactions form a new batch whose reference_id is the
        original batch id. A line that cannot be applied is reported and the
        remaining lines still run. Calling it again after a partial reversal
        resumes the same reversal batch: lines already restored are returned
        as recorded and only the failed ones are applied.

        Args:
            batch_id: Batch to reverse
            note: Note stored on the compensating transactions
            performed_by: Identity of the operator

        Returns:
            Dictionary with the reversal batch id and one entry per line

        Raises:
            EntityNotFoundException: If the batch does not exist
            BusinessRuleException: If every line of the batch was already reversed
        """
        transactions = self.get_batch(batch_id)
        previous = self._guard_read(
            "reverse batch", self.transaction_repository.get_reversal_of, batch_id
        )
        if previous:
            reversal_batch_id = previous.batch_id
            restored = {
                tx.batch_line
                for tx in self._guard_read(
                    "reverse batch", self.transaction_repository.get_batch, reversal_batch_id
                )
            }
            if restored >= set(range(len(transactions))):
                raise BusinessRuleException(
                    f"Batch {batch_id} has already been reversed",
                    "BATCH_ALREADY_REVERSED",
                    {"batch_id": batch_id, "reversal_batch_id": reversal_batch_id},
                )
            logger.info(
                f"Resuming reversal {reversal_batch_id} of batch {batch_id}: "
                f"{len(transactions) - len(restored)} line(s) left"
            )
        else:
            reversal_batch_id = str(uuid.uuid4())

        names = {
            item.id: item.item_name
            for item in self._guard_read(
                "reverse batch",
                self.inventory_repository.get_by_ids,
                list({tx.inventory_id for tx in transactions}),
            )
        }
        note = note or f"Reversal of batch {batch_id}"
        entries = []
        for line, original in enumerate(transactions):
            try:
                result = self.adjust(
                    original.inventory_id,
                    -original.quantity_change,
                    TransactionType.RETURN,
                    note=note,
                    batch_id=reversal_batch_id,
                    batch_line=line,
                    reference_id=batch_id,
                    performed_by=performed_by,
                )
            except TradeDeskException as e:
                logger.error(
                    f"Reversal of batch {batch_id} line {line} (item {original.inventory_id}) "
                    f"failed [{e.code}]: {e.message}",
                    exc_info=True,
                )
                entries.append(self._failed_entry(original.inventory_id, names))
                continue
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(
                    f"Reversal of batch {batch_id} line {line} (item {original.inventory_id}) "
                    f"failed in the store: {e}",
                    exc_info=True,
                )
                entries.append(self._failed_entry(original.inventory_id, names))
                continue

            entries.append(
                {
                    "inventory_id": original.inventory_id,
                    "item": result.item_name,
                    "restored": result.quantity_change,
                    "remaining": result.new_quantity,
                    "isLowStock": result.is_low_stock,
                }
            )

        self._log_operation(
            "reverse_batch",
            "StockBatch",
            batch_id,
            performed_by,
            {"reversal_batch_id": reversal_batch_id, "lines": len(entries)},
        )
        self._publish(
            BatchReversed(
                batch_id=batch_id,
                reversal_batch_id=reversal_batch_id,
                transaction_count=len(transactions),
                performed_by=performed_by,
            )
        )
        return {
            "batch_id": batch_id,
            "reversal_batch_id": reversal_batch_id,
            "entries": entries,
        }

    @staticmethod
    def _failed_entry(inventory_id: str, names: Dict[str, str]) -> Dict[str, Any]:
        return {
            "inventory_id": inventory_id,
            "item": names.get(inventory_id, inventory_id),
            "error": INVENTORY_UPDATE_FAILED,
        }

    def _get_item(self, item_id: str) -> InventoryItem:
        item = self._guard_read("ledger read", self.inventory_repository.get_fresh, item_id)
        if item is None:
            raise EntityNotFoundException("InventoryItem", item_id)
        return item
