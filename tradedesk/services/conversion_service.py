# File: tradedesk/services/conversion_service.py
"""
Estimate-to-job conversion.

Converting an estimate creates its Job and flips the estimate to converted
in one unit of work, then deducts the estimate's stocked materials through
the stock ledger. Deductions run in line order under one batch id; a line
that fails is reported and the remaining lines still run. The job is never
rolled back because of a failed deduction.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from tradedesk.core.events import EstimateConverted, EventBus
from tradedesk.core.exceptions import (
    BusinessRuleException,
    EntityNotFoundException,
    EstimateAlreadyConvertedException,
    TradeDeskException,
)
from tradedesk.db.models.enums import EstimateStatus, JobStatus, PaymentStatus
from tradedesk.db.models.estimate import Job, JobEstimate
from tradedesk.repositories.estimate_repository import EstimateRepository, JobRepository
from tradedesk.services.base_service import BaseService
from tradedesk.services.stock_ledger_service import (
    INVENTORY_UPDATE_FAILED,
    StockLedgerService,
)

logger = logging.getLogger(__name__)

CONVERSION_NOTE = "Converted from estimate"
CONVERSION_MESSAGE = "Job created and inventory updated successfully"

SNAPSHOT_FIELDS = ("description", "quantity", "unit_cost", "total", "supplier_id", "supplier_name")


@dataclass
class ConversionResult:
    """Job created by a conversion plus the per-line deduction report."""

    job: Job
    batch_id: str
    deductions: List[Dict[str, Any]] = field(default_factory=list)
    message: str = CONVERSION_MESSAGE

    @property
    def failed_count(self) -> int:
        return sum(1 for entry in self.deductions if "error" in entry)


class ConversionService(BaseService[Job]):
    """
    Service that turns estimates into jobs.
    """

    def __init__(
        self,
        session: Session,
        estimate_repository: Optional[EstimateRepository] = None,
        job_repository: Optional[JobRepository] = None,
        ledger_service: Optional[StockLedgerService] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.job_repository = job_repository or JobRepository(session)
        super().__init__(session, repository=self.job_repository, event_bus=event_bus)
        self.estimate_repository = estimate_repository or EstimateRepository(session)
        self.ledger_service = ledger_service or StockLedgerService(session, event_bus=self.event_bus)

    def convert_to_job(self, estimate_id: str, performed_by: Optional[str] = None) -> ConversionResult:
        """
        Convert an estimate into a job and consume its materials.

        Args:
            estimate_id: ID of the estimate to convert
            performed_by: Identity of the caller

        Returns:
            ConversionResult with the job, the deduction batch id and one
            report entry per stocked line

        Raises:
            EntityNotFoundException: If the estimate does not exist
            EstimateAlreadyConvertedException: If the estimate was already converted,
                including by a concurrent request
            UpstreamUnavailableException: If the entity store is unreachable
        """
        estimate = self._guard_read("convert estimate", self.estimate_repository.get_fresh, estimate_id)
        if not estimate:
            raise EntityNotFoundException("JobEstimate", estimate_id)

        if estimate.status == EstimateStatus.CONVERTED:
            existing = self.job_repository.get_by_linked_estimate(estimate_id)
            raise EstimateAlreadyConvertedException(estimate_id, existing.id if existing else None)

        batch_id = str(uuid.uuid4())
        items = list(estimate.items or [])

        with self.transaction():
            try:
                job = self.job_repository.create(self._job_data(estimate, items, batch_id))
            except IntegrityError as e:
                logger.info(f"Job for estimate {estimate_id} already exists: {e}")
                raise EstimateAlreadyConvertedException(estimate_id) from e

            if not self.estimate_repository.mark_converted(estimate_id):
                raise EstimateAlreadyConvertedException(estimate_id)
            job_id = job.id

        self._log_operation(
            "convert", "JobEstimate", estimate_id, performed_by, {"job_id": job_id, "batch_id": batch_id}
        )

        deductions = self._run_deductions(job_id, job.title, items, batch_id, performed_by)
        result = ConversionResult(job=job, batch_id=batch_id, deductions=deductions)

        if result.failed_count:
            logger.warning(
                f"Estimate {estimate_id} converted to job {job_id} with "
                f"{result.failed_count} failed deduction(s) in batch {batch_id}"
            )
        self._publish(
            EstimateConverted(
                estimate_id=estimate_id,
                job_id=job_id,
                batch_id=batch_id,
                failed_deductions=result.failed_count,
                performed_by=performed_by,
            )
        )
        return result

    def retry_deductions(self, job_id: str, performed_by: Optional[str] = None) -> ConversionResult:
        """
        Re-run the deductions of a converted job.

        Lines already recorded under the job's conversion batch are returned
        from the ledger without writing again; only lines that failed before
        are applied.

        Raises:
            EntityNotFoundException: If the job or its estimate does not exist
            BusinessRuleException: If the job did not come from a conversion
        """
        job = self.get_entity_or_404(job_id, "Job")
        if not job.linked_estimate_id or not job.conversion_batch_id:
            raise BusinessRuleException(
                f"Job {job_id} was not created from an estimate",
                "JOB_NOT_CONVERTED",
                {"job_id": job_id},
            )

        estimate = self.estimate_repository.get_by_id(job.linked_estimate_id)
        if not estimate:
            raise EntityNotFoundException("JobEstimate", job.linked_estimate_id)

        deductions = self._run_deductions(
            job.id, job.title, list(estimate.items or []), job.conversion_batch_id, performed_by
        )
        self._log_operation(
            "retry_deductions", "Job", job_id, performed_by, {"batch_id": job.conversion_batch_id}
        )
        return ConversionResult(job=job, batch_id=job.conversion_batch_id, deductions=deductions)

    def _job_data(self, estimate: JobEstimate, items: List[Dict[str, Any]], batch_id: str) -> Dict[str, Any]:
        return {
            "title": estimate.title,
            "client_profile_id": estimate.client_profile_id,
            "linked_estimate_id": estimate.id,
            "budget": estimate.total_amount or 0,
            "status": JobStatus.IN_PROGRESS,
            "payment_status": PaymentStatus.UNPAID,
            "scoping_notes": CONVERSION_NOTE,
            "conversion_batch_id": batch_id,
            "material_list": [
                {name: item.get(name) for name in SNAPSHOT_FIELDS} for item in items
            ],
        }

    def _run_deductions(
        self,
        job_id: str,
        job_title: str,
        items: List[Dict[str, Any]],
        batch_id: str,
        performed_by: Optional[str],
    ) -> List[Dict[str, Any]]:
        """
        Deduct every stocked line in order. Never raises for a single line.
        """
        report = []
        for index, item in enumerate(items):
            inventory_id = item.get("inventory_id")
            try:
                quantity = float(item.get("quantity") or 0)
            except (TypeError, ValueError):
                quantity = 0.0
            if not inventory_id or quantity <= 0:
                continue

            try:
                result = self.ledger_service.deduct(
                    inventory_id,
                    quantity,
                    job_id,
                    note=f"Used in Job: {job_title}",
                    batch_id=batch_id,
                    batch_line=index,
                    performed_by=performed_by,
                )
            except TradeDeskException as e:
                logger.error(
                    f"Deduction of {quantity} from item {inventory_id} for job {job_id} "
                    f"failed [{e.code}]: {e.message}",
                    exc_info=True,
                )
                report.append(self._failed_entry(inventory_id, item))
                continue
            except SQLAlchemyError as e:
                self.session.rollback()
                logger.error(
                    f"Deduction of {quantity} from item {inventory_id} for job {job_id} "
                    f"failed in the store: {e}",
                    exc_info=True,
                )
                report.append(self._failed_entry(inventory_id, item))
                continue

            report.append(
                {
                    "inventory_id": inventory_id,
                    "item": result.item_name,
                    "deducted": quantity,
                    "remaining": result.new_quantity,
                    "isLowStock": result.is_low_stock,
                }
            )
        return report

    @staticmethod
    def _failed_entry(inventory_id: str, item: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "inventory_id": inventory_id,
            "item": item.get("description") or inventory_id,
            "error": INVENTORY_UPDATE_FAILED,
        }
