# File: tradedesk/services/job_service.py

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from tradedesk.core.events import ChangeOrderAdded, EventBus
from tradedesk.core.exceptions import ValidationException
from tradedesk.db.models.estimate import Job
from tradedesk.repositories.estimate_repository import JobRepository
from tradedesk.services.base_service import BaseService

logger = logging.getLogger(__name__)

ADDITIONAL_ORDER = "Additional Order"


class JobService(BaseService[Job]):
    """
    Service for jobs created from estimates.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[JobRepository] = None,
        event_bus: Optional[EventBus] = None,
    ):
        super().__init__(session, repository=repository or JobRepository(session), event_bus=event_bus)

    def get_job(self, job_id: str) -> Job:
        return self.get_entity_or_404(job_id, "Job")

    def add_change_order(
        self, job_id: str, data: Dict[str, Any], performed_by: Optional[str] = None
    ) -> Job:
        """
        Add a change order to a job.

        The change order is appended to the job's material list and its
        total is added to the budget.

        Args:
            job_id: Job ID
            data: {description, quantity, unit_cost, supplier_name}
            performed_by: Identity of the caller

        Returns:
            The updated job

        Raises:
            EntityNotFoundException: If the job does not exist
            ValidationException: If description is blank or amounts are negative
        """
        job = self.get_job(job_id)

        description = (data.get("description") or "").strip()
        if not description:
            raise ValidationException("Change order description is required", {"description": ["required"]})
        quantity = float(data.get("quantity") or 1)
        unit_cost = float(data.get("unit_cost") or 0)
        if quantity <= 0 or unit_cost < 0:
            raise ValidationException(
                "Change order quantity must be positive and unit cost non-negative",
                {"quantity": ["must be > 0"], "unit_cost": ["must be >= 0"]},
            )

        total = round(quantity * unit_cost, 2)
        entry = {
            "description": description,
            "quantity": quantity,
            "unit_cost": unit_cost,
            "total": total,
            "supplier_name": (data.get("supplier_name") or "").strip() or ADDITIONAL_ORDER,
            "change_order": True,
        }
        new_budget = round(float(job.budget or 0) + total, 2)

        with self.transaction():
            job = self.repository.update(
                job_id,
                {"material_list": list(job.material_list or []) + [entry], "budget": new_budget},
            )

        self._log_operation("change_order", "Job", job_id, performed_by, {"total": total})
        self._publish(
            ChangeOrderAdded(
                job_id=job_id,
                description=description,
                total=total,
                new_budget=new_budget,
                performed_by=performed_by,
            )
        )
        return job
