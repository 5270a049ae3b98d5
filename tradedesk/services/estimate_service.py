# File: tradedesk/services/estimate_service.py

import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from tradedesk.core.exceptions import (
    EntityNotFoundException,
    InvalidStatusTransitionException,
    ValidationException,
)
from tradedesk.db.models.enums import EstimateStatus
from tradedesk.db.models.estimate import JobEstimate
from tradedesk.repositories.estimate_repository import EstimateRepository
from tradedesk.services.base_service import BaseService
from tradedesk.services.kit_service import KitService, calculate_estimate_totals

logger = logging.getLogger(__name__)

# Statuses a user may set directly; converted is reserved for the conversion engine.
EDITABLE_STATUSES = [
    EstimateStatus.DRAFT,
    EstimateStatus.SENT,
    EstimateStatus.APPROVED,
    EstimateStatus.REJECTED,
]

# Columns an update may change but never clear.
REQUIRED_FIELDS = ("title", "status")


class EstimateService(BaseService[JobEstimate]):
    """
    Service for job estimates.

    Keeps line totals and total_amount in step with the items and tax rate,
    and guards the status field: a converted estimate is read-only and only
    the conversion engine may mark an estimate converted.
    """

    def __init__(
        self,
        session: Session,
        repository: Optional[EstimateRepository] = None,
        kit_service: Optional[KitService] = None,
    ):
        super().__init__(session, repository=repository or EstimateRepository(session))
        self.kit_service = kit_service or KitService(session)

    def create_estimate(self, data: Dict[str, Any], performed_by: Optional[str] = None) -> JobEstimate:
        """
        Create an estimate, pricing its items.

        Raises:
            InvalidStatusTransitionException: If created as converted
        """
        estimate_data = dict(data)
        status = self._coerce_status(estimate_data.get("status") or EstimateStatus.DRAFT)
        self._check_settable(status)
        estimate_data["status"] = status

        totals = calculate_estimate_totals(estimate_data.get("items") or [], estimate_data.get("tax_rate") or 0)
        estimate_data["items"] = totals["items"]
        estimate_data["total_amount"] = totals["total_amount"]

        with self.transaction():
            estimate = self.repository.create(estimate_data)

        self._log_operation("create", "JobEstimate", estimate.id, performed_by, {"total_amount": estimate.total_amount})
        return estimate

    def update_estimate(
        self, estimate_id: str, data: Dict[str, Any], performed_by: Optional[str] = None
    ) -> JobEstimate:
        """
        Update an estimate and recalculate its totals.

        Raises:
            EntityNotFoundException: If the estimate does not exist
            InvalidStatusTransitionException: If the estimate is converted or the
                update tries to set converted
            ValidationException: If the update clears the title or status
        """
        estimate = self.get_estimate(estimate_id)
        self._check_editable(estimate)

        fields = {k: v for k, v in data.items() if k not in ("id", "total_amount")}
        cleared = [name for name in REQUIRED_FIELDS if name in fields and fields[name] is None]
        if cleared:
            raise ValidationException(
                "Required estimate fields cannot be cleared", {name: ["required"] for name in cleared}
            )
        if "status" in fields:
            fields["status"] = self._coerce_status(fields["status"])
            self._check_settable(fields["status"])

        items = fields["items"] if fields.get("items") is not None else list(estimate.items or [])
        tax_rate = fields["tax_rate"] if fields.get("tax_rate") is not None else estimate.tax_rate
        totals = calculate_estimate_totals(items, tax_rate or 0)
        fields["items"] = totals["items"]
        fields["total_amount"] = totals["total_amount"]

        with self.transaction():
            estimate = self.repository.update(estimate_id, fields)

        self._log_operation("update", "JobEstimate", estimate_id, performed_by, {"fields": sorted(fields)})
        return estimate

    def add_kit(self, estimate_id: str, kit_id: str, performed_by: Optional[str] = None) -> JobEstimate:
        """
        Append the priced lines of a kit to an estimate.

        Raises:
            EntityNotFoundException: If the estimate or kit does not exist
            InvalidStatusTransitionException: If the estimate is converted
        """
        estimate = self.get_estimate(estimate_id)
        self._check_editable(estimate)

        lines = self.kit_service.expand_kit(kit_id)
        items = list(estimate.items or []) + lines
        logger.info(f"Adding kit {kit_id} ({len(lines)} lines) to estimate {estimate_id}")
        return self.update_estimate(estimate_id, {"items": items}, performed_by)

    def add_scoping_item(
        self,
        estimate_id: str,
        material_id: str,
        supplier_id: Optional[str] = None,
        performed_by: Optional[str] = None,
    ) -> JobEstimate:
        """
        Append one library material, priced at the middle of its supplier's
        range, to an estimate.

        Raises:
            EntityNotFoundException: If the estimate or material does not exist
            InvalidStatusTransitionException: If the estimate is converted
        """
        estimate = self.get_estimate(estimate_id)
        self._check_editable(estimate)

        line = self.kit_service.scoping_line(material_id, supplier_id)
        items = list(estimate.items or []) + [line]
        logger.info(f"Adding scoped material {material_id} to estimate {estimate_id}")
        return self.update_estimate(estimate_id, {"items": items}, performed_by)

    def get_estimate(self, estimate_id: str) -> JobEstimate:
        estimate = self._guard_read("estimate read", self.repository.get_fresh, estimate_id)
        if not estimate:
            raise EntityNotFoundException("JobEstimate", estimate_id)
        return estimate

    def list_estimates(
        self, skip: int = 0, limit: int = 100, status: Optional[Union[EstimateStatus, str]] = None
    ) -> List[JobEstimate]:
        status = self._coerce_status(status) if status else None
        return self._guard_read("list estimates", self.repository.list_recent, skip=skip, limit=limit, status=status)

    @staticmethod
    def _coerce_status(value: Union[EstimateStatus, str]) -> EstimateStatus:
        if isinstance(value, EstimateStatus):
            return value
        try:
            return EstimateStatus(value)
        except ValueError:
            raise InvalidStatusTransitionException(
                f"Unknown estimate status: {value}",
                [s.value for s in EDITABLE_STATUSES],
            )

    @staticmethod
    def _check_settable(status: EstimateStatus) -> None:
        if status == EstimateStatus.CONVERTED:
            raise InvalidStatusTransitionException(
                "Estimates are marked converted only by converting them to a job",
                [s.value for s in EDITABLE_STATUSES],
            )

    @staticmethod
    def _check_editable(estimate: JobEstimate) -> None:
        if estimate.status == EstimateStatus.CONVERTED:
            raise InvalidStatusTransitionException(
                f"Estimate {estimate.id} has been converted and can no longer be changed",
                [],
            )
