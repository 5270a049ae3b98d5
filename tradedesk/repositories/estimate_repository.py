# File: tradedesk/repositories/estimate_repository.py

from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc, select, update
from sqlalchemy.orm import Session

from tradedesk.db.models.enums import EstimateStatus
from tradedesk.db.models.estimate import Job, JobEstimate
from tradedesk.repositories.base_repository import BaseRepository


class EstimateRepository(BaseRepository[JobEstimate]):
    """
    Repository for JobEstimate entity operations.
    """

    model = JobEstimate

    def __init__(self, session: Session):
        super().__init__(session, JobEstimate)

    def get_fresh(self, estimate_id: str) -> Optional[JobEstimate]:
        stmt = (
            select(JobEstimate)
            .where(JobEstimate.id == estimate_id)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def mark_converted(self, estimate_id: str) -> bool:
        """
        Flip an estimate to converted unless it already is.

        The WHERE clause makes the flip a single conditional write, so two
        concurrent conversions cannot both succeed.

        Returns:
            bool: True if this call performed the flip
        """
        stmt = (
            update(JobEstimate)
            .where(
                JobEstimate.id == estimate_id,
                JobEstimate.status != EstimateStatus.CONVERTED,
            )
            .values(status=EstimateStatus.CONVERTED, updated_at=datetime.now())
            .execution_options(synchronize_session=False)
        )
        return self.session.execute(stmt).rowcount == 1

    def list_by_status(self, status: EstimateStatus, limit: int = 500) -> List[JobEstimate]:
        stmt = (
            select(JobEstimate)
            .where(JobEstimate.status == status)
            .order_by(desc(JobEstimate.created_at))
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_recent(self, skip: int = 0, limit: int = 100, status: Optional[EstimateStatus] = None) -> List[JobEstimate]:
        stmt = select(JobEstimate)
        if status is not None:
            stmt = stmt.where(JobEstimate.status == status)
        stmt = stmt.order_by(desc(JobEstimate.created_at)).offset(skip).limit(limit)
        return list(self.session.execute(stmt).scalars().all())


class JobRepository(BaseRepository[Job]):
    """
    Repository for Job entity operations.
    """

    model = Job

    def __init__(self, session: Session):
        super().__init__(session, Job)

    def get_by_linked_estimate(self, estimate_id: str) -> Optional[Job]:
        stmt = select(Job).where(Job.linked_estimate_id == estimate_id)
        return self.session.execute(stmt).scalar_one_or_none()
