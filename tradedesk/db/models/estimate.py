# File: tradedesk/db/models/estimate.py
"""
JobEstimate and Job models.

An estimate carries its line items as an ordered JSON list. Converting an
approved estimate produces exactly one Job, which keeps a snapshot of the
estimate's materials and the ledger batch that consumed them.
"""

from typing import Any, Dict

from sqlalchemy import JSON, Column, Enum, Float, Index, String, Text

from tradedesk.db.models.base import AbstractBase, TimestampMixin
from tradedesk.db.models.enums import (
    EstimateStatus,
    JobStatus,
    PaymentStatus,
    enum_values,
)


class JobEstimate(AbstractBase, TimestampMixin):
    """
    Priced proposal for a client.

    Attributes:
        title: Estimate title
        status: Lifecycle state; converted is terminal
        items: Line items ({description, quantity, unit_cost, total,
            inventory_id?, supplier_id?, supplier_name?})
        tax_rate: Tax percentage applied to the subtotal
        total_amount: Subtotal plus tax
        client_profile_id: Weak reference to the client
    """

    __tablename__ = "job_estimates"
    __table_args__ = (Index("idx_estimate_status", "status"),)

    title = Column(String(255), nullable=False)
    status = Column(
        Enum(EstimateStatus, values_callable=enum_values, native_enum=False),
        nullable=False,
        default=EstimateStatus.DRAFT,
    )
    items = Column(JSON, nullable=False, default=list)
    tax_rate = Column(Float, default=0)
    total_amount = Column(Float, default=0)
    client_profile_id = Column(String(36), nullable=True)
    notes = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<JobEstimate(id={self.id}, title='{self.title}', status={self.status})>"


class Job(AbstractBase, TimestampMixin):
    """
    Billable unit of work.

    linked_estimate_id is unique, so an estimate can back at most one job.
    conversion_batch_id is the ledger batch of the conversion deductions.
    """

    __tablename__ = "jobs"

    title = Column(String(255), nullable=False)
    client_profile_id = Column(String(36), nullable=True)
    linked_estimate_id = Column(String(36), nullable=True, unique=True)
    material_list = Column(JSON, nullable=False, default=list)
    budget = Column(Float, default=0)
    status = Column(
        Enum(JobStatus, values_callable=enum_values, native_enum=False),
        nullable=False,
        default=JobStatus.SCHEDULED,
    )
    payment_status = Column(
        Enum(PaymentStatus, values_callable=enum_values, native_enum=False),
        nullable=False,
        default=PaymentStatus.UNPAID,
    )
    scoping_notes = Column(Text, nullable=True)
    conversion_batch_id = Column(String(36), nullable=True)

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["material_list"] = list(self.material_list or [])
        return result

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, title='{self.title}', status={self.status})>"
