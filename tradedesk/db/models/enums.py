# File: tradedesk/db/models/enums.py
"""
Enumerations shared by models, schemas and services.

Values are the lower-case strings stored in the database and exchanged over
the API.
"""

from enum import Enum


class TransactionType(str, Enum):
    """Reason for a stock ledger entry."""

    RESTOCK = "restock"
    MANUAL_ADJUSTMENT = "manual_adjustment"
    JOB_DEDUCTION = "job_deduction"
    RETURN = "return"


class EstimateStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED = "converted"


class JobStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


def enum_values(enum_cls):
    """values_callable for SQLAlchemy Enum columns so the value, not the name, is stored."""
    return [member.value for member in enum_cls]
