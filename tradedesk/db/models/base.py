# File: tradedesk/db/models/base.py
"""
Base models and mixins for the TradeDesk back-office.

This module provides the foundation for all database models in the system:
- Base SQLAlchemy declarative class
- AbstractBase with a string UUID primary key (ids travel as opaque strings)
- TimestampMixin for created/updated timestamps
"""

import enum
import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, DateTime, MetaData, String
from sqlalchemy.orm import declarative_base

Base = declarative_base(metadata=MetaData())


def generate_id() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    """
    Mixin providing automatic timestamp functionality.

    Adds created_at and updated_at timestamps that are automatically
    maintained when records are created or updated.
    """

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(
        DateTime,
        default=datetime.now,
        onupdate=datetime.now,
    )


class AbstractBase(Base):
    """
    Abstract base class for all model entities.

    Attributes:
        id: Primary key (UUID string generated on insert)
    """

    __abstract__ = True

    id = Column(String(36), primary_key=True, default=generate_id)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the model instance to a dictionary.

        Returns:
            Dictionary representation of the model instance
        """
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, enum.Enum):
                value = value.value
            result[column.name] = value
        return result
