# File: tradedesk/db/models/supplier.py
"""
Supplier model.

Suppliers are referenced by inventory items, material pricing records and
estimate line items; procurement summaries and reorder requests read their
contact details.
"""

from sqlalchemy import Column, Index, String

from tradedesk.db.models.base import AbstractBase, TimestampMixin


class Supplier(AbstractBase, TimestampMixin):
    """
    Vendor of materials.

    Attributes:
        store_name: Business name
        contact_person: Primary contact
        phone: Contact phone number
        email: Order e-mail address
        address: Business address
    """

    __tablename__ = "suppliers"
    __table_args__ = (Index("idx_supplier_store_name", "store_name"),)

    store_name = Column(String(255), nullable=False)
    contact_person = Column(String(100), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)

    def __repr__(self) -> str:
        return f"<Supplier(id={self.id}, store_name='{self.store_name}')>"
