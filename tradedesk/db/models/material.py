# File: tradedesk/db/models/material.py
"""
Material library, supplier pricing and material kits.

Kits are reusable bundles of library materials with waste and markup
percentages; they are expanded into estimate line items.
"""

from sqlalchemy import JSON, Column, Float, Index, String, Text

from tradedesk.db.models.base import AbstractBase, TimestampMixin


class MaterialLibrary(AbstractBase, TimestampMixin):
    """Catalogue entry for a material that can be priced and kitted."""

    __tablename__ = "material_library"

    item_name = Column(String(255), nullable=False)
    unit = Column(String(50), default="each")
    category = Column(String(100), nullable=True)

    def __repr__(self) -> str:
        return f"<MaterialLibrary(id={self.id}, item_name='{self.item_name}')>"


class MaterialPricing(AbstractBase, TimestampMixin):
    """Supplier price range for a library material."""

    __tablename__ = "material_pricing"
    __table_args__ = (Index("idx_pricing_material", "material_id"),)

    material_id = Column(String(36), nullable=False)
    supplier_id = Column(String(36), nullable=True)
    min_price = Column(Float, default=0)
    max_price = Column(Float, default=0)


class MaterialKit(AbstractBase, TimestampMixin):
    """
    Reusable bundle of materials.

    items is a JSON list of {material_id, quantity, waste_factor_percentage,
    default_markup_percentage}.
    """

    __tablename__ = "material_kits"

    kit_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    items = Column(JSON, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<MaterialKit(id={self.id}, kit_name='{self.kit_name}')>"
