# File: tradedesk/repositories/material_repository.py

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from tradedesk.db.models.material import MaterialKit, MaterialLibrary, MaterialPricing
from tradedesk.repositories.base_repository import BaseRepository


class MaterialLibraryRepository(BaseRepository[MaterialLibrary]):
    model = MaterialLibrary

    def __init__(self, session: Session):
        super().__init__(session, MaterialLibrary)


class MaterialPricingRepository(BaseRepository[MaterialPricing]):
    """
    Repository for supplier pricing records.
    """

    model = MaterialPricing

    def __init__(self, session: Session):
        super().__init__(session, MaterialPricing)

    def first_with_supplier(self, material_id: str) -> Optional[MaterialPricing]:
        """
        First pricing record for a material that names a supplier.

        Args:
            material_id (str): Material library ID

        Returns:
            Optional[MaterialPricing]: The pricing record, or None
        """
        stmt = (
            select(MaterialPricing)
            .where(
                MaterialPricing.material_id == material_id,
                MaterialPricing.supplier_id.is_not(None),
            )
            .order_by(MaterialPricing.created_at, MaterialPricing.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()

    def get_for_supplier(self, material_id: str, supplier_id: str) -> Optional[MaterialPricing]:
        """Pricing record a supplier quotes for a material, if any."""
        stmt = (
            select(MaterialPricing)
            .where(
                MaterialPricing.material_id == material_id,
                MaterialPricing.supplier_id == supplier_id,
            )
            .order_by(MaterialPricing.created_at, MaterialPricing.id)
            .limit(1)
        )
        return self.session.execute(stmt).scalars().first()


class MaterialKitRepository(BaseRepository[MaterialKit]):
    model = MaterialKit

    def __init__(self, session: Session):
        super().__init__(session, MaterialKit)
