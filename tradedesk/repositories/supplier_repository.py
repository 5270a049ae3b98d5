# File: tradedesk/repositories/supplier_repository.py

from sqlalchemy.orm import Session

from tradedesk.db.models.supplier import Supplier
from tradedesk.repositories.base_repository import BaseRepository


class SupplierRepository(BaseRepository[Supplier]):
    """
    Repository for Supplier entity operations.
    """

    model = Supplier

    def __init__(self, session: Session):
        super().__init__(session, Supplier)
