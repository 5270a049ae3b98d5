# File: tradedesk/repositories/base_repository.py

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import func, select
from sqlalchemy.orm import Session

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Base repository class providing common CRUD operations for all entities using
    modern SQLAlchemy select() syntax.

    Repositories never commit. Writes are flushed so that generated ids and
    constraint violations surface immediately; the calling service owns the
    unit of work and commits or rolls back.

    Attributes:
        session (Session): The SQLAlchemy session for database operations
        model (Type[T]): The SQLAlchemy model class this repository manages
    """

    model: Optional[Type[T]] = None

    def __init__(self, session: Session, model: Optional[Type[T]] = None):
        """
        Initialize the repository with a database session and the specific model.

        Args:
            session (Session): SQLAlchemy database session
            model (Type[T]): The SQLAlchemy model class this repository manages.
                             Subclasses usually set it as a class attribute.
        """
        self.session = session
        if model is not None:
            self.model = model

    def _get_model(self) -> Type[T]:
        """Ensures the model is set before use."""
        if self.model is None:
            raise TypeError(f"Repository model is not set for {self.__class__.__name__}")
        return self.model

    def _apply_filters(self, stmt, filters: Dict[str, Any]):
        model_class = self._get_model()
        for key, value in filters.items():
            if hasattr(model_class, key):
                stmt = stmt.where(getattr(model_class, key) == value)
        return stmt

    def get_by_id(self, id: str) -> Optional[T]:
        """
        Retrieve an entity by its primary key ID.

        Args:
            id (str): The primary key ID of the entity

        Returns:
            Optional[T]: The entity if found, None otherwise
        """
        model_class = self._get_model()
        stmt = select(model_class).where(model_class.id == id)
        return self.session.execute(stmt).scalar_one_or_none()

    def get_by_ids(self, ids: List[str]) -> List[T]:
        """Retrieve all entities whose id is in ``ids`` (unknown ids are skipped)."""
        if not ids:
            return []
        model_class = self._get_model()
        stmt = select(model_class).where(model_class.id.in_(ids))
        return list(self.session.execute(stmt).scalars().all())

    def list(self, skip: int = 0, limit: int = 100, **filters) -> List[T]:
        """
        Retrieve a list of entities with pagination.

        Args:
            skip (int): Number of records to skip (for pagination)
            limit (int): Maximum number of records to return
            **filters: Additional filters to apply (field=value pairs)

        Returns:
            List[T]: List of entities matching the criteria
        """
        stmt = self._apply_filters(select(self._get_model()), filters)
        stmt = stmt.offset(skip).limit(limit)
        return list(self.session.execute(stmt).scalars().all())

    def create(self, data: Dict[str, Any]) -> T:
        """
        Create a new entity.

        Args:
            data (Dict[str, Any]): Dictionary containing entity field values

        Returns:
            T: The created entity (flushed, not committed)
        """
        model_class = self._get_model()
        # Ensure only columns present in the model are passed to constructor
        model_columns = {c.name for c in model_class.__table__.columns}
        filtered_data = {k: v for k, v in data.items() if k in model_columns}

        entity = model_class(**filtered_data)
        self.session.add(entity)
        self.session.flush()
        return entity

    def update(self, id: str, data: Dict[str, Any]) -> Optional[T]:
        """
        Update an existing entity.

        Args:
            id (str): The primary key ID of the entity to update
            data (Dict[str, Any]): Dictionary containing the fields to update

        Returns:
            Optional[T]: The updated entity if found, None otherwise
        """
        entity = self.get_by_id(id)
        if not entity:
            return None

        columns = entity.__table__.columns.keys()
        for key, value in data.items():
            if key in columns:
                setattr(entity, key, value)

        self.session.flush()
        return entity

    def delete(self, id: str) -> bool:
        """
        Delete an entity by ID.

        Args:
            id (str): The primary key ID of the entity to delete

        Returns:
            bool: True if entity was deleted, False if not found
        """
        entity = self.get_by_id(id)
        if not entity:
            return False

        self.session.delete(entity)
        self.session.flush()
        return True

    def count(self, **filters) -> int:
        """
        Count entities matching the given filters.

        Args:
            **filters: Filters to apply (field=value pairs)

        Returns:
            int: Count of matching entities
        """
        model_class = self._get_model()
        stmt = select(func.count(model_class.id)).select_from(model_class)
        stmt = self._apply_filters(stmt, filters)
        return self.session.execute(stmt).scalar_one()
