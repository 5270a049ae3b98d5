# File: tradedesk/services/base_service.py

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import (
    DisconnectionError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session

from tradedesk.core.events import DomainEvent, EventBus, global_event_bus
from tradedesk.core.exceptions import (
    EntityNotFoundException,
    TradeDeskException,
    UpstreamUnavailableException,
)
from tradedesk.repositories.base_repository import BaseRepository

T = TypeVar("T")
logger = logging.getLogger(__name__)


class BaseService(Generic[T]):
    """
    Base service for all TradeDesk services.

    Provides common functionality including:
    - Unit-of-work management (repositories only flush, services commit)
    - Translation of store failures into domain exceptions
    - Operation logging
    - Event publishing after commit
    """

    def __init__(
        self,
        session: Session,
        repository_class: Optional[Type[BaseRepository]] = None,
        repository: Optional[BaseRepository] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Initialize service with dependencies.

        Args:
            session: Database session for persistence operations
            repository_class: Repository class to instantiate (optional if repository is provided)
            repository: Repository instance (optional if repository_class is provided)
            event_bus: Event bus for domain events (defaults to the global bus)
        """
        self.session = session

        if repository is not None:
            self.repository = repository
        elif repository_class is not None:
            self.repository = repository_class(session)
        else:
            # Subclasses may initialize repositories directly
            self.repository = None

        self.event_bus = event_bus or global_event_bus

    @contextmanager
    def transaction(self):
        """
        Provide a transactional scope around operations.

        Commits when the block completes and rolls back on any exception.
        Store errors are passed through _transform_error() before being
        re-raised.

        Raises:
            Exception: Any exception that occurs during transaction execution
        """
        try:
            yield
            self.session.commit()
        except Exception as e:
            self.session.rollback()
            if isinstance(e, TradeDeskException):
                logger.debug(f"Transaction rolled back: {e.code} {e.message}")
                raise
            logger.error(f"Transaction failed: {str(e)}", exc_info=True)

            transformed = self._transform_error(e)
            if transformed:
                raise transformed from e
            raise

    def get_by_id(self, id: str) -> Optional[T]:
        return self.repository.get_by_id(id)

    def list(self, skip: int = 0, limit: int = 100, **filters) -> List[T]:
        """
        List entities with pagination and filtering.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return
            **filters: Additional filters to apply

        Returns:
            List of entities matching the criteria
        """
        return self.repository.list(skip=skip, limit=limit, **filters)

    def get_entity_or_404(self, id: str, entity_type: Optional[str] = None) -> T:
        """
        Get an entity by ID or raise EntityNotFoundException.

        Args:
            id: Entity ID to retrieve
            entity_type: Name used in the error (defaults to the model name)

        Returns:
            Entity if found

        Raises:
            EntityNotFoundException: If entity is not found
        """
        entity = self.get_by_id(id)
        if not entity:
            entity_name = entity_type or (
                self.repository.model.__name__ if self.repository else "Entity"
            )
            raise EntityNotFoundException(entity_name, id)
        return entity

    def _publish(self, event: DomainEvent) -> None:
        if self.event_bus:
            self.event_bus.publish(event)

    def _log_operation(
        self,
        operation: str,
        entity_type: str,
        entity_id: Any = None,
        performed_by: Optional[str] = None,
        details: Dict[str, Any] = None,
    ) -> None:
        """
        Log an operation for auditing purposes.

        Args:
            operation: Operation name (create, update, delete, etc.)
            entity_type: Type of entity being operated on
            entity_id: Optional entity ID
            performed_by: Identity of the caller, when known
            details: Optional operation details
        """
        log_data = {
            "operation": operation,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "performed_by": performed_by,
            "op_timestamp": datetime.now().isoformat(),
            "details": details,
        }

        logger.info(f"{operation.upper()} {entity_type} {entity_id}", extra=log_data)

    def _transform_error(self, error: Exception) -> Optional[TradeDeskException]:
        """
        Transform generic exceptions to specific domain exceptions.

        Connection failures and timeouts of the entity store become
        UpstreamUnavailableException. Override in subclasses to handle
        more cases.

        Args:
            error: The original exception

        Returns:
            Transformed domain exception, or None to re-raise original
        """
        if isinstance(
            error, (OperationalError, InterfaceError, DisconnectionError, PoolTimeoutError)
        ):
            return UpstreamUnavailableException(
                f"{self.__class__.__name__} transaction", reason=str(error)
            )
        return None

    def _guard_read(self, operation: str, func, *args, **kwargs):
        """
        Run a read against the store, translating connectivity failures.
        """
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Read failed during {operation}: {e}", exc_info=True)
            transformed = self._transform_error(e)
            if transformed:
                raise transformed from e
            raise
