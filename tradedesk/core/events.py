# File: tradedesk/core/events.py

import logging
import uuid
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

logger = logging.getLogger(__name__)

# Type definitions
T_event = TypeVar("T_event", bound="DomainEvent")
EventHandler = Callable[[T_event], None]


# --- Base DomainEvent ---
@dataclass(eq=False)
class DomainEvent:
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        result["event_type"] = self.__class__.__name__
        for key, value in result.items():
            if isinstance(value, (datetime, date)):
                result[key] = value.isoformat()
        return result


# --- Stock Ledger Events ---
@dataclass(eq=False)
class StockAdjusted(DomainEvent):
    inventory_id: str = ""
    transaction_id: str = ""
    transaction_type: str = ""
    previous_quantity: float = 0.0
    new_quantity: float = 0.0
    batch_id: Optional[str] = None
    performed_by: Optional[str] = None


@dataclass(eq=False)
class LowStockAlert(DomainEvent):
    inventory_id: str = ""
    item_name: str = ""
    current_quantity: float = 0.0
    reorder_point: float = 0.0


@dataclass(eq=False)
class BatchReversed(DomainEvent):
    batch_id: str = ""
    reversal_batch_id: str = ""
    transaction_count: int = 0
    performed_by: Optional[str] = None


# --- Estimate / Job Events ---
@dataclass(eq=False)
class EstimateConverted(DomainEvent):
    estimate_id: str = ""
    job_id: str = ""
    batch_id: str = ""
    failed_deductions: int = 0
    performed_by: Optional[str] = None


@dataclass(eq=False)
class ChangeOrderAdded(DomainEvent):
    job_id: str = ""
    description: str = ""
    total: float = 0.0
    new_budget: float = 0.0
    performed_by: Optional[str] = None


# --- Event Bus Class ---
class EventBus:
    """
    In-process event bus for domain events.

    Handlers run synchronously in subscription order. A failing handler is
    logged and does not affect other handlers or the publisher.

    Usage:
        global_event_bus.subscribe(LowStockAlert, notify_purchasing)
        global_event_bus.publish(LowStockAlert(inventory_id="...", ...))
    """

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = defaultdict(list)

    def publish(self, event: DomainEvent) -> None:
        """
        Publish an event to all registered handlers.

        Args:
            event: The domain event to publish
        """
        event_type = type(event).__name__
        logger.debug(f"Publishing event {event_type} ID {event.event_id}")
        for handler in list(self.subscribers.get(event_type, [])):
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"Error in handler {getattr(handler, '__name__', repr(handler))} "
                    f"for {event_type} ID {event.event_id}: {e}",
                    exc_info=True,
                )

    def subscribe(self, event_type: Union[str, Type[DomainEvent]], handler: Callable) -> None:
        """
        Subscribe to an event type.

        Args:
            event_type: Event class or event type name string
            handler: Callable to handle the event
        """
        event_type_name = event_type.__name__ if isinstance(event_type, type) else str(event_type)
        self.subscribers[event_type_name].append(handler)
        logger.debug(f"Subscribed handler {getattr(handler, '__name__', repr(handler))} to {event_type_name}")

    def unsubscribe(self, event_type: Union[str, Type[DomainEvent]], handler: Callable) -> bool:
        """
        Unsubscribe from an event type.

        Returns:
            True if handler was found and removed, False otherwise
        """
        event_type_name = event_type.__name__ if isinstance(event_type, type) else str(event_type)
        try:
            self.subscribers[event_type_name].remove(handler)
        except ValueError:
            return False
        logger.debug(f"Unsubscribed handler {getattr(handler, '__name__', repr(handler))} from {event_type_name}")
        return True

    def clear_subscriptions(self) -> None:
        """Clear all event subscriptions."""
        self.subscribers.clear()
        logger.debug("Cleared all event subscriptions")


# Global event bus instance - use this throughout the application
global_event_bus = EventBus()
