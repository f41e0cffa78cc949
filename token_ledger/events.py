"""
Event System Module

Event records produced by ledger operations and a publish/subscribe
dispatcher that external observers can attach to.
"""

from enum import Enum
from typing import Callable, Dict, List, Any, Optional, Union
from dataclasses import dataclass
import logging
from threading import RLock


class LedgerEventType(Enum):
    """Events produced by successful ledger operations"""
    MINT = "Mint"
    BURN = "Burn"
    TRANSFER = "Transfer"


@dataclass(frozen=True)
class MintEvent:
    """New supply credited to an account"""
    account: str
    amount: int

    event_type = LedgerEventType.MINT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event_type.value,
            'account': self.account,
            'amount': self.amount
        }


@dataclass(frozen=True)
class BurnEvent:
    """Existing supply debited from an account"""
    account: str
    amount: int

    event_type = LedgerEventType.BURN

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event_type.value,
            'account': self.account,
            'amount': self.amount
        }


@dataclass(frozen=True)
class TransferEvent:
    """Balance moved between two accounts"""
    sender: str
    recipient: str
    amount: int

    event_type = LedgerEventType.TRANSFER

    def to_dict(self) -> Dict[str, Any]:
        return {
            'event': self.event_type.value,
            'from': self.sender,
            'to': self.recipient,
            'amount': self.amount
        }


LedgerEvent = Union[MintEvent, BurnEvent, TransferEvent]


def event_from_dict(data: Dict[str, Any]) -> LedgerEvent:
    """Rebuild an event record from its to_dict() form"""
    event_type = LedgerEventType(data['event'])
    amount = int(data['amount'])
    if event_type == LedgerEventType.MINT:
        return MintEvent(account=data['account'], amount=amount)
    if event_type == LedgerEventType.BURN:
        return BurnEvent(account=data['account'], amount=amount)
    return TransferEvent(sender=data['from'], recipient=data['to'], amount=amount)


def _handler_name(handler: Callable) -> str:
    return getattr(handler, '__name__', repr(handler))


class EventDispatcher:
    """Central event dispatcher, publish/subscribe pattern"""

    def __init__(self):
        self._handlers: Dict[LedgerEventType, List[Callable]] = {}
        self._global_handlers: List[Callable] = []  # catch-all handlers
        self._lock = RLock()
        self.logger = logging.getLogger("token_ledger.events")

    def subscribe(self, event_type: LedgerEventType, handler: Callable) -> None:
        """Subscribe to a specific event type"""
        with self._lock:
            self._handlers.setdefault(event_type, []).append(handler)
            self.logger.debug(f"Subscribed handler {_handler_name(handler)} to {event_type.value}")

    def subscribe_all(self, handler: Callable) -> None:
        """Subscribe to ALL events"""
        with self._lock:
            self._global_handlers.append(handler)
            self.logger.debug(f"Subscribed global handler {_handler_name(handler)}")

    def unsubscribe(self, event_type: LedgerEventType, handler: Callable) -> None:
        """Unsubscribe from a specific event type"""
        with self._lock:
            try:
                self._handlers.get(event_type, []).remove(handler)
                self.logger.debug(f"Unsubscribed handler {_handler_name(handler)} from {event_type.value}")
            except ValueError:
                self.logger.warning(f"Handler {_handler_name(handler)} was not subscribed to {event_type.value}")

    def unsubscribe_all(self, handler: Callable) -> None:
        """Unsubscribe a global handler"""
        with self._lock:
            try:
                self._global_handlers.remove(handler)
                self.logger.debug(f"Unsubscribed global handler {_handler_name(handler)}")
            except ValueError:
                self.logger.warning(f"Global handler {_handler_name(handler)} was not subscribed")

    def publish(self, event: LedgerEvent) -> None:
        """Publish event to all subscribers"""
        with self._lock:
            self.logger.debug(f"Publishing {event.event_type.value} event")
            handlers = list(self._handlers.get(event.event_type, [])) + list(self._global_handlers)

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    # The ledger change is already committed; observers cannot undo it
                    self.logger.error(f"Error in event handler {_handler_name(handler)} for {event.event_type.value}: {e}")

    def clear(self) -> None:
        """Clear all handlers"""
        with self._lock:
            self._handlers.clear()
            self._global_handlers.clear()
            self.logger.info("All event handlers cleared")

    def get_handler_count(self, event_type: Optional[LedgerEventType] = None) -> int:
        """Get count of handlers for a specific event type or all"""
        with self._lock:
            if event_type:
                return len(self._handlers.get(event_type, []))
            total = sum(len(handlers) for handlers in self._handlers.values())
            return total + len(self._global_handlers)
