from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, ClassVar, Dict, List, Protocol

log = logging.getLogger("events")


@dataclass(frozen=True)
class Event:
    name: ClassVar[str] = "event"

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True)
class PoolInitialized(Event):
    name: ClassVar[str] = "pool_initialized"

    pool_id: str
    owner: str
    company_name: str
    ticket_price: int
    item_count: int
    total_probability_check: int
    timestamp: int


@dataclass(frozen=True)
class TicketPurchased(Event):
    name: ClassVar[str] = "ticket_purchased"

    pool_id: str
    buyer: str
    sequence_id: int
    ticket_price: int
    total_tickets_sold: int
    timestamp: int


@dataclass(frozen=True)
class SpinRecorded(Event):
    name: ClassVar[str] = "spin_recorded"

    pool_id: str
    spinner: str
    sequence_id: int
    draw: int
    item_index: int
    item_name: str
    item_value: int
    win_probability: int
    timestamp: int


@dataclass(frozen=True)
class RewardClaimed(Event):
    name: ClassVar[str] = "reward_claimed"

    pool_id: str
    claimant: str
    sequence_id: int
    amount: int
    remaining_funds: int
    timestamp: int


@dataclass(frozen=True)
class FundsWithdrawn(Event):
    name: ClassVar[str] = "funds_withdrawn"

    pool_id: str
    authority: str
    amount_withdrawn: int
    remaining_funds: int
    timestamp: int


class EventSink(Protocol):
    def emit(self, event: Event) -> None: ...


class LoggingEventSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.log = logger or log

    def emit(self, event: Event) -> None:
        self.log.info("%s %s", event.name, event.to_dict())


class EventLog:
    """Keeps every event in memory, in emission order."""

    def __init__(self) -> None:
        self.events: List[Event] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def of_type(self, kind: type) -> List[Event]:
        return [e for e in self.events if isinstance(e, kind)]


def emit_safely(sink: EventSink | None, event: Event) -> None:
    """Deliver `event`; a failing sink never fails the operation."""
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception:
        log.exception("Event sink failed on %s", event.name)
