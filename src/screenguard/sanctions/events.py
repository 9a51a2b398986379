"""Screening events emitted for downstream audit and notification.

The engine only emits events; delivering them is the sink's concern. A
failing sink is logged and never fails the screening that emitted it.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from uuid_utils.compat import uuid7


class ScreeningEventType(str, Enum):
    """Types of screening events."""

    SUBJECT_SCREENED = "subject_screened"
    HIGH_RISK_MATCH = "high_risk_match"
    SCHEDULE_ADVANCED = "schedule_advanced"
    SCHEDULE_FAILED = "schedule_failed"


class ScreeningEvent(BaseModel):
    """A screening event.

    Attributes:
        event_id: Unique event identifier.
        event_type: What happened.
        subject_id: Subject the event concerns.
        occurred_at: When it happened.
        payload: Event-specific data.
    """

    model_config = ConfigDict(frozen=True)

    event_id: UUID = Field(default_factory=uuid7)
    event_type: ScreeningEventType
    subject_id: str
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    payload: dict[str, Any] = Field(default_factory=dict)


class ScreeningEventSink(Protocol):
    """Protocol for screening event delivery."""

    async def emit(self, event: ScreeningEvent) -> None:
        """Deliver an event."""
        ...


class InMemoryEventSink:
    """In-memory event sink for testing.

    Set ``should_fail`` to simulate a broken downstream.
    """

    def __init__(self, should_fail: bool = False) -> None:
        self.should_fail = should_fail
        self.events: list[ScreeningEvent] = []

    async def emit(self, event: ScreeningEvent) -> None:
        """Record an event."""
        if self.should_fail:
            raise RuntimeError("Event sink unavailable")
        self.events.append(event)

    def get_events(self, event_type: ScreeningEventType | None = None) -> list[ScreeningEvent]:
        """Get recorded events, optionally of one type."""
        if event_type is None:
            return list(self.events)
        return [e for e in self.events if e.event_type == event_type]


class NullEventSink:
    """Event sink that discards every event."""

    async def emit(self, event: ScreeningEvent) -> None:
        """Discard an event."""
