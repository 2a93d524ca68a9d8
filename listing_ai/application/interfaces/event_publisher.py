from abc import ABC, abstractmethod

import structlog

from listing_ai.domain.events.domain_events import DomainEvent

logger = structlog.get_logger(__name__)


class EventPublisher(ABC):
    """Port for publishing domain events to the message bus."""

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        ...

    async def publish_many(self, events: list[DomainEvent]) -> None:
        """Publish each event; a delivery failure is logged, never raised to the user action."""
        for event in events:
            try:
                await self.publish(event)
            except Exception:
                logger.exception(
                    "event_delivery_failed",
                    event_type=type(event).__name__,
                    event_id=str(event.event_id),
                )
