import structlog

from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.domain.events.domain_events import DomainEvent

logger = structlog.get_logger(__name__)


class NoOpEventPublisher(EventPublisher):
    """Used when ``rabbitmq_url`` is empty. Events are logged at debug level and dropped."""

    async def publish(self, event: DomainEvent) -> None:
        logger.debug(
            "event_not_delivered",
            event_type=type(event).__name__,
            event_id=str(event.event_id),
            session_id=getattr(event, "session_id", None),
        )
