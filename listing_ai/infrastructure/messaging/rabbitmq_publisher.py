"""
RabbitMQ event publisher.

Uses pika in a thread-pool executor so blocking I/O doesn't stall the
asyncio event loop. A new connection is opened per publish call.

Payloads carry identifiers and outcomes only. Tokens never leave the
token store.
"""
import asyncio
import json
from functools import partial

import pika
import structlog

from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.config import settings
from listing_ai.domain.events.domain_events import (
    DomainEvent,
    ListingPublishedEvent,
    ListingPublishFailedEvent,
    MarketplaceConnectedEvent,
    MarketplaceDisconnectedEvent,
)

logger = structlog.get_logger(__name__)

EXCHANGE_NAME = "listing_ai.events"


def _event_to_routing_key(event: DomainEvent) -> str:
    if isinstance(event, MarketplaceConnectedEvent):
        return "marketplace.connected"
    if isinstance(event, MarketplaceDisconnectedEvent):
        return "marketplace.disconnected"
    if isinstance(event, ListingPublishedEvent):
        return "listing.published"
    if isinstance(event, ListingPublishFailedEvent):
        return "listing.publish_failed"
    return "event.unknown"


def _serialise_event(event: DomainEvent) -> str:
    payload: dict = {  # type: ignore[type-arg]
        "event_type": _event_to_routing_key(event),
        "event_id": str(event.event_id),
        "occurred_at": event.occurred_at.isoformat(),
    }

    if isinstance(event, MarketplaceConnectedEvent):
        payload.update({"session_id": event.session_id, "scopes": list(event.scopes)})
    elif isinstance(event, MarketplaceDisconnectedEvent):
        payload.update({"session_id": event.session_id, "reason": event.reason})
    elif isinstance(event, ListingPublishedEvent):
        payload.update(
            {
                "attempt_id": str(event.attempt_id),
                "session_id": event.session_id,
                "sku": event.sku,
                "offer_id": event.offer_id,
                "listing_id": event.listing_id,
                "item_url": event.item_url,
            }
        )
    elif isinstance(event, ListingPublishFailedEvent):
        payload.update(
            {
                "attempt_id": str(event.attempt_id),
                "session_id": event.session_id,
                "failed_at": event.failed_at.value,
                "failure_reason": event.failure_reason,
                "detail": event.detail,
            }
        )

    return json.dumps(payload, default=str)


def _blocking_publish(rabbitmq_url: str, routing_key: str, body: str) -> None:
    connection = pika.BlockingConnection(pika.URLParameters(rabbitmq_url))
    try:
        channel = connection.channel()
        channel.exchange_declare(
            exchange=EXCHANGE_NAME, exchange_type="topic", durable=True
        )
        channel.basic_publish(
            exchange=EXCHANGE_NAME,
            routing_key=routing_key,
            body=body.encode(),
            properties=pika.BasicProperties(
                delivery_mode=pika.DeliveryMode.Persistent,
                content_type="application/json",
            ),
        )
    finally:
        connection.close()


class RabbitMQPublisher(EventPublisher):
    """Publishes domain events to a RabbitMQ topic exchange."""

    def __init__(self, rabbitmq_url: str = settings.rabbitmq_url) -> None:
        self._url = rabbitmq_url

    async def publish(self, event: DomainEvent) -> None:
        routing_key = _event_to_routing_key(event)
        body = _serialise_event(event)
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                partial(_blocking_publish, self._url, routing_key, body),
            )
            logger.debug("event_published", routing_key=routing_key, event_id=str(event.event_id))
        except Exception as exc:
            logger.error(
                "failed_to_publish_event",
                routing_key=routing_key,
                error=str(exc),
            )
            # Publishing failure must not fail the user action
