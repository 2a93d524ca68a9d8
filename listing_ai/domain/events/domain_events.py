from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from listing_ai.domain.enums.publish_step import PublishStep


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class MarketplaceConnectedEvent(DomainEvent):
    """Published after an authorization code was exchanged for tokens."""

    session_id: str = ""
    scopes: tuple[str, ...] = ()


@dataclass(frozen=True)
class MarketplaceDisconnectedEvent(DomainEvent):
    """Published when a session's tokens are discarded."""

    session_id: str = ""
    reason: str = "user_requested"  # "user_requested" | "refresh_failed"


@dataclass(frozen=True)
class ListingPublishedEvent(DomainEvent):
    attempt_id: UUID = field(default_factory=uuid4)
    session_id: str = ""
    sku: str = ""
    offer_id: str = ""
    listing_id: str = ""
    item_url: str = ""


@dataclass(frozen=True)
class ListingPublishFailedEvent(DomainEvent):
    attempt_id: UUID = field(default_factory=uuid4)
    session_id: str = ""
    failed_at: PublishStep = PublishStep.VALIDATING
    failure_reason: str = ""
    detail: str = ""
