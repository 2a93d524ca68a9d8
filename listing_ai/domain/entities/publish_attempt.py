from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4

from listing_ai.domain.entities.publish_result import PublishResult
from listing_ai.domain.enums.publish_step import PublishStep
from listing_ai.domain.errors import MarketplaceError
from listing_ai.domain.events.domain_events import (
    DomainEvent,
    ListingPublishedEvent,
    ListingPublishFailedEvent,
)
from listing_ai.domain.state_machine.publish_state_machine import PublishStateMachine

_state_machine = PublishStateMachine()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PublishAttempt:
    """
    One run of the publish pipeline for a seller session.

    Each step records the identifier the next step consumes (media URLs →
    SKU/category → offer id → listing id). Emits domain events when the
    attempt reaches a terminal step; callers collect and publish them.
    Never persisted; a new attempt is created per publish call.
    """

    # Identity
    id: UUID = field(default_factory=uuid4)
    session_id: str = ""

    # State
    step: PublishStep = PublishStep.VALIDATING

    # Timestamps
    created_at: datetime = field(default_factory=_utcnow)
    step_changed_at: datetime = field(default_factory=_utcnow)
    media_uploaded_at: datetime | None = None
    draft_built_at: datetime | None = None
    offer_created_at: datetime | None = None
    published_at: datetime | None = None
    failed_at: datetime | None = None

    # Identifiers produced along the way
    media_urls: list[str] = field(default_factory=list)
    sku: str | None = None
    category_id: str | None = None
    offer_id: str | None = None
    listing_id: str | None = None
    item_url: str | None = None

    # At most one silent token refresh per attempt
    refresh_used: bool = False

    # Failure tracking
    failed_step: PublishStep | None = None
    failure_reason: str | None = None
    error_message: str | None = None

    _events: list[DomainEvent] = field(default_factory=list, repr=False, compare=False)

    # -------------------------------------------------------------------------
    # Step transitions
    # -------------------------------------------------------------------------

    def transition_to(self, new_step: PublishStep) -> None:
        _state_machine.validate_transition(self.step, new_step)
        now = _utcnow()
        self._apply_step_timestamp(self.step, now)
        self.step = new_step
        self.step_changed_at = now

    def _apply_step_timestamp(self, completed: PublishStep, now: datetime) -> None:
        mapping: dict[PublishStep, str] = {
            PublishStep.UPLOADING_MEDIA: "media_uploaded_at",
            PublishStep.BUILDING_DRAFT: "draft_built_at",
            PublishStep.CREATING_OFFER: "offer_created_at",
        }
        attr = mapping.get(completed)
        if attr:
            setattr(self, attr, now)

    def record_media(self, urls: list[str]) -> None:
        self.media_urls = list(urls)

    def record_draft(self, *, sku: str, category_id: str) -> None:
        self.sku = sku
        self.category_id = category_id

    def record_offer(self, offer_id: str) -> None:
        self.offer_id = offer_id

    def mark_published(self, *, listing_id: str, item_url: str) -> None:
        self.transition_to(PublishStep.PUBLISHED)
        self.published_at = self.step_changed_at
        self.listing_id = listing_id
        self.item_url = item_url
        self._events.append(
            ListingPublishedEvent(
                attempt_id=self.id,
                session_id=self.session_id,
                sku=self.sku or "",
                offer_id=self.offer_id or "",
                listing_id=listing_id,
                item_url=item_url,
            )
        )

    def mark_failed(self, error: MarketplaceError) -> None:
        failed_step = self.step
        # Steps are not timestamped as completed on failure
        _state_machine.validate_transition(self.step, PublishStep.FAILED)
        self.step = PublishStep.FAILED
        self.step_changed_at = self.failed_at = _utcnow()
        self.failed_step = failed_step
        self.failure_reason = error.reason
        self.error_message = error.message
        self._events.append(
            ListingPublishFailedEvent(
                attempt_id=self.id,
                session_id=self.session_id,
                failed_at=failed_step,
                failure_reason=error.reason,
                detail=error.message,
            )
        )

    def to_result(self) -> PublishResult:
        if self.step is not PublishStep.PUBLISHED:
            raise ValueError(f"Attempt {self.id} has not been published (step={self.step.value}).")
        return PublishResult.succeeded(
            item_url=self.item_url or "",
            listing_id=self.listing_id or "",
            offer_id=self.offer_id or "",
            sku=self.sku or "",
        )

    # -------------------------------------------------------------------------
    # Event collection
    # -------------------------------------------------------------------------

    def collect_events(self) -> list[DomainEvent]:
        """Return pending events and clear the internal buffer."""
        events = list(self._events)
        self._events.clear()
        return events
