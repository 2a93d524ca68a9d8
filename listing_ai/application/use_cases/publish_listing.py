from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import TypeVar

import structlog

from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.application.interfaces.marketplace_gateway import (
    GatewayAuthError,
    GatewayRejectedError,
    GatewayTransportError,
    MarketplaceSellGateway,
)
from listing_ai.application.interfaces.token_store import TokenStore
from listing_ai.application.use_cases.refresh_access_token import (
    RefreshAccessToken,
    RefreshAccessTokenInput,
)
from listing_ai.config import settings
from listing_ai.domain.entities.generated_listing import GeneratedListing
from listing_ai.domain.entities.image_asset import ImageAsset
from listing_ai.domain.entities.listing_draft import ListingDraft, category_query, content_sku
from listing_ai.domain.entities.publish_attempt import PublishAttempt
from listing_ai.domain.entities.publish_result import PublishResult
from listing_ai.domain.entities.token_set import TokenSet
from listing_ai.domain.enums.publish_step import PublishStep
from listing_ai.domain.errors import (
    InvalidInputError,
    ListingRejectedError,
    MarketplaceError,
    MarketplaceUnavailableError,
    MediaUploadFailedError,
    NotConnectedError,
    RefreshFailedError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ListingDefaults:
    item_url_base: str = settings.ebay_item_url_base
    default_price: str = settings.default_listing_price
    default_condition: str = settings.default_condition
    max_images: int = settings.max_images
    max_image_bytes: int = settings.max_image_bytes


@dataclass
class PublishListingInput:
    session_id: str
    listing: GeneratedListing
    images: list[ImageAsset]
    price: Decimal | None = None


class _SessionTokens:
    """The TokenSet in use for one publish call, swapped in place after a refresh."""

    def __init__(self, session_id: str, token_set: TokenSet) -> None:
        self.session_id = session_id
        self.current = token_set

    @property
    def access_token(self) -> str:
        return self.current.access_token


class PublishListing:
    """
    Use case: Turn a generated listing plus photos into a live eBay listing.

    Runs media upload → draft/inventory item → offer → activation in order,
    each step consuming the identifier the previous one produced. The whole
    call gets at most one token refresh: up front if the access token is
    already stale, otherwise on the first 401, after which the failed step
    is retried once. If that refresh fails for any reason the tokens are
    discarded and the publish ends as NotConnected.
    """

    def __init__(
        self,
        token_store: TokenStore,
        sell_gateway: MarketplaceSellGateway,
        refresher: RefreshAccessToken,
        event_publisher: EventPublisher,
        defaults: ListingDefaults | None = None,
    ) -> None:
        self._token_store = token_store
        self._sell_gateway = sell_gateway
        self._refresher = refresher
        self._event_publisher = event_publisher
        self._defaults = defaults or ListingDefaults()

    async def execute(self, input_data: PublishListingInput) -> PublishResult:
        # Preconditions fail fast with no network call
        self._validate_images(input_data.images)
        price = self._resolve_price(input_data.price)

        token_set = await self._token_store.get(input_data.session_id)
        if token_set is None or not token_set.has_usable_refresh_token():
            raise NotConnectedError("Connect your eBay account before posting.")

        attempt = PublishAttempt(session_id=input_data.session_id)
        tokens = _SessionTokens(input_data.session_id, token_set)

        try:
            if self._refresher.needs_refresh(tokens.current):
                await self._refresh(attempt, tokens)

            attempt.transition_to(PublishStep.UPLOADING_MEDIA)
            await self._upload_media(attempt, tokens, input_data.images)

            attempt.transition_to(PublishStep.BUILDING_DRAFT)
            draft = await self._build_draft(attempt, tokens, input_data, price)

            attempt.transition_to(PublishStep.CREATING_OFFER)
            await self._create_offer(attempt, tokens, draft)

            attempt.transition_to(PublishStep.ACTIVATING)
            await self._activate(attempt, tokens)
        except MarketplaceError as exc:
            attempt.mark_failed(exc)
            await self._event_publisher.publish_many(attempt.collect_events())
            logger.warning(
                "publish_failed",
                attempt_id=str(attempt.id),
                session_id=attempt.session_id,
                step=attempt.failed_step.value if attempt.failed_step else None,
                reason=exc.reason,
                detail=exc.message,
            )
            raise

        await self._event_publisher.publish_many(attempt.collect_events())
        logger.info(
            "listing_published",
            attempt_id=str(attempt.id),
            session_id=attempt.session_id,
            sku=attempt.sku,
            offer_id=attempt.offer_id,
            listing_id=attempt.listing_id,
        )
        return attempt.to_result()

    # -------------------------------------------------------------------------
    # Preconditions
    # -------------------------------------------------------------------------

    def _validate_images(self, images: list[ImageAsset]) -> None:
        limits = self._defaults
        if not images:
            raise InvalidInputError("Please upload at least one image.")
        if len(images) > limits.max_images:
            raise InvalidInputError(f"You can only upload a maximum of {limits.max_images} images.")
        max_mb = limits.max_image_bytes // (1024 * 1024)
        for image in images:
            if not image.is_image:
                raise InvalidInputError(f'File "{image.filename}" is not a valid image type.')
            if image.size == 0:
                raise InvalidInputError(f'File "{image.filename}" is empty.')
            if image.size > limits.max_image_bytes:
                raise InvalidInputError(f'File "{image.filename}" is too large (max {max_mb}MB).')

    def _resolve_price(self, price: Decimal | None) -> Decimal:
        try:
            resolved = Decimal(str(price)) if price is not None else Decimal(self._defaults.default_price)
        except InvalidOperation as exc:
            raise InvalidInputError(f"Invalid price: {price}") from exc
        if not resolved.is_finite() or resolved <= 0:
            raise InvalidInputError("Price must be greater than zero.")
        return resolved.quantize(Decimal("0.01"))

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    async def _upload_media(
        self, attempt: PublishAttempt, tokens: _SessionTokens, images: list[ImageAsset]
    ) -> None:
        urls: list[str] = []
        for index, image in enumerate(images, start=1):
            try:
                url = await self._call(
                    attempt,
                    tokens,
                    lambda token: self._sell_gateway.upload_image(token, image),
                )
            except GatewayRejectedError as exc:
                raise MediaUploadFailedError(
                    f'eBay rejected image {index} ("{image.filename}"): {exc.message}'
                ) from exc
            except GatewayTransportError as exc:
                raise MediaUploadFailedError(
                    f'Uploading image {index} ("{image.filename}") failed: {exc}'
                ) from exc
            urls.append(url)
            logger.debug("media_uploaded", attempt_id=str(attempt.id), index=index)
        attempt.record_media(urls)

    async def _build_draft(
        self,
        attempt: PublishAttempt,
        tokens: _SessionTokens,
        input_data: PublishListingInput,
        price: Decimal,
    ) -> ListingDraft:
        listing = input_data.listing
        sku = content_sku(listing, input_data.images)
        query = category_query(listing)

        with _business_errors():
            category_id = await self._call(
                attempt,
                tokens,
                lambda token: self._sell_gateway.suggest_category_id(token, query),
            )
            draft = ListingDraft.build(
                listing=listing,
                sku=sku,
                image_urls=attempt.media_urls,
                category_id=category_id,
                price=price,
                default_condition=self._defaults.default_condition,
            )
            await self._call(
                attempt,
                tokens,
                lambda token: self._sell_gateway.create_or_replace_inventory_item(token, draft),
            )

        attempt.record_draft(sku=sku, category_id=category_id)
        return draft

    async def _create_offer(
        self, attempt: PublishAttempt, tokens: _SessionTokens, draft: ListingDraft
    ) -> None:
        with _business_errors():
            offer_id = await self._call(
                attempt,
                tokens,
                lambda token: self._sell_gateway.create_offer(token, draft),
            )
        attempt.record_offer(offer_id)

    async def _activate(self, attempt: PublishAttempt, tokens: _SessionTokens) -> None:
        offer_id = attempt.offer_id or ""
        with _business_errors():
            listing_id = await self._call(
                attempt,
                tokens,
                lambda token: self._sell_gateway.publish_offer(token, offer_id),
            )
        item_url = f"{self._defaults.item_url_base.rstrip('/')}/itm/{listing_id}"
        attempt.mark_published(listing_id=listing_id, item_url=item_url)

    # -------------------------------------------------------------------------
    # Token handling
    # -------------------------------------------------------------------------

    async def _call(
        self,
        attempt: PublishAttempt,
        tokens: _SessionTokens,
        operation: Callable[[str], Awaitable[T]],
    ) -> T:
        """Run one gateway call; on a 401 refresh once per attempt and retry it."""
        try:
            return await operation(tokens.access_token)
        except GatewayAuthError as exc:
            if attempt.refresh_used:
                raise NotConnectedError(
                    "eBay rejected the access token after it was refreshed. Please reconnect."
                ) from exc
            logger.info("access_token_rejected", attempt_id=str(attempt.id), step=attempt.step.value)
            await self._refresh(attempt, tokens)

        try:
            return await operation(tokens.access_token)
        except GatewayAuthError as exc:
            raise NotConnectedError(
                "eBay rejected the access token after it was refreshed. Please reconnect."
            ) from exc

    async def _refresh(self, attempt: PublishAttempt, tokens: _SessionTokens) -> None:
        attempt.refresh_used = True
        try:
            tokens.current = await self._refresher.execute(
                RefreshAccessTokenInput(session_id=tokens.session_id, token_set=tokens.current)
            )
        except RefreshFailedError as exc:
            raise NotConnectedError(exc.message) from exc
        except MarketplaceUnavailableError as exc:
            # Any failed refresh mid-publish forces reauthorization
            await self._refresher.discard(tokens.session_id)
            raise NotConnectedError(f"{exc.message} Please reconnect your eBay account.") from exc


@contextmanager
def _business_errors() -> Iterator[None]:
    """Map gateway failures in the draft/offer/activation steps onto the public taxonomy."""
    try:
        yield
    except GatewayRejectedError as exc:
        raise ListingRejectedError(exc.message) from exc
    except GatewayTransportError as exc:
        raise MarketplaceUnavailableError(f"eBay could not be reached: {exc}") from exc
