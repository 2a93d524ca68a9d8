"""Unit tests for the PublishListing pipeline; the Sell gateway is mocked."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from listing_ai.application.interfaces.marketplace_gateway import (
    GatewayAuthError,
    GatewayRejectedError,
    GatewayTransportError,
    GrantRejectedError,
)
from listing_ai.application.use_cases.get_connection_status import GetConnectionStatus
from listing_ai.application.use_cases.publish_listing import (
    ListingDefaults,
    PublishListing,
    PublishListingInput,
)
from listing_ai.application.use_cases.refresh_access_token import RefreshAccessToken
from listing_ai.domain.entities.generated_listing import GeneratedListing
from listing_ai.domain.entities.image_asset import ImageAsset
from listing_ai.domain.entities.token_set import TokenSet
from listing_ai.domain.errors import (
    InvalidInputError,
    ListingRejectedError,
    MarketplaceUnavailableError,
    MediaUploadFailedError,
    NotConnectedError,
)
from listing_ai.domain.enums.publish_step import PublishStep
from listing_ai.domain.events.domain_events import (
    ListingPublishedEvent,
    ListingPublishFailedEvent,
)
from listing_ai.infrastructure.memory.stores import InMemoryTokenStore

SESSION = "session-1"
BRAND_MISSING = (
    "The item specific Brand is missing. Add Brand to this listing, enter a valid value, "
    "and then try again."
)

DEFAULTS = ListingDefaults(
    item_url_base="https://www.ebay.com",
    default_price="9.99",
    default_condition="USED_GOOD",
    max_images=8,
    max_image_bytes=5 * 1024 * 1024,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _make_listing() -> GeneratedListing:
    return GeneratedListing.from_payload(
        {
            "title": "Canon AE-1 Program 35mm Film Camera",
            "category": ["Cameras & Photo > Film Photography > Film Cameras"],
            "itemSpecifics": [
                {"name": "Brand", "value": "Canon"},
                {"name": "Condition", "value": "Used"},
            ],
            "description": "<p>Tested and working.</p>",
        }
    )


def _make_images(count: int = 2) -> list[ImageAsset]:
    return [
        ImageAsset(data=f"jpeg-{i}".encode(), mime_type="image/jpeg", filename=f"photo{i}")
        for i in range(1, count + 1)
    ]


def _make_token_set(**overrides) -> TokenSet:  # type: ignore[no-untyped-def]
    defaults = dict(
        access_token="old-access",
        refresh_token="v^1.1#refresh",
        expires_at=_utcnow() + timedelta(hours=2),
        scopes=frozenset({"https://api.ebay.com/oauth/api_scope/sell.inventory"}),
    )
    defaults.update(overrides)
    return TokenSet(**defaults)


def _make_sell_gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.upload_image = AsyncMock(
        side_effect=lambda token, image: f"https://i.ebayimg.com/images/{image.filename}.jpg"
    )
    gateway.suggest_category_id = AsyncMock(return_value="15230")
    gateway.create_or_replace_inventory_item = AsyncMock(return_value=None)
    gateway.create_offer = AsyncMock(return_value="offer-1")
    gateway.publish_offer = AsyncMock(return_value="123456")
    return gateway


def _make_auth_gateway() -> MagicMock:
    gateway = MagicMock()
    gateway.refresh = AsyncMock(return_value={"access_token": "new-access", "expires_in": 7200})
    return gateway


def _make_publisher() -> MagicMock:
    pub = MagicMock()
    pub.publish_many = AsyncMock()
    return pub


def _published_events(publisher: MagicMock) -> list:  # type: ignore[type-arg]
    return [event for call in publisher.publish_many.await_args_list for event in call.args[0]]


async def _connected_store(**overrides) -> InMemoryTokenStore:  # type: ignore[no-untyped-def]
    store = InMemoryTokenStore()
    await store.save(SESSION, _make_token_set(**overrides))
    return store


def _use_case(
    token_store: InMemoryTokenStore,
    sell_gateway: MagicMock,
    auth_gateway: MagicMock | None = None,
    publisher: MagicMock | None = None,
) -> PublishListing:
    publisher = publisher or _make_publisher()
    refresher = RefreshAccessToken(
        token_store, auth_gateway or _make_auth_gateway(), publisher, margin_seconds=300
    )
    return PublishListing(token_store, sell_gateway, refresher, publisher, DEFAULTS)


def _input(images: list[ImageAsset] | None = None, price: Decimal | None = None) -> PublishListingInput:
    return PublishListingInput(
        session_id=SESSION,
        listing=_make_listing(),
        images=_make_images() if images is None else images,
        price=price,
    )


class TestPreconditions:
    @pytest.mark.asyncio
    async def test_zero_images_is_invalid_input_without_uploads(self) -> None:
        sell_gateway = _make_sell_gateway()

        with pytest.raises(InvalidInputError):
            await _use_case(await _connected_store(), sell_gateway).execute(_input(images=[]))

        sell_gateway.upload_image.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_connected_fails_without_uploads(self) -> None:
        sell_gateway = _make_sell_gateway()

        with pytest.raises(NotConnectedError):
            await _use_case(InMemoryTokenStore(), sell_gateway).execute(_input())

        sell_gateway.upload_image.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_too_many_images(self) -> None:
        with pytest.raises(InvalidInputError, match="maximum of 8"):
            await _use_case(await _connected_store(), _make_sell_gateway()).execute(
                _input(images=_make_images(9))
            )

    @pytest.mark.asyncio
    async def test_non_image_file(self) -> None:
        images = [ImageAsset(data=b"%PDF", mime_type="application/pdf", filename="manual.pdf")]
        with pytest.raises(InvalidInputError, match="manual.pdf"):
            await _use_case(await _connected_store(), _make_sell_gateway()).execute(_input(images=images))

    @pytest.mark.asyncio
    async def test_oversized_image(self) -> None:
        images = [ImageAsset(data=b"x" * (5 * 1024 * 1024 + 1), mime_type="image/png", filename="big")]
        with pytest.raises(InvalidInputError, match="too large"):
            await _use_case(await _connected_store(), _make_sell_gateway()).execute(_input(images=images))

    @pytest.mark.asyncio
    async def test_non_positive_price(self) -> None:
        with pytest.raises(InvalidInputError):
            await _use_case(await _connected_store(), _make_sell_gateway()).execute(
                _input(price=Decimal("0"))
            )


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_publishes_and_returns_item_url(self) -> None:
        sell_gateway = _make_sell_gateway()
        publisher = _make_publisher()

        result = await _use_case(await _connected_store(), sell_gateway, publisher=publisher).execute(
            _input(price=Decimal("49.5"))
        )

        assert result.success is True
        assert result.item_url == "https://www.ebay.com/itm/123456"
        assert result.offer_id == "offer-1"
        assert result.sku is not None and result.sku.startswith("LAI-")
        assert sell_gateway.upload_image.await_count == 2
        sell_gateway.publish_offer.assert_awaited_once_with("old-access", "offer-1")

        draft = sell_gateway.create_offer.await_args.args[1]
        assert draft.price == Decimal("49.50")
        assert draft.category_id == "15230"
        assert draft.condition == "USED_GOOD"
        assert draft.image_urls == (
            "https://i.ebayimg.com/images/photo1.jpg",
            "https://i.ebayimg.com/images/photo2.jpg",
        )

        events = _published_events(publisher)
        assert len(events) == 1
        assert isinstance(events[0], ListingPublishedEvent)
        assert events[0].listing_id == "123456"

    @pytest.mark.asyncio
    async def test_default_price_is_used(self) -> None:
        sell_gateway = _make_sell_gateway()
        await _use_case(await _connected_store(), sell_gateway).execute(_input())
        assert sell_gateway.create_offer.await_args.args[1].price == Decimal("9.99")

    @pytest.mark.asyncio
    async def test_category_is_suggested_from_leaf_segment(self) -> None:
        sell_gateway = _make_sell_gateway()
        await _use_case(await _connected_store(), sell_gateway).execute(_input())
        sell_gateway.suggest_category_id.assert_awaited_once_with("old-access", "Film Cameras")


class TestTokenRefresh:
    @pytest.mark.asyncio
    async def test_401_refreshes_once_and_retries_transparently(self) -> None:
        token_store = await _connected_store()
        sell_gateway = _make_sell_gateway()
        sell_gateway.upload_image = AsyncMock(
            side_effect=[
                GatewayAuthError("401"),
                "https://i.ebayimg.com/images/photo1.jpg",
                "https://i.ebayimg.com/images/photo2.jpg",
            ]
        )
        auth_gateway = _make_auth_gateway()

        result = await _use_case(token_store, sell_gateway, auth_gateway).execute(_input())

        assert result.success is True
        assert result.item_url == "https://www.ebay.com/itm/123456"
        auth_gateway.refresh.assert_awaited_once()
        # Retried with the new token, which was also persisted
        assert sell_gateway.upload_image.await_args_list[1].args[0] == "new-access"
        stored = await token_store.get(SESSION)
        assert stored is not None and stored.access_token == "new-access"

    @pytest.mark.asyncio
    async def test_expired_access_token_is_refreshed_up_front(self) -> None:
        token_store = await _connected_store(expires_at=_utcnow() - timedelta(minutes=1))
        sell_gateway = _make_sell_gateway()
        auth_gateway = _make_auth_gateway()

        await _use_case(token_store, sell_gateway, auth_gateway).execute(_input())

        auth_gateway.refresh.assert_awaited_once()
        assert sell_gateway.upload_image.await_args_list[0].args[0] == "new-access"

    @pytest.mark.asyncio
    async def test_only_one_refresh_per_publish(self) -> None:
        token_store = await _connected_store(expires_at=_utcnow() - timedelta(minutes=1))
        sell_gateway = _make_sell_gateway()
        sell_gateway.create_offer = AsyncMock(side_effect=GatewayAuthError("401"))
        auth_gateway = _make_auth_gateway()

        with pytest.raises(NotConnectedError):
            await _use_case(token_store, sell_gateway, auth_gateway).execute(_input())

        auth_gateway.refresh.assert_awaited_once()
        sell_gateway.create_offer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_second_401_after_refresh_fails(self) -> None:
        sell_gateway = _make_sell_gateway()
        sell_gateway.publish_offer = AsyncMock(side_effect=GatewayAuthError("401"))
        auth_gateway = _make_auth_gateway()

        with pytest.raises(NotConnectedError):
            await _use_case(await _connected_store(), sell_gateway, auth_gateway).execute(_input())

        assert sell_gateway.publish_offer.await_count == 2
        auth_gateway.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_revoked_refresh_token_disconnects_session(self) -> None:
        token_store = await _connected_store()
        sell_gateway = _make_sell_gateway()
        sell_gateway.upload_image = AsyncMock(side_effect=GatewayAuthError("401"))
        auth_gateway = _make_auth_gateway()
        auth_gateway.refresh = AsyncMock(
            side_effect=GrantRejectedError("invalid_grant: refresh token revoked", status_code=400)
        )

        with pytest.raises(NotConnectedError):
            await _use_case(token_store, sell_gateway, auth_gateway).execute(_input())

        status = await GetConnectionStatus(token_store).execute(SESSION)
        assert status.connected is False
        sell_gateway.create_offer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unreachable_identity_service_forces_reconnect(self) -> None:
        token_store = await _connected_store(expires_at=_utcnow() - timedelta(minutes=1))
        sell_gateway = _make_sell_gateway()
        auth_gateway = _make_auth_gateway()
        auth_gateway.refresh = AsyncMock(side_effect=GatewayTransportError("timed out"))

        with pytest.raises(NotConnectedError):
            await _use_case(token_store, sell_gateway, auth_gateway).execute(_input())

        assert await token_store.get(SESSION) is None
        sell_gateway.upload_image.assert_not_awaited()


class TestStepFailures:
    @pytest.mark.asyncio
    async def test_missing_brand_is_listing_rejected_verbatim(self) -> None:
        sell_gateway = _make_sell_gateway()
        sell_gateway.create_offer = AsyncMock(
            side_effect=GatewayRejectedError(BRAND_MISSING, status_code=400)
        )
        publisher = _make_publisher()

        with pytest.raises(ListingRejectedError) as exc_info:
            await _use_case(await _connected_store(), sell_gateway, publisher=publisher).execute(_input())

        assert exc_info.value.message == BRAND_MISSING
        sell_gateway.publish_offer.assert_not_awaited()
        events = _published_events(publisher)
        assert len(events) == 1
        assert isinstance(events[0], ListingPublishFailedEvent)
        assert events[0].failed_at == PublishStep.CREATING_OFFER
        assert events[0].failure_reason == "ListingRejected"

    @pytest.mark.asyncio
    async def test_rejected_image_is_media_upload_failed(self) -> None:
        sell_gateway = _make_sell_gateway()
        sell_gateway.upload_image = AsyncMock(
            side_effect=["https://i.ebayimg.com/images/photo1.jpg", GatewayRejectedError("Bad image", status_code=400)]
        )

        with pytest.raises(MediaUploadFailedError, match="image 2"):
            await _use_case(await _connected_store(), sell_gateway).execute(_input())

        sell_gateway.create_or_replace_inventory_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upload_timeout_is_media_upload_failed(self) -> None:
        sell_gateway = _make_sell_gateway()
        sell_gateway.upload_image = AsyncMock(side_effect=GatewayTransportError("read timeout"))

        with pytest.raises(MediaUploadFailedError):
            await _use_case(await _connected_store(), sell_gateway).execute(_input())

        sell_gateway.upload_image.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_offer_timeout_is_marketplace_unavailable_and_not_retried(self) -> None:
        sell_gateway = _make_sell_gateway()
        sell_gateway.create_offer = AsyncMock(side_effect=GatewayTransportError("read timeout"))

        with pytest.raises(MarketplaceUnavailableError):
            await _use_case(await _connected_store(), sell_gateway).execute(_input())

        sell_gateway.create_offer.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_inventory_rejection_is_listing_rejected(self) -> None:
        sell_gateway = _make_sell_gateway()
        sell_gateway.create_or_replace_inventory_item = AsyncMock(
            side_effect=GatewayRejectedError("Invalid condition", status_code=400)
        )

        with pytest.raises(ListingRejectedError, match="Invalid condition"):
            await _use_case(await _connected_store(), sell_gateway).execute(_input())

        sell_gateway.create_offer.assert_not_awaited()
