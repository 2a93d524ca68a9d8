from abc import ABC, abstractmethod
from typing import Any

from listing_ai.domain.entities.image_asset import ImageAsset
from listing_ai.domain.entities.listing_draft import ListingDraft


class GatewayError(Exception):
    """Base for failures reported by a marketplace gateway."""


class GatewayTransportError(GatewayError):
    """Network failure or timeout; the marketplace never answered."""


class GatewayAuthError(GatewayError):
    """The access token was rejected (HTTP 401)."""


class GatewayRejectedError(GatewayError):
    """The marketplace refused the request; ``message`` is its own wording."""

    def __init__(self, message: str, *, status_code: int, errors: list | None = None) -> None:  # type: ignore[type-arg]
        self.message = message
        self.status_code = status_code
        self.errors = errors or []
        super().__init__(message)


class GrantRejectedError(GatewayError):
    """Token endpoint refused a code or refresh token (e.g. ``invalid_grant``)."""

    def __init__(self, message: str, *, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class MarketplaceAuthGateway(ABC):
    """Port for the marketplace's OAuth2 authorization and token endpoints."""

    @abstractmethod
    def build_authorization_url(self, *, state: str) -> str:
        ...

    @property
    @abstractmethod
    def redirect_uri(self) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Return the raw token response for an authorization code."""
        ...

    @abstractmethod
    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        """Return the raw token response for a refresh grant."""
        ...


class MarketplaceSellGateway(ABC):
    """
    Port for the Sell APIs driven by the publish pipeline.

    Every call takes the access token explicitly so the caller decides when
    to refresh it.
    """

    @abstractmethod
    async def upload_image(self, access_token: str, image: ImageAsset) -> str:
        """Upload one image and return its hosted URL."""
        ...

    @abstractmethod
    async def suggest_category_id(self, access_token: str, query: str) -> str:
        ...

    @abstractmethod
    async def create_or_replace_inventory_item(self, access_token: str, draft: ListingDraft) -> None:
        ...

    @abstractmethod
    async def create_offer(self, access_token: str, draft: ListingDraft) -> str:
        """Create (or locate the existing) offer for a SKU; returns the offer id."""
        ...

    @abstractmethod
    async def publish_offer(self, access_token: str, offer_id: str) -> str:
        """Activate an offer; returns the public listing id."""
        ...
