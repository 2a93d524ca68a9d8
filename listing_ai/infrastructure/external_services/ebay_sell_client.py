"""HTTP client for the eBay Sell APIs used by the publish pipeline."""
from typing import Any

import httpx
import structlog

from listing_ai.application.interfaces.marketplace_gateway import (
    GatewayAuthError,
    GatewayRejectedError,
    GatewayTransportError,
    MarketplaceSellGateway,
)
from listing_ai.config import settings
from listing_ai.domain.entities.image_asset import ImageAsset
from listing_ai.domain.entities.listing_draft import ListingDraft

logger = structlog.get_logger(__name__)

PRODUCTION_API_BASE = "https://api.ebay.com"
SANDBOX_API_BASE = "https://api.sandbox.ebay.com"
PRODUCTION_MEDIA_BASE = "https://apim.ebay.com"
SANDBOX_MEDIA_BASE = "https://apim.sandbox.ebay.com"

# errorId eBay returns when an offer for the SKU exists already
OFFER_EXISTS_ERROR_ID = 25002


def _error_message(response: httpx.Response) -> tuple[str, list[dict[str, Any]]]:
    """Pull eBay's own wording out of an ``{"errors": [...]}`` body."""
    try:
        body = response.json()
    except ValueError:
        return f"eBay returned HTTP {response.status_code}", []
    errors = body.get("errors") if isinstance(body, dict) else None
    if not isinstance(errors, list) or not errors:
        return f"eBay returned HTTP {response.status_code}", []
    messages = [
        str(error.get("longMessage") or error.get("message"))
        for error in errors
        if isinstance(error, dict) and (error.get("longMessage") or error.get("message"))
    ]
    return "; ".join(messages) or f"eBay returned HTTP {response.status_code}", errors


def _existing_offer_id(errors: list[dict[str, Any]]) -> str | None:
    for error in errors:
        if error.get("errorId") != OFFER_EXISTS_ERROR_ID:
            continue
        for parameter in error.get("parameters") or []:
            if parameter.get("name") == "offerId" and parameter.get("value"):
                return str(parameter["value"])
    return None


class EbaySellClient(MarketplaceSellGateway):
    """
    Thin HTTP wrapper around the Media, Taxonomy and Inventory APIs.

    Failures are reported with three error types: GatewayAuthError for a
    401, GatewayRejectedError for any other 4xx/5xx (message taken verbatim
    from eBay's error body) and GatewayTransportError when eBay never answered.
    """

    def __init__(
        self,
        sandbox: bool = settings.is_sandbox,
        marketplace_id: str = settings.ebay_marketplace_id,
        category_tree_id: str = settings.ebay_category_tree_id,
        currency: str = settings.ebay_currency,
        merchant_location_key: str = settings.ebay_merchant_location_key,
        payment_policy_id: str = settings.ebay_payment_policy_id,
        return_policy_id: str = settings.ebay_return_policy_id,
        fulfillment_policy_id: str = settings.ebay_fulfillment_policy_id,
        timeout: float = settings.http_timeout_seconds,
        media_timeout: float = settings.media_upload_timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_base = SANDBOX_API_BASE if sandbox else PRODUCTION_API_BASE
        self._media_base = SANDBOX_MEDIA_BASE if sandbox else PRODUCTION_MEDIA_BASE
        self._marketplace_id = marketplace_id
        self._category_tree_id = category_tree_id
        self._currency = currency
        self._merchant_location_key = merchant_location_key
        self._payment_policy_id = payment_policy_id
        self._return_policy_id = return_policy_id
        self._fulfillment_policy_id = fulfillment_policy_id
        self._timeout = timeout
        self._media_timeout = media_timeout
        self._transport = transport

    # -------------------------------------------------------------------------
    # Media API
    # -------------------------------------------------------------------------

    async def upload_image(self, access_token: str, image: ImageAsset) -> str:
        """
        POST /commerce/media/v1_beta/image/create_image_from_file → 201

        The hosted URL is either in the body as ``imageUrl`` or behind the
        ``Location`` header, which then needs a GET.
        """
        url = f"{self._media_base}/commerce/media/v1_beta/image/create_image_from_file"
        async with self._client(self._media_timeout) as client:
            response = await self._send(
                client,
                "POST",
                url,
                access_token,
                operation="upload_image",
                files={"image": (image.filename, image.data, image.mime_type)},
            )
            image_url = _json_field(response, "imageUrl")
            if image_url:
                return image_url

            location = response.headers.get("Location")
            if not location:
                raise GatewayRejectedError(
                    "eBay accepted the image but returned no image URL",
                    status_code=response.status_code,
                )
            if not location.startswith("http"):
                location = f"{self._media_base}/commerce/media/v1_beta/image/{location.rstrip('/').split('/')[-1]}"

            details = await self._send(client, "GET", location, access_token, operation="get_image")
            image_url = _json_field(details, "imageUrl")
            if not image_url:
                raise GatewayRejectedError(
                    "eBay returned no image URL for the uploaded image",
                    status_code=details.status_code,
                )
            return image_url

    # -------------------------------------------------------------------------
    # Taxonomy API
    # -------------------------------------------------------------------------

    async def suggest_category_id(self, access_token: str, query: str) -> str:
        """GET /commerce/taxonomy/v1/category_tree/{id}/get_category_suggestions?q=..."""
        url = (
            f"{self._api_base}/commerce/taxonomy/v1/category_tree/"
            f"{self._category_tree_id}/get_category_suggestions"
        )
        async with self._client() as client:
            response = await self._send(
                client, "GET", url, access_token, operation="suggest_category", params={"q": query}
            )

        for suggestion in _json_body(response).get("categorySuggestions") or []:
            category_id = (suggestion.get("category") or {}).get("categoryId")
            if category_id:
                logger.debug("ebay_category_suggested", query=query, category_id=category_id)
                return str(category_id)

        raise GatewayRejectedError(
            f'eBay has no category matching "{query}"', status_code=response.status_code
        )

    # -------------------------------------------------------------------------
    # Inventory API
    # -------------------------------------------------------------------------

    async def create_or_replace_inventory_item(self, access_token: str, draft: ListingDraft) -> None:
        """PUT /sell/inventory/v1/inventory_item/{sku} → 204"""
        payload = {
            "availability": {"shipToLocationAvailability": {"quantity": draft.quantity}},
            "condition": draft.condition,
            "product": {
                "title": draft.title,
                "description": draft.description,
                "aspects": draft.aspects,
                "imageUrls": list(draft.image_urls),
            },
        }
        url = f"{self._api_base}/sell/inventory/v1/inventory_item/{draft.sku}"
        async with self._client() as client:
            await self._send(
                client, "PUT", url, access_token, operation="put_inventory_item", json=payload
            )
        logger.info("ebay_inventory_item_saved", sku=draft.sku, category_id=draft.category_id)

    async def create_offer(self, access_token: str, draft: ListingDraft) -> str:
        """POST /sell/inventory/v1/offer → {"offerId": "..."}"""
        payload = {
            "sku": draft.sku,
            "marketplaceId": self._marketplace_id,
            "format": "FIXED_PRICE",
            "availableQuantity": draft.quantity,
            "categoryId": draft.category_id,
            "listingDescription": draft.description,
            "listingPolicies": {
                "fulfillmentPolicyId": self._fulfillment_policy_id,
                "paymentPolicyId": self._payment_policy_id,
                "returnPolicyId": self._return_policy_id,
            },
            "merchantLocationKey": self._merchant_location_key,
            "pricingSummary": {
                "price": {"value": str(draft.price), "currency": self._currency},
            },
        }
        url = f"{self._api_base}/sell/inventory/v1/offer"
        async with self._client() as client:
            try:
                response = await self._send(
                    client, "POST", url, access_token, operation="create_offer", json=payload
                )
            except GatewayRejectedError as exc:
                existing = _existing_offer_id(exc.errors)
                if existing is None:
                    raise
                logger.info("ebay_offer_reused", sku=draft.sku, offer_id=existing)
                return existing

        offer_id = _json_field(response, "offerId")
        if not offer_id:
            raise GatewayRejectedError("eBay created no offer id", status_code=response.status_code)
        logger.info("ebay_offer_created", sku=draft.sku, offer_id=offer_id)
        return offer_id

    async def publish_offer(self, access_token: str, offer_id: str) -> str:
        """POST /sell/inventory/v1/offer/{offerId}/publish → {"listingId": "..."}"""
        url = f"{self._api_base}/sell/inventory/v1/offer/{offer_id}/publish"
        async with self._client() as client:
            response = await self._send(client, "POST", url, access_token, operation="publish_offer")

        listing_id = _json_field(response, "listingId")
        if not listing_id:
            raise GatewayRejectedError(
                "eBay published the offer but returned no listing id",
                status_code=response.status_code,
            )
        logger.info("ebay_offer_published", offer_id=offer_id, listing_id=listing_id)
        return listing_id

    # -------------------------------------------------------------------------
    # Plumbing
    # -------------------------------------------------------------------------

    def _client(self, timeout: float | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout or self._timeout, transport=self._transport)

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        access_token: str,
        *,
        operation: str,
        **kwargs: Any,
    ) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
            "Content-Language": "en-US",
            "X-EBAY-C-MARKETPLACE-ID": self._marketplace_id,
        }
        try:
            response = await client.request(method, url, headers=headers, **kwargs)
        except httpx.RequestError as exc:
            logger.error("ebay_request_failed", operation=operation, error=str(exc))
            raise GatewayTransportError(f"Failed to reach eBay ({operation}): {exc}") from exc

        if response.status_code == 401:
            logger.info("ebay_access_token_rejected", operation=operation)
            raise GatewayAuthError(f"eBay rejected the access token ({operation})")

        if response.is_error:
            message, errors = _error_message(response)
            logger.warning(
                "ebay_request_rejected",
                operation=operation,
                status_code=response.status_code,
                error=message,
            )
            raise GatewayRejectedError(message, status_code=response.status_code, errors=errors)

        return response


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def _json_field(response: httpx.Response, name: str) -> str | None:
    value = _json_body(response).get(name)
    return str(value) if value else None
