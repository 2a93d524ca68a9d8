"""HTTP client for the AI listing-generation service."""
import base64
from typing import Any

import httpx
import structlog

from listing_ai.application.interfaces.listing_generator import (
    ListingGenerator,
    ListingGeneratorError,
)
from listing_ai.config import settings
from listing_ai.domain.entities.image_asset import ImageAsset

logger = structlog.get_logger(__name__)

SLOW_RESPONSE_MESSAGE = (
    "The AI model is taking too long to respond, which can happen with complex items "
    "or during peak hours. Please try generating the listing again."
)


class ListingGeneratorClient(ListingGenerator):
    """Posts base64 image parts plus the seller's note and returns the listing JSON."""

    def __init__(
        self,
        url: str = settings.listing_generator_url,
        timeout: float = settings.http_timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def generate(
        self,
        images: list[ImageAsset],
        personal_note: str,
        is_high_quality: bool,
    ) -> Any:
        payload = {
            "imageParts": [
                {"mimeType": image.mime_type, "data": base64.b64encode(image.data).decode()}
                for image in images
            ],
            "personalNote": personal_note,
            "isHighQuality": is_high_quality,
        }

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(self._url, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                message = _failure_message(exc.response)
                logger.error(
                    "listing_generator_request_failed",
                    status_code=exc.response.status_code,
                    error=message,
                )
                raise ListingGeneratorError(message) from exc
            except httpx.TimeoutException as exc:
                logger.error("listing_generator_timeout", error=str(exc))
                raise ListingGeneratorError(SLOW_RESPONSE_MESSAGE) from exc
            except httpx.RequestError as exc:
                logger.error("listing_generator_connection_failed", error=str(exc))
                raise ListingGeneratorError(f"Failed to reach the listing generator: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise ListingGeneratorError("Received malformed data from the backend.") from exc


def _failure_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        # Typically an upstream gateway timeout page
        return SLOW_RESPONSE_MESSAGE
    if isinstance(body, dict):
        message = body.get("error") or body.get("details")
        if message:
            return str(message)
    return "Failed to generate listing from backend."
