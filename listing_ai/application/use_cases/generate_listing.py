from dataclasses import dataclass

import structlog

from listing_ai.application.interfaces.listing_generator import (
    ListingGenerator,
    ListingGeneratorError,
)
from listing_ai.domain.entities.generated_listing import GeneratedListing
from listing_ai.domain.entities.image_asset import ImageAsset
from listing_ai.domain.errors import InvalidInputError, UpstreamFailedError

logger = structlog.get_logger(__name__)


@dataclass
class GenerateListingInput:
    images: list[ImageAsset]
    personal_note: str = ""
    is_high_quality: bool = False


class GenerateListing:
    """
    Use case: Ask the AI collaborator for a listing and shape-check the answer.

    Malformed output is rejected with UpstreamMalformedError here and so can
    never reach the publish pipeline.
    """

    def __init__(self, generator: ListingGenerator) -> None:
        self._generator = generator

    async def execute(self, input_data: GenerateListingInput) -> GeneratedListing:
        if not input_data.images:
            raise InvalidInputError("Please upload at least one image.")

        try:
            payload = await self._generator.generate(
                input_data.images,
                input_data.personal_note,
                input_data.is_high_quality,
            )
        except ListingGeneratorError as exc:
            logger.error("listing_generation_failed", error=exc.message)
            raise UpstreamFailedError(f"Failed to generate listing. Details: {exc.message}") from exc

        listing = GeneratedListing.from_payload(payload)

        logger.info(
            "listing_generated",
            image_count=len(input_data.images),
            high_quality=input_data.is_high_quality,
            specifics=len(listing.item_specifics),
        )
        return listing
