import base64
import binascii
from dataclasses import asdict

from fastapi import APIRouter, Depends, Response

from listing_ai.api.dependencies import (
    get_generate_listing_use_case,
    get_publish_listing_use_case,
    get_session_id,
)
from listing_ai.api.schemas.listings import (
    GeneratedListingSchema,
    GenerateListingRequest,
    ImagePartSchema,
    PublishListingRequest,
    PublishResultResponse,
)
from listing_ai.api.schemas.marketplace import ErrorResponse
from listing_ai.application.use_cases.generate_listing import GenerateListing, GenerateListingInput
from listing_ai.application.use_cases.publish_listing import PublishListing, PublishListingInput
from listing_ai.domain.entities.generated_listing import GeneratedListing
from listing_ai.domain.entities.image_asset import ImageAsset
from listing_ai.domain.entities.publish_result import PublishResult
from listing_ai.domain.errors import InvalidInputError, MarketplaceError, UpstreamMalformedError

router = APIRouter(prefix="/listings", tags=["listings"])


def _to_assets(parts: list[ImagePartSchema]) -> list[ImageAsset]:
    assets: list[ImageAsset] = []
    for index, part in enumerate(parts, start=1):
        try:
            data = base64.b64decode(part.data, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise InvalidInputError(f'Image {index} ("{part.filename}") is not valid base64.') from exc
        assets.append(ImageAsset(data=data, mime_type=part.mime_type, filename=part.filename))
    return assets


def _to_listing(schema: GeneratedListingSchema) -> GeneratedListing:
    # Coming from the client, a bad shape is the caller's input error
    try:
        return GeneratedListing.from_payload(schema.model_dump(by_alias=True))
    except UpstreamMalformedError as exc:
        raise InvalidInputError(exc.message) from exc


@router.post(
    "/generate",
    response_model=GeneratedListingSchema,
    responses={422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
)
async def generate_listing(
    body: GenerateListingRequest,
    use_case: GenerateListing = Depends(get_generate_listing_use_case),
) -> GeneratedListingSchema:
    """Draft a listing from photos via the AI listing generator."""
    listing = await use_case.execute(
        GenerateListingInput(
            images=_to_assets(body.images),
            personal_note=body.personal_note,
            is_high_quality=body.is_high_quality,
        )
    )
    return GeneratedListingSchema.model_validate(listing.to_payload())


@router.post("/publish", response_model=PublishResultResponse)
async def publish_listing(
    body: PublishListingRequest,
    response: Response,
    session_id: str = Depends(get_session_id),
    use_case: PublishListing = Depends(get_publish_listing_use_case),
) -> PublishResultResponse:
    """
    Publish a generated listing to eBay.

    Always answers with a PublishResult body. On failure ``success`` is false
    and the HTTP status is the one of the failure reason.
    """
    try:
        result = await use_case.execute(
            PublishListingInput(
                session_id=session_id,
                listing=_to_listing(body.listing),
                images=_to_assets(body.images),
                price=body.price,
            )
        )
    except MarketplaceError as exc:
        response.status_code = exc.status_code
        result = PublishResult.failed(exc)

    return PublishResultResponse(**asdict(result))
