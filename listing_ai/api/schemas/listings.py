from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ImagePartSchema(BaseModel):
    mime_type: str
    data: str  # base64, no data: URL prefix
    filename: str = "image"


class ItemSpecificSchema(BaseModel):
    name: str
    value: str


class GeneratedListingSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    category: list[str]
    item_specifics: list[ItemSpecificSchema] = Field(alias="itemSpecifics")
    description: str


class GenerateListingRequest(BaseModel):
    images: list[ImagePartSchema]
    personal_note: str = ""
    is_high_quality: bool = False


class PublishListingRequest(BaseModel):
    listing: GeneratedListingSchema
    images: list[ImagePartSchema]
    price: Decimal | None = None


class PublishResultResponse(BaseModel):
    success: bool
    item_url: str | None = None
    failure_reason: str | None = None
    detail: str | None = None
    listing_id: str | None = None
    offer_id: str | None = None
    sku: str | None = None
