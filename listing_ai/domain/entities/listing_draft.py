import hashlib
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from listing_ai.domain.entities.generated_listing import GeneratedListing
from listing_ai.domain.entities.image_asset import ImageAsset

SKU_PREFIX = "LAI-"

# Free-text "Condition" specifics → Inventory API condition enum
CONDITION_MAP: dict[str, str] = {
    "new": "NEW",
    "brand new": "NEW",
    "new with tags": "NEW",
    "new other": "NEW_OTHER",
    "new without tags": "NEW_OTHER",
    "open box": "NEW_OTHER",
    "new with defects": "NEW_WITH_DEFECTS",
    "certified refurbished": "CERTIFIED_REFURBISHED",
    "excellent - refurbished": "EXCELLENT_REFURBISHED",
    "very good - refurbished": "VERY_GOOD_REFURBISHED",
    "good - refurbished": "GOOD_REFURBISHED",
    "seller refurbished": "SELLER_REFURBISHED",
    "like new": "LIKE_NEW",
    "used - like new": "LIKE_NEW",
    "pre-owned": "USED_GOOD",
    "used": "USED_GOOD",
    "used - excellent": "USED_EXCELLENT",
    "used - very good": "USED_VERY_GOOD",
    "used - good": "USED_GOOD",
    "used - acceptable": "USED_ACCEPTABLE",
    "for parts or not working": "FOR_PARTS_OR_NOT_WORKING",
    "for parts": "FOR_PARTS_OR_NOT_WORKING",
}


def content_sku(listing: GeneratedListing, images: Sequence[ImageAsset]) -> str:
    """
    Deterministic SKU for a listing + photo set.

    Publishing the same content twice yields the same SKU, so the inventory
    item is replaced rather than duplicated and eBay reports the existing
    offer instead of creating a second one.
    """
    digest = hashlib.sha256()
    digest.update(listing.title.encode())
    digest.update(b"\x00")
    digest.update("\x1f".join(listing.category).encode())
    digest.update(b"\x00")
    for specific in listing.item_specifics:
        digest.update(f"{specific.name}={specific.value}\x1f".encode())
    digest.update(b"\x00")
    digest.update(listing.description.encode())
    for image in images:
        digest.update(image.digest().encode())
    return SKU_PREFIX + digest.hexdigest()[:16].upper()


def map_condition(listing: GeneratedListing, default: str) -> str:
    value = listing.specific("Condition")
    if not value:
        return default
    return CONDITION_MAP.get(value.strip().casefold(), default)


def category_query(listing: GeneratedListing) -> str:
    """Leaf segment of the most likely category path, e.g. 'Digital Cameras'."""
    path = listing.category[0]
    for separator in (">", "/", "|"):
        if separator in path:
            return path.split(separator)[-1].strip()
    return path.strip()


@dataclass(frozen=True)
class ListingDraft:
    """Marketplace-ready representation of a listing before offer creation."""

    sku: str
    title: str
    description: str
    aspects: dict[str, list[str]]
    image_urls: tuple[str, ...]
    condition: str
    category_id: str
    price: Decimal
    quantity: int = 1

    @classmethod
    def build(
        cls,
        *,
        listing: GeneratedListing,
        sku: str,
        image_urls: Sequence[str],
        category_id: str,
        price: Decimal,
        default_condition: str,
    ) -> "ListingDraft":
        return cls(
            sku=sku,
            title=listing.title,
            description=listing.description,
            aspects=listing.aspects(),
            image_urls=tuple(image_urls),
            condition=map_condition(listing, default_condition),
            category_id=category_id,
            price=price,
        )
