from dataclasses import dataclass

from listing_ai.domain.errors import MarketplaceError


@dataclass(frozen=True)
class PublishResult:
    """Terminal outcome of one publish attempt. ``item_url`` is set iff ``success``."""

    success: bool
    item_url: str | None = None
    failure_reason: str | None = None
    detail: str | None = None
    listing_id: str | None = None
    offer_id: str | None = None
    sku: str | None = None

    @classmethod
    def succeeded(
        cls, *, item_url: str, listing_id: str, offer_id: str, sku: str
    ) -> "PublishResult":
        return cls(
            success=True,
            item_url=item_url,
            listing_id=listing_id,
            offer_id=offer_id,
            sku=sku,
        )

    @classmethod
    def failed(cls, error: MarketplaceError) -> "PublishResult":
        return cls(success=False, failure_reason=error.reason, detail=error.message)
