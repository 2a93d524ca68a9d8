"""
Failure taxonomy for the connection and publishing flows.

Every error carries a stable ``reason`` code that the API surface hands to
the UI, plus the HTTP status it should be rendered with.
"""


class MarketplaceError(Exception):
    """Base class for all typed failures surfaced to the caller."""

    reason: str = "MarketplaceError"
    status_code: int = 500

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.reason
        super().__init__(self.message)


class InvalidStateError(MarketplaceError):
    """OAuth ``state`` missing, expired, or not the one issued for this session."""

    reason = "InvalidState"
    status_code = 400


class ExchangeFailedError(MarketplaceError):
    """Authorization code rejected (expired, malformed, already used)."""

    reason = "ExchangeFailed"
    status_code = 400


class RefreshFailedError(MarketplaceError):
    """Refresh token dead or refused. Raised only after the Token Store was cleared."""

    reason = "RefreshFailed"
    status_code = 401


class NotConnectedError(MarketplaceError):
    reason = "NotConnected"
    status_code = 401


class InvalidInputError(MarketplaceError):
    reason = "InvalidInput"
    status_code = 422


class MediaUploadFailedError(MarketplaceError):
    reason = "MediaUploadFailed"
    status_code = 502


class ListingRejectedError(MarketplaceError):
    """Marketplace business-rule rejection; ``message`` is eBay's text verbatim."""

    reason = "ListingRejected"
    status_code = 422


class MarketplaceUnavailableError(MarketplaceError):
    """Transport failure or timeout on a draft/offer/activation call."""

    reason = "MarketplaceUnavailable"
    status_code = 502


class UpstreamMalformedError(MarketplaceError):
    """Listing generator answered with a shape we cannot publish."""

    reason = "UpstreamMalformed"
    status_code = 502


class UpstreamFailedError(MarketplaceError):
    reason = "UpstreamFailed"
    status_code = 502
