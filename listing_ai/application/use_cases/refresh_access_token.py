from dataclasses import dataclass

import structlog

from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.application.interfaces.marketplace_gateway import (
    GatewayTransportError,
    GrantRejectedError,
    MarketplaceAuthGateway,
)
from listing_ai.application.interfaces.token_store import TokenStore
from listing_ai.config import settings
from listing_ai.domain.entities.token_set import TokenSet
from listing_ai.domain.errors import MarketplaceUnavailableError, RefreshFailedError
from listing_ai.domain.events.domain_events import MarketplaceDisconnectedEvent

logger = structlog.get_logger(__name__)


@dataclass
class RefreshAccessTokenInput:
    session_id: str
    token_set: TokenSet


class RefreshAccessToken:
    """
    Use case: Trade the refresh token for a new access token.

    A rejected refresh token means the seller's grant is gone: the Token
    Store is cleared and the session reads as disconnected from then on.
    """

    def __init__(
        self,
        token_store: TokenStore,
        auth_gateway: MarketplaceAuthGateway,
        event_publisher: EventPublisher,
        margin_seconds: int = settings.token_refresh_margin_seconds,
    ) -> None:
        self._token_store = token_store
        self._auth_gateway = auth_gateway
        self._event_publisher = event_publisher
        self._margin_seconds = margin_seconds

    def needs_refresh(self, token_set: TokenSet) -> bool:
        return token_set.is_access_token_expired(margin_seconds=self._margin_seconds)

    async def execute(self, input_data: RefreshAccessTokenInput) -> TokenSet:
        session_id = input_data.session_id
        current = input_data.token_set

        if not current.has_usable_refresh_token():
            await self.discard(session_id)
            raise RefreshFailedError("The eBay refresh token has expired. Please reconnect.")

        try:
            payload = await self._auth_gateway.refresh(current.refresh_token)
        except GrantRejectedError as exc:
            logger.warning("token_refresh_rejected", session_id=session_id, status_code=exc.status_code)
            await self.discard(session_id)
            raise RefreshFailedError(
                "eBay no longer accepts this connection. Please reconnect."
            ) from exc
        except GatewayTransportError as exc:
            # Grant may still be good; tokens stay put
            logger.error("token_refresh_unreachable", session_id=session_id, error=str(exc))
            raise MarketplaceUnavailableError("Could not reach eBay to refresh access.") from exc

        try:
            refreshed = TokenSet.from_token_response(payload, previous=current)
        except (KeyError, TypeError, ValueError) as exc:
            await self.discard(session_id)
            raise RefreshFailedError("eBay returned an unusable token response. Please reconnect.") from exc

        await self._token_store.save(session_id, refreshed)

        logger.info(
            "token_refreshed",
            session_id=session_id,
            expires_at=refreshed.expires_at.isoformat(),
        )
        return refreshed

    async def discard(self, session_id: str) -> None:
        """Drop the session's tokens; emits the disconnect event only if something was stored."""
        if await self._token_store.clear(session_id):
            await self._event_publisher.publish_many(
                [MarketplaceDisconnectedEvent(session_id=session_id, reason="refresh_failed")]
            )
        logger.info("marketplace_disconnected", session_id=session_id, reason="refresh_failed")
