from dataclasses import dataclass

import structlog

from listing_ai.application.interfaces.authorization_state_store import AuthorizationStateStore
from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.application.interfaces.token_store import TokenStore
from listing_ai.domain.events.domain_events import MarketplaceDisconnectedEvent

logger = structlog.get_logger(__name__)


@dataclass
class DisconnectOutput:
    was_connected: bool


class DisconnectMarketplace:
    """
    Use case: Forget the session's marketplace access.

    Local state is always cleared; no server-side revocation is attempted.
    Calling it on an already disconnected session is a no-op.
    """

    def __init__(
        self,
        token_store: TokenStore,
        state_store: AuthorizationStateStore,
        event_publisher: EventPublisher,
    ) -> None:
        self._token_store = token_store
        self._state_store = state_store
        self._event_publisher = event_publisher

    async def execute(self, session_id: str) -> DisconnectOutput:
        was_connected = await self._token_store.clear(session_id)
        await self._state_store.delete(session_id)

        if was_connected:
            await self._event_publisher.publish_many(
                [MarketplaceDisconnectedEvent(session_id=session_id, reason="user_requested")]
            )
            logger.info("marketplace_disconnected", session_id=session_id, reason="user_requested")

        return DisconnectOutput(was_connected=was_connected)
