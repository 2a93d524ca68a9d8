from dataclasses import dataclass

import structlog

from listing_ai.application.interfaces.authorization_state_store import AuthorizationStateStore
from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.application.interfaces.marketplace_gateway import (
    GatewayTransportError,
    GrantRejectedError,
    MarketplaceAuthGateway,
)
from listing_ai.application.interfaces.token_store import TokenStore
from listing_ai.config import settings
from listing_ai.domain.entities.token_set import TokenSet
from listing_ai.domain.errors import ExchangeFailedError, InvalidStateError
from listing_ai.domain.events.domain_events import MarketplaceConnectedEvent

logger = structlog.get_logger(__name__)


@dataclass
class CompleteAuthorizationInput:
    session_id: str
    code: str
    state: str


class CompleteAuthorization:
    """
    Use case: Finish the OAuth round trip started by BeginAuthorization.

    The state must match the nonce issued to this session. The request is
    flagged redeemed before the code is exchanged, so a code is sent to the
    token endpoint at most once; a repeat callback fails with
    ExchangeFailedError, mirroring the marketplace's single-use codes.
    """

    def __init__(
        self,
        state_store: AuthorizationStateStore,
        token_store: TokenStore,
        auth_gateway: MarketplaceAuthGateway,
        event_publisher: EventPublisher,
        state_ttl_seconds: int = settings.oauth_state_ttl_seconds,
    ) -> None:
        self._state_store = state_store
        self._token_store = token_store
        self._auth_gateway = auth_gateway
        self._event_publisher = event_publisher
        self._state_ttl_seconds = state_ttl_seconds

    async def execute(self, input_data: CompleteAuthorizationInput) -> TokenSet:
        session_id = input_data.session_id
        request = await self._state_store.get(session_id)

        if request is None or not input_data.state or not request.matches(input_data.state):
            logger.warning("authorization_state_mismatch", session_id=session_id)
            raise InvalidStateError("Authorization state does not match this session.")

        if request.is_expired(self._state_ttl_seconds):
            await self._state_store.delete(session_id)
            logger.warning("authorization_state_expired", session_id=session_id)
            raise InvalidStateError("Authorization request expired. Please connect again.")

        if not input_data.code:
            raise ExchangeFailedError("Authorization code is missing.")

        if request.is_redeemed or not await self._state_store.mark_redeemed(
            session_id, input_data.state
        ):
            logger.warning("authorization_code_reused", session_id=session_id)
            raise ExchangeFailedError("This authorization code has already been used.")

        try:
            payload = await self._auth_gateway.exchange_code(input_data.code)
        except GrantRejectedError as exc:
            logger.warning(
                "authorization_code_rejected",
                session_id=session_id,
                status_code=exc.status_code,
            )
            raise ExchangeFailedError(f"eBay rejected the authorization code: {exc.message}") from exc
        except GatewayTransportError as exc:
            logger.error("authorization_exchange_unreachable", session_id=session_id, error=str(exc))
            raise ExchangeFailedError("Could not reach eBay to complete the connection.") from exc

        try:
            token_set = TokenSet.from_token_response(payload)
        except (KeyError, TypeError, ValueError) as exc:
            raise ExchangeFailedError("eBay returned an unusable token response.") from exc

        await self._token_store.save(session_id, token_set)

        await self._event_publisher.publish_many(
            [MarketplaceConnectedEvent(session_id=session_id, scopes=tuple(sorted(token_set.scopes)))]
        )

        logger.info(
            "marketplace_connected",
            session_id=session_id,
            expires_at=token_set.expires_at.isoformat(),
            scopes=sorted(token_set.scopes),
        )
        return token_set
