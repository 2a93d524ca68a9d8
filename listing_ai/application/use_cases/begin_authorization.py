from dataclasses import dataclass

import structlog

from listing_ai.application.interfaces.authorization_state_store import AuthorizationStateStore
from listing_ai.application.interfaces.marketplace_gateway import MarketplaceAuthGateway
from listing_ai.domain.entities.authorization_request import AuthorizationRequest

logger = structlog.get_logger(__name__)


@dataclass
class BeginAuthorizationInput:
    session_id: str


@dataclass
class BeginAuthorizationOutput:
    redirect_url: str
    state: str


class BeginAuthorization:
    """
    Use case: Start the OAuth round trip for a session.

    Issues a fresh ``state`` nonce, stores it server-side (overwriting any
    nonce from an earlier attempt still in flight) and returns the
    marketplace URL the browser should be sent to.
    """

    def __init__(
        self,
        state_store: AuthorizationStateStore,
        auth_gateway: MarketplaceAuthGateway,
    ) -> None:
        self._state_store = state_store
        self._auth_gateway = auth_gateway

    async def execute(self, input_data: BeginAuthorizationInput) -> BeginAuthorizationOutput:
        request = AuthorizationRequest.issue(
            session_id=input_data.session_id,
            redirect_uri=self._auth_gateway.redirect_uri,
        )
        await self._state_store.save(request)

        redirect_url = self._auth_gateway.build_authorization_url(state=request.state)

        logger.info(
            "authorization_started",
            session_id=input_data.session_id,
            state_prefix=request.state[:6],
        )
        return BeginAuthorizationOutput(redirect_url=redirect_url, state=request.state)
