"""
Process-local stores for tests and single-instance local development.

Values are immutable dataclasses swapped under an asyncio.Lock, so readers
always see either the previous or the new object, never a partial write.
"""
import asyncio

import structlog

from listing_ai.application.interfaces.authorization_state_store import AuthorizationStateStore
from listing_ai.application.interfaces.token_store import TokenStore
from listing_ai.domain.entities.authorization_request import AuthorizationRequest
from listing_ai.domain.entities.token_set import TokenSet

logger = structlog.get_logger(__name__)


class InMemoryTokenStore(TokenStore):
    def __init__(self) -> None:
        self._tokens: dict[str, TokenSet] = {}
        self._lock = asyncio.Lock()

    async def get(self, session_id: str) -> TokenSet | None:
        return self._tokens.get(session_id)

    async def save(self, session_id: str, token_set: TokenSet) -> None:
        async with self._lock:
            self._tokens[session_id] = token_set

    async def clear(self, session_id: str) -> bool:
        async with self._lock:
            return self._tokens.pop(session_id, None) is not None


class InMemoryAuthorizationStateStore(AuthorizationStateStore):
    def __init__(self) -> None:
        self._requests: dict[str, AuthorizationRequest] = {}
        self._lock = asyncio.Lock()

    async def save(self, request: AuthorizationRequest) -> None:
        async with self._lock:
            if request.session_id in self._requests:
                logger.debug("authorization_state_replaced", session_id=request.session_id)
            self._requests[request.session_id] = request

    async def get(self, session_id: str) -> AuthorizationRequest | None:
        return self._requests.get(session_id)

    async def mark_redeemed(self, session_id: str, state: str) -> bool:
        async with self._lock:
            request = self._requests.get(session_id)
            if request is None or request.is_redeemed or not request.matches(state):
                return False
            self._requests[session_id] = request.redeemed()
            return True

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self._requests.pop(session_id, None)
