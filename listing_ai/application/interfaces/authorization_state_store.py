from abc import ABC, abstractmethod

from listing_ai.domain.entities.authorization_request import AuthorizationRequest


class AuthorizationStateStore(ABC):
    """Port for the outstanding OAuth round trip of each session."""

    @abstractmethod
    async def save(self, request: AuthorizationRequest) -> None:
        """Store ``request``, replacing (and thereby invalidating) any prior one."""
        ...

    @abstractmethod
    async def get(self, session_id: str) -> AuthorizationRequest | None:
        ...

    @abstractmethod
    async def mark_redeemed(self, session_id: str, state: str) -> bool:
        """
        Compare-and-set: flag the request with ``state`` as redeemed.

        Returns False when no unredeemed request with that state exists, so
        concurrent callbacks with the same code cannot both proceed.
        """
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        ...
