from abc import ABC, abstractmethod

from listing_ai.domain.entities.token_set import TokenSet


class TokenStore(ABC):
    """
    Port for the single TokenSet slot held per seller session.

    ``save`` must replace the whole TokenSet atomically; readers never see a
    mix of old and new fields.
    """

    @abstractmethod
    async def get(self, session_id: str) -> TokenSet | None:
        ...

    @abstractmethod
    async def save(self, session_id: str, token_set: TokenSet) -> None:
        ...

    @abstractmethod
    async def clear(self, session_id: str) -> bool:
        """Remove the session's TokenSet. Returns False if there was none."""
        ...
