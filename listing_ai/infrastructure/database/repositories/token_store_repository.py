from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from listing_ai.application.interfaces.token_store import TokenStore
from listing_ai.domain.entities.token_set import TokenSet
from listing_ai.infrastructure.database.models import MarketplaceTokenModel


def _to_domain(model: MarketplaceTokenModel) -> TokenSet:
    return TokenSet(
        access_token=model.access_token,
        refresh_token=model.refresh_token,
        expires_at=model.expires_at,
        scopes=frozenset(model.scopes or []),
        refresh_token_expires_at=model.refresh_token_expires_at,
    )


def _to_model(session_id: str, token_set: TokenSet) -> MarketplaceTokenModel:
    return MarketplaceTokenModel(
        session_id=session_id,
        access_token=token_set.access_token,
        refresh_token=token_set.refresh_token,
        expires_at=token_set.expires_at,
        refresh_token_expires_at=token_set.refresh_token_expires_at,
        scopes=sorted(token_set.scopes),
    )


class SqlAlchemyTokenStore(TokenStore):
    """SQLAlchemy implementation for per-session token persistence."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, session_id: str) -> TokenSet | None:
        model = await self._session.get(MarketplaceTokenModel, session_id)
        return _to_domain(model) if model is not None else None

    async def save(self, session_id: str, token_set: TokenSet) -> None:
        model = await self._session.get(MarketplaceTokenModel, session_id)
        if model is None:
            self._session.add(_to_model(session_id, token_set))
        else:
            # Whole-set replacement; never a partially refreshed row
            model.access_token = token_set.access_token
            model.refresh_token = token_set.refresh_token
            model.expires_at = token_set.expires_at
            model.refresh_token_expires_at = token_set.refresh_token_expires_at
            model.scopes = sorted(token_set.scopes)
        await self._session.flush()

    async def clear(self, session_id: str) -> bool:
        result = await self._session.execute(
            delete(MarketplaceTokenModel).where(MarketplaceTokenModel.session_id == session_id)
        )
        await self._session.flush()
        return (result.rowcount or 0) > 0
