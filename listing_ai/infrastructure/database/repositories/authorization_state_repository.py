from datetime import datetime, timezone

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession

from listing_ai.application.interfaces.authorization_state_store import AuthorizationStateStore
from listing_ai.domain.entities.authorization_request import AuthorizationRequest
from listing_ai.infrastructure.database.models import OAuthAuthorizationRequestModel


class SqlAlchemyAuthorizationStateStore(AuthorizationStateStore):
    """SQLAlchemy-backed implementation of AuthorizationStateStore."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, request: AuthorizationRequest) -> None:
        model = await self._session.get(OAuthAuthorizationRequestModel, request.session_id)
        if model is None:
            self._session.add(
                OAuthAuthorizationRequestModel(
                    session_id=request.session_id,
                    state=request.state,
                    redirect_uri=request.redirect_uri,
                    created_at=request.created_at,
                    redeemed_at=request.redeemed_at,
                )
            )
        else:
            model.state = request.state
            model.redirect_uri = request.redirect_uri
            model.created_at = request.created_at
            model.redeemed_at = request.redeemed_at
        await self._session.flush()

    async def get(self, session_id: str) -> AuthorizationRequest | None:
        model = await self._session.get(OAuthAuthorizationRequestModel, session_id)
        if model is None:
            return None
        return AuthorizationRequest(
            session_id=model.session_id,
            state=model.state,
            redirect_uri=model.redirect_uri,
            created_at=model.created_at,
            redeemed_at=model.redeemed_at,
        )

    async def mark_redeemed(self, session_id: str, state: str) -> bool:
        # Conditional update: of two concurrent callbacks only one sees rowcount 1
        result = await self._session.execute(
            update(OAuthAuthorizationRequestModel)
            .where(
                OAuthAuthorizationRequestModel.session_id == session_id,
                OAuthAuthorizationRequestModel.state == state,
                OAuthAuthorizationRequestModel.redeemed_at.is_(None),
            )
            .values(redeemed_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return (result.rowcount or 0) == 1

    async def delete(self, session_id: str) -> None:
        await self._session.execute(
            delete(OAuthAuthorizationRequestModel).where(
                OAuthAuthorizationRequestModel.session_id == session_id
            )
        )
        await self._session.flush()
