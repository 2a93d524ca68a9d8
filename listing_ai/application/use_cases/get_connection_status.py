from dataclasses import dataclass, field
from datetime import datetime

from listing_ai.application.interfaces.token_store import TokenStore


@dataclass
class ConnectionStatus:
    connected: bool
    scopes: list[str] = field(default_factory=list)
    access_token_expires_at: datetime | None = None


class GetConnectionStatus:
    """
    Use case: Tell the UI whether publishing is possible for this session.

    Purely local. An expired access token still counts as connected since
    the refresh token can recover it.
    """

    def __init__(self, token_store: TokenStore) -> None:
        self._token_store = token_store

    async def execute(self, session_id: str) -> ConnectionStatus:
        token_set = await self._token_store.get(session_id)
        if token_set is None or not token_set.has_usable_refresh_token():
            return ConnectionStatus(connected=False)
        return ConnectionStatus(
            connected=True,
            scopes=sorted(token_set.scopes),
            access_token_expires_at=token_set.expires_at,
        )
