from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _mask(value: str) -> str:
    return value[:6] + "…" if len(value) > 6 else "***"


@dataclass(frozen=True)
class TokenSet:
    """
    OAuth2 token pair held on behalf of one seller session.

    Immutable: a refresh produces a new TokenSet which replaces the old one
    wholesale in the store. Never serialise this into an API response.
    """

    access_token: str = field(repr=False)
    refresh_token: str = field(repr=False)
    expires_at: datetime
    scopes: frozenset[str] = frozenset()
    refresh_token_expires_at: datetime | None = None

    @classmethod
    def from_token_response(
        cls,
        payload: dict,  # type: ignore[type-arg]
        *,
        previous: "TokenSet | None" = None,
        now: datetime | None = None,
    ) -> "TokenSet":
        """
        Build from an eBay identity token response.

        A refresh response carries no refresh token; in that case the one
        from ``previous`` is kept along with its expiry.
        """
        now = now or _utcnow()
        refresh_token = payload.get("refresh_token") or (previous.refresh_token if previous else "")
        if payload.get("refresh_token_expires_in") is not None:
            refresh_expires_at: datetime | None = now + timedelta(
                seconds=int(payload["refresh_token_expires_in"])
            )
        else:
            refresh_expires_at = previous.refresh_token_expires_at if previous else None

        scope = payload.get("scope")
        if scope:
            scopes = frozenset(scope.split())
        else:
            scopes = previous.scopes if previous else frozenset()

        return cls(
            access_token=payload["access_token"],
            refresh_token=refresh_token,
            expires_at=now + timedelta(seconds=int(payload.get("expires_in", 7200))),
            scopes=scopes,
            refresh_token_expires_at=refresh_expires_at,
        )

    def is_access_token_expired(self, now: datetime | None = None, margin_seconds: int = 0) -> bool:
        now = now or _utcnow()
        return now + timedelta(seconds=margin_seconds) >= self.expires_at

    def has_usable_refresh_token(self, now: datetime | None = None) -> bool:
        if not self.refresh_token:
            return False
        if self.refresh_token_expires_at is None:
            return True
        return (now or _utcnow()) < self.refresh_token_expires_at

    def __repr__(self) -> str:
        return (
            f"TokenSet(access_token={_mask(self.access_token)!r}, "
            f"refresh_token={_mask(self.refresh_token)!r}, "
            f"expires_at={self.expires_at.isoformat()}, scopes={sorted(self.scopes)})"
        )
