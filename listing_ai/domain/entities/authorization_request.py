import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthorizationRequest:
    """One outstanding OAuth round trip for a session, correlated by ``state``."""

    session_id: str
    state: str
    redirect_uri: str
    created_at: datetime = field(default_factory=_utcnow)
    redeemed_at: datetime | None = None

    @classmethod
    def issue(cls, *, session_id: str, redirect_uri: str) -> "AuthorizationRequest":
        return cls(
            session_id=session_id,
            state=secrets.token_urlsafe(32),
            redirect_uri=redirect_uri,
        )

    @property
    def is_redeemed(self) -> bool:
        return self.redeemed_at is not None

    def is_expired(self, ttl_seconds: int, now: datetime | None = None) -> bool:
        return (now or _utcnow()) >= self.created_at + timedelta(seconds=ttl_seconds)

    def matches(self, state: str) -> bool:
        return secrets.compare_digest(self.state.encode(), state.encode())

    def redeemed(self, now: datetime | None = None) -> "AuthorizationRequest":
        return replace(self, redeemed_at=now or _utcnow())
