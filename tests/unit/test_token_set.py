"""Unit tests for TokenSet and AuthorizationRequest."""
from datetime import datetime, timedelta, timezone

import pytest

from listing_ai.domain.entities.authorization_request import AuthorizationRequest
from listing_ai.domain.entities.token_set import TokenSet

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _token_set(**overrides) -> TokenSet:  # type: ignore[no-untyped-def]
    defaults = dict(
        access_token="v^1.1#access",
        refresh_token="v^1.1#refresh",
        expires_at=NOW + timedelta(hours=2),
        scopes=frozenset({"https://api.ebay.com/oauth/api_scope/sell.inventory"}),
    )
    defaults.update(overrides)
    return TokenSet(**defaults)


class TestFromTokenResponse:
    def test_code_exchange_response(self) -> None:
        token_set = TokenSet.from_token_response(
            {
                "access_token": "v^1.1#access",
                "expires_in": 7200,
                "refresh_token": "v^1.1#refresh",
                "refresh_token_expires_in": 47304000,
                "scope": "https://api.ebay.com/oauth/api_scope https://api.ebay.com/oauth/api_scope/sell.inventory",
                "token_type": "User Access Token",
            },
            now=NOW,
        )
        assert token_set.expires_at == NOW + timedelta(seconds=7200)
        assert token_set.refresh_token_expires_at == NOW + timedelta(seconds=47304000)
        assert token_set.scopes == frozenset(
            {
                "https://api.ebay.com/oauth/api_scope",
                "https://api.ebay.com/oauth/api_scope/sell.inventory",
            }
        )

    def test_refresh_response_keeps_previous_refresh_token(self) -> None:
        previous = _token_set(refresh_token_expires_at=NOW + timedelta(days=500))
        refreshed = TokenSet.from_token_response(
            {"access_token": "v^1.1#new", "expires_in": 7200}, previous=previous, now=NOW
        )
        assert refreshed.access_token == "v^1.1#new"
        assert refreshed.refresh_token == previous.refresh_token
        assert refreshed.refresh_token_expires_at == previous.refresh_token_expires_at
        assert refreshed.scopes == previous.scopes

    def test_missing_access_token_raises(self) -> None:
        with pytest.raises(KeyError):
            TokenSet.from_token_response({"expires_in": 7200})


class TestExpiry:
    def test_not_expired_well_before_expiry(self) -> None:
        assert _token_set().is_access_token_expired(now=NOW) is False

    def test_margin_counts_as_expired(self) -> None:
        token_set = _token_set(expires_at=NOW + timedelta(seconds=60))
        assert token_set.is_access_token_expired(now=NOW, margin_seconds=300) is True

    def test_refresh_token_without_expiry_is_usable(self) -> None:
        assert _token_set().has_usable_refresh_token(now=NOW) is True

    def test_expired_refresh_token_is_not_usable(self) -> None:
        token_set = _token_set(refresh_token_expires_at=NOW - timedelta(seconds=1))
        assert token_set.has_usable_refresh_token(now=NOW) is False

    def test_empty_refresh_token_is_not_usable(self) -> None:
        assert _token_set(refresh_token="").has_usable_refresh_token(now=NOW) is False


class TestRepr:
    def test_tokens_are_masked(self) -> None:
        text = repr(_token_set(access_token="secret-access-token", refresh_token="secret-refresh-token"))
        assert "secret-access-token" not in text
        assert "secret-refresh-token" not in text


class TestAuthorizationRequest:
    def test_issue_generates_unique_state(self) -> None:
        first = AuthorizationRequest.issue(session_id="s1", redirect_uri="RuName")
        second = AuthorizationRequest.issue(session_id="s1", redirect_uri="RuName")
        assert first.state != second.state
        assert len(first.state) >= 32

    def test_matches_only_its_own_state(self) -> None:
        request = AuthorizationRequest.issue(session_id="s1", redirect_uri="RuName")
        assert request.matches(request.state) is True
        assert request.matches("forged") is False

    def test_expiry(self) -> None:
        request = AuthorizationRequest(
            session_id="s1", state="abc", redirect_uri="RuName", created_at=NOW
        )
        assert request.is_expired(600, now=NOW + timedelta(seconds=599)) is False
        assert request.is_expired(600, now=NOW + timedelta(seconds=600)) is True

    def test_redeemed_returns_new_instance(self) -> None:
        request = AuthorizationRequest.issue(session_id="s1", redirect_uri="RuName")
        redeemed = request.redeemed(now=NOW)
        assert request.is_redeemed is False
        assert redeemed.is_redeemed is True
        assert redeemed.state == request.state
