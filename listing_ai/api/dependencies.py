"""
FastAPI dependency injection wiring.

Each dependency function returns a fully-constructed object with its
collaborators injected, keeping the route handlers thin.
"""
import secrets

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from listing_ai.application.interfaces.authorization_state_store import AuthorizationStateStore
from listing_ai.application.interfaces.event_publisher import EventPublisher
from listing_ai.application.interfaces.listing_generator import ListingGenerator
from listing_ai.application.interfaces.marketplace_gateway import (
    MarketplaceAuthGateway,
    MarketplaceSellGateway,
)
from listing_ai.application.interfaces.token_store import TokenStore
from listing_ai.application.use_cases.begin_authorization import BeginAuthorization
from listing_ai.application.use_cases.complete_authorization import CompleteAuthorization
from listing_ai.application.use_cases.disconnect_marketplace import DisconnectMarketplace
from listing_ai.application.use_cases.generate_listing import GenerateListing
from listing_ai.application.use_cases.get_connection_status import GetConnectionStatus
from listing_ai.application.use_cases.publish_listing import PublishListing
from listing_ai.application.use_cases.refresh_access_token import RefreshAccessToken
from listing_ai.config import settings
from listing_ai.infrastructure.database.connection import get_db_session
from listing_ai.infrastructure.database.repositories.authorization_state_repository import (
    SqlAlchemyAuthorizationStateStore,
)
from listing_ai.infrastructure.database.repositories.token_store_repository import (
    SqlAlchemyTokenStore,
)
from listing_ai.infrastructure.external_services.ebay_oauth_client import EbayOAuthClient
from listing_ai.infrastructure.external_services.ebay_sell_client import EbaySellClient
from listing_ai.infrastructure.external_services.listing_generator_client import (
    ListingGeneratorClient,
)


# ---- Low-level dependencies ------------------------------------------------

def set_session_cookie(response: Response, session_id: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        session_id,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def get_session_id(request: Request, response: Response) -> str:
    """
    Opaque per-browser id from the session cookie; issued on first contact.

    A freshly issued id is also kept on ``request.state`` so error responses
    built outside the route can still hand the cookie out.
    """
    session_id = request.cookies.get(settings.session_cookie_name)
    if not session_id:
        session_id = secrets.token_urlsafe(32)
        request.state.issued_session_id = session_id
        set_session_cookie(response, session_id)
    return session_id


def get_token_store(request: Request, session: AsyncSession = Depends(get_db_session)) -> TokenStore:
    if settings.storage_backend == "memory":
        return request.app.state.token_store
    return SqlAlchemyTokenStore(session)


def get_state_store(
    request: Request, session: AsyncSession = Depends(get_db_session)
) -> AuthorizationStateStore:
    if settings.storage_backend == "memory":
        return request.app.state.state_store
    return SqlAlchemyAuthorizationStateStore(session)


def get_event_publisher(request: Request) -> EventPublisher:
    return request.app.state.event_publisher


def get_auth_gateway() -> MarketplaceAuthGateway:
    return EbayOAuthClient()


def get_sell_gateway() -> MarketplaceSellGateway:
    return EbaySellClient()


def get_listing_generator() -> ListingGenerator:
    return ListingGeneratorClient()


# ---- Use-case dependencies -------------------------------------------------

def get_begin_authorization_use_case(
    state_store: AuthorizationStateStore = Depends(get_state_store),
    auth_gateway: MarketplaceAuthGateway = Depends(get_auth_gateway),
) -> BeginAuthorization:
    return BeginAuthorization(state_store, auth_gateway)


def get_complete_authorization_use_case(
    state_store: AuthorizationStateStore = Depends(get_state_store),
    token_store: TokenStore = Depends(get_token_store),
    auth_gateway: MarketplaceAuthGateway = Depends(get_auth_gateway),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> CompleteAuthorization:
    return CompleteAuthorization(state_store, token_store, auth_gateway, event_publisher)


def get_connection_status_use_case(
    token_store: TokenStore = Depends(get_token_store),
) -> GetConnectionStatus:
    return GetConnectionStatus(token_store)


def get_disconnect_use_case(
    token_store: TokenStore = Depends(get_token_store),
    state_store: AuthorizationStateStore = Depends(get_state_store),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> DisconnectMarketplace:
    return DisconnectMarketplace(token_store, state_store, event_publisher)


def get_refresh_use_case(
    token_store: TokenStore = Depends(get_token_store),
    auth_gateway: MarketplaceAuthGateway = Depends(get_auth_gateway),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> RefreshAccessToken:
    return RefreshAccessToken(token_store, auth_gateway, event_publisher)


def get_publish_listing_use_case(
    token_store: TokenStore = Depends(get_token_store),
    sell_gateway: MarketplaceSellGateway = Depends(get_sell_gateway),
    refresher: RefreshAccessToken = Depends(get_refresh_use_case),
    event_publisher: EventPublisher = Depends(get_event_publisher),
) -> PublishListing:
    return PublishListing(token_store, sell_gateway, refresher, event_publisher)


def get_generate_listing_use_case(
    generator: ListingGenerator = Depends(get_listing_generator),
) -> GenerateListing:
    return GenerateListing(generator)
