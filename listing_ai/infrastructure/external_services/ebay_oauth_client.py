"""HTTP client for the eBay OAuth2 authorize and token endpoints."""
import base64
from typing import Any
from urllib.parse import urlencode

import httpx
import structlog

from listing_ai.application.interfaces.marketplace_gateway import (
    GatewayTransportError,
    GrantRejectedError,
    MarketplaceAuthGateway,
)
from listing_ai.config import settings

logger = structlog.get_logger(__name__)

PRODUCTION_AUTH_URL = "https://auth.ebay.com/oauth2/authorize"
PRODUCTION_TOKEN_URL = "https://api.ebay.com/identity/v1/oauth2/token"
SANDBOX_AUTH_URL = "https://auth.sandbox.ebay.com/oauth2/authorize"
SANDBOX_TOKEN_URL = "https://api.sandbox.ebay.com/identity/v1/oauth2/token"


class EbayOAuthClient(MarketplaceAuthGateway):
    """
    Authorization-code grant against eBay's identity service.

    The redirect URI eBay expects is the application's RuName, not a URL;
    it has to be identical in the authorize request and the code exchange.
    """

    def __init__(
        self,
        client_id: str = settings.ebay_client_id,
        client_secret: str = settings.ebay_client_secret,
        runame: str = settings.ebay_runame,
        scopes: list[str] | None = None,
        sandbox: bool = settings.is_sandbox,
        timeout: float = settings.http_timeout_seconds,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._runame = runame
        self._scopes = scopes if scopes is not None else list(settings.ebay_scopes)
        self._auth_url = SANDBOX_AUTH_URL if sandbox else PRODUCTION_AUTH_URL
        self._token_url = SANDBOX_TOKEN_URL if sandbox else PRODUCTION_TOKEN_URL
        self._timeout = timeout
        self._transport = transport

    @property
    def redirect_uri(self) -> str:
        return self._runame

    def build_authorization_url(self, *, state: str) -> str:
        params = {
            "client_id": self._client_id,
            "redirect_uri": self._runame,
            "response_type": "code",
            "scope": " ".join(self._scopes),
            "state": state,
        }
        return f"{self._auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """
        POST grant_type=authorization_code →
        {"access_token", "expires_in", "refresh_token", "refresh_token_expires_in", "token_type"}
        """
        return await self._token_request(
            {"grant_type": "authorization_code", "code": code, "redirect_uri": self._runame},
            grant="authorization_code",
        )

    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        """POST grant_type=refresh_token → {"access_token", "expires_in", "token_type"}"""
        return await self._token_request(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "scope": " ".join(self._scopes),
            },
            grant="refresh_token",
        )

    def _basic_auth_header(self) -> str:
        credentials = f"{self._client_id}:{self._client_secret}".encode()
        return "Basic " + base64.b64encode(credentials).decode()

    async def _token_request(self, form: dict[str, str], *, grant: str) -> dict[str, Any]:
        headers = {
            "Authorization": self._basic_auth_header(),
            "Content-Type": "application/x-www-form-urlencoded",
            "Accept": "application/json",
        }
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(self._token_url, data=form, headers=headers)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                message = _grant_error_message(exc.response)
                if status_code >= 500:
                    logger.error(
                        "ebay_token_endpoint_unavailable",
                        grant=grant,
                        status_code=status_code,
                        error=message,
                    )
                    raise GatewayTransportError(
                        f"eBay identity service unavailable: {message}"
                    ) from exc
                logger.warning(
                    "ebay_token_request_rejected",
                    grant=grant,
                    status_code=status_code,
                    error=message,
                )
                raise GrantRejectedError(message, status_code=status_code) from exc
            except httpx.RequestError as exc:
                logger.error("ebay_token_request_failed", grant=grant, error=str(exc))
                raise GatewayTransportError(f"Failed to reach eBay identity service: {exc}") from exc
            except ValueError as exc:
                logger.error("ebay_token_response_unreadable", grant=grant, status_code=response.status_code)
                raise GatewayTransportError("eBay token endpoint returned a non-JSON body") from exc

        logger.debug("ebay_token_request_succeeded", grant=grant, expires_in=data.get("expires_in"))
        return data


def _grant_error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        description = body.get("error_description") or ""
        error = body.get("error") or ""
        if error and description:
            return f"{error}: {description}"
        if error or description:
            return error or description
    return f"HTTP {response.status_code}"
