from fastapi import APIRouter, Depends, status

from listing_ai.api.dependencies import (
    get_begin_authorization_use_case,
    get_complete_authorization_use_case,
    get_connection_status_use_case,
    get_disconnect_use_case,
    get_session_id,
)
from listing_ai.api.schemas.marketplace import (
    AuthorizeResponse,
    CallbackRequest,
    ConnectionResponse,
    ErrorResponse,
)
from listing_ai.application.use_cases.begin_authorization import (
    BeginAuthorization,
    BeginAuthorizationInput,
)
from listing_ai.application.use_cases.complete_authorization import (
    CompleteAuthorization,
    CompleteAuthorizationInput,
)
from listing_ai.application.use_cases.disconnect_marketplace import DisconnectMarketplace
from listing_ai.application.use_cases.get_connection_status import GetConnectionStatus

router = APIRouter(prefix="/marketplace", tags=["marketplace"])


@router.get("/connection", response_model=ConnectionResponse)
async def get_connection(
    session_id: str = Depends(get_session_id),
    use_case: GetConnectionStatus = Depends(get_connection_status_use_case),
) -> ConnectionResponse:
    """Whether this browser session can publish to eBay."""
    connection = await use_case.execute(session_id)
    return ConnectionResponse(
        connected=connection.connected,
        scopes=connection.scopes,
        access_token_expires_at=connection.access_token_expires_at,
    )


@router.post("/authorize", response_model=AuthorizeResponse)
async def authorize(
    session_id: str = Depends(get_session_id),
    use_case: BeginAuthorization = Depends(get_begin_authorization_use_case),
) -> AuthorizeResponse:
    """Start the eBay consent flow. The UI navigates the browser to ``redirect_url``."""
    output = await use_case.execute(BeginAuthorizationInput(session_id=session_id))
    return AuthorizeResponse(redirect_url=output.redirect_url)


@router.post(
    "/callback",
    response_model=ConnectionResponse,
    responses={400: {"model": ErrorResponse}},
)
async def callback(
    body: CallbackRequest,
    session_id: str = Depends(get_session_id),
    use_case: CompleteAuthorization = Depends(get_complete_authorization_use_case),
) -> ConnectionResponse:
    """Receives the ``code`` and ``state`` eBay appended to the return URL."""
    token_set = await use_case.execute(
        CompleteAuthorizationInput(session_id=session_id, code=body.code, state=body.state)
    )
    return ConnectionResponse(
        connected=True,
        scopes=sorted(token_set.scopes),
        access_token_expires_at=token_set.expires_at,
    )


@router.post("/disconnect", status_code=status.HTTP_204_NO_CONTENT)
async def disconnect(
    session_id: str = Depends(get_session_id),
    use_case: DisconnectMarketplace = Depends(get_disconnect_use_case),
) -> None:
    await use_case.execute(session_id)
