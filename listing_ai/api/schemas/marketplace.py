from datetime import datetime

from pydantic import BaseModel


class ConnectionResponse(BaseModel):
    connected: bool
    scopes: list[str] = []
    access_token_expires_at: datetime | None = None


class AuthorizeResponse(BaseModel):
    redirect_url: str


class CallbackRequest(BaseModel):
    code: str = ""
    state: str = ""


class ErrorResponse(BaseModel):
    error: str
    detail: str
