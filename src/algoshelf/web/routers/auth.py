from datetime import datetime

from fastapi import APIRouter, Response
from pydantic import BaseModel, Field

from algoshelf.core.modules.auth.models import Principal
from algoshelf.web.deps import AUTH_COOKIE_NAME, AppDep, AuthTokenDep, ClientAddressDep, ConfigDep
from algoshelf.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Authentication request."""

    password: str = Field(..., description="Admin password")


class LoginResponse(BaseModel):
    """Authentication response."""

    token: str = Field(..., description="Bearer token for subsequent requests")
    expires_at: datetime = Field(..., description="When the token stops being accepted")


@router.post(
    "/auth/login",
    summary="Authenticate admin",
    description=(
        "Authenticate with the admin password to receive a bearer token valid for 24 hours. "
        "Repeated failures from the same address lead to a temporary lockout."
    ),
    operation_id="login",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        429: {"model": ErrorResponse, "description": "Address temporarily locked out"},
    },
)
async def login(
    login_data: LoginRequest, app: AppDep, config: ConfigDep, client_address: ClientAddressDep, response: Response
) -> LoginResponse:
    issued = await app.login(login_data.password, client_address)

    # Set cookie for browser-based clients
    response.set_cookie(
        key=AUTH_COOKIE_NAME,
        value=issued.token,
        httponly=True,
        samesite="lax",
        secure=not config.debug,
        max_age=config.token_ttl_hours * 60 * 60,
    )

    return LoginResponse(token=issued.token, expires_at=issued.expires_at)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Clear the authentication cookie. Tokens are stateless; clients should discard them.",
    operation_id="logout",
    status_code=204,
    responses={204: {"description": "Cookie cleared"}},
)
async def logout(response: Response) -> None:
    response.delete_cookie(AUTH_COOKIE_NAME)


@router.get(
    "/auth/session",
    summary="Current session",
    description="Return the verified admin principal for the presented token.",
    operation_id="getSession",
    responses={
        200: {"description": "Token is valid"},
        401: {"model": ErrorResponse, "description": "Missing, malformed, expired or forged token"},
    },
)
async def get_session(app: AppDep, auth_token: AuthTokenDep) -> Principal:
    return await app.get_session(auth_token)
