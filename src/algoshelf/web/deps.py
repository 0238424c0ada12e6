from typing import Annotated, cast

from fastapi import Depends, Request
from fastapi.security import APIKeyCookie, HTTPAuthorizationCredentials, HTTPBearer

from algoshelf.app import App
from algoshelf.config import Config
from algoshelf.core.modules.auth.models import AuthToken
from algoshelf.errors import AuthenticationError

AUTH_COOKIE_NAME = "auth_token"

# Security schemes
bearer_scheme = HTTPBearer(auto_error=False)
cookie_scheme = APIKeyCookie(name=AUTH_COOKIE_NAME, auto_error=False)


async def get_app(request: Request) -> App:
    return cast(App, request.app.state.app)


async def get_config(request: Request) -> Config:
    return cast(Config, request.app.state.config)


async def get_auth_token(
    app: Annotated[App, Depends(get_app)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)] = None,
    token_cookie: Annotated[str | None, Depends(cookie_scheme)] = None,
) -> AuthToken:
    """Get and verify the admin token from the Authorization Bearer header or cookie.

    The header wins when both are present; its verification error is reported as is.
    """
    if credentials and credentials.scheme.lower() == "bearer":
        auth_token = AuthToken(credentials.credentials)
    elif token_cookie:
        auth_token = AuthToken(token_cookie)
    else:
        raise AuthenticationError

    app.verify_token(auth_token)
    return auth_token


async def get_client_address(request: Request) -> str:
    """Client network address used as the login attempt key.

    Behind a proxy, uvicorn rewrites the client from X-Forwarded-For sent by
    trusted hosts only, so request headers are never read here.
    """
    if request.client is None:
        return "unknown"
    return request.client.host


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
ConfigDep = Annotated[Config, Depends(get_config)]
AuthTokenDep = Annotated[AuthToken, Depends(get_auth_token)]
ClientAddressDep = Annotated[str, Depends(get_client_address)]
