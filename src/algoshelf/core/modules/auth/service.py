from datetime import timedelta
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from algoshelf.core.core import Service
from algoshelf.core.modules.auth.authenticator import Authenticator, hash_password
from algoshelf.core.modules.auth.models import AuthToken, IssuedToken, Principal
from algoshelf.core.modules.auth.signer import SerializerTokenSigner

logger = structlog.get_logger(__name__)


class AuthService(Service):
    """Admin authentication built from configuration at startup."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._authenticator: Authenticator | None = None

    async def on_start(self) -> None:
        config = self.core.config
        password_hash = config.admin_password_hash
        if not password_hash:
            # Validated by Config: admin_password is set when no hash is configured
            password_hash = hash_password(config.admin_password or "")
            logger.info("admin_password_hashed_at_startup")

        signer = SerializerTokenSigner(config.token_secret_key, config.token_previous_keys)
        self._authenticator = Authenticator(
            password_hash=password_hash,
            signer=signer,
            limiter=self.core.services.limiter,
            token_ttl=timedelta(hours=config.token_ttl_hours),
        )
        logger.debug("auth_service_started", rotation_keys=len(config.token_previous_keys))

    @property
    def authenticator(self) -> Authenticator:
        if self._authenticator is None:
            raise RuntimeError("Auth service not started")
        return self._authenticator

    async def login(self, password: str, address: str) -> IssuedToken:
        return await self.authenticator.login(password, address)

    def verify(self, auth_token: AuthToken) -> Principal:
        return self.authenticator.verify(auth_token)
