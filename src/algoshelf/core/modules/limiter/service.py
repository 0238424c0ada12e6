from datetime import timedelta
from typing import Any

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from algoshelf.core.core import Service
from algoshelf.core.modules.limiter.limiter import (
    AttemptLimiter,
    InMemoryAttemptLimiter,
    LimiterPolicy,
    MongoAttemptLimiter,
)
from algoshelf.core.modules.limiter.models import LimiterDecision

logger = structlog.get_logger(__name__)


class LimiterService(Service):
    """Tracks failed admin logins per client address.

    Satisfies the AttemptLimiter protocol by delegating to the backend chosen in config.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("login_attempts")
        self._limiter: AttemptLimiter | None = None

    async def on_start(self) -> None:
        config = self.core.config
        policy = LimiterPolicy(
            max_failures=config.login_max_failures,
            window=timedelta(minutes=config.login_lockout_minutes),
            lockout=timedelta(minutes=config.login_lockout_minutes),
        )
        if config.login_limiter_backend == "mongo":
            self._limiter = MongoAttemptLimiter(self._collection, policy)
        else:
            self._limiter = InMemoryAttemptLimiter(policy)
        logger.debug("limiter_service_started", backend=config.login_limiter_backend, max_failures=policy.max_failures)

    @property
    def limiter(self) -> AttemptLimiter:
        if self._limiter is None:
            raise RuntimeError("Limiter service not started")
        return self._limiter

    async def check_allowed(self, address: str) -> LimiterDecision:
        return await self.limiter.check_allowed(address)

    async def record_failure(self, address: str) -> LimiterDecision:
        return await self.limiter.record_failure(address)

    async def record_success(self, address: str) -> None:
        await self.limiter.record_success(address)
