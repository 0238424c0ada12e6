"""Login attempt tracking models."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class AttemptState(StrEnum):
    """Lockout state of a client address."""

    CLEAN = "clean"
    WARNING = "warning"
    LOCKED_OUT = "locked_out"


class LoginAttemptRecord(BaseModel):
    """Failure bookkeeping for one client address.

    Stored as `_id=address` in the `login_attempts` collection by the mongo backend.
    """

    address: str
    failures: int = 0
    first_failed_at: datetime | None = None
    locked_until: datetime | None = None


@dataclass(frozen=True)
class LimiterDecision:
    """Result of a limiter check or update."""

    state: AttemptState
    failures: int = 0
    retry_after: int = 0  # Seconds until the lockout ends, 0 unless locked out

    @property
    def allowed(self) -> bool:
        return self.state is not AttemptState.LOCKED_OUT
