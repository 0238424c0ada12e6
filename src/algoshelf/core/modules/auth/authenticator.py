"""Admin login and stateless token verification."""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import bcrypt
import structlog

from algoshelf.core.modules.auth.models import ADMIN_SUBJECT, AuthToken, IssuedToken, Principal
from algoshelf.core.modules.auth.signer import TokenSigner
from algoshelf.core.modules.limiter.limiter import AttemptLimiter
from algoshelf.errors import InvalidCredentialError, LockedOutError, MalformedTokenError, TokenExpiredError
from algoshelf.utils import now as utc_now

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    """Hash a plaintext password with a fresh bcrypt salt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


class Authenticator:
    """Checks the admin secret, issues signed tokens and verifies them.

    Everything it needs is passed in; the token carries its own expiry so
    verification never touches the database.
    """

    def __init__(
        self,
        password_hash: str,
        signer: TokenSigner,
        limiter: AttemptLimiter,
        token_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._password_hash = password_hash.encode("utf-8")
        self._signer = signer
        self._limiter = limiter
        self._token_ttl = token_ttl
        self._clock = clock

    async def login(self, secret: str, address: str) -> IssuedToken:
        """Authenticate the admin secret for a client address.

        Raises:
            LockedOutError: address is locked out; the secret is not checked
            InvalidCredentialError: secret does not match
        """
        decision = await self._limiter.check_allowed(address)
        if not decision.allowed:
            logger.info("login_rejected_locked_out", address=address, retry_after=decision.retry_after)
            raise LockedOutError(decision.retry_after)

        # bcrypt is slow on purpose; keep it off the event loop
        matches = await asyncio.to_thread(bcrypt.checkpw, secret.encode("utf-8"), self._password_hash)
        if not matches:
            decision = await self._limiter.record_failure(address)
            logger.info("login_failed", address=address, failures=decision.failures, state=decision.state)
            raise InvalidCredentialError

        await self._limiter.record_success(address)
        issued = self.issue_token()
        logger.info("login_succeeded", address=address, expires_at=issued.expires_at.isoformat())
        return issued

    def issue_token(self) -> IssuedToken:
        issued_at = self._clock()
        expires_at = issued_at + self._token_ttl
        payload = {"sub": ADMIN_SUBJECT, "iat": int(issued_at.timestamp()), "exp": int(expires_at.timestamp())}
        return IssuedToken(token=AuthToken(self._signer.sign(payload)), expires_at=expires_at.replace(microsecond=0))

    def verify(self, token: str) -> Principal:
        """Verify a token's signature and expiry.

        Raises:
            MalformedTokenError: token or payload has the wrong shape
            InvalidSignatureError: signature does not match any known key
            TokenExpiredError: token is past its expiry
        """
        payload = self._signer.unsign(token)
        subject = payload.get("sub")
        issued_at = payload.get("iat")
        expires_at = payload.get("exp")
        if subject != ADMIN_SUBJECT or not isinstance(issued_at, int) or not isinstance(expires_at, int):
            raise MalformedTokenError

        if self._clock().timestamp() > expires_at:
            raise TokenExpiredError

        return Principal(
            subject=subject,
            issued_at=datetime.fromtimestamp(issued_at, UTC),
            expires_at=datetime.fromtimestamp(expires_at, UTC),
        )
