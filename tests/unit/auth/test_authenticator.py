"""Tests for admin login and token verification."""

from datetime import timedelta

import pytest

from algoshelf.core.modules.auth.authenticator import Authenticator
from algoshelf.core.modules.auth.signer import SerializerTokenSigner
from algoshelf.core.modules.limiter.limiter import InMemoryAttemptLimiter, LimiterPolicy
from algoshelf.errors import (
    InvalidCredentialError,
    InvalidSignatureError,
    LockedOutError,
    MalformedTokenError,
    TokenExpiredError,
)

ADDRESS = "192.0.2.10"


class TestAuthenticator:
    """Tests for Authenticator."""

    @pytest.fixture(autouse=True)
    def setup(self, clock, admin_password, admin_password_hash):
        self.clock = clock
        self.password = admin_password
        self.limiter = InMemoryAttemptLimiter(LimiterPolicy(), clock=clock)
        self.signer = SerializerTokenSigner("current-key", previous_keys=["retired-key"])
        self.authenticator = Authenticator(admin_password_hash, self.signer, self.limiter, clock=clock)

    async def test_login_issues_verifiable_token(self):
        """Test that a correct secret yields a token valid for 24 hours."""
        issued = await self.authenticator.login(self.password, ADDRESS)

        principal = self.authenticator.verify(issued.token)
        assert principal.subject == "admin"
        assert principal.expires_at - principal.issued_at == timedelta(hours=24)
        assert issued.expires_at == principal.expires_at

    async def test_wrong_secret(self):
        with pytest.raises(InvalidCredentialError):
            await self.authenticator.login("guess", ADDRESS)
        assert (await self.limiter.check_allowed(ADDRESS)).failures == 1

    async def test_lockout_rejects_even_the_correct_secret(self):
        """Test that five failures block the address before the secret is checked."""
        for _ in range(5):
            with pytest.raises(InvalidCredentialError):
                await self.authenticator.login("guess", ADDRESS)

        with pytest.raises(LockedOutError) as exc_info:
            await self.authenticator.login(self.password, ADDRESS)
        assert exc_info.value.retry_after == 15 * 60

    async def test_login_allowed_after_lockout_expires(self):
        for _ in range(5):
            with pytest.raises(InvalidCredentialError):
                await self.authenticator.login("guess", ADDRESS)

        self.clock.advance(minutes=15, seconds=1)
        issued = await self.authenticator.login(self.password, ADDRESS)
        assert issued.token

    async def test_success_clears_failures(self):
        for _ in range(4):
            with pytest.raises(InvalidCredentialError):
                await self.authenticator.login("guess", ADDRESS)

        await self.authenticator.login(self.password, ADDRESS)
        assert self.limiter.tracked_addresses() == 0

    async def test_lockout_is_per_address(self):
        for _ in range(5):
            with pytest.raises(InvalidCredentialError):
                await self.authenticator.login("guess", ADDRESS)

        issued = await self.authenticator.login(self.password, "192.0.2.99")
        assert issued.token

    def test_token_valid_until_expiry(self):
        """Test the 24 hour boundary."""
        token = self.authenticator.issue_token().token

        self.clock.advance(hours=24)
        self.authenticator.verify(token)

        self.clock.advance(seconds=1)
        with pytest.raises(TokenExpiredError):
            self.authenticator.verify(token)

    def test_forged_token(self):
        token = SerializerTokenSigner("attacker-key").sign({"sub": "admin", "iat": 0, "exp": 2**40})
        with pytest.raises(InvalidSignatureError):
            self.authenticator.verify(token)

    def test_token_from_retired_key_accepted(self):
        """Test that a token signed before key rotation still verifies."""
        issued_at = int(self.clock().timestamp())
        token = SerializerTokenSigner("retired-key").sign({"sub": "admin", "iat": issued_at, "exp": issued_at + 60})
        assert self.authenticator.verify(token).subject == "admin"

    def test_unexpected_payload_shape(self):
        """Test that validly signed but wrong-shaped payloads are malformed."""
        for payload in ({"sub": "someone", "iat": 0, "exp": 2**40}, {"sub": "admin", "iat": "0", "exp": 2**40}, {}):
            with pytest.raises(MalformedTokenError):
                self.authenticator.verify(self.signer.sign(payload))

    def test_garbage_token(self):
        with pytest.raises(MalformedTokenError):
            self.authenticator.verify("garbage")
