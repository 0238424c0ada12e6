"""Tests for the MongoDB login attempt limiter.

These run against a real server and are skipped unless ALGOSHELF_TEST_MONGO_URL
points at one, e.g. `mongodb://localhost:27017/algoshelf_test`.
"""

import asyncio
import os
from uuid import uuid4

import pytest
from pymongo import AsyncMongoClient

from algoshelf.core.modules.limiter.limiter import LimiterPolicy, MongoAttemptLimiter
from algoshelf.core.modules.limiter.models import AttemptState

ADDRESS = "203.0.113.7"


@pytest.fixture
async def attempts_collection():
    """A throwaway collection on the test server, dropped afterwards."""
    url = os.environ.get("ALGOSHELF_TEST_MONGO_URL")
    if not url:
        pytest.skip("ALGOSHELF_TEST_MONGO_URL is not set")

    client = AsyncMongoClient(url, uuidRepresentation="standard", tz_aware=True)
    collection = client.get_default_database("algoshelf_test").get_collection(f"login_attempts_{uuid4().hex}")
    try:
        yield collection
    finally:
        await collection.drop()
        await client.close()


class TestMongoAttemptLimiter:
    """Tests for MongoAttemptLimiter state transitions."""

    @pytest.fixture(autouse=True)
    def setup(self, attempts_collection, clock):
        self.collection = attempts_collection
        self.clock = clock
        self.limiter = MongoAttemptLimiter(attempts_collection, LimiterPolicy(), clock=clock)

    async def fail(self, times: int, address: str = ADDRESS):
        decision = None
        for _ in range(times):
            decision = await self.limiter.record_failure(address)
        return decision

    async def test_failures_below_threshold_warn(self):
        decision = await self.fail(4)
        assert decision.state is AttemptState.WARNING
        assert decision.failures == 4
        assert (await self.limiter.check_allowed(ADDRESS)).allowed

    async def test_fifth_failure_locks_out(self):
        """Test that the fifth failure inside the window starts a 15 minute lockout."""
        decision = await self.fail(5)

        assert decision.state is AttemptState.LOCKED_OUT
        assert decision.failures == 5
        assert decision.retry_after == 15 * 60
        check = await self.limiter.check_allowed(ADDRESS)
        assert not check.allowed
        assert check.retry_after == 15 * 60

    async def test_failures_during_lockout_do_not_extend_it(self):
        await self.fail(5)
        self.clock.advance(minutes=5)

        decision = await self.limiter.record_failure(ADDRESS)

        assert decision.state is AttemptState.LOCKED_OUT
        assert decision.failures == 5
        assert decision.retry_after == 10 * 60

    async def test_lockout_expires(self):
        """Test that the address is clean again once the lockout has passed."""
        await self.fail(5)
        self.clock.advance(minutes=15)

        assert (await self.limiter.check_allowed(ADDRESS)).state is AttemptState.CLEAN
        assert await self.collection.find_one({"_id": ADDRESS}) is None
        assert (await self.limiter.record_failure(ADDRESS)).failures == 1

    async def test_failure_after_expired_lockout_starts_over(self):
        await self.fail(5)
        self.clock.advance(minutes=16)

        decision = await self.limiter.record_failure(ADDRESS)

        assert decision.state is AttemptState.WARNING
        assert decision.failures == 1

    async def test_window_restarts_after_expiry(self):
        """Test that failures older than the window no longer count."""
        await self.fail(4)
        self.clock.advance(minutes=15)

        decision = await self.limiter.record_failure(ADDRESS)

        assert decision.state is AttemptState.WARNING
        assert decision.failures == 1
        stored = await self.collection.find_one({"_id": ADDRESS})
        assert stored["first_failed_at"] == self.clock()

    async def test_window_anchored_at_first_failure(self):
        for _ in range(4):
            await self.limiter.record_failure(ADDRESS)
            self.clock.advance(minutes=3)
        assert (await self.limiter.record_failure(ADDRESS)).state is AttemptState.LOCKED_OUT

    async def test_success_resets(self):
        await self.fail(4)
        await self.limiter.record_success(ADDRESS)

        assert (await self.limiter.check_allowed(ADDRESS)).state is AttemptState.CLEAN
        assert (await self.limiter.record_failure(ADDRESS)).failures == 1

    async def test_concurrent_failures_counted_once_each(self):
        """Test that simultaneous failures neither get lost nor overshoot the lockout."""
        decisions = await asyncio.gather(*(self.limiter.record_failure(ADDRESS) for _ in range(20)))

        warnings = [d for d in decisions if d.state is AttemptState.WARNING]
        lockouts = [d for d in decisions if d.state is AttemptState.LOCKED_OUT]
        assert sorted(d.failures for d in warnings) == [1, 2, 3, 4]
        assert len(lockouts) == 16
        assert all(d.failures == 5 for d in lockouts)
