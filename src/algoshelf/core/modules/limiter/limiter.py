"""Failed login tracking per client address.

State per address moves Clean -> Warning(n) -> LockedOut(until) and back to
Clean on a successful login, on lockout expiry, or once the failure window
that started with the first failure has elapsed.
"""

import asyncio
import math
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection

from algoshelf.core.modules.limiter.models import AttemptState, LimiterDecision, LoginAttemptRecord
from algoshelf.utils import now as utc_now

logger = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class LimiterPolicy:
    max_failures: int = 5
    window: timedelta = timedelta(minutes=15)
    lockout: timedelta = timedelta(minutes=15)


class AttemptLimiter(Protocol):
    async def check_allowed(self, address: str) -> LimiterDecision: ...

    async def record_failure(self, address: str) -> LimiterDecision: ...

    async def record_success(self, address: str) -> None: ...


def seconds_until(until: datetime, current: datetime) -> int:
    return max(1, math.ceil((until - current).total_seconds()))


def evaluate(record: LoginAttemptRecord | None, policy: LimiterPolicy, current: datetime) -> LimiterDecision:
    """Classify a stored record at the given time. Expired records count as clean."""
    if record is None:
        return LimiterDecision(AttemptState.CLEAN)
    if record.locked_until is not None:
        if current < record.locked_until:
            return LimiterDecision(AttemptState.LOCKED_OUT, record.failures, seconds_until(record.locked_until, current))
        return LimiterDecision(AttemptState.CLEAN)
    if record.failures == 0 or record.first_failed_at is None:
        return LimiterDecision(AttemptState.CLEAN)
    if current - record.first_failed_at >= policy.window:
        return LimiterDecision(AttemptState.CLEAN)
    return LimiterDecision(AttemptState.WARNING, record.failures)


class InMemoryAttemptLimiter:
    """Single-process limiter backed by a dict.

    Every read-modify-write runs under one asyncio lock, so concurrent failures
    from the same address are each counted exactly once. Records of addresses
    that never come back are swept once they expire, at most once per
    `sweep_interval` (the shorter of window and lockout by default).
    """

    def __init__(self, policy: LimiterPolicy, clock: Clock = utc_now, sweep_interval: timedelta | None = None) -> None:
        self._policy = policy
        self._clock = clock
        self._sweep_interval = sweep_interval or min(policy.window, policy.lockout)
        self._records: dict[str, LoginAttemptRecord] = {}
        self._lock = asyncio.Lock()
        self._last_sweep: datetime | None = None

    def _sweep(self, current: datetime) -> None:
        if self._last_sweep is not None and current - self._last_sweep < self._sweep_interval:
            return
        self._last_sweep = current
        expired = [
            address
            for address, record in self._records.items()
            if evaluate(record, self._policy, current).state is AttemptState.CLEAN
        ]
        for address in expired:
            del self._records[address]
        if expired:
            logger.debug("expired_attempts_swept", count=len(expired), remaining=len(self._records))

    def _current(self, address: str, current: datetime) -> tuple[LoginAttemptRecord | None, LimiterDecision]:
        self._sweep(current)
        record = self._records.get(address)
        decision = evaluate(record, self._policy, current)
        if record is not None and decision.state is AttemptState.CLEAN:
            del self._records[address]
            record = None
        return record, decision

    async def check_allowed(self, address: str) -> LimiterDecision:
        async with self._lock:
            _, decision = self._current(address, self._clock())
            return decision

    async def record_failure(self, address: str) -> LimiterDecision:
        async with self._lock:
            current = self._clock()
            record, decision = self._current(address, current)
            if decision.state is AttemptState.LOCKED_OUT:
                return decision

            if record is None:
                record = LoginAttemptRecord(address=address, first_failed_at=current)
                self._records[address] = record
            record.failures += 1

            if record.failures >= self._policy.max_failures:
                record.locked_until = current + self._policy.lockout
                logger.warning("address_locked_out", address=address, failures=record.failures)
                return LimiterDecision(
                    AttemptState.LOCKED_OUT, record.failures, seconds_until(record.locked_until, current)
                )
            return LimiterDecision(AttemptState.WARNING, record.failures)

    async def record_success(self, address: str) -> None:
        async with self._lock:
            self._records.pop(address, None)

    def tracked_addresses(self) -> int:
        return len(self._records)


class MongoAttemptLimiter:
    """Limiter shared between processes through a MongoDB collection.

    A failure is recorded with a single find_one_and_update pipeline, so the
    increment, window reset and lockout decision are atomic per address.
    """

    def __init__(self, collection: AsyncCollection[dict[str, Any]], policy: LimiterPolicy, clock: Clock = utc_now) -> None:
        self._collection = collection
        self._policy = policy
        self._clock = clock

    @staticmethod
    def _to_record(doc: dict[str, Any] | None) -> LoginAttemptRecord | None:
        if doc is None:
            return None
        return LoginAttemptRecord(
            address=doc["_id"],
            failures=doc.get("failures") or 0,
            first_failed_at=doc.get("first_failed_at"),
            locked_until=doc.get("locked_until"),
        )

    async def check_allowed(self, address: str) -> LimiterDecision:
        current = self._clock()
        record = self._to_record(await self._collection.find_one({"_id": address}))
        decision = evaluate(record, self._policy, current)
        if record is not None and decision.state is AttemptState.CLEAN:
            # Guarded by the values just read so a concurrent failure is not wiped out
            await self._collection.delete_one(
                {"_id": address, "failures": record.failures, "locked_until": record.locked_until}
            )
        return decision

    async def record_failure(self, address: str) -> LimiterDecision:
        current = self._clock()
        window_start = current - self._policy.window
        locked_until = {"$ifNull": ["$locked_until", None]}
        first_failed_at = {"$ifNull": ["$first_failed_at", None]}

        # null sorts before any date, so a missing first_failed_at reads as stale
        active_lock = {"$gt": [locked_until, current]}
        expired_lock = {"$and": [{"$ne": [locked_until, None]}, {"$lte": [locked_until, current]}]}
        stale = {"$lte": [first_failed_at, window_start]}

        pipeline: list[dict[str, Any]] = [
            {"$set": {"_active": active_lock, "_reset": {"$and": [{"$not": [active_lock]}, {"$or": [stale, expired_lock]}]}}},
            {
                "$set": {
                    "failures": {
                        "$cond": [
                            "$_active",
                            "$failures",
                            {"$cond": ["$_reset", 1, {"$add": [{"$ifNull": ["$failures", 0]}, 1]}]},
                        ]
                    },
                    "first_failed_at": {"$cond": ["$_reset", current, first_failed_at]},
                }
            },
            {
                "$set": {
                    "locked_until": {
                        "$cond": [
                            "$_active",
                            locked_until,
                            {"$cond": [{"$gte": ["$failures", self._policy.max_failures]}, current + self._policy.lockout, None]},
                        ]
                    }
                }
            },
            {"$unset": ["_active", "_reset"]},
        ]
        doc = await self._collection.find_one_and_update(
            {"_id": address}, pipeline, upsert=True, return_document=ReturnDocument.AFTER
        )
        decision = evaluate(self._to_record(doc), self._policy, current)
        if decision.state is AttemptState.LOCKED_OUT and decision.failures == self._policy.max_failures:
            logger.warning("address_locked_out", address=address, failures=decision.failures)
        return decision

    async def record_success(self, address: str) -> None:
        await self._collection.delete_one({"_id": address})
