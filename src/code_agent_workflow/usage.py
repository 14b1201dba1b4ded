from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from code_agent_workflow.errors import InvalidRequest, QuotaExceeded, Unauthenticated
from code_agent_workflow.store.store import Store

GENERATION_COST = 1
FREE_POINTS = 2
PRO_POINTS = 100
DURATION_SECONDS = 30 * 24 * 60 * 60  # 30 days


@dataclass(frozen=True)
class Identity:
    user_id: str
    has_pro_access: bool = False


@dataclass(frozen=True)
class UsageStatus:
    remaining_points: int
    consumed_points: int
    ms_before_next: int

    def to_payload(self) -> dict:
        return {
            "remainingPoints": self.remaining_points,
            "consumedPoints": self.consumed_points,
            "msBeforeNext": self.ms_before_next,
        }


def allotment_for(identity: Identity) -> int:
    return PRO_POINTS if identity.has_pro_access else FREE_POINTS


def require_identity(identity: Identity | None) -> Identity:
    if identity is None or not identity.user_id:
        raise Unauthenticated()
    return identity


def _validate_user_id(user_id: str) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise InvalidRequest("User ID is required")
    return user_id


class QuotaLedger:
    """Per-identity credit counter over a rolling window.

    The counter lives in the ``usage`` table. ``consume`` is a single upsert
    statement, so concurrent consumers (other processes, retried steps) can
    never lose an update or push the counter past the allotment.
    """

    def __init__(
        self,
        store: Store,
        *,
        duration_seconds: int = DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._duration_ms = duration_seconds * 1000
        self._clock = clock

    def get_status(self, identity: Identity | None) -> UsageStatus | None:
        identity = require_identity(identity)
        return self._status(identity.user_id, allotment_for(identity))

    def remaining(self, user_id: str, allotment: int) -> int:
        status = self._status(_validate_user_id(user_id), allotment)
        if status is None:
            return allotment
        return status.remaining_points

    def consume(self, user_id: str, allotment: int, cost: int = GENERATION_COST) -> UsageStatus:
        key = _validate_user_id(user_id)
        now = self._now_ms()
        if cost > allotment:
            raise QuotaExceeded(ms_before_next=self._ms_before_next(key, now))

        row = self._store.execute(
            """
            INSERT INTO usage (identity_key, points, expire_at) VALUES (?, ?, ?)
            ON CONFLICT(identity_key) DO UPDATE SET
                points = CASE WHEN usage.expire_at <= ? THEN excluded.points
                              ELSE usage.points + excluded.points END,
                expire_at = CASE WHEN usage.expire_at <= ? THEN excluded.expire_at
                                 ELSE usage.expire_at END
            WHERE usage.expire_at <= ? OR usage.points + excluded.points <= ?
            RETURNING points, expire_at
            """,
            (key, cost, now + self._duration_ms, now, now, now, allotment),
        ).fetchone()
        self._store.commit()

        if row is None:
            ms_before_next = self._ms_before_next(key, now)
            logger.info(f"Quota exceeded for {key}: allotment={allotment}, resets in {ms_before_next}ms")
            raise QuotaExceeded(ms_before_next=ms_before_next)

        consumed = int(row["points"])
        logger.debug(f"Consumed {cost} point(s) for {key}: {consumed}/{allotment}")
        return UsageStatus(
            remaining_points=max(0, allotment - consumed),
            consumed_points=consumed,
            ms_before_next=max(0, int(row["expire_at"]) - now),
        )

    def _status(self, key: str, allotment: int) -> UsageStatus | None:
        now = self._now_ms()
        row = self._store.execute(
            "SELECT points, expire_at FROM usage WHERE identity_key = ? AND expire_at > ? LIMIT 1",
            (key, now),
        ).fetchone()
        if row is None:
            return None
        consumed = int(row["points"])
        return UsageStatus(
            remaining_points=max(0, allotment - consumed),
            consumed_points=consumed,
            ms_before_next=max(0, int(row["expire_at"]) - now),
        )

    def _ms_before_next(self, key: str, now: int) -> int:
        row = self._store.execute(
            "SELECT expire_at FROM usage WHERE identity_key = ? AND expire_at > ? LIMIT 1",
            (key, now),
        ).fetchone()
        return 0 if row is None else int(row["expire_at"]) - now

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)
