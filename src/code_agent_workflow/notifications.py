from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import ClassVar, Protocol, runtime_checkable
from uuid import uuid4

import redis.asyncio as redis
from loguru import logger

from code_agent_workflow.store.steps import StepRunner
from code_agent_workflow.store.store import Store, utc_now

FRAGMENT_TOPIC = "fragment"
ERROR_TOPIC = "error"


def fragment_channel(user_id: str) -> str:
    return f"user:{user_id}"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class FragmentCompleted:
    topic: ClassVar[str] = FRAGMENT_TOPIC
    status: ClassVar[str] = "completed"

    project_id: str
    message: str
    message_id: str
    fragment_id: str | None = None
    sandbox_url: str | None = None
    title: str | None = None
    timestamp: datetime = field(default_factory=_now)

    def to_payload(self) -> dict:
        payload = {
            "projectId": self.project_id,
            "status": self.status,
            "message": self.message,
            "messageId": self.message_id,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.fragment_id is not None:
            payload["fragmentId"] = self.fragment_id
        if self.sandbox_url is not None:
            payload["sandboxUrl"] = self.sandbox_url
        if self.title is not None:
            payload["title"] = self.title
        return payload


@dataclass(frozen=True)
class GenerationError:
    topic: ClassVar[str] = ERROR_TOPIC
    status: ClassVar[str] = "error"

    project_id: str
    message: str
    timestamp: datetime = field(default_factory=_now)

    def to_payload(self) -> dict:
        return {
            "projectId": self.project_id,
            "status": self.status,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


TerminalEvent = FragmentCompleted | GenerationError


@runtime_checkable
class Publisher(Protocol):
    async def publish(self, channel: str, topic: str, payload: dict) -> None: ...


class StorePublisher:
    """Keeps published events in the ``notifications`` table."""

    def __init__(self, store: Store):
        self._store = store

    async def publish(self, channel: str, topic: str, payload: dict) -> None:
        self._store.execute(
            """
            INSERT INTO notifications (id, channel, topic, payload_json, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (str(uuid4()), channel, topic, json.dumps(payload, ensure_ascii=True), utc_now()),
        )
        self._store.commit()

    def list_notifications(self, channel: str, *, limit: int = 50) -> list[dict]:
        rows = self._store.execute(
            """
            SELECT topic, payload_json, created_at
            FROM notifications
            WHERE channel = ?
            ORDER BY created_at DESC
            LIMIT ?
            """,
            (channel, max(1, limit)),
        ).fetchall()
        return [
            {"topic": row["topic"], "data": json.loads(row["payload_json"]), "created_at": row["created_at"]}
            for row in rows
        ]


class RedisPublisher:
    """Publishes ``{"topic": ..., "data": ...}`` envelopes over Redis pub/sub."""

    def __init__(self, url: str):
        self._client = redis.Redis.from_url(url, decode_responses=True)

    async def publish(self, channel: str, topic: str, payload: dict) -> None:
        receivers = await self._client.publish(channel, json.dumps({"topic": topic, "data": payload}))
        logger.debug(f"Published {topic} on {channel} to {receivers} subscriber(s)")


def create_publisher(publisher_name: str, *, store: Store, redis_url: str | None = None) -> Publisher:
    name = publisher_name.strip().lower()
    if name == "store":
        return StorePublisher(store)
    if name == "redis":
        if not redis_url:
            raise ValueError("REDIS_URL is required when Publisher is 'redis'")
        return RedisPublisher(redis_url)
    raise ValueError(f"Unknown publisher: {publisher_name!r}. Supported: 'store', 'redis'")


class NotificationPublisher:
    """Publishes the single terminal event of a run."""

    STEP_NAME = "publish-terminal"

    def __init__(self, publisher: Publisher):
        self._publisher = publisher

    async def publish_terminal(self, user_id: str, event: TerminalEvent, steps: StepRunner) -> dict:
        channel = fragment_channel(user_id)

        async def publish() -> dict:
            payload = event.to_payload()
            await self._publisher.publish(channel, event.topic, payload)
            logger.info(f"Run {steps.run_id}: published {event.topic} to {channel}")
            return {"channel": channel, "topic": event.topic, "data": payload}

        return await steps.run(self.STEP_NAME, publish)
