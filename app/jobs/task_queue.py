"""
Redis-backed task queue for background pipeline work.

Delivery is at-least-once: a consumer atomically moves a task into a
processing list before running it and removes it afterwards. Tasks left in
the processing list by a crashed worker are requeued when the next worker
starts, so handlers must be idempotent.
"""

import json
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from app.config import settings
from app.infrastructure.observability.logging import get_logger
from app.services.redis_client import fast_redis

logger = get_logger(__name__)


class TaskQueueError(Exception):
    """Raised when a task cannot be enqueued."""

    def __init__(self, message: str, task_name: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.task_name = task_name
        self.recoverable = recoverable


@dataclass(slots=True)
class Task:
    name: str
    payload: dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    enqueued_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_json(self) -> str:
        return json.dumps(
            {"id": self.id, "name": self.name, "payload": self.payload, "enqueued_at": self.enqueued_at}
        )

    @classmethod
    def from_json(cls, raw: str) -> "Task":
        data = json.loads(raw)
        if not isinstance(data, dict) or "name" not in data:
            raise ValueError("Task message has no name")
        return cls(
            name=data["name"],
            payload=data.get("payload") or {},
            id=data.get("id") or str(uuid.uuid4()),
            enqueued_at=data.get("enqueued_at") or "",
        )


@dataclass(slots=True)
class ReservedTask:
    """A task moved into the processing list. `raw` is the exact stored message."""

    raw: str
    task: Task | None


class TaskQueue:
    def __init__(self, redis_client=None, queue_name: str | None = None):
        self.redis = redis_client or fast_redis
        self.queue_name = queue_name or settings.TASK_QUEUE_NAME
        self.processing_name = f"{self.queue_name}:processing"

    async def enqueue(self, name: str, payload: dict[str, Any]) -> Task:
        task = Task(name=name, payload=payload)
        try:
            await self.redis.lpush(self.queue_name, task.to_json())
        except Exception as e:
            logger.error("Failed to enqueue task", task_name=name, error=str(e))
            raise TaskQueueError(f"Failed to enqueue {name}: {e}", task_name=name) from e

        logger.info("Task enqueued", task_name=name, task_id=task.id, payload=payload)
        return task

    async def reserve(self, timeout: float | None = None) -> ReservedTask | None:
        """
        Block until a task is available and move it to the processing list.

        A message that cannot be decoded is still returned (with task=None) so
        the consumer can drop it from the processing list.
        """
        block = settings.TASK_QUEUE_BLOCK_TIMEOUT_SECONDS if timeout is None else timeout
        raw = await self.redis.blmove(self.queue_name, self.processing_name, block)
        if raw is None:
            return None

        try:
            return ReservedTask(raw=raw, task=Task.from_json(raw))
        except (ValueError, TypeError) as e:
            logger.error("Malformed task message", error=str(e), raw=str(raw)[:200])
            return ReservedTask(raw=raw, task=None)

    async def ack(self, reserved: ReservedTask) -> None:
        await self.redis.lrem(self.processing_name, reserved.raw, 1)

    async def requeue_in_flight(self) -> int:
        """Move every task left in the processing list back onto the queue."""
        moved = 0
        while await self.redis.lmove(self.processing_name, self.queue_name) is not None:
            moved += 1
        if moved:
            logger.warning("Requeued in-flight tasks", count=moved, queue=self.queue_name)
        return moved

    async def depth(self) -> dict[str, int]:
        return {
            "queued": await self.redis.llen(self.queue_name),
            "processing": await self.redis.llen(self.processing_name),
        }


task_queue = TaskQueue()
