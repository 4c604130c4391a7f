"""
Consumer loop for the pipeline task queue.

Each reserved task is dispatched to its handler and then acknowledged, whether
the handler succeeded or not. Parse and consolidation handlers record their
own failures on the affected rows, so nothing is retried automatically.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from app.db.pool import db_pool
from app.features.call_insights.services.consolidation_service import (
    CONSOLIDATE_INSIGHTS_TASK,
    insight_consolidation_service,
)
from app.features.call_insights.services.parsing_service import (
    PARSE_TRANSCRIPT_TASK,
    transcript_parsing_service,
)
from app.infrastructure.observability.logging import get_logger
from app.jobs.task_queue import TaskQueue, task_queue
from app.services.redis_client import fast_redis

logger = get_logger(__name__)

TaskHandler = Callable[[dict[str, Any]], Awaitable[Any]]

TASK_HANDLERS: dict[str, TaskHandler] = {
    PARSE_TRANSCRIPT_TASK: transcript_parsing_service.run_parse_task,
    CONSOLIDATE_INSIGHTS_TASK: insight_consolidation_service.run_consolidation_task,
}


class TaskConsumer:
    def __init__(
        self,
        queue: TaskQueue | None = None,
        handlers: dict[str, TaskHandler] | None = None,
    ):
        self.queue = queue or task_queue
        self.handlers = TASK_HANDLERS if handlers is None else handlers

    async def run_once(self, timeout: float | None = None) -> bool:
        """Process at most one task. Returns False when the queue was empty."""
        reserved = await self.queue.reserve(timeout)
        if reserved is None:
            return False

        task = reserved.task
        try:
            if task is None:
                logger.error("Dropping undecodable task")
            elif task.name not in self.handlers:
                logger.error("No handler registered for task", task_name=task.name, task_id=task.id)
            else:
                logger.info("Processing task", task_name=task.name, task_id=task.id)
                await self.handlers[task.name](task.payload)
        except Exception as e:
            logger.error(
                "Task handler failed",
                task_name=task.name if task else None,
                task_id=task.id if task else None,
                error=str(e),
                error_type=type(e).__name__,
            )
        finally:
            await self.queue.ack(reserved)

        return True

    async def run_forever(self) -> None:
        requeued = await self.queue.requeue_in_flight()
        logger.info("Task consumer started", queue=self.queue.queue_name, requeued=requeued)

        while True:
            try:
                await self.run_once()
            except asyncio.CancelledError:
                logger.info("Task consumer stopped")
                raise
            except Exception as e:
                logger.error(
                    "Error in task consumer loop", error=str(e), error_type=type(e).__name__
                )
                # Back off on Redis outages instead of spinning
                await asyncio.sleep(5)


task_consumer = TaskConsumer()


async def start_task_consumer() -> None:
    """Entry point for the `pipeline_tasks` worker job."""
    await db_pool.initialize()
    await fast_redis.initialize()

    try:
        await task_consumer.run_forever()
    finally:
        await fast_redis.close()
        await db_pool.close()
