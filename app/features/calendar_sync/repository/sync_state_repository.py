"""
Postgres repository for calendar_sync_state.

One row per (user, provider). The checkpoint columns (sync_token, page_token,
window, last_run_at) are only written by save_checkpoint; the mark_* helpers
touch status columns alone so a failed run never moves the cursor.
"""

from datetime import datetime

from app.db.helpers import execute_query, fetch_one, with_db_retry
from app.features.calendar_sync.domain import SyncState
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class SyncStateRepository:
    """Persistence helpers for calendar_sync_state."""

    SELECT_COLUMNS = """
        user_id, provider, sync_token, page_token, window_start, window_end,
        last_run_at, last_status, last_error
    """

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get(cls, user_id: str, provider: str) -> SyncState | None:
        query = f"""
            SELECT {cls.SELECT_COLUMNS}
            FROM calendar_sync_state
            WHERE user_id = %s AND provider = %s
        """
        row = await fetch_one(query, (user_id, provider))
        return SyncState.from_row(row) if row else None

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def mark_in_progress(cls, user_id: str, provider: str) -> None:
        query = """
            INSERT INTO calendar_sync_state (user_id, provider, last_status, updated_at)
            VALUES (%s, %s, 'in_progress', NOW())
            ON CONFLICT (user_id, provider)
            DO UPDATE SET
                last_status = 'in_progress',
                updated_at = NOW()
        """
        await execute_query(query, (user_id, provider))

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def mark_failed(cls, user_id: str, provider: str, error_message: str) -> None:
        truncated_error = (error_message or "")[:500]
        query = """
            INSERT INTO calendar_sync_state (user_id, provider, last_status, last_error, updated_at)
            VALUES (%s, %s, 'error', %s, NOW())
            ON CONFLICT (user_id, provider)
            DO UPDATE SET
                last_status = 'error',
                last_error = EXCLUDED.last_error,
                updated_at = NOW()
        """
        await execute_query(query, (user_id, provider, truncated_error))
        logger.warning(
            "Calendar sync marked failed", user_id=user_id, provider=provider, error=truncated_error
        )

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def save_checkpoint(
        cls,
        user_id: str,
        provider: str,
        *,
        sync_token: str | None,
        page_token: str | None,
        window_start: datetime | None,
        window_end: datetime | None,
        last_run_at: datetime,
    ) -> None:
        """Persist the end-of-run checkpoint and mark the run successful."""
        query = """
            INSERT INTO calendar_sync_state (
                user_id, provider, sync_token, page_token, window_start, window_end,
                last_run_at, last_status, last_error, updated_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, 'success', NULL, NOW())
            ON CONFLICT (user_id, provider)
            DO UPDATE SET
                sync_token = EXCLUDED.sync_token,
                page_token = EXCLUDED.page_token,
                window_start = EXCLUDED.window_start,
                window_end = EXCLUDED.window_end,
                last_run_at = EXCLUDED.last_run_at,
                last_status = 'success',
                last_error = NULL,
                updated_at = NOW()
        """
        await execute_query(
            query,
            (user_id, provider, sync_token, page_token, window_start, window_end, last_run_at),
        )
