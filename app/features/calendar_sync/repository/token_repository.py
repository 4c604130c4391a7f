"""
Read-only access to provider access tokens.

Tokens are written and refreshed by the auth service; the sync engine only
needs a currently valid access token.
"""

from datetime import UTC, datetime, timedelta

from app.db.helpers import fetch_all, fetch_one, with_db_retry
from app.services.calendar.google_client import ProviderAuthError

# Treat tokens this close to expiry as expired
EXPIRY_SKEW = timedelta(seconds=60)


class TokenRepository:
    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def get_valid_access_token(cls, user_id: str, provider: str) -> str:
        """Return a usable access token or raise ProviderAuthError."""
        query = """
            SELECT access_token, expires_at
            FROM oauth_tokens
            WHERE user_id = %s AND provider = %s
        """
        row = await fetch_one(query, (user_id, provider))
        if not row or not row.get("access_token"):
            raise ProviderAuthError(f"No {provider} calendar connection for user")

        expires_at = row.get("expires_at")
        if expires_at is not None and expires_at <= datetime.now(UTC) + EXPIRY_SKEW:
            raise ProviderAuthError(f"{provider} access token expired", error_code="token_expired")

        return row["access_token"]

    @classmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def list_connected_user_ids(cls, provider: str) -> list[str]:
        query = """
            SELECT user_id
            FROM oauth_tokens
            WHERE provider = %s
            ORDER BY user_id
        """
        rows = await fetch_all(query, (provider,))
        return [str(row["user_id"]) for row in rows]
