"""
Read-only user lookups. Users and organizations are managed elsewhere.
"""

from app.db.helpers import fetch_one
from app.features.calendar_sync.domain import UserContext


class UserRepository:
    @classmethod
    async def get_context(cls, user_id: str) -> UserContext | None:
        """User email plus the owning organization's id and email domain."""
        query = """
            SELECT u.id, u.email, u.organization_id, o.domain AS organization_domain
            FROM users u
            LEFT JOIN organizations o ON o.id = u.organization_id
            WHERE u.id = %s
        """
        row = await fetch_one(query, (user_id,))
        if not row:
            return None

        return UserContext(
            user_id=str(row["id"]),
            email=(row["email"] or "").lower(),
            organization_id=str(row["organization_id"]) if row.get("organization_id") else None,
            organization_domain=row.get("organization_domain"),
        )

    @classmethod
    async def get_organization(cls, organization_id: str) -> dict | None:
        query = "SELECT id, name, domain FROM organizations WHERE id = %s"
        return await fetch_one(query, (organization_id,))
