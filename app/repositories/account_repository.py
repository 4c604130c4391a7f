"""
Account persistence shared by the sync engine, the backfill engine and the
account routes. Domains are never stored; they are derived from `website`.
"""

from app.db.helpers import fetch_all, fetch_one
from app.features.calendar_sync.domain import AccountRecord, OpportunityRef
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class AccountRepository:
    @classmethod
    def _row_to_account(cls, row: dict | None) -> AccountRecord | None:
        if not row:
            return None
        return AccountRecord(
            id=str(row["id"]),
            organization_id=str(row["organization_id"]),
            name=row["name"],
            website=row.get("website"),
        )

    @classmethod
    async def get(cls, account_id: str) -> AccountRecord | None:
        query = """
            SELECT id, organization_id, name, website
            FROM accounts
            WHERE id = %s
        """
        return cls._row_to_account(await fetch_one(query, (account_id,)))

    @classmethod
    async def list_with_opportunities(cls, organization_id: str) -> list[AccountRecord]:
        """
        All accounts of an organization with their opportunities, oldest first.

        Ordering is stable (created_at, id) so "first account for a domain" and
        "first opportunity by title" are deterministic across runs.
        """
        query = """
            SELECT
                a.id, a.organization_id, a.name, a.website,
                o.id AS opportunity_id, o.name AS opportunity_name
            FROM accounts a
            LEFT JOIN opportunities o ON o.account_id = a.id
            WHERE a.organization_id = %s
            ORDER BY a.created_at, a.id, o.created_at, o.id
        """
        rows = await fetch_all(query, (organization_id,))

        accounts: dict[str, AccountRecord] = {}
        for row in rows:
            account_id = str(row["id"])
            account = accounts.get(account_id)
            if account is None:
                account = cls._row_to_account(row)
                accounts[account_id] = account
            if row.get("opportunity_id"):
                account.opportunities.append(
                    OpportunityRef(id=str(row["opportunity_id"]), name=row["opportunity_name"] or "")
                )
        return list(accounts.values())

    @classmethod
    async def update_website(
        cls, account_id: str, website: str | None
    ) -> tuple[AccountRecord, str | None] | None:
        """
        Set the account's website. Returns the updated account and the previous
        website, or None if the account does not exist.
        """
        query = """
            WITH previous AS (
                SELECT id, website FROM accounts WHERE id = %s FOR UPDATE
            )
            UPDATE accounts a
            SET website = %s, updated_at = NOW()
            FROM previous
            WHERE a.id = previous.id
            RETURNING a.id, a.organization_id, a.name, a.website, previous.website AS previous_website
        """
        row = await fetch_one(query, (account_id, website))
        if not row:
            return None

        logger.info("Account website updated", account_id=account_id)
        return cls._row_to_account(row), row.get("previous_website")
