"""
Supabase Target Repository

Write access to the Supabase project (Postgres tables behind PostgREST, plus
the Auth admin API for user listing). Uses the service role key, which
bypasses row level security.

Tables:
    vehicles      - one row per vehicle, id generated by Postgres
    transactions  - income and expense rows, bulk inserted
    goals         - savings goals with linked_vehicle_ids (uuid[])
"""

from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AuthError, Client, create_client

from gigledger.core.exceptions import TargetReadError, TargetWriteError
from gigledger.core.logging import get_logger
from gigledger.schemas.models import TargetUser

logger = get_logger("gigledger.repositories.supabase")

ADMIN_PROFILES_RPC = "get_all_profiles_admin"


class SupabaseTargetRepository:
    """Repository over the Supabase project the app is migrating to."""

    # Auth admin API page size
    USERS_PAGE_SIZE = 1000

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        client: Optional[Client] = None,
    ) -> None:
        if client is None:
            if not url or not service_role_key:
                raise ValueError("url and service_role_key are required without a client")
            client = create_client(url, service_role_key)
        self.client = client

    # =========================================================================
    # Reads
    # =========================================================================

    def list_users(self) -> list[TargetUser]:
        """List every Supabase Auth user, page by page."""
        users: list[TargetUser] = []
        page = 1
        while True:
            try:
                batch = self.client.auth.admin.list_users(page=page, per_page=self.USERS_PAGE_SIZE)
            except (AuthError, httpx.HTTPError) as e:
                raise TargetReadError(f"Failed to list Supabase users: {e}") from e

            users.extend(TargetUser(id=str(user.id), email=user.email) for user in batch)
            if len(batch) < self.USERS_PAGE_SIZE:
                break
            page += 1

        logger.debug(f"Listed {len(users)} Supabase users")
        return users

    def list_profiles(self) -> list[dict[str, Any]]:
        """
        List all user profiles through the admin RPC.

        Returns:
            Profile rows (id, plan, subscription_status, created_at, canceled_at)
        """
        try:
            response = self.client.rpc(ADMIN_PROFILES_RPC).execute()
        except (APIError, httpx.HTTPError) as e:
            raise TargetReadError(f"Failed to list profiles: {e}") from e
        return response.data or []

    # =========================================================================
    # Writes
    # =========================================================================

    def insert_one(self, table: str, row: dict[str, Any]) -> str:
        """
        Insert a single row.

        Args:
            table: Target table name
            row: Column values

        Returns:
            The id Postgres generated for the row

        Raises:
            TargetWriteError: If the insert fails or returns no row
        """
        try:
            response = self.client.table(table).insert(row).execute()
        except (APIError, httpx.HTTPError) as e:
            raise TargetWriteError(f"Insert into '{table}' failed: {_error_message(e)}", table=table) from e

        if not response.data:
            raise TargetWriteError(f"Insert into '{table}' returned no row", table=table)
        return str(response.data[0]["id"])

    def insert_many(self, table: str, rows: list[dict[str, Any]]) -> int:
        """
        Insert rows in a single request.

        Returns:
            Number of rows submitted

        Raises:
            TargetWriteError: If the request fails; no row is inserted then
        """
        if not rows:
            return 0
        try:
            self.client.table(table).insert(rows).execute()
        except (APIError, httpx.HTTPError) as e:
            raise TargetWriteError(
                f"Bulk insert into '{table}' failed: {_error_message(e)}",
                table=table,
                details={"rows": len(rows)},
            ) from e
        return len(rows)


def _error_message(error: Exception) -> str:
    # PostgREST errors carry the database message separately
    message = getattr(error, "message", None)
    return message or str(error)
