"""Supabase access for map persistence. Uses the service key (backend only)."""
from typing import Optional

import structlog
from supabase import create_client, Client

from flowmap.config import get_settings

logger = structlog.get_logger()

_supabase_client: Optional[Client] = None


def _where(query, filters: Optional[dict]):
    for column, value in (filters or {}).items():
        query = query.eq(column, value)
    return query


class SupabaseClient:
    """The table calls MapStore makes: insert, filtered select, update and delete."""

    def __init__(self, client: Client):
        self._client = client

    def _execute(self, action: str, table: str, query) -> list[dict]:
        try:
            return query.execute().data or []
        except Exception as e:
            logger.error("supabase_query_failed", action=action, table=table, error=str(e))
            raise

    async def insert(self, table: str, data: dict) -> dict:
        rows = self._execute("insert", table, self._client.table(table).insert(data))
        return rows[0] if rows else {}

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[dict] = None,
        limit: Optional[int] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[dict]:
        query = _where(self._client.table(table).select(columns), filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit:
            query = query.limit(limit)
        return self._execute("select", table, query)

    async def update(self, table: str, data: dict, filters: dict) -> list[dict]:
        return self._execute("update", table, _where(self._client.table(table).update(data), filters))

    async def delete(self, table: str, filters: dict) -> list[dict]:
        return self._execute("delete", table, _where(self._client.table(table).delete(), filters))


def get_supabase_client() -> Optional[SupabaseClient]:
    """Table client over the shared connection, or None when storage is not configured."""
    global _supabase_client

    if _supabase_client is None:
        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_service_key:
            logger.warning(
                "supabase_not_configured",
                has_url=bool(settings.supabase_url),
                has_key=bool(settings.supabase_service_key),
            )
            return None

        _supabase_client = create_client(settings.supabase_url, settings.supabase_service_key)
        logger.info("supabase_client_initialized")

    return SupabaseClient(_supabase_client)


def reset_supabase_client():
    """Forget the shared connection so settings are read again."""
    global _supabase_client
    _supabase_client = None
