"""
Gateway to the hosted database (PostgREST tables) and its edge functions.

The service-role key stays on the server; browsers never see it. Table
reads use PostgREST query syntax (``column=eq.value``, ``order=col.desc``).
"""
from typing import Any, Dict, List, Optional

import httpx

from hellofixo.clients.http import RetryingHttpClient, UpstreamError, read_json
from hellofixo.lib.logging import get_logger
from hellofixo.lib.settings import settings

logger = get_logger(__name__)


class SupabaseError(UpstreamError):
    """The hosted backend answered with an error payload."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        self.payload = payload
        super().__init__("supabase", message, status_code=status_code)
        self.message = message


def error_message(payload: Any, default: str) -> str:
    """Pick the most specific error text out of an edge-function/PostgREST error body."""
    if isinstance(payload, dict):
        for key in ("error_message", "message", "error"):
            value = payload.get(key)
            if value:
                return str(value)
    return default


class SupabaseGateway:
    """
    Thin async client for ``/rest/v1`` tables and ``/functions/v1`` functions.

    Args:
        http: Optional pre-configured RetryingHttpClient
        base_url: Project URL (defaults to settings.supabase_url)
        api_key: Key sent as ``apikey`` and bearer token (defaults to the service key,
            falling back to the anon key)
    """

    def __init__(
        self,
        http: Optional[RetryingHttpClient] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        key = api_key or settings.supabase_service_key or settings.supabase_anon_key
        if not key:
            logger.warning("No Supabase key configured. Remote calls will be rejected.")
        self.http = http or RetryingHttpClient(
            service="supabase",
            base_url=(base_url or settings.supabase_url).rstrip("/"),
            headers={
                "apikey": key,
                "Authorization": f"Bearer {key}",
            },
        )

    # ===== Tables =====

    async def select(
        self,
        table: str,
        filters: Optional[Dict[str, str]] = None,
        columns: str = "*",
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Read rows from a table.

        Args:
            table: Table name
            filters: PostgREST filters, e.g. ``{"slug": "eq.ac"}``
            columns: ``select`` expression (may embed related tables)
            order: ``order`` expression, e.g. ``"created_at.desc"``
            limit: Max rows

        Returns:
            List of row dicts

        Raises:
            SupabaseError: On a 4xx answer
            UpstreamError: When the backend is unreachable
        """
        params: Dict[str, Any] = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = limit

        response = await self.http.get(f"/rest/v1/{table}", params=params)
        payload = self._check(response, f"Failed to fetch {table}")
        return payload or []

    async def select_one(self, table: str, filters: Dict[str, str], columns: str = "*") -> Optional[Dict[str, Any]]:
        """Read a single row or None (maybeSingle semantics)."""
        rows = await self.select(table, filters=filters, columns=columns, limit=1)
        return rows[0] if rows else None

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return the stored representation."""
        response = await self.http.post(
            f"/rest/v1/{table}",
            json=row,
            headers={"Prefer": "return=representation"},
        )
        payload = self._check(response, f"Failed to insert into {table}")
        return payload[0] if isinstance(payload, list) and payload else (payload or {})

    async def update(self, table: str, filters: Dict[str, str], values: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update rows matching ``filters`` and return them."""
        response = await self.http.patch(
            f"/rest/v1/{table}",
            params=filters,
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return self._check(response, f"Failed to update {table}") or []

    # ===== Edge functions =====

    async def invoke(
        self,
        function: str,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Call an edge function with a JSON or multipart body.

        Raises:
            SupabaseError: With the function's own error message on a 4xx answer
        """
        kwargs: Dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        else:
            kwargs["data"] = data or {}
            if files:
                kwargs["files"] = files

        response = await self.http.post(f"/functions/v1/{function}", **kwargs)
        return self._check(
            response,
            f"An unexpected error occurred. Status: {response.status_code}",
        )

    @staticmethod
    def _check(response: httpx.Response, default_message: str) -> Any:
        payload = read_json(response)
        if response.status_code >= 400:
            message = error_message(payload, default_message)
            logger.warning(
                f"Supabase error: {message}",
                extra={"status_code": response.status_code, "url": str(response.request.url)},
            )
            raise SupabaseError(message, status_code=response.status_code, payload=payload)
        return payload

    async def aclose(self) -> None:
        await self.http.aclose()
