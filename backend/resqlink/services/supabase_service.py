"""
Supabase Table Service
======================

Reads rows out of the managed Postgres database through its REST API
(PostgREST). This is the same thing the JS client does under the hood.

HOW POSTGREST QUERIES LOOK:
--------------------------
    GET {SUPABASE_URL}/rest/v1/sensor_data
        ?select=*
        &order=timestamp.desc
        &limit=10
    Headers:
        apikey: <key>
        Authorization: Bearer <key>

Filters are query params too: `latitude=not.is.null` means
"latitude IS NOT NULL".

TABLES WE READ:
--------------
- sensor_data   Landslide sensor readings
- messages      Mesh chat feed
- users         People who shared their location (SOS map)
- ml_predictions (optional) Precomputed risk predictions

Author: ResQlink Team
"""

import httpx
import logging
from typing import Iterable, Optional

from resqlink.utils.validation import validate_table_name

logger = logging.getLogger(__name__)


class SupabaseError(Exception):
    """
    A read against the backend failed.

    Carries the PostgREST error fields when the server sent them:
        {"code": "42P01", "message": "relation ... does not exist",
         "details": null, "hint": null}
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[str] = None,
        hint: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        self.hint = hint
        self.http_status = http_status

    def to_dict(self) -> dict:
        return {
            "message": self.message,
            "code": self.code,
            "details": self.details,
            "hint": self.hint,
            "http_status": self.http_status,
        }


class SupabaseService:
    """
    Thin async client for Supabase table reads.

    HOW TO USE:
    ----------
    service = SupabaseService(url="https://xyz.supabase.co", key="...")

    rows = await service.select(
        "sensor_data", order="timestamp", ascending=False, limit=10
    )

    Anything that goes wrong raises SupabaseError.
    """

    SENSOR_TABLE = "sensor_data"
    MESSAGES_TABLE = "messages"
    USERS_TABLE = "users"

    def __init__(
        self,
        url: str,
        key: str,
        request_timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Set up the service.

        Args:
            url: Project URL, e.g. "https://xyz.supabase.co"
            key: API key (anon or service role)
            request_timeout: Seconds to wait for the database to answer
            http_client: Pre-built client (tests pass one with a mock transport)
        """
        self.url = (url or "").rstrip("/")
        self.key = key or ""
        self.http_client = http_client or httpx.AsyncClient(timeout=request_timeout)

        self.is_configured = bool(self.url and self.key)
        if not self.is_configured:
            logger.warning(
                "Supabase not configured. Set SUPABASE_URL and SUPABASE_KEY "
                "environment variables to read live data."
            )

    @property
    def rest_url(self) -> str:
        return f"{self.url}/rest/v1"

    def _headers(self) -> dict:
        return {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Accept": "application/json",
        }

    # =========================================================================
    # GENERIC READ
    # =========================================================================

    async def select(
        self,
        table: str,
        columns: str = "*",
        order: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
        not_null: Iterable[str] = (),
    ) -> list[dict]:
        """
        Read rows from a table.

        Args:
            table: Table name
            columns: PostgREST select list ("*" or "id,timestamp,...")
            order: Column to sort by
            ascending: Sort direction
            limit: Max rows, None for all
            not_null: Columns that must not be NULL

        Returns:
            List of row dicts (possibly empty)

        Raises:
            SupabaseError: not configured, bad table name, HTTP or network error
        """
        if not self.is_configured:
            raise SupabaseError("Supabase is not configured")
        if not validate_table_name(table):
            raise SupabaseError(f"Invalid table name: {table!r}")

        params: dict[str, str] = {"select": columns}
        if order:
            params["order"] = f"{order}.{'asc' if ascending else 'desc'}"
        if limit is not None:
            params["limit"] = str(limit)
        for column in not_null:
            params[column] = "not.is.null"

        url = f"{self.rest_url}/{table}"
        logger.debug(f"[supabase] GET {table} {params}")

        try:
            response = await self.http_client.get(url, params=params, headers=self._headers())
        except httpx.TimeoutException as e:
            raise SupabaseError(f"Request to {table} timed out") from e
        except httpx.HTTPError as e:
            raise SupabaseError(f"Cannot reach Supabase: {e}") from e

        if response.status_code >= 400:
            raise self._error_from_response(response)

        try:
            data = response.json()
        except ValueError as e:
            raise SupabaseError(
                f"Unexpected response from {table}", http_status=response.status_code
            ) from e
        if not isinstance(data, list):
            raise SupabaseError(f"Unexpected response shape from {table}: {type(data).__name__}")

        logger.debug(f"[supabase] {table}: {len(data)} rows")
        return data

    @staticmethod
    def _error_from_response(response: httpx.Response) -> SupabaseError:
        """Turn a PostgREST error reply into a SupabaseError."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("message"):
            return SupabaseError(
                body["message"],
                code=body.get("code"),
                details=body.get("details"),
                hint=body.get("hint"),
                http_status=response.status_code,
            )

        text = response.text[:500] if response.text else ""
        message = f"HTTP error {response.status_code}"
        if text:
            message += f": {text}"
        return SupabaseError(message, http_status=response.status_code)

    # =========================================================================
    # WIDGET READS
    # =========================================================================

    async def fetch_sensor_data(self, limit: Optional[int] = None, columns: str = "*") -> list[dict]:
        """Newest sensor readings first."""
        return await self.select(
            self.SENSOR_TABLE,
            columns=columns,
            order="timestamp",
            ascending=False,
            limit=limit,
        )

    async def fetch_messages(self) -> list[dict]:
        """
        All chat messages, highest id first.

        Ordered by id rather than created_at: some nodes send a bad clock.
        """
        return await self.select(self.MESSAGES_TABLE, order="id", ascending=False)

    async def fetch_sos_locations(self) -> list[dict]:
        """Users that have shared a position."""
        return await self.select(
            self.USERS_TABLE,
            columns="id,latitude,longitude,name,phone",
            not_null=("latitude", "longitude"),
        )

    async def fetch_latest_prediction(self, table: str) -> Optional[dict]:
        """The newest precomputed prediction row, or None if the table is empty."""
        rows = await self.select(table, order="timestamp", ascending=False, limit=1)
        return rows[0] if rows else None

    async def close(self):
        """Close the HTTP client (called on shutdown)."""
        await self.http_client.aclose()
