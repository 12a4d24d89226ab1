import asyncio
import os
from dataclasses import dataclass
from datetime import date
from time import monotonic
from typing import Any

import httpx

from budget_tracker.core import settings
from budget_tracker.errors import RemoteStoreError
from budget_tracker.logger import get_logger

logger = get_logger(__name__)

EXPENSES = "expenses"
EARNINGS = "earnings"
CATEGORIES = "categories"
BUDGETS = "budgets"
NOTIFICATIONS = "notifications"

COLLECTIONS = (EXPENSES, EARNINGS, CATEGORIES, BUDGETS, NOTIFICATIONS)

DEFAULT_TIMEOUT_SECONDS = 30.0

_OPERATORS = {"eq", "neq", "gt", "gte", "lt", "lte", "in", "is"}


@dataclass(frozen=True)
class Filter:
    column: str
    operator: str
    value: Any

    def as_param(self) -> tuple[str, str]:
        if self.operator not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator '{self.operator}'")
        return self.column, f"{self.operator}.{_format_value(self.value, self.operator)}"


@dataclass(frozen=True)
class Order:
    column: str
    descending: bool = False

    def as_param(self) -> str:
        return f"{self.column}.{'desc' if self.descending else 'asc'}"


def _format_scalar(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _format_value(value: Any, operator: str) -> str:
    if operator == "in":
        items = ",".join(_format_scalar(item) for item in value)
        return f"({items})"
    return _format_scalar(value)


def _error_message(response: httpx.Response) -> str:
    status = response.status_code
    if status in (401, 403):
        return "Not authorized to access the remote store."
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error_description") or body.get("error")
        if message:
            return str(message)
    return f"Remote store request failed with status {status}."


class StoreClient:
    """Thin async client for the hosted database's REST interface.

    Every failure surfaces as ``RemoteStoreError``; callers decide what to
    show the user.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        categories_cache_ttl: float | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.base_url = (base_url or os.getenv("SUPABASE_URL") or "").rstrip("/") or None
        self.api_key = api_key or os.getenv("SUPABASE_ANON_KEY")
        self.headers = self._build_headers()
        self.timeout = timeout
        self._client = client
        self._client_lock = asyncio.Lock()
        self._cache_lock = asyncio.Lock()
        self._categories_cache: list[dict[str, Any]] | None = None
        self._categories_cache_expires_at = 0.0
        cache_ttl = categories_cache_ttl
        if cache_ttl is None:
            cache_ttl = settings.get_env_float(
                "CATEGORIES_CACHE_TTL",
                settings.DEFAULT_CATEGORIES_CACHE_TTL_SECONDS,
            )
        self._categories_cache_ttl = max(0.0, cache_ttl)

    def _build_headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key or "",
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def aclose(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_client(self) -> httpx.AsyncClient:
        client = self._client
        if client is not None and not client.is_closed:
            return client

        async with self._client_lock:
            # Another task may have created it while we waited
            client = self._client
            if client is None or client.is_closed:
                client = httpx.AsyncClient()
                self._client = client
            return client

    def _url(self, collection: str) -> str:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection '{collection}'")
        return f"{self.base_url}/rest/v1/{collection}"

    async def _request(
        self,
        method: str,
        collection: str,
        *,
        params: list[tuple[str, str]] | None = None,
        payload: Any = None,
        prefer: str | None = None,
    ) -> Any:
        if not self.configured:
            logger.error("[STORE] Remote store credentials missing.")
            raise RemoteStoreError("Remote store is not configured.")

        headers = dict(self.headers)
        if prefer:
            headers["Prefer"] = prefer

        client = await self._get_client()
        try:
            response = await client.request(
                method,
                self._url(collection),
                headers=headers,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = _error_message(exc.response)
            logger.error("[STORE] %s %s failed (%s): %s", method, collection, status, message)
            raise RemoteStoreError(message, status_code=status) from exc
        except httpx.HTTPError as exc:
            logger.error("[STORE] %s %s failed: %s", method, collection, exc)
            raise RemoteStoreError("Could not reach the remote store. Check your connection.") from exc

        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            logger.error(
                "[STORE] %s %s returned a non-JSON body (%s): %s",
                method,
                collection,
                response.status_code,
                exc,
            )
            raise RemoteStoreError(
                "Remote store returned an unreadable response.",
                status_code=response.status_code,
            ) from exc

    async def select(
        self,
        collection: str,
        *,
        filters: list[Filter] | tuple[Filter, ...] = (),
        order: list[Order] | tuple[Order, ...] = (),
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        params: list[tuple[str, str]] = [("select", columns)]
        params.extend(item.as_param() for item in filters)
        if order:
            params.append(("order", ",".join(item.as_param() for item in order)))

        data = await self._request("GET", collection, params=params)
        rows = data or []
        logger.debug("[STORE] Selected %d rows from %s.", len(rows), collection)
        return rows

    async def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        data = await self._request(
            "POST",
            collection,
            payload=[record],
            prefer="return=representation",
        )
        rows = data or []
        if not rows:
            raise RemoteStoreError(f"Remote store did not return the new {collection} record.")
        row = rows[0]
        logger.info("[STORE] Inserted %s record %s.", collection, row.get("id"))
        return row

    async def update(
        self,
        collection: str,
        record_id: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        data = await self._request(
            "PATCH",
            collection,
            params=[Filter("id", "eq", record_id).as_param()],
            payload=patch,
            prefer="return=representation",
        )
        rows = data or []
        if not rows:
            raise RemoteStoreError(f"No {collection} record with id {record_id}.", status_code=404)
        logger.info("[STORE] Updated %s record %s.", collection, record_id)
        return rows[0]

    async def update_where(
        self,
        collection: str,
        filters: list[Filter],
        patch: dict[str, Any],
    ) -> int:
        data = await self._request(
            "PATCH",
            collection,
            params=[item.as_param() for item in filters],
            payload=patch,
            prefer="return=representation",
        )
        count = len(data or [])
        logger.info("[STORE] Updated %d %s records.", count, collection)
        return count

    async def delete(self, collection: str, record_id: str) -> None:
        await self._request(
            "DELETE",
            collection,
            params=[Filter("id", "eq", record_id).as_param()],
        )
        logger.info("[STORE] Deleted %s record %s.", collection, record_id)

    async def get(self, collection: str, record_id: str, *, columns: str = "*") -> dict[str, Any] | None:
        rows = await self.select(collection, filters=[Filter("id", "eq", record_id)], columns=columns)
        return rows[0] if rows else None

    def _get_cached_categories(self, *, allow_stale: bool = False) -> list[dict[str, Any]] | None:
        if self._categories_cache is None or self._categories_cache_ttl <= 0:
            return None
        if allow_stale:
            return self._categories_cache
        if monotonic() >= self._categories_cache_expires_at:
            return None
        return self._categories_cache

    def _cache_categories(self, categories: list[dict[str, Any]]) -> None:
        """Must be called while holding _cache_lock."""
        if self._categories_cache_ttl <= 0:
            return
        self._categories_cache = categories
        self._categories_cache_expires_at = monotonic() + self._categories_cache_ttl

    def invalidate_categories(self) -> None:
        self._categories_cache = None
        self._categories_cache_expires_at = 0.0

    async def _fetch_categories(self) -> list[dict[str, Any]]:
        return await self.select(CATEGORIES, order=[Order("name")])

    async def get_categories(
        self,
        kind: str | None = None,
        *,
        use_cache: bool = True,
    ) -> list[dict[str, Any]]:
        if use_cache:
            async with self._cache_lock:
                categories = self._get_cached_categories()
                if categories is None:
                    try:
                        categories = await self._fetch_categories()
                    except RemoteStoreError:
                        categories = self._get_cached_categories(allow_stale=True)
                        if categories is None:
                            raise
                        logger.warning("[STORE] Serving stale categories after fetch error.")
                    else:
                        self._cache_categories(categories)
        else:
            categories = await self._fetch_categories()

        if kind is None:
            return list(categories)
        return [category for category in categories if category.get("type") == kind]
