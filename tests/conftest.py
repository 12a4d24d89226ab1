import itertools
from datetime import date, datetime
from typing import Any

import pytest

from budget_tracker.errors import RemoteStoreError
from budget_tracker.integration.store import (
    CATEGORIES,
    COLLECTIONS,
    NOTIFICATIONS,
    Filter,
    Order,
    StoreClient,
)


def _normalize(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _matches(row: dict[str, Any], item: Filter) -> bool:
    value = _normalize(row.get(item.column))
    expected = item.value
    if item.operator == "eq":
        return value == _normalize(expected)
    if item.operator == "neq":
        return value != _normalize(expected)
    if item.operator == "in":
        return value in {_normalize(candidate) for candidate in expected}
    if item.operator == "is":
        return value is expected
    if value is None:
        return False
    expected = _normalize(expected)
    if item.operator == "gte":
        return value >= expected
    if item.operator == "lte":
        return value <= expected
    if item.operator == "gt":
        return value > expected
    if item.operator == "lt":
        return value < expected
    raise AssertionError(f"unexpected operator {item.operator}")


class FakeStore(StoreClient):
    """In-memory tables behind the StoreClient interface."""

    def __init__(self) -> None:
        super().__init__(base_url="http://store.test", api_key="test-key", categories_cache_ttl=0)
        self.tables: dict[str, list[dict[str, Any]]] = {name: [] for name in COLLECTIONS}
        self._ids = itertools.count(1)

    def add(self, collection: str, **row: Any) -> dict[str, Any]:
        row.setdefault("id", str(next(self._ids)))
        self.tables[collection].append(row)
        return row

    def _embed_category(self, row: dict[str, Any]) -> dict[str, Any]:
        category_id = row.get("category_id")
        for category in self.tables[CATEGORIES]:
            if category["id"] == category_id:
                row["category"] = {
                    "name": category.get("name"),
                    "color": category.get("color"),
                    "icon": category.get("icon"),
                }
                break
        else:
            row["category"] = None
        return row

    async def select(
        self,
        collection: str,
        *,
        filters: list[Filter] | tuple[Filter, ...] = (),
        order: list[Order] | tuple[Order, ...] = (),
        columns: str = "*",
    ) -> list[dict[str, Any]]:
        rows = [dict(row) for row in self.tables[collection] if all(_matches(row, f) for f in filters)]
        for item in reversed(order):
            rows.sort(key=lambda row: str(row.get(item.column) or ""), reverse=item.descending)
        if "category:categories" in columns:
            rows = [self._embed_category(row) for row in rows]
        return rows

    async def insert(self, collection: str, record: dict[str, Any]) -> dict[str, Any]:
        row = {"id": str(next(self._ids)), **record}
        if collection == NOTIFICATIONS:
            row.setdefault("created_at", datetime.now().isoformat())
        self.tables[collection].append(row)
        return dict(row)

    async def update(self, collection: str, record_id: str, patch: dict[str, Any]) -> dict[str, Any]:
        for row in self.tables[collection]:
            if row["id"] == record_id:
                row.update(patch)
                return dict(row)
        raise RemoteStoreError(f"No {collection} record with id {record_id}.", status_code=404)

    async def update_where(self, collection: str, filters: list[Filter], patch: dict[str, Any]) -> int:
        count = 0
        for row in self.tables[collection]:
            if all(_matches(row, f) for f in filters):
                row.update(patch)
                count += 1
        return count

    async def delete(self, collection: str, record_id: str) -> None:
        self.tables[collection] = [row for row in self.tables[collection] if row["id"] != record_id]


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
