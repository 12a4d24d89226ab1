from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Literal

from budget_tracker.domain.periods import SUNDAY, DateInterval, ViewType, resolve_period
from budget_tracker.integration.store import EARNINGS, EXPENSES, Filter, Order, StoreClient
from budget_tracker.logger import get_logger
from budget_tracker.models import Earning, Expense

logger = get_logger(__name__)

TransactionKind = Literal["expense", "earning"]

DEFAULT_COLUMNS = "*,category:categories(name,color,icon)"

_COLLECTIONS: dict[str, str] = {
    "expense": EXPENSES,
    "earning": EARNINGS,
}


@dataclass(frozen=True)
class TransactionQuery:
    kind: TransactionKind
    category_ids: tuple[str, ...] = ()
    interval: DateInterval | None = None
    descending: bool = True
    columns: str = DEFAULT_COLUMNS

    @property
    def collection(self) -> str:
        return _COLLECTIONS[self.kind]

    def build_filters(self) -> list[Filter]:
        filters: list[Filter] = []
        # An empty id set means no category filter at all
        if self.category_ids:
            filters.append(Filter("category_id", "in", list(self.category_ids)))
        if self.interval is not None:
            filters.append(Filter("date", "gte", self.interval.start))
            filters.append(Filter("date", "lte", self.interval.end))
        return filters

    def build_order(self) -> list[Order]:
        return [Order("date", descending=self.descending)]


def compose_transaction_query(
    kind: TransactionKind,
    view: ViewType,
    reference: date,
    category_ids: Sequence[str] = (),
    *,
    week_start: int = SUNDAY,
    descending: bool = True,
) -> TransactionQuery:
    interval = resolve_period(view, reference, week_start=week_start)
    return TransactionQuery(
        kind=kind,
        category_ids=tuple(category_ids),
        interval=interval,
        descending=descending,
    )


async def _select_rows(store: StoreClient, query: TransactionQuery) -> list[dict[str, Any]]:
    rows = await store.select(
        query.collection,
        filters=query.build_filters(),
        order=query.build_order(),
        columns=query.columns,
    )
    interval = query.interval.as_strings() if query.interval else ("*", "*")
    logger.debug(
        "[QUERY] %s: %d rows for %s..%s (categories: %s)",
        query.collection,
        len(rows),
        interval[0],
        interval[1],
        ", ".join(query.category_ids) if query.category_ids else "all",
    )
    return rows


async def fetch_expenses(store: StoreClient, query: TransactionQuery) -> list[Expense]:
    if query.kind != "expense":
        raise ValueError(f"Expected an expense query, got '{query.kind}'")
    return [Expense.model_validate(row) for row in await _select_rows(store, query)]


async def fetch_earnings(store: StoreClient, query: TransactionQuery) -> list[Earning]:
    if query.kind != "earning":
        raise ValueError(f"Expected an earning query, got '{query.kind}'")
    return [Earning.model_validate(row) for row in await _select_rows(store, query)]


async def fetch_transactions(
    store: StoreClient,
    query: TransactionQuery,
) -> list[Expense] | list[Earning]:
    if query.kind == "expense":
        return await fetch_expenses(store, query)
    return await fetch_earnings(store, query)
