from collections.abc import Sequence
from datetime import date
from typing import Any

from budget_tracker.domain.aggregation import (
    budget_progress,
    category_breakdown,
    marked_dates,
    summarize,
)
from budget_tracker.domain.periods import SUNDAY, ViewType, month_interval
from budget_tracker.integration.store import BUDGETS, Filter, StoreClient
from budget_tracker.logger import get_logger
from budget_tracker.models import Budget, BudgetProgress, CategorySlice, Totals
from budget_tracker.services.queries import (
    DEFAULT_COLUMNS,
    TransactionQuery,
    compose_transaction_query,
    fetch_earnings,
    fetch_expenses,
)
from budget_tracker.services.tasks import join

logger = get_logger(__name__)

AMOUNT_COLUMNS = "id,amount,date,category_id"


async def monthly_overview(store: StoreClient, day: date) -> Totals:
    interval = month_interval(day)
    earnings, expenses = await join(
        fetch_earnings(store, TransactionQuery("earning", interval=interval, columns=AMOUNT_COLUMNS)),
        fetch_expenses(store, TransactionQuery("expense", interval=interval, columns=AMOUNT_COLUMNS)),
    )
    totals = summarize(earnings, expenses)
    logger.debug(
        "[OVERVIEW] %s: income %.2f, expenses %.2f, savings %.1f%%",
        interval.start.strftime("%Y-%m"),
        totals.total_income,
        totals.total_expenses,
        totals.savings_percentage,
    )
    return totals


async def category_breakdown_for_month(store: StoreClient, day: date) -> list[CategorySlice]:
    expenses = await fetch_expenses(
        store,
        TransactionQuery("expense", interval=month_interval(day), descending=False),
    )
    return category_breakdown(expenses)


async def calendar_marks(
    store: StoreClient,
    view: ViewType,
    day: date,
    category_ids: Sequence[str] = (),
    *,
    week_start: int = SUNDAY,
) -> dict[str, list[dict[str, Any]]]:
    expenses, earnings = await join(
        fetch_expenses(store, compose_transaction_query(
            "expense", view, day, category_ids, week_start=week_start,
        )),
        fetch_earnings(store, compose_transaction_query(
            "earning", view, day, category_ids, week_start=week_start,
        )),
    )
    return marked_dates(expenses, earnings)


async def fetch_budgets(
    store: StoreClient,
    day: date,
    *,
    category_id: str | None = None,
    notifications_only: bool = False,
) -> list[Budget]:
    interval = month_interval(day)
    filters = [
        Filter("month", "gte", interval.start),
        Filter("month", "lte", interval.end),
    ]
    if category_id is not None:
        filters.append(Filter("category_id", "eq", category_id))
    if notifications_only:
        filters.append(Filter("notifications_enabled", "eq", True))
    rows = await store.select(BUDGETS, filters=filters, columns=DEFAULT_COLUMNS)
    return [Budget.model_validate(row) for row in rows]


async def progress_for_budget(store: StoreClient, budget: Budget) -> BudgetProgress:
    expenses = await fetch_expenses(
        store,
        TransactionQuery(
            "expense",
            category_ids=(budget.category_id,),
            interval=month_interval(budget.month),
            columns=AMOUNT_COLUMNS,
        ),
    )
    return budget_progress(budget, expenses)


async def budgets_with_progress(
    store: StoreClient,
    day: date,
    *,
    category_id: str | None = None,
    notifications_only: bool = False,
) -> list[BudgetProgress]:
    budgets = await fetch_budgets(
        store,
        day,
        category_id=category_id,
        notifications_only=notifications_only,
    )
    if not budgets:
        return []
    return await join(*(progress_for_budget(store, budget) for budget in budgets))
