from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response

from budget_tracker.api.dependencies import get_ledger, get_store
from budget_tracker.core import settings
from budget_tracker.domain.periods import parse_view_type
from budget_tracker.domain.validation import parse_date, parse_id_list
from budget_tracker.integration.store import StoreClient
from budget_tracker.models import Earning, EarningIn, Expense, ExpenseIn
from budget_tracker.services.ledger import Ledger
from budget_tracker.services.overview import calendar_marks
from budget_tracker.services.queries import (
    TransactionQuery,
    compose_transaction_query,
    fetch_earnings,
    fetch_expenses,
)

router = APIRouter(prefix="/api")

DateParam = Annotated[str | None, Query(alias="date")]


def _query_from_params(
    kind: str,
    view: str | None,
    day: str | None,
    category_ids: str | None,
) -> TransactionQuery:
    return compose_transaction_query(
        kind,  # type: ignore[arg-type]
        parse_view_type(view),
        parse_date(day),
        parse_id_list(category_ids),
        week_start=settings.week_start(),
    )


@router.get("/expenses")
async def list_expenses(
    store: Annotated[StoreClient, Depends(get_store)],
    view: str | None = None,
    day: DateParam = None,
    category_ids: str | None = None,
) -> list[Expense]:
    return await fetch_expenses(store, _query_from_params("expense", view, day, category_ids))


@router.post("/expenses", status_code=201)
async def create_expense(
    payload: ExpenseIn,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Expense:
    return await ledger.add_expense(payload)


@router.put("/expenses/{expense_id}")
async def update_expense(
    expense_id: str,
    payload: ExpenseIn,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Expense:
    return await ledger.update_expense(expense_id, payload)


@router.delete("/expenses/{expense_id}", status_code=204)
async def delete_expense(
    expense_id: str,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Response:
    await ledger.delete_expense(expense_id)
    return Response(status_code=204)


@router.post("/expenses/{expense_id}/duplicate", status_code=201)
async def duplicate_expense(
    expense_id: str,
    ledger: Annotated[Ledger, Depends(get_ledger)],
    day: DateParam = None,
) -> Expense:
    return await ledger.duplicate_expense(expense_id, on=parse_date(day))


@router.get("/earnings")
async def list_earnings(
    store: Annotated[StoreClient, Depends(get_store)],
    view: str | None = None,
    day: DateParam = None,
    category_ids: str | None = None,
) -> list[Earning]:
    return await fetch_earnings(store, _query_from_params("earning", view, day, category_ids))


@router.post("/earnings", status_code=201)
async def create_earning(
    payload: EarningIn,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Earning:
    return await ledger.add_earning(payload)


@router.put("/earnings/{earning_id}")
async def update_earning(
    earning_id: str,
    payload: EarningIn,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Earning:
    return await ledger.update_earning(earning_id, payload)


@router.delete("/earnings/{earning_id}", status_code=204)
async def delete_earning(
    earning_id: str,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Response:
    await ledger.delete_earning(earning_id)
    return Response(status_code=204)


@router.get("/calendar")
async def get_calendar(
    store: Annotated[StoreClient, Depends(get_store)],
    view: str | None = "monthly",
    day: DateParam = None,
    category_ids: str | None = None,
) -> dict[str, list[dict[str, Any]]]:
    return await calendar_marks(
        store,
        parse_view_type(view),
        parse_date(day),
        parse_id_list(category_ids),
        week_start=settings.week_start(),
    )
