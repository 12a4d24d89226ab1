from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel

from budget_tracker.api.dependencies import get_ledger, get_store
from budget_tracker.domain.validation import parse_date
from budget_tracker.integration.store import StoreClient
from budget_tracker.models import Budget, BudgetIn, BudgetProgress
from budget_tracker.services.ledger import Ledger
from budget_tracker.services.overview import budgets_with_progress

router = APIRouter(prefix="/api/budgets")


class NotificationToggle(BaseModel):
    enabled: bool


@router.get("")
async def list_budgets(
    store: Annotated[StoreClient, Depends(get_store)],
    day: Annotated[str | None, Query(alias="date")] = None,
) -> list[BudgetProgress]:
    return await budgets_with_progress(store, parse_date(day))


@router.post("", status_code=201)
async def create_budget(
    payload: BudgetIn,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Budget:
    return await ledger.add_budget(payload)


@router.delete("/{budget_id}", status_code=204)
async def delete_budget(
    budget_id: str,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Response:
    await ledger.delete_budget(budget_id)
    return Response(status_code=204)


@router.patch("/{budget_id}/notifications")
async def toggle_budget_notifications(
    budget_id: str,
    toggle: NotificationToggle,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Budget:
    return await ledger.set_budget_notifications(budget_id, toggle.enabled)
