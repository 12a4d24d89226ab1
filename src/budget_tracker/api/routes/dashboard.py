from typing import Annotated

from fastapi import APIRouter, Depends, Query

from budget_tracker.api.dependencies import get_store
from budget_tracker.domain.validation import parse_date
from budget_tracker.integration.store import StoreClient
from budget_tracker.models import CategorySlice, Totals
from budget_tracker.services.overview import category_breakdown_for_month, monthly_overview

router = APIRouter(prefix="/api/dashboard")


@router.get("/overview")
async def get_overview(
    store: Annotated[StoreClient, Depends(get_store)],
    day: Annotated[str | None, Query(alias="date")] = None,
) -> Totals:
    return await monthly_overview(store, parse_date(day))


@router.get("/categories")
async def get_category_breakdown(
    store: Annotated[StoreClient, Depends(get_store)],
    day: Annotated[str | None, Query(alias="date")] = None,
    sort: bool = False,
) -> list[CategorySlice]:
    slices = await category_breakdown_for_month(store, parse_date(day))
    if sort:
        slices.sort(key=lambda item: item.amount, reverse=True)
    return slices
