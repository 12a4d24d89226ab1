from typing import Annotated, Literal

from fastapi import APIRouter, Depends

from budget_tracker.api.dependencies import get_ledger, get_store
from budget_tracker.integration.store import StoreClient
from budget_tracker.models import Category, CategoryIn
from budget_tracker.services.ledger import Ledger

router = APIRouter(prefix="/api/categories")


@router.get("")
async def list_categories(
    store: Annotated[StoreClient, Depends(get_store)],
    kind: Literal["expense", "earning"] | None = None,
) -> list[Category]:
    rows = await store.get_categories(kind)
    return [Category.model_validate(row) for row in rows]


@router.post("", status_code=201)
async def create_category(
    payload: CategoryIn,
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> Category:
    return await ledger.add_category(payload)


@router.post("/seed")
async def seed_categories(
    ledger: Annotated[Ledger, Depends(get_ledger)],
) -> dict[str, int | list[Category]]:
    created = await ledger.seed_default_categories()
    return {"created": len(created), "categories": created}
