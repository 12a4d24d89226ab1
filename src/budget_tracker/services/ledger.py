from datetime import date
from typing import Any

from budget_tracker.domain.periods import first_of_month
from budget_tracker.domain.validation import parse_amount, require
from budget_tracker.errors import NotFoundError, RemoteStoreError, ValidationError
from budget_tracker.integration.store import BUDGETS, CATEGORIES, EARNINGS, EXPENSES, StoreClient
from budget_tracker.logger import get_logger
from budget_tracker.models import (
    Budget,
    BudgetIn,
    Category,
    CategoryIn,
    CategoryKind,
    Earning,
    EarningIn,
    Expense,
    ExpenseIn,
    RecurrencePattern,
)
from budget_tracker.services.notifications import NotificationService
from budget_tracker.services.overview import budgets_with_progress, fetch_budgets

logger = get_logger(__name__)

# name, kind, icon, color
DEFAULT_CATEGORIES: tuple[tuple[str, CategoryKind, str, str], ...] = (
    ("Food", "expense", "food", "#FF7043"),
    ("Transport", "expense", "car", "#42A5F5"),
    ("Shopping", "expense", "cart", "#AB47BC"),
    ("Bills", "expense", "file-document", "#EF5350"),
    ("Entertainment", "expense", "movie", "#FFCA28"),
    ("Health", "expense", "medical-bag", "#66BB6A"),
    ("Salary", "earning", "cash", "#4CAF50"),
    ("Freelance", "earning", "laptop", "#26A69A"),
    ("Investments", "earning", "chart-line", "#5C6BC0"),
    ("Other", "earning", "dots-horizontal", "#78909C"),
)


def _recurrence_fields(pattern: RecurrencePattern | None) -> dict[str, Any]:
    return {
        "is_recurring": pattern is not None,
        "recurrence_pattern": pattern.model_dump(mode="json", exclude_none=True) if pattern else None,
    }


def _find_category(categories: list[dict[str, Any]], category_id: str) -> dict[str, Any] | None:
    for category in categories:
        if str(category.get("id")) == str(category_id):
            return category
    return None


def _clean_notes(notes: str | None) -> str | None:
    if notes is None:
        return None
    return notes.strip() or None


def _record_date(day: date | None) -> str | None:
    return day.isoformat() if day else None


def _for_insert(record: dict[str, Any]) -> dict[str, Any]:
    if record["date"] is None:
        record["date"] = date.today().isoformat()
    return record


def _for_update(record: dict[str, Any]) -> dict[str, Any]:
    # An edit without a date keeps the stored one
    if record["date"] is None:
        del record["date"]
    return record


class Ledger:
    """Validated writes for expenses, earnings, budgets and categories."""

    def __init__(self, store: StoreClient, notifications: NotificationService) -> None:
        self.store = store
        self.notifications = notifications

    async def _require_category(self, category_id: str | None, kind: CategoryKind) -> dict[str, Any]:
        require(category_id, "Please select a category.")
        category = _find_category(await self.store.get_categories(), category_id)
        if category is None:
            # The cached list may predate a category created elsewhere
            category = _find_category(await self.store.get_categories(use_cache=False), category_id)
        if category is None:
            raise ValidationError("The selected category no longer exists.")
        if category.get("type") != kind:
            raise ValidationError(f"Category '{category.get('name')}' cannot be used for an {kind}.")
        return category

    async def _check_budgets(self, expense: Expense) -> None:
        if not expense.category_id:
            return
        try:
            progress_list = await budgets_with_progress(
                self.store,
                expense.date,
                category_id=expense.category_id,
            )
            for progress in progress_list:
                await self.notifications.check_budget(progress)
        except RemoteStoreError as exc:
            # The expense is already stored
            logger.warning("[BUDGET] Budget check failed for expense %s: %s", expense.id, exc.message)

    # Expenses

    async def _expense_record(self, payload: ExpenseIn) -> dict[str, Any]:
        amount = parse_amount(payload.amount)
        await self._require_category(payload.category_id, "expense")
        return {
            "amount": amount,
            "category_id": payload.category_id,
            "date": _record_date(payload.date),
            "notes": _clean_notes(payload.notes),
            "tags": payload.tags,
            "receipt_url": payload.receipt_url,
            **_recurrence_fields(payload.recurrence_pattern),
        }

    async def add_expense(self, payload: ExpenseIn) -> Expense:
        record = _for_insert(await self._expense_record(payload))
        expense = Expense.model_validate(await self.store.insert(EXPENSES, record))
        logger.info("[LEDGER] Added expense %s: %.2f on %s.", expense.id, expense.amount, expense.date)
        await self._check_budgets(expense)
        return expense

    async def update_expense(self, expense_id: str, payload: ExpenseIn) -> Expense:
        record = _for_update(await self._expense_record(payload))
        expense = Expense.model_validate(await self.store.update(EXPENSES, expense_id, record))
        await self._check_budgets(expense)
        return expense

    async def delete_expense(self, expense_id: str) -> None:
        await self.store.delete(EXPENSES, expense_id)

    async def duplicate_expense(self, expense_id: str, *, on: date | None = None) -> Expense:
        row = await self.store.get(EXPENSES, expense_id)
        if row is None:
            raise NotFoundError(f"Expense {expense_id} was not found.")
        source = Expense.model_validate(row)
        record = {
            "amount": source.amount,
            "category_id": source.category_id,
            "date": (on or date.today()).isoformat(),
            "notes": source.notes,
            "tags": source.tags,
            "receipt_url": source.receipt_url,
            "is_recurring": source.is_recurring,
            "recurrence_pattern": (
                source.recurrence_pattern.model_dump(mode="json", exclude_none=True)
                if source.recurrence_pattern
                else None
            ),
        }
        expense = Expense.model_validate(await self.store.insert(EXPENSES, record))
        logger.info("[LEDGER] Duplicated expense %s as %s.", expense_id, expense.id)
        await self._check_budgets(expense)
        return expense

    # Earnings

    async def _earning_record(self, payload: EarningIn) -> dict[str, Any]:
        amount = parse_amount(payload.amount)
        source = require(payload.source, "Please enter where the money came from.")
        await self._require_category(payload.category_id, "earning")
        return {
            "amount": amount,
            "source": source.strip(),
            "category_id": payload.category_id,
            "date": _record_date(payload.date),
            "notes": _clean_notes(payload.notes),
            **_recurrence_fields(payload.recurrence_pattern),
        }

    async def add_earning(self, payload: EarningIn) -> Earning:
        record = _for_insert(await self._earning_record(payload))
        earning = Earning.model_validate(await self.store.insert(EARNINGS, record))
        logger.info("[LEDGER] Added earning %s: %.2f on %s.", earning.id, earning.amount, earning.date)
        return earning

    async def update_earning(self, earning_id: str, payload: EarningIn) -> Earning:
        record = _for_update(await self._earning_record(payload))
        return Earning.model_validate(await self.store.update(EARNINGS, earning_id, record))

    async def delete_earning(self, earning_id: str) -> None:
        await self.store.delete(EARNINGS, earning_id)

    # Budgets

    async def add_budget(self, payload: BudgetIn) -> Budget:
        limit_amount = parse_amount(payload.limit_amount, label="budget limit")
        await self._require_category(payload.category_id, "expense")
        month = first_of_month(payload.month or date.today())

        existing = await fetch_budgets(self.store, month, category_id=payload.category_id)
        if existing:
            raise ValidationError(
                f"A budget for this category already exists for {month.strftime('%B %Y')}."
            )

        record = {
            "category_id": payload.category_id,
            "limit_amount": limit_amount,
            "month": month.isoformat(),
            "rollover_amount": payload.rollover_amount,
            "notifications_enabled": payload.notifications_enabled,
        }
        budget = Budget.model_validate(await self.store.insert(BUDGETS, record))
        logger.info(
            "[LEDGER] Added budget %s: %.2f for %s.",
            budget.id,
            budget.limit_amount,
            month.strftime("%Y-%m"),
        )
        return budget

    async def delete_budget(self, budget_id: str) -> None:
        await self.store.delete(BUDGETS, budget_id)

    async def set_budget_notifications(self, budget_id: str, enabled: bool) -> Budget:
        row = await self.store.update(BUDGETS, budget_id, {"notifications_enabled": enabled})
        return Budget.model_validate(row)

    # Categories

    async def add_category(self, payload: CategoryIn) -> Category:
        name = require(payload.name, "Please enter a category name.").strip()
        kind = require(payload.kind, "Please choose whether this is an expense or earning category.")

        existing = await self.store.get_categories(kind, use_cache=False)
        if any((category.get("name") or "").lower() == name.lower() for category in existing):
            raise ValidationError(f"A {kind} category named '{name}' already exists.")

        row = await self.store.insert(CATEGORIES, {
            "name": name,
            "type": kind,
            "icon": payload.icon,
            "color": payload.color,
            "is_default": False,
        })
        self.store.invalidate_categories()
        return Category.model_validate(row)

    async def seed_default_categories(self) -> list[Category]:
        existing = await self.store.get_categories(use_cache=False)
        present = {((category.get("name") or "").lower(), category.get("type")) for category in existing}

        created: list[Category] = []
        for name, kind, icon, color in DEFAULT_CATEGORIES:
            if (name.lower(), kind) in present:
                continue
            row = await self.store.insert(CATEGORIES, {
                "name": name,
                "type": kind,
                "icon": icon,
                "color": color,
                "is_default": True,
            })
            created.append(Category.model_validate(row))

        if created:
            self.store.invalidate_categories()
            logger.info("[LEDGER] Seeded %d default categories.", len(created))
        return created
