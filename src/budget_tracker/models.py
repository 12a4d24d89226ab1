import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

CategoryKind = Literal["expense", "earning"]
NotificationKind = Literal["budget", "task", "system"]
RelatedType = Literal["expense", "task", "budget", "earning"]
Frequency = Literal["daily", "weekly", "monthly", "yearly"]

UNCATEGORIZED = "Uncategorized"


class CategoryRef(BaseModel):
    """Category columns embedded in a transaction or budget row."""
    name: str | None = None
    color: str | None = None
    icon: str | None = None


class Category(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    name: str
    kind: CategoryKind = Field(alias="type")
    icon: str | None = None
    color: str | None = None
    is_default: bool = False


class RecurrencePattern(BaseModel):
    frequency: Frequency
    interval: int = Field(default=1, ge=1)
    end_date: dt.date | None = None
    days_of_week: list[int] | None = None
    day_of_month: int | None = None
    month_of_year: int | None = None


class Transaction(BaseModel):
    id: str | None = None
    amount: float
    category_id: str | None = None
    date: dt.date
    notes: str | None = None
    is_recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    category: CategoryRef | None = None

    @property
    def category_name(self) -> str | None:
        if self.category is None:
            return None
        return self.category.name


class Expense(Transaction):
    tags: list[str] = Field(default_factory=list)
    receipt_url: str | None = None


class Earning(Transaction):
    source: str | None = None


class Budget(BaseModel):
    id: str | None = None
    category_id: str
    limit_amount: float
    month: dt.date
    rollover_amount: float = 0.0
    notifications_enabled: bool = True
    category: CategoryRef | None = None


class Notification(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None
    title: str
    message: str
    kind: NotificationKind = Field(alias="type")
    read: bool = False
    created_at: dt.datetime | None = None
    action_url: str | None = None
    metadata: dict[str, Any] | None = None
    related_id: str | None = None
    related_type: RelatedType | None = None


# User input. Fields stay loose so the ledger can answer with a readable
# message instead of a schema error.

class ExpenseIn(BaseModel):
    amount: float | str | None = None
    category_id: str | None = None
    date: dt.date | None = None
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    receipt_url: str | None = None
    recurrence_pattern: RecurrencePattern | None = None


class EarningIn(BaseModel):
    amount: float | str | None = None
    source: str | None = None
    category_id: str | None = None
    date: dt.date | None = None
    notes: str | None = None
    recurrence_pattern: RecurrencePattern | None = None


class BudgetIn(BaseModel):
    limit_amount: float | str | None = None
    category_id: str | None = None
    month: dt.date | None = None
    rollover_amount: float = 0.0
    notifications_enabled: bool = True


class CategoryIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    kind: CategoryKind | None = Field(default=None, alias="type")
    icon: str | None = None
    color: str | None = None


# Derived view models

class Totals(BaseModel):
    total_income: float
    total_expenses: float
    savings: float
    savings_percentage: float


class CategorySlice(BaseModel):
    category: str
    amount: float
    color: str | None = None


class BudgetProgress(BaseModel):
    budget: Budget
    spent: float
    progress: float
    percentage: float
    remaining: float
    over_budget: bool
