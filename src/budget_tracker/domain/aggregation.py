from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any

from budget_tracker.domain.periods import month_interval
from budget_tracker.models import (
    UNCATEGORIZED,
    Budget,
    BudgetProgress,
    CategorySlice,
    Earning,
    Expense,
    Totals,
    Transaction,
)


def total_amount(records: Iterable[Transaction]) -> float:
    # fsum is exactly rounded, so the total does not depend on record order
    return math.fsum(record.amount for record in records)


def savings_percentage(total_income: float, total_expenses: float) -> float:
    if total_income <= 0:
        return 0.0
    return (total_income - total_expenses) / total_income * 100


def summarize(
    income_records: Iterable[Transaction],
    expense_records: Iterable[Transaction],
) -> Totals:
    total_income = total_amount(income_records)
    total_expenses = total_amount(expense_records)
    return Totals(
        total_income=total_income,
        total_expenses=total_expenses,
        savings=total_income - total_expenses,
        savings_percentage=savings_percentage(total_income, total_expenses),
    )


def category_breakdown(records: Iterable[Transaction]) -> list[CategorySlice]:
    """Sum amounts per category name.

    Records without a category are grouped under ``Uncategorized``. Slices
    keep the order in which each category first appears; sort explicitly if
    a stable order is needed.
    """
    slices: dict[str, CategorySlice] = {}
    for record in records:
        name = record.category_name or UNCATEGORIZED
        existing = slices.get(name)
        if existing is None:
            color = record.category.color if record.category else None
            slices[name] = CategorySlice(category=name, amount=record.amount, color=color)
        else:
            existing.amount += record.amount
    return list(slices.values())


def budget_progress(budget: Budget, expenses: Iterable[Transaction]) -> BudgetProgress:
    interval = month_interval(budget.month)
    spent = math.fsum(
        expense.amount
        for expense in expenses
        if expense.category_id == budget.category_id and interval.contains(expense.date)
    )
    return progress_for_spent(budget, spent)


def progress_for_spent(budget: Budget, spent: float) -> BudgetProgress:
    limit = budget.limit_amount
    if limit > 0:
        ratio = spent / limit
    else:
        ratio = 1.0 if spent > 0 else 0.0
    progress = min(max(ratio, 0.0), 1.0)
    return BudgetProgress(
        budget=budget,
        spent=spent,
        progress=progress,
        percentage=ratio * 100,
        remaining=max(limit - spent, 0.0),
        over_budget=progress >= 1,
    )


def marked_dates(
    expenses: Sequence[Expense],
    earnings: Sequence[Earning],
) -> dict[str, list[dict[str, Any]]]:
    """Calendar dots per day, one per transaction."""
    marks: dict[str, list[dict[str, Any]]] = {}
    tagged: list[tuple[str, Transaction]] = [("expense", item) for item in expenses]
    tagged.extend(("earning", item) for item in earnings)
    for kind, record in tagged:
        day = record.date.isoformat()
        marks.setdefault(day, []).append({"key": record.id, "kind": kind})
    return dict(sorted(marks.items()))
