from datetime import date, datetime, time
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from budget_tracker.domain.aggregation import progress_for_spent
from budget_tracker.integration.store import BUDGETS, CATEGORIES, EXPENSES, NOTIFICATIONS, Filter
from budget_tracker.models import Budget, CategoryRef
from budget_tracker.services.notifications import (
    REMINDER_TITLE,
    LocalNotifier,
    NotificationService,
    ReminderScheduler,
    budget_alert_text,
)


def _progress(spent: float, limit: float = 100.0, *, enabled: bool = True):
    budget = Budget(
        id="b1",
        category_id="c1",
        limit_amount=limit,
        month=date(2024, 3, 1),
        notifications_enabled=enabled,
        category=CategoryRef(name="Food"),
    )
    return progress_for_spent(budget, spent)


@pytest.mark.parametrize(
    ("spent", "expected"),
    [
        (50, None),
        (89.9, None),
        (90, ("Budget Warning", "You've used 90.0% of your Food budget")),
        (99, ("Budget Warning", "You've used 99.0% of your Food budget")),
        (100, ("Budget Exceeded", "You've exceeded your Food budget by 0.0%")),
        (150, ("Budget Exceeded", "You've exceeded your Food budget by 50.0%")),
    ],
)
def test_budget_alert_thresholds(spent: float, expected: tuple[str, str] | None) -> None:
    assert budget_alert_text(_progress(spent), 90) == expected


def test_budget_alert_uses_configured_warning_percent() -> None:
    assert budget_alert_text(_progress(80), 75) is not None
    assert budget_alert_text(_progress(80), 85) is None


@pytest.mark.anyio
async def test_check_budget_skips_muted_budget() -> None:
    store = AsyncMock()
    notifier = MagicMock()
    service = NotificationService(store, notifier, warning_percent=90)

    assert await service.check_budget(_progress(150, enabled=False)) is None
    store.insert.assert_not_called()
    notifier.deliver.assert_not_called()


@pytest.mark.anyio
async def test_check_budget_stores_and_delivers() -> None:
    store = AsyncMock()
    store.insert.side_effect = lambda collection, record: {"id": "n1", **record}
    notifier = MagicMock()
    service = NotificationService(store, notifier, warning_percent=90)

    notification = await service.check_budget(_progress(120))

    assert notification is not None
    assert notification.kind == "budget"
    assert notification.related_id == "b1"
    assert notification.metadata["spent_amount"] == 120
    collection, record = store.insert.call_args.args
    assert collection == NOTIFICATIONS
    assert record["read"] is False
    notifier.deliver.assert_called_once_with(
        "Budget Exceeded",
        "You've exceeded your Food budget by 20.0%",
        data={"type": "budget_alert", "budget_id": "b1"},
    )


@pytest.mark.anyio
async def test_check_budget_warnings_only_visits_enabled_budgets(fake_store: Any) -> None:
    food = fake_store.add(CATEGORIES, name="Food", type="expense")
    bills = fake_store.add(CATEGORIES, name="Bills", type="expense")
    for category, enabled in ((food, True), (bills, False)):
        fake_store.add(
            BUDGETS,
            category_id=category["id"],
            limit_amount=10,
            month="2024-03-01",
            notifications_enabled=enabled,
        )
        fake_store.add(EXPENSES, category_id=category["id"], amount=20, date="2024-03-04")
    service = NotificationService(fake_store, LocalNotifier(), warning_percent=90)

    created = await service.check_budget_warnings(date(2024, 3, 20))

    assert [notification.title for notification in created] == ["Budget Exceeded"]
    assert "Food" in created[0].message


@pytest.mark.anyio
async def test_list_and_mark_notifications(fake_store: Any) -> None:
    service = NotificationService(fake_store, LocalNotifier(), warning_percent=90)
    first = await service.create(title="One", message="first")
    await service.create(title="Two", message="second")

    read = await service.mark_read(first.id)
    assert read.read is True
    assert [item.title for item in await service.list_notifications(read=False)] == ["Two"]

    assert await service.mark_all_read() == 1
    assert await service.list_notifications(read=False) == []
    assert len(await service.list_notifications()) == 2

    await service.delete(first.id)
    assert [item.title for item in await service.list_notifications()] == ["Two"]


@pytest.mark.anyio
async def test_mark_all_read_filters_unread() -> None:
    store = AsyncMock()
    store.update_where.return_value = 3
    service = NotificationService(store, LocalNotifier(), warning_percent=90)

    assert await service.mark_all_read() == 3
    store.update_where.assert_awaited_once_with(
        NOTIFICATIONS, [Filter("read", "eq", False)], {"read": True}
    )


def test_local_notifier_keeps_bounded_history() -> None:
    notifier = LocalNotifier(history_size=2)
    for index in range(3):
        notifier.deliver(f"title {index}", "body")

    assert [entry["title"] for entry in notifier.history] == ["title 1", "title 2"]


def test_reminder_next_run_later_today() -> None:
    scheduler = ReminderScheduler(LocalNotifier(), time(20, 0))
    assert scheduler.next_run(datetime(2024, 3, 15, 9, 30)) == datetime(2024, 3, 15, 20, 0)


def test_reminder_next_run_rolls_to_tomorrow() -> None:
    scheduler = ReminderScheduler(LocalNotifier(), time(20, 0))
    assert scheduler.next_run(datetime(2024, 3, 15, 20, 0)) == datetime(2024, 3, 16, 20, 0)
    assert scheduler.next_run(datetime(2024, 3, 31, 21, 0)) == datetime(2024, 4, 1, 20, 0)


def test_reminder_fire_delivers_reminder() -> None:
    notifier = LocalNotifier()
    ReminderScheduler(notifier, time(20, 0)).fire()

    assert notifier.history[-1]["title"] == REMINDER_TITLE
    assert notifier.history[-1]["data"] == {"type": "reminder"}


@pytest.mark.anyio
async def test_reminder_start_and_stop() -> None:
    scheduler = ReminderScheduler(LocalNotifier(), time(20, 0))

    scheduler.start()
    assert scheduler.running
    scheduler.start()

    await scheduler.stop()
    assert not scheduler.running
