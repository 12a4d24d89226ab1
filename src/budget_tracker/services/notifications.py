import asyncio
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from contextlib import suppress
from datetime import date, datetime, time, timedelta
from typing import Any

from budget_tracker.core import settings
from budget_tracker.integration.store import NOTIFICATIONS, Filter, Order, StoreClient
from budget_tracker.logger import get_logger
from budget_tracker.models import BudgetProgress, Notification, NotificationKind, RelatedType
from budget_tracker.services.overview import budgets_with_progress

logger = get_logger(__name__)

BUDGET_WARNING_TITLE = "Budget Warning"
BUDGET_EXCEEDED_TITLE = "Budget Exceeded"
REMINDER_TITLE = "Expense Reminder"
REMINDER_BODY = "Don't forget to log your expenses today!"


class Notifier(ABC):
    @abstractmethod
    def deliver(self, title: str, body: str, *, data: dict[str, Any] | None = None) -> None:
        """Show a local notification right away."""
        pass


class LocalNotifier(Notifier):
    """Delivers to the log and keeps the most recent deliveries in memory."""

    def __init__(self, history_size: int = 50) -> None:
        self.history: deque[dict[str, Any]] = deque(maxlen=history_size)

    def deliver(self, title: str, body: str, *, data: dict[str, Any] | None = None) -> None:
        entry = {
            "title": title,
            "body": body,
            "data": data or {},
            "delivered_at": datetime.now().isoformat(timespec="seconds"),
        }
        self.history.append(entry)
        logger.info("[NOTIFY] %s: %s", title, body)


def budget_alert_text(
    progress: BudgetProgress,
    warning_percent: float,
) -> tuple[str, str] | None:
    """Title and message for a budget crossing a threshold, or None."""
    percentage = progress.percentage
    category_name = progress.budget.category.name if progress.budget.category else None
    label = category_name or "category"
    if percentage >= 100:
        return (
            BUDGET_EXCEEDED_TITLE,
            f"You've exceeded your {label} budget by {percentage - 100:.1f}%",
        )
    if percentage >= warning_percent:
        return (
            BUDGET_WARNING_TITLE,
            f"You've used {percentage:.1f}% of your {label} budget",
        )
    return None


class NotificationService:
    def __init__(
        self,
        store: StoreClient,
        notifier: Notifier,
        warning_percent: float | None = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.warning_percent = (
            warning_percent if warning_percent is not None else settings.budget_warning_percent()
        )

    async def create(
        self,
        *,
        title: str,
        message: str,
        kind: NotificationKind = "system",
        related_id: str | None = None,
        related_type: RelatedType | None = None,
        metadata: dict[str, Any] | None = None,
        action_url: str | None = None,
    ) -> Notification:
        record = {
            "title": title,
            "message": message,
            "type": kind,
            "read": False,
            "related_id": related_id,
            "related_type": related_type,
            "metadata": metadata,
            "action_url": action_url,
        }
        row = await self.store.insert(NOTIFICATIONS, record)
        return Notification.model_validate(row)

    async def list_notifications(self, read: bool | None = None) -> list[Notification]:
        filters = [] if read is None else [Filter("read", "eq", read)]
        rows = await self.store.select(
            NOTIFICATIONS,
            filters=filters,
            order=[Order("created_at", descending=True)],
        )
        return [Notification.model_validate(row) for row in rows]

    async def mark_read(self, notification_id: str) -> Notification:
        row = await self.store.update(NOTIFICATIONS, notification_id, {"read": True})
        return Notification.model_validate(row)

    async def mark_all_read(self) -> int:
        return await self.store.update_where(
            NOTIFICATIONS,
            [Filter("read", "eq", False)],
            {"read": True},
        )

    async def delete(self, notification_id: str) -> None:
        await self.store.delete(NOTIFICATIONS, notification_id)

    async def check_budget(self, progress: BudgetProgress) -> Notification | None:
        budget = progress.budget
        if not budget.notifications_enabled:
            return None

        alert = budget_alert_text(progress, self.warning_percent)
        if alert is None:
            return None
        title, message = alert

        logger.info(
            "[BUDGET] %s for budget %s: spent %.2f of %.2f (%.1f%%).",
            title,
            budget.id,
            progress.spent,
            budget.limit_amount,
            progress.percentage,
        )
        notification = await self.create(
            title=title,
            message=message,
            kind="budget",
            related_id=budget.id,
            related_type="budget",
            metadata={
                "budget_id": budget.id,
                "category_name": budget.category.name if budget.category else None,
                "limit_amount": budget.limit_amount,
                "spent_amount": progress.spent,
                "percentage": progress.percentage,
            },
        )
        self.notifier.deliver(title, message, data={"type": "budget_alert", "budget_id": budget.id})
        return notification

    async def check_budget_warnings(self, today: date | None = None) -> list[Notification]:
        progress_list = await budgets_with_progress(
            self.store,
            today or date.today(),
            notifications_only=True,
        )
        created: list[Notification] = []
        for progress in progress_list:
            notification = await self.check_budget(progress)
            if notification is not None:
                created.append(notification)
        logger.info(
            "[BUDGET] Checked %d budgets, created %d notifications.",
            len(progress_list),
            len(created),
        )
        return created


class ReminderScheduler:
    """Fires the daily expense reminder at a fixed local time."""

    def __init__(
        self,
        notifier: Notifier,
        at: time,
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.notifier = notifier
        self.at = at
        self.clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def next_run(self, now: datetime) -> datetime:
        candidate = datetime.combine(now.date(), self.at, tzinfo=now.tzinfo)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    def fire(self) -> None:
        self.notifier.deliver(REMINDER_TITLE, REMINDER_BODY, data={"type": "reminder"})

    async def _run(self) -> None:
        while True:
            now = self.clock()
            target = self.next_run(now)
            logger.debug("[REMINDER] Next reminder at %s.", target.isoformat(timespec="minutes"))
            await asyncio.sleep((target - now).total_seconds())
            self.fire()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("[REMINDER] Daily reminder scheduled for %s.", self.at.strftime("%H:%M"))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with suppress(asyncio.CancelledError):
            await self._task
        self._task = None
