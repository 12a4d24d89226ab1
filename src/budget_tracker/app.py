from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from budget_tracker.api.errors import register_error_handlers
from budget_tracker.api.routes import budgets, categories, dashboard, notifications, reports, transactions
from budget_tracker.core import settings
from budget_tracker.integration.store import StoreClient
from budget_tracker.logger import get_logger, setup_logging
from budget_tracker.services.ledger import Ledger
from budget_tracker.services.notifications import LocalNotifier, NotificationService, ReminderScheduler

logger = get_logger(__name__)


def create_app() -> FastAPI:
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Initializing services...")
        settings.log_environment()

        store = StoreClient()
        if not store.configured:
            logger.warning("SUPABASE_URL or SUPABASE_ANON_KEY not set. Data requests will fail.")

        notifier = LocalNotifier()
        notification_service = NotificationService(store=store, notifier=notifier)
        ledger = Ledger(store=store, notifications=notification_service)
        reminder = ReminderScheduler(notifier, settings.reminder_time())

        app.state.store = store
        app.state.notifier = notifier
        app.state.notifications = notification_service
        app.state.ledger = ledger
        app.state.reminder = reminder

        if settings.reminder_enabled():
            reminder.start()
        else:
            logger.info("Daily reminder disabled.")

        logger.info("Services initialized.")
        yield
        logger.info("Service shutting down.")
        await reminder.stop()
        await store.aclose()

    app = FastAPI(title="Budget Tracker", lifespan=lifespan)
    register_error_handlers(app)

    app.include_router(categories.router)
    app.include_router(transactions.router)
    app.include_router(dashboard.router)
    app.include_router(budgets.router)
    app.include_router(notifications.router)
    app.include_router(reports.router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        store = getattr(app.state, "store", None)
        return {
            "status": "ok",
            "store": "configured" if store is not None and store.configured else "missing",
        }

    return app


app = create_app()
