from fastapi import HTTPException, Request

from budget_tracker.integration.store import StoreClient
from budget_tracker.services.ledger import Ledger
from budget_tracker.services.notifications import NotificationService


def get_store(request: Request) -> StoreClient:
    store = getattr(request.app.state, "store", None)
    if not store:
        raise HTTPException(status_code=500, detail="Remote store not initialized")
    return store


def get_ledger(request: Request) -> Ledger:
    ledger = getattr(request.app.state, "ledger", None)
    if not ledger:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return ledger


def get_notifications(request: Request) -> NotificationService:
    notifications = getattr(request.app.state, "notifications", None)
    if not notifications:
        raise HTTPException(status_code=500, detail="Service not initialized")
    return notifications
