from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from budget_tracker.errors import (
    BudgetTrackerError,
    ExportError,
    NotFoundError,
    RemoteStoreError,
    ValidationError,
)
from budget_tracker.logger import get_logger

logger = get_logger(__name__)

_STATUS_CODES: tuple[tuple[type[BudgetTrackerError], int], ...] = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (RemoteStoreError, 502),
    (ExportError, 500),
)


def status_for(exc: BudgetTrackerError) -> int:
    if isinstance(exc, RemoteStoreError) and exc.status_code == 404:
        return 404
    for error_type, status_code in _STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def handle_app_error(request: Request, exc: BudgetTrackerError) -> JSONResponse:
    status_code = status_for(exc)
    logger.warning(
        "[API] %s %s -> %s: %s",
        request.method,
        request.url.path,
        status_code,
        exc.message,
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BudgetTrackerError, handle_app_error)  # type: ignore[arg-type]
