class BudgetTrackerError(Exception):
    """Base class for errors shown to the user as a plain message."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(BudgetTrackerError):
    pass


class RemoteStoreError(BudgetTrackerError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ExportError(BudgetTrackerError):
    pass


class NotFoundError(BudgetTrackerError):
    pass
