import os

import uvicorn

from budget_tracker.app import app
from budget_tracker.core import settings
from budget_tracker.logger import get_logging_config


def main() -> None:
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=settings.get_env_int("PORT", 8000, min_value=1, max_value=65535),
        log_config=get_logging_config(),
    )


if __name__ == "__main__":
    main()
