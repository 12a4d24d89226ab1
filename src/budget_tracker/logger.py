import logging
import logging.config
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = "budget_tracker.log"

# HTTP client internals log every request at INFO/DEBUG
QUIET_LOGGERS = ("httpx", "httpcore")

_LEVEL_NAMES = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ColourizedFormatter(logging.Formatter):
    """Colours the level name for terminal output."""

    LEVEL_COLORS = {
        logging.DEBUG: "\x1b[90m",
        logging.INFO: "\x1b[32m",
        logging.WARNING: "\x1b[33m",
        logging.ERROR: "\x1b[31m",
        logging.CRITICAL: "\x1b[31;1m",
    }
    RESET = "\x1b[0m"

    def format(self, record: logging.LogRecord) -> str:
        colour = self.LEVEL_COLORS.get(record.levelno)
        if colour is None:
            return super().format(record)
        levelname = record.levelname
        record.levelname = f"{colour}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            # File handlers format the same record
            record.levelname = levelname


def resolve_log_level(raw: str | None, default: str = "INFO") -> tuple[str, bool]:
    """Return ``(level_name, valid)`` for a ``LOG_LEVEL`` value."""
    if not raw:
        return default, True
    name = raw.strip().upper()
    if name == "WARN":
        name = "WARNING"
    if name in _LEVEL_NAMES:
        return name, True
    return default, False


def get_logging_config() -> dict:
    level, _ = resolve_log_level(os.getenv("LOG_LEVEL"))
    log_dir = os.getenv("LOG_DIR")

    handlers: dict[str, dict] = {
        "console": {
            "class": "logging.StreamHandler",
            "stream": "ext://sys.stdout",
            "formatter": "coloured",
        },
    }
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers["file"] = {
            "class": "logging.FileHandler",
            "filename": os.path.join(log_dir, os.getenv("LOG_FILE") or DEFAULT_LOG_FILE),
            "formatter": "plain",
            "encoding": "utf-8",
        }
    handler_names = list(handlers)

    loggers: dict[str, dict] = {
        "": {"handlers": handler_names, "level": level},
    }
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        loggers[name] = {"handlers": handler_names, "level": "INFO", "propagate": False}
    for name in QUIET_LOGGERS:
        loggers[name] = {"level": "WARNING"}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "coloured": {"()": ColourizedFormatter, "format": LOG_FORMAT},
            "plain": {"format": LOG_FORMAT},
        },
        "handlers": handlers,
        "loggers": loggers,
    }


def setup_logging() -> None:
    logging.config.dictConfig(get_logging_config())
    raw_level = os.getenv("LOG_LEVEL")
    if not resolve_log_level(raw_level)[1]:
        get_logger(__name__).warning("[LOG] Invalid LOG_LEVEL='%s', using INFO.", raw_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
