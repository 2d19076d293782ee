import logging
import os
import time
from logging.handlers import RotatingFileHandler

# Loggers whose records also go to the dedicated push log file.
PUSH_LOGGER_NAMES = ("push", "board")
# Third-party loggers that dump subscription payloads and keys at DEBUG.
NOISY_LOGGER_NAMES = ("pywebpush", "urllib3", "requests")


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y"}


class LocalTimeFormatter(logging.Formatter):
    converter = time.localtime


def _build_file_handler(path: str, level: str, formatter: logging.Formatter) -> RotatingFileHandler:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=int(os.getenv("LOG_MAX_BYTES", "5000000")),
        backupCount=int(os.getenv("LOG_BACKUP_COUNT", "5")),
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    push_log_level = os.getenv("PUSH_LOG_LEVEL", log_level).upper()
    file_enabled = _get_bool(os.getenv("LOG_FILE_ENABLED"), default=True)

    formatter = LocalTimeFormatter(
        "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    push_file_handler = None
    if file_enabled:
        root_logger.addHandler(
            _build_file_handler(os.getenv("LOG_FILE_PATH", "/app/logs/backend.log"), log_level, formatter)
        )
        push_file_handler = _build_file_handler(
            os.getenv("PUSH_LOG_FILE_PATH", "/app/logs/push.log"), push_log_level, formatter
        )

    for name in PUSH_LOGGER_NAMES:
        push_logger = logging.getLogger(name)
        push_logger.handlers.clear()
        push_logger.setLevel(push_log_level)
        if push_file_handler is not None:
            push_logger.addHandler(push_file_handler)

    for name in NOISY_LOGGER_NAMES:
        logging.getLogger(name).setLevel(max(logging.INFO, root_logger.level))
    logging.getLogger("uvicorn.access").handlers.clear()
