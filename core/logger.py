# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import List

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _file_handler() -> logging.Handler | None:
    """Rotating log file next to the release cache, when LOG_TO_FILE=true."""
    if not _env_flag("LOG_TO_FILE", "false"):
        return None
    log_file = os.getenv(
        "LOG_FILE", os.path.join(os.getenv("CACHE_DIR", ".cache"), "catalog_report.log")
    )
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return RotatingFileHandler(
        log_file,
        maxBytes=int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024))),
        backupCount=int(os.getenv("LOG_BACKUPS", "3")),
    )


def _handlers() -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if _env_flag("LOG_TO_STDOUT", "true"):
        handlers.append(logging.StreamHandler(sys.stdout))
    try:
        fh = _file_handler()
    except OSError as e:
        logging.getLogger(__name__).warning("Failed to initialize file logging: %s", e)
        fh = None
    if fh is not None:
        handlers.append(fh)
    return handlers


def setup_logging():
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # pytest and embedding applications may have configured the root already
    if not root.handlers:
        formatter = logging.Formatter(LOG_FORMAT)
        for handler in _handlers():
            handler.setFormatter(formatter)
            root.addHandler(handler)

    _configured = True


def enable_debug() -> None:
    """Raise the root logger to DEBUG (config `debug: true`)."""
    setup_logging()
    logging.getLogger().setLevel(logging.DEBUG)


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
