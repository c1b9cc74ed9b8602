"""
Centralized logging manager for the application.

Every logger returned by `get_logger()` writes to the console (stdout) and,
when `LOG_TO_FILE` is enabled, to a per-worker file under `LOG_DIR`
(`worker_<pid>.log`). A worker registry (`worker_registry.json`) records
which process owns which file.

Prefixed loggers are children of the application logger, so each component
keeps its own prefix while sharing the handlers configured once on the
parent.

Usage:
- Use get_logger() to obtain a logger instance.
- Components receive a logger at construction; `get_logger(prefix=...)` is
  only the default.
"""

from datetime import datetime, timezone
import json
import logging
import os
import re
import sys
import threading

from biokey_auth.config import settings

APP_LOGGER_NAME: str = "BioKey_Auth"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", settings.LOG_LEVEL).upper()
LOG_DIR: str = os.getenv("LOG_DIR", settings.LOG_DIR)
REGISTRY_LOCK = threading.Lock()

_FORMATTER = logging.Formatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")


class PrefixFilter(logging.Filter):
    """Prepend a fixed prefix to every record emitted through a logger."""

    def __init__(self, prefix: str):
        super().__init__()
        self.prefix = prefix

    def filter(self, record: logging.LogRecord) -> bool:
        if self.prefix and not getattr(record, "_prefix_applied", False):
            record.msg = f"{self.prefix} {record.msg}"
            record._prefix_applied = True
        return True


def _ensure_console_handler(logger: logging.Logger, formatter: logging.Formatter) -> bool:
    """
    Ensure logger has a StreamHandler for console output.

    Returns:
        bool: True if a new StreamHandler was added, False if one already existed
    """
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) is sys.stdout:
            return False

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logger.level)
    logger.addHandler(console_handler)
    return True


def get_worker_log_filename() -> str:
    return os.path.join(LOG_DIR, f"worker_{os.getpid()}.log")


def get_worker_registry_filename() -> str:
    return os.path.join(LOG_DIR, "worker_registry.json")


def _register_worker(logger: logging.Logger, log_filename: str) -> None:
    """Record this process and its log file in the worker registry."""
    reg_file = get_worker_registry_filename()
    worker_info = {
        "pid": os.getpid(),
        "log_file": log_filename,
        "start_time": datetime.now(timezone.utc).isoformat(),
        "hostname": os.getenv("HOSTNAME", os.uname().nodename),
        "app": settings.APP_NAME,
        "env": settings.ENV,
    }
    with REGISTRY_LOCK:
        try:
            if os.path.exists(reg_file):
                with open(reg_file, "r", encoding="utf-8") as f:
                    reg = json.load(f)
            else:
                reg = {}
            reg[str(os.getpid())] = worker_info
            with open(reg_file, "w", encoding="utf-8") as f:
                json.dump(reg, f, indent=2)
        except (OSError, ValueError) as e:
            logger.warning("[LoggingManager] Could not update worker registry: %s", e)


def _ensure_file_handler(logger: logging.Logger, formatter: logging.Formatter) -> bool:
    log_filename = get_worker_log_filename()
    if any(
        isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == os.path.abspath(log_filename)
        for h in logger.handlers
    ):
        return False
    try:
        os.makedirs(os.path.dirname(log_filename), exist_ok=True)
        file_handler = logging.FileHandler(log_filename)
    except OSError as e:
        logger.warning("[LoggingManager] File logging disabled, cannot open %s: %s", log_filename, e)
        return False
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    _register_worker(logger, log_filename)
    return True


def _configure_base_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

    if _ensure_console_handler(logger, _FORMATTER):
        logger.info("[LoggingManager] Console StreamHandler attached to logger '%s'", name)
    if settings.LOG_TO_FILE and _ensure_file_handler(logger, _FORMATTER):
        logger.info("[LoggingManager] Worker log file attached to logger '%s'", name)
    return logger


def _child_name(prefix: str) -> str:
    slug = re.sub(r"[^0-9A-Za-z]+", "_", prefix).strip("_").lower()
    return slug or "default"


def get_logger(name: str = APP_LOGGER_NAME, prefix: str = "") -> logging.Logger:
    """
    Return a configured logger, optionally tagged with a message prefix.

    Args:
        name: Base logger name; handlers are attached to it once.
        prefix: Text prepended to every message, e.g. "[Auth Service]".
    """
    base = _configure_base_logger(name)
    if not prefix:
        return base

    logger = base.getChild(_child_name(prefix))
    if not any(isinstance(f, PrefixFilter) and f.prefix == prefix for f in logger.filters):
        logger.addFilter(PrefixFilter(prefix))
    return logger
