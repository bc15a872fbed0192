"""
Logging configuration for the backend.

Every module logs through ``logging.getLogger(__name__)``; this module only
wires handlers and levels once at application start-up.
"""

import logging

from app.core.config import settings

SIMPLE_FORMAT = "%(levelname)s - %(name)s - %(message)s"

DETAILED_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"

# Module-specific log levels
MODULE_LOG_LEVELS = {
    "app.agent": "INFO",
    "app.api": "INFO",
    "app.ai_cache": "INFO",
    "app.mii": "INFO",
    "app.rbac": "INFO",
    # Third-party libraries (reduce noise)
    "sqlalchemy": "WARNING",
    "sqlalchemy.engine": "WARNING",
    "httpx": "WARNING",
    "openai": "WARNING",
    "uvicorn.access": "INFO",
}


def setup_logging(log_level: str | None = None, log_format: str = "detailed") -> None:
    level = (log_level or settings.LOG_LEVEL).upper()
    format_str = SIMPLE_FORMAT if log_format == "simple" else DETAILED_FORMAT

    formatter = logging.Formatter(format_str, datefmt="%Y-%m-%d %H:%M:%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates on reload
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for module_name, module_level in MODULE_LOG_LEVELS.items():
        logging.getLogger(module_name).setLevel(module_level)

    root_logger.info("Logging configured: level=%s, format=%s", level, log_format)
