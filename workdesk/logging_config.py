# -*- coding: utf-8 -*-
"""
Logging Configuration
=====================
Readable logs in development, structured JSON logs in production/staging.

Usage:
    from workdesk.logging_config import setup_logging

    setup_logging()
"""

import os
import sys
import logging
from typing import Optional

from pythonjsonlogger import jsonlogger


def setup_logging(
    level: Optional[str] = None,
    service_name: str = "workdesk",
    json_format: Optional[bool] = None
) -> None:
    """
    Setup logging on the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        service_name: Service name stamped on JSON log entries
        json_format: Force JSON format (auto-detected from ENVIRONMENT if None)
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    environment = os.getenv("ENVIRONMENT", "development")

    if json_format is None:
        json_format = environment in ("production", "staging")

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)

    if json_format:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"levelname": "level", "name": "logger", "asctime": "timestamp"},
            static_fields={"service": service_name, "environment": environment},
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("passlib").setLevel(logging.ERROR)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured: level={level}, json={json_format}, env={environment}")
