# -*- coding: utf-8 -*-
"""
Safe Error Handler - WorkDesk
=============================

Unexpected exceptions are logged in full and answered with a sanitized
message, so SQL fragments, file paths and secrets never reach the client.

Usage:
    from workdesk.api.error_handler import SafeErrorHandler

    try:
        ...
    except SQLAlchemyError as e:
        raise HTTPException(500, SafeErrorHandler.sanitize_error(e))
"""

import logging
from typing import Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "An unexpected error occurred"


class SafeErrorHandler:
    """Maps exception types to messages that are safe to return"""

    SAFE_MESSAGES: Dict[str, str] = {
        # Database
        "IntegrityError": "A database constraint was violated",
        "OperationalError": "Database operation failed",
        "ProgrammingError": "Invalid database operation",
        "DataError": "Invalid data format",
        "DatabaseError": "Database error occurred",

        # Network
        "ConnectionError": "Connection failed",
        "TimeoutError": "Operation timed out",

        # Input
        "ValidationError": "Invalid input data",
        "ValueError": "Invalid value provided",
        "TypeError": "Invalid data type",
        "KeyError": "Required field missing",

        # Filesystem
        "FileNotFoundError": "Resource not found",
        "PermissionError": "Permission denied",
        "OSError": "System operation failed",
        "JSONDecodeError": "Invalid JSON format",
    }

    SENSITIVE_PATTERNS = [
        "password",
        "secret",
        "token",
        "credential",
        "key=",
    ]

    @staticmethod
    def sanitize_error(e: Exception, include_type: bool = False) -> str:
        """
        Logs the exception with its traceback and returns a safe message.

        Known types are looked up along the MRO, so driver-specific
        subclasses of IntegrityError still map to the generic message.
        """
        error_type = type(e).__name__
        logger.error(
            f"Error: {error_type}: {SafeErrorHandler.redact_sensitive(str(e))}",
            exc_info=e,
            extra={"error_type": error_type},
        )

        for base_class in type(e).__mro__:
            safe_message = SafeErrorHandler.SAFE_MESSAGES.get(base_class.__name__)
            if safe_message:
                if include_type:
                    return f"{safe_message} ({error_type})"
                return safe_message

        return DEFAULT_MESSAGE

    @staticmethod
    def redact_sensitive(text: str) -> str:
        text_lower = text.lower()
        for pattern in SafeErrorHandler.SENSITIVE_PATTERNS:
            if pattern in text_lower:
                return "[redacted]"
        return text

    @staticmethod
    def is_database_error(e: Exception) -> bool:
        db_error_types = {"IntegrityError", "OperationalError", "ProgrammingError", "DataError", "DatabaseError"}
        return any(base_class.__name__ in db_error_types for base_class in type(e).__mro__)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """App-level handler for anything the routes did not turn into an HTTPException"""
    message = SafeErrorHandler.sanitize_error(exc)
    area = "DB" if SafeErrorHandler.is_database_error(exc) else "API"
    logger.error(f"[{area}] {request.method} {request.url.path} failed")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": message},
    )
