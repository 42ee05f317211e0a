"""
gatorpay/core/errors.py

Purpose: Error boundary for screen controllers

- Turns client exceptions into inline ErrorResponse messages
- handle_screen_errors keeps protocol errors from escaping a screen action
"""

import functools
import logging
from typing import Any, Callable, Optional, Union

from gatorpay.core.config import settings
from gatorpay.core.exceptions import (
    GatorPayError,
    ValidationError,
    AuthRejected,
    BackendError,
)
from gatorpay.schemas.response import ErrorResponse
from gatorpay.utils.constants import GENERIC_ERROR_MESSAGE

logger = logging.getLogger(__name__)


def to_error_response(exc: Exception, fallback: Optional[str] = None) -> ErrorResponse:
    """
    Builds the inline error for an exception raised by a screen action.

    Server-reported failures use the backend's message, or `fallback`
    when the backend sent none. Unexpected exceptions hide their text in
    production.
    """
    if isinstance(exc, (AuthRejected, BackendError)):
        return ErrorResponse(
            error=exc.message or fallback or GENERIC_ERROR_MESSAGE,
            code=exc.code,
            details=exc.details
        )

    if isinstance(exc, GatorPayError):
        return ErrorResponse(error=exc.message, code=exc.code, details=exc.details)

    message = GENERIC_ERROR_MESSAGE if settings.is_production else str(exc) or GENERIC_ERROR_MESSAGE
    return ErrorResponse(error=message, code="INTERNAL_ERROR", details=None)


def handle_screen_errors(fallback: Union[str, Callable[[Any], str], None] = None, error_attr: str = "error"):
    """
    Decorator for async screen actions.

    Any exception is converted with `to_error_response` and written to the
    screen's `error_attr` observable; the action then returns None.
    `fallback` is the message used when the backend gives none; it may be
    a function of the screen instance.

    Usage:
        @handle_screen_errors(fallback=INVALID_CODE_MESSAGE)
        async def verify_otp(self): ...
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except Exception as exc:
                if isinstance(exc, ValidationError):
                    logger.debug(f"{func.__qualname__} rejected input: {exc.message}")
                elif isinstance(exc, GatorPayError):
                    logger.warning(f"{func.__qualname__} failed: [{exc.code}] {exc.message}")
                else:
                    logger.error(f"Unhandled error in {func.__qualname__}: {exc}", exc_info=True)

                message = fallback(self) if callable(fallback) else fallback
                response = to_error_response(exc, message)
                getattr(self, error_attr).set(response.error)
                self.last_error = response
                return None
        return wrapper
    return decorator
