"""Logging utilities for comprehensive application logging.

This module provides decorators, middleware, and helpers for adding
detailed logging throughout the application with performance monitoring,
security context, and error handling.
"""

import asyncio
from datetime import datetime, timezone
import functools
import os
import time
import traceback
from typing import Any, Callable, Dict, Optional
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from biokey_auth.config import settings
from biokey_auth.managers.logging_manager import get_logger

SLOW_OPERATION_SECONDS: float = 2.0
SLOW_REQUEST_SECONDS: float = 1.0


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/response logging middleware for FastAPI.

    Logs incoming requests and outgoing responses with timing,
    status codes and client context.
    """

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        self.logger = get_logger(prefix="[REQUEST]")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        client_ip = self._get_client_ip(request)
        method = request.method
        path = str(request.url.path)

        self.logger.info(
            {
                "event": "request_received",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "request_id": request_id,
                "method": method,
                "path": path,
                "client_ip": client_ip,
                "user_agent": request.headers.get("user-agent", "unknown"),
                "process": os.getpid(),
                "app": settings.APP_NAME,
                "env": settings.ENV,
            }
        )

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                {
                    "event": "request_error",
                    "request_id": request_id,
                    "method": method,
                    "path": path,
                    "duration": time.time() - start_time,
                    "exception": str(e),
                    "stack_trace": traceback.format_exc(),
                    "client_ip": client_ip,
                }
            )
            raise

        duration = time.time() - start_time
        response_log = {
            "event": "response_sent",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "request_id": request_id,
            "method": method,
            "path": path,
            "status_code": response.status_code,
            "duration": duration,
            "client_ip": client_ip,
        }
        self.logger.info(response_log)

        if duration > SLOW_REQUEST_SECONDS:
            slow_log = response_log.copy()
            slow_log["event"] = "slow_request"
            self.logger.warning(slow_log)

        return response

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address from request headers."""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        return getattr(request.client, "host", "unknown")


def log_performance(operation_name: str, log_args: bool = False):
    """
    Decorator for logging function/method performance with timing.

    Args:
        operation_name: Name of the operation for logging
        log_args: Whether to log function arguments (sanitised, but be careful with sensitive data)
    """

    def decorator(func: Callable) -> Callable:
        logger = get_logger(prefix="[PERFORMANCE]")

        def _started(operation_id: str, args: tuple, kwargs: dict) -> None:
            if log_args and (args or kwargs):
                logger.info("[%s] Starting %s with args: %s", operation_id, operation_name, _sanitize_args(args, kwargs))
            else:
                logger.info("[%s] Starting %s", operation_id, operation_name)

        def _completed(operation_id: str, duration: float) -> None:
            logger.info("[%s] Completed %s in %.3fs", operation_id, operation_name, duration)
            if duration > SLOW_OPERATION_SECONDS:
                logger.warning("[%s] SLOW OPERATION: %s took %.3fs", operation_id, operation_name, duration)

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            start_time = time.time()
            operation_id = str(uuid.uuid4())[:8]
            _started(operation_id, args, kwargs)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration = time.time() - start_time
                logger.error("[%s] Failed %s after %.3fs: %s", operation_id, operation_name, duration, str(e))
                raise
            _completed(operation_id, time.time() - start_time)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            start_time = time.time()
            operation_id = str(uuid.uuid4())[:8]
            _started(operation_id, args, kwargs)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.time() - start_time
                logger.error("[%s] Failed %s after %.3fs: %s", operation_id, operation_name, duration, str(e))
                raise
            _completed(operation_id, time.time() - start_time)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def log_security_event(
    event_type: str,
    user_id: Optional[str] = None,
    ip_address: Optional[str] = None,
    success: bool = True,
    details: Optional[Dict[str, Any]] = None,
):
    """
    Log security-related events with proper context.

    Args:
        event_type: Type of security event (login, registration, challenge_created, ...)
        user_id: User identifier if available
        ip_address: Client IP address if available
        success: Whether the security event was successful
        details: Additional event details, sanitised before logging
    """
    logger = get_logger(prefix="[SECURITY]")

    event_data = {
        "event_type": event_type,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "success": success,
        "user_id": user_id or "anonymous",
        "ip_address": ip_address or "unknown",
    }

    if details:
        event_data["details"] = _sanitize_security_details(details)

    status = "SUCCESS" if success else "FAILURE"
    logger.info("SECURITY EVENT [%s]: %s - %s", status, event_type, event_data)


def log_application_lifecycle(event: str, details: Optional[Dict[str, Any]] = None):
    """Log application lifecycle events (startup, shutdown, etc.)."""
    logger = get_logger(prefix="[LIFECYCLE]")

    event_data = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    if details:
        event_data.update(details)

    logger.info("APPLICATION LIFECYCLE: %s - %s", event, event_data)


def log_error_with_context(error: Exception, context: Optional[Dict[str, Any]] = None, operation: Optional[str] = None):
    """
    Log errors with full context and stack trace.

    Args:
        error: The exception that occurred
        context: Additional context information
        operation: Name of the operation that failed
    """
    logger = get_logger(prefix="[ERROR]")

    error_data = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stack_trace": traceback.format_exc(),
    }

    if operation:
        error_data["operation"] = operation

    if context:
        error_data["context"] = _sanitize_args((), context)

    logger.error("ERROR OCCURRED: %s", error_data)


def _sanitize_args(args: tuple, kwargs: dict) -> dict:
    """
    Sanitize function arguments to avoid logging sensitive data.

    Returns:
        Sanitized arguments dictionary
    """
    sensitive_keys = {
        "password",
        "token",
        "secret",
        "key",
        "auth",
        "credential",
        "private",
        "signature",
        "hash",
    }

    sanitized = {}

    if args:
        sanitized["args"] = [
            (
                "<REDACTED>"
                if any(key in str(arg).lower() for key in sensitive_keys)
                else str(arg)[:100] + ("..." if len(str(arg)) > 100 else "")
            )
            for arg in args
        ]

    if kwargs:
        sanitized["kwargs"] = {}
        for key, value in kwargs.items():
            if any(sensitive_key in key.lower() for sensitive_key in sensitive_keys):
                sanitized["kwargs"][key] = "<REDACTED>"
            else:
                str_value = str(value)
                sanitized["kwargs"][key] = str_value[:100] + ("..." if len(str_value) > 100 else "")

    return sanitized


def _sanitize_security_details(details: Dict[str, Any]) -> Dict[str, Any]:
    """Replace values of sensitive keys (passwords, keys, signatures, ...) with a marker."""
    sensitive_keys = {
        "password",
        "token",
        "secret",
        "key",
        "hash",
        "signature",
        "credential",
    }

    sanitized = {}
    for key, value in details.items():
        if any(sensitive_key in key.lower() for sensitive_key in sensitive_keys):
            sanitized[key] = "<REDACTED>"
        else:
            sanitized[key] = value

    return sanitized
