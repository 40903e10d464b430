"""
Structured logging with correlation IDs and concise event output.
"""
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict

import structlog
from fastapi import Request

# Request correlation context
request_id: ContextVar[str] = ContextVar('request_id', default="")
operation_context: ContextVar[Dict[str, Any]] = ContextVar('operation_context', default={})


class TruncatingProcessor:
    """Processor to keep log events short."""

    def __init__(self, max_length: int = 200):
        self.max_length = max_length

    def __call__(self, logger, method_name, event_dict):
        if 'message' in event_dict:
            event_dict['message'] = str(event_dict['message'])[:self.max_length]

        if 'error' in event_dict:
            event_dict['error'] = str(event_dict['error'])[:self.max_length]

        return event_dict


class CorrelationProcessor:
    """Add correlation ID and operation context to all logs."""

    def __call__(self, logger, method_name, event_dict):
        correlation_id = request_id.get("")
        if correlation_id:
            event_dict['correlation_id'] = correlation_id

        context = operation_context.get({})
        if context:
            for key, value in context.items():
                event_dict.setdefault(key, value)

        return event_dict


def setup_logging(debug: bool = False, max_log_length: int = 200, level: str = "INFO"):
    """Configure structured logging for the application."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.contextvars.merge_contextvars,
        CorrelationProcessor(),
        TruncatingProcessor(max_length=max_log_length),
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(level=log_level, format="%(message)s")


def get_logger(name: str = __name__):
    """Get a structured logger instance."""
    return structlog.get_logger(name)

def set_correlation_id(correlation_id: str):
    """Set correlation ID for current request context."""
    request_id.set(correlation_id)


def set_operation_context(**fields):
    """Merge fields into the context attached to every log line in this task."""
    operation_context.set({**operation_context.get({}), **fields})


def clear_context():
    """Clear correlation ID and operation context."""
    request_id.set("")
    operation_context.set({})


# Requests slower than this are always logged
SLOW_REQUEST_SECONDS = 2.0


class LoggingMiddleware:
    """Request logging with a correlation ID taken from X-Request-ID or generated."""

    header = "X-Request-ID"

    def __init__(self, log_requests: bool = False, log_responses: bool = False):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.logger = get_logger("middleware")

    async def __call__(self, request: Request, call_next):
        correlation_id = request.headers.get(self.header, "")[:64] or uuid.uuid4().hex[:8]
        set_correlation_id(correlation_id)
        set_operation_context(endpoint=request.url.path, method=request.method)
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        if self.log_requests:
            self.logger.info("request_start", query_params=dict(request.query_params))

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "request_error",
                error=str(e),
                error_type=type(e).__name__,
                duration=round(time.perf_counter() - started, 3),
            )
            raise
        else:
            duration = time.perf_counter() - started
            if self.log_responses or duration > SLOW_REQUEST_SECONDS or response.status_code >= 400:
                self.logger.info(
                    "request_complete",
                    status_code=response.status_code,
                    duration=round(duration, 3),
                    slow=duration > SLOW_REQUEST_SECONDS,
                )
            response.headers[self.header] = correlation_id
            return response
        finally:
            clear_context()
