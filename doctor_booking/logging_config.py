"""Structured logging for the booking client and the mock clinic API.

Request IDs travel in structlog's context variables: the client binds one
around each service call and the mock server binds the ID it receives, so
both sides log the same ``request_id`` without passing loggers around.
"""
import logging
import sys
import uuid

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

REQUEST_ID_HEADER = "X-Request-ID"


def setup_structured_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Route structlog through stdlib logging on stdout.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR
        json_logs: JSON lines when True, key=value console lines otherwise
    """
    renderer = (
        structlog.processors.JSONRenderer() if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """``req-`` followed by 12 hex characters."""
    return f"req-{uuid.uuid4().hex[:12]}"


class RequestIDMiddleware:
    """WSGI middleware for the mock API.

    Keeps the caller's X-Request-ID (or assigns one), binds it for the
    handler's log lines and echoes it on the response.
    """

    def __init__(self, app):
        self.app = app

    def __call__(self, environ, start_response):
        request_id = environ.get("HTTP_X_REQUEST_ID") or generate_request_id()
        environ["REQUEST_ID"] = request_id
        clear_contextvars()
        bind_contextvars(request_id=request_id)

        def start_with_request_id(status, headers, exc_info=None):
            headers.append((REQUEST_ID_HEADER, request_id))
            return start_response(status, headers, exc_info)

        return self.app(environ, start_with_request_id)
