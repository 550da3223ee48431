"""
Middleware for the node mapping API: request ids and timing logs.
"""

from .logging_middleware import LoggingMiddleware, add_logging_middleware

__all__ = ["LoggingMiddleware", "add_logging_middleware"]
