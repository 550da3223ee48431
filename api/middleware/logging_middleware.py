"""
FastAPI middleware for request logging with timing.

This middleware:
- Adds a short request ID to every request
- Logs each call's start and end with its duration
- Adds X-Request-ID and X-Response-Time headers to responses
"""

import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from core.logging_config import get_logger

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request logging and timing"""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        endpoint = f"{request.method} {request.url.path}"
        logger.info(f"[{request_id}] {endpoint} started")
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(f"[{request_id}] {endpoint} failed after {duration_ms:.2f}ms: {e}")
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(f"[{request_id}] {endpoint} -> {response.status_code} in {duration_ms:.2f}ms")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"
        return response


def add_logging_middleware(app):
    """Add logging middleware to FastAPI app"""
    app.add_middleware(LoggingMiddleware)
    logger.debug("Logging middleware added to FastAPI app")
