"""Middleware for HTTP error logging."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class HTTPErrorLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to ensure all HTTP errors are logged.

    - 4xx responses: logged at WARN level
    - 5xx responses: logged at ERROR level

    The request body is not inspected (chunk uploads can be large); routes
    that know an upload id record it on ``request.state``.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.time()

        response = await call_next(request)

        if response.status_code < 400:
            return response

        duration_ms = (time.time() - start_time) * 1000
        extra = {
            "http_status": response.status_code,
            "method": request.method,
            "path": request.url.path,
            "upload_id": getattr(request.state, "upload_id", None),
            "duration_ms": duration_ms,
        }
        if response.status_code < 500:
            logger.warning("Client error response", extra=extra)
        else:
            logger.error("Server error response", extra=extra)

        return response
