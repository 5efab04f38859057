"""Request latency logging middleware."""

import logging
import re
import time
from typing import Callable

from fastapi import Request, Response

logger = logging.getLogger(__name__)

# Thresholds for log levels (in milliseconds)
SLOW_REQUEST_THRESHOLD_MS = 1000
VERY_SLOW_REQUEST_THRESHOLD_MS = 3000

HEALTH_PATHS = ("/health", "/health/ready")

UUID_PATTERN = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}", re.IGNORECASE)


def normalize_path(path: str) -> str:
    """Replace UUID path segments so log lines group by route."""
    return UUID_PATTERN.sub("{id}", path)


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log method, route, status and latency of every request.

    Slow and failed requests are logged at warning or error level. Health
    probes only show up at debug level.

    Args:
        request: The incoming request.
        call_next: The next middleware/handler in the chain.

    Returns:
        Response: The response from the handler.
    """
    start_time = time.perf_counter()
    path = request.url.path
    response = None

    try:
        response = await call_next(request)
        return response
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        status_code = response.status_code if response else 500
        log_msg = f"{request.method} {normalize_path(path)} - {status_code} - {latency_ms:.2f}ms"

        if path in HEALTH_PATHS:
            logger.debug(log_msg)
        elif status_code >= 500:
            logger.error(log_msg)
        elif latency_ms > VERY_SLOW_REQUEST_THRESHOLD_MS:
            logger.error("VERY SLOW REQUEST: %s", log_msg)
        elif latency_ms > SLOW_REQUEST_THRESHOLD_MS:
            logger.warning("SLOW REQUEST: %s", log_msg)
        elif status_code >= 400:
            logger.warning(log_msg)
        else:
            logger.info(log_msg)
