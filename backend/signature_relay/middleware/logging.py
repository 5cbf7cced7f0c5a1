"""
Signature Relay — Request Logging Middleware
============================================

What:  One access-log line per HTTP request with method, path, status,
       duration, request ID and client IP.
Who:   Applied to every request via Starlette middleware.
When:  After RequestIDMiddleware (uses request ID for correlation).

What we log vs what we don't log:
    Logged:     method, path, status, duration, client IP, request ID
    Not logged: request bodies (they hold the customer's signature image),
                the X-Api-Key header sent to ServiceM8
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from signature_relay.middleware.request_id import request_id_var

logger = logging.getLogger("signature_relay.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs structured information about each HTTP request and response.

    Level follows the status code: 5xx → ERROR, 4xx → WARNING, else INFO.
    Health checks are skipped.

    Typical durations:
        - GET /health: 1-5ms
        - POST /api/signature-upload: dominated by the two ServiceM8 calls
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Capture start time for duration calculation
        # perf_counter: monotonic, unaffected by wall-clock adjustments
        start_time = time.perf_counter()

        # Extract client information
        # request.client may be None in testing (ASGITransport)
        client_ip = getattr(request.client, "host", "unknown") if request.client else "unknown"
        method = request.method
        path = request.url.path
        # Set by RequestIDMiddleware, which wraps this one
        rid = request_id_var.get("")

        # Skip logging for health checks
        # Load balancers poll /health every few seconds and drown out uploads
        if path == "/health":
            return await call_next(request)

        # Process the request (includes both ServiceM8 round trips)
        response = await call_next(request)

        # Calculate duration
        duration_ms = (time.perf_counter() - start_time) * 1000

        # Choose log level based on status code
        # 5xx → ERROR (ServiceM8 unreachable, missing handle, bad config)
        # 4xx → WARNING (bad client input, or ServiceM8 rejected the request)
        # 2xx/3xx → INFO (normal operation, OPTIONS preflights included)
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        # Human-readable message plus the same fields in `extra` for
        # formatters that emit structured output
        logger.log(
            log_level,
            "%s %s %d %.1fms [%s] from %s",
            method,
            path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
