"""
Signature Relay — Request ID Middleware
=======================================

What:  Assigns each incoming request a short correlation ID and returns it in
       the X-Request-ID response header.
How:   Reuses a client-supplied X-Request-ID when present, otherwise generates
       one; stores it in a ContextVar and on request.state.
Who:   Applied to every request via Starlette middleware.
When:  Wraps RequestLoggingMiddleware, so the access log line already sees
       the ID.

Every log line and error body produced while relaying one signature carries
the same ID, so a failed upload reported by the signing frontend can be
matched to the ServiceM8 call that failed:

    Frontend (X-Request-ID: 3f9a1c2e)
        → relay access log [3f9a1c2e]
        → "ServiceM8 create attachment returned 401" [3f9a1c2e]
        → error body {"request_id": "3f9a1c2e", ...}
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── Context Variable ──────────────────────────────────────────────────────
# What: Coroutine-local storage for the current request ID
# Why ContextVar: concurrent uploads run in the same thread; each coroutine
# needs its own value. threading.local would leak IDs between requests.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that assigns a unique ID to each request for tracing.

    Behavior:
        1. Use the client's X-Request-ID header if it sent one
        2. Otherwise generate the first 8 characters of a UUID4
        3. Store in ContextVar (loggers, handlers inside the stack)
        4. Store in request.state (the catch-all 500 handler, which runs
           outside the middleware stack and cannot see the ContextVar)
        5. Add to response headers
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Use client-provided ID or generate a new one
        # 8 hex chars are enough to correlate one signing session's calls
        rid = request.headers.get("X-Request-ID", str(uuid.uuid4())[:8])

        # ContextVar for loggers and the RelayError handlers
        request_id_var.set(rid)

        # request.state lives in the ASGI scope, so it survives past this
        # middleware into ServerErrorMiddleware
        request.state.request_id = rid

        # Process the request
        response = await call_next(request)

        # Echo the ID so the frontend can quote it in a failure report
        response.headers["X-Request-ID"] = rid

        return response
