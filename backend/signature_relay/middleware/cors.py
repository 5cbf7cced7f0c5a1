"""
Signature Relay — CORS Headers Middleware
=========================================

What:  Stamps permissive CORS headers onto every response.
How:   Sets the three Access-Control-* headers after the downstream app has
       produced its response, whatever the status.

Starlette's CORSMiddleware is not used here: it only adds headers when the
request carries an Origin, and it answers preflights itself with a text
body. The signature endpoint must answer OPTIONS with 200 and an empty body,
and its error responses must be readable from any origin.
"""

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Accept",
}


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Adds CORS_HEADERS to every response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response
