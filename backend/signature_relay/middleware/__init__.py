# Middleware package init
"""
Signature Relay — Middleware Package
====================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [CORS headers] → [Request ID] → [Logging] → Route Handler

    1. CORS headers outermost: every response, including 405s and error
       bodies, leaves with the Access-Control-* headers
    2. Request ID: Generate correlation ID for logging and tracing
    3. Logging: Log request details with the generated request ID
"""
