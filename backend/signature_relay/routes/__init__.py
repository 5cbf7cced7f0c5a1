# Routes package init
"""
Signature Relay — API Routes Package
====================================

Route Inventory:
    - signature.py: POST    /api/signature-upload  (relay a signature to ServiceM8)
                    OPTIONS /api/signature-upload  (CORS preflight)
    - health.py:    GET     /health                (service health check)

Routes stay thin: parse the body, call SignatureRelay, return the result.
Error formatting lives in the global exception handlers in main.py.
"""
