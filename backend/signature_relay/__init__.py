"""
Signature Relay — Application Package Initializer
=================================================

What: Marks the `signature_relay` directory as a Python package.
Who:  Used by uvicorn (`signature_relay.main:app`) and pytest.

Architecture Note:
    The service follows a layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Relay + ServiceM8)    │  ← Validation, sequencing, vendor calls
    ├─────────────────────────────────────┤
    │           Schemas (Pydantic)        │  ← Request/response contracts
    └─────────────────────────────────────┘

    Nothing is persisted: every request is relayed to ServiceM8 and forgotten.
"""

__version__ = "1.0.0"
