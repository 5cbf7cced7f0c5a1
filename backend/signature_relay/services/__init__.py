# Services package init
"""
Signature Relay — Services Layer
================================

What:  Business logic between the routes (HTTP) and ServiceM8 (vendor API).

Service Inventory:
    - ServiceM8Client: The two Attachment endpoint calls, auth, transport errors
    - SignatureRelay:  Validate → decode → create attachment → upload file

Routes receive a SignatureRelay through a FastAPI dependency, so tests can
swap in one whose client talks to a mock transport.
"""
