"""
Signature Relay — Custom Exception Hierarchy
=============================================

What:  Defines one exception per failure kind of the relay.
How:   Each exception carries a message, a machine-readable `kind`, the HTTP
       status the client should see, and an optional context dict.
       A global handler (registered in main.py) turns any RelayError into a
       structured JSON error response.
Who:   Raised by SignatureRelay and ServiceM8Client; caught by main.py.

Exception Hierarchy:
    RelayError (base)
    ├── InvalidInputError             → 400 (no network call was made)
    ├── UpstreamError                 → upstream status echoed
    │   ├── MetadataCreationFailedError
    │   └── FileUploadFailedError
    ├── MissingAttachmentHandleError  → 500 (integration gap)
    ├── NetworkFailureError           → 500 (transport error or timeout)
    ├── ConfigurationError            → 500 (API key not configured)
    └── UnexpectedError               → 500 (anything else)
"""

from typing import Any, Dict, Optional


class RelayError(Exception):
    """
    Base exception for all relay errors.

    Attributes:
        message:     User-facing error description (returned as `error`)
        context:     Extra detail; `details` in the response when present
        kind:        Error kind name returned to the client
        status_code: HTTP status the client receives
    """

    kind = "UnexpectedError"
    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    @property
    def details(self) -> Optional[Any]:
        """Payload for the `details` field of the error response."""
        return self.context or None


class InvalidInputError(RelayError):
    """
    Raised when the client request fails validation.

    HTTP: 400 Bad Request. Raised before any vendor call is made.
    """

    kind = "InvalidInput"
    status_code = 400

    def __init__(
        self,
        message: str = "Invalid request",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UpstreamError(RelayError):
    """
    ServiceM8 answered with a non-2xx status.

    The client receives the upstream status code and the upstream response
    body text as `details`, so the vendor's own error is visible.
    """

    def __init__(
        self,
        message: str,
        upstream_status: int,
        upstream_body: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.upstream_status = upstream_status
        self.upstream_body = upstream_body
        self.status_code = upstream_status

    @property
    def details(self) -> Optional[Any]:
        return self.upstream_body


class MetadataCreationFailedError(UpstreamError):
    """POST /Attachment.json returned a non-2xx status."""

    kind = "MetadataCreationFailed"

    def __init__(self, upstream_status: int, upstream_body: str = ""):
        super().__init__(
            message="Failed to create attachment metadata.",
            upstream_status=upstream_status,
            upstream_body=upstream_body,
        )


class FileUploadFailedError(UpstreamError):
    """POST /Attachment/{handle}.file returned a non-2xx status."""

    kind = "FileUploadFailed"

    def __init__(self, upstream_status: int, upstream_body: str = ""):
        super().__init__(
            message="Failed to upload the file to ServiceM8.",
            upstream_status=upstream_status,
            upstream_body=upstream_body,
        )


class MissingAttachmentHandleError(RelayError):
    """
    Metadata creation succeeded but no `x-record-uuid` header came back.

    HTTP: 500. This is a vendor integration failure, not a client mistake;
    the upstream body is surfaced as `details` for diagnosis.
    """

    kind = "MissingAttachmentHandle"
    status_code = 500

    def __init__(self, upstream_body: str = ""):
        super().__init__(
            message="ServiceM8 did not return x-record-uuid in the response headers.",
        )
        self.upstream_body = upstream_body

    @property
    def details(self) -> Optional[Any]:
        return self.upstream_body


class NetworkFailureError(RelayError):
    """
    The vendor call could not complete at the transport level.

    When: Connection refused, DNS failure, TLS error, or the configured
          timeout elapsed.
    HTTP: 500
    """

    kind = "NetworkFailure"
    status_code = 500

    def __init__(
        self,
        message: str = "Could not reach ServiceM8.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConfigurationError(RelayError):
    """The relay cannot run because required settings are missing."""

    kind = "ConfigurationError"
    status_code = 500

    def __init__(
        self,
        message: str = "ServiceM8 API key is not configured.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UnexpectedError(RelayError):
    """Catch-all for exceptions the relay did not anticipate."""

    kind = "UnexpectedError"
    status_code = 500
