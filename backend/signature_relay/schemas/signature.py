"""
Signature Relay — Pydantic Request/Response Schemas
====================================================

What:  Pydantic models for the relay's inbound contract, the metadata sent to
       ServiceM8, and every response body the service returns.
How:   FastAPI validates request bodies against UploadRequest and serializes
       responses from the response models; the OpenAPI docs come from here too.

Inbound field names (jobUUID) are kept exactly as the signing frontend sends
them. Outbound field names (related_object_uuid, ...) are exactly what the
ServiceM8 Attachment endpoint expects.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


SIGNATURE_PREFIX = "data:image"
SUCCESS_MESSAGE = "File successfully uploaded to ServiceM8."


# ══════════════════════════════════════════════════════════════════════════
# Request Models — What the client sends
# ══════════════════════════════════════════════════════════════════════════


class UploadRequest(BaseModel):
    """
    What:  Body of POST /api/signature-upload.

    Both fields are optional at the schema level: a missing value must produce
    a 400 with a field-specific message from SignatureRelay, not FastAPI's
    generic 422.
    """
    jobUUID: Optional[str] = Field(
        default=None,
        description="ServiceM8 job UUID the signature belongs to",
    )
    signature: Optional[str] = Field(
        default=None,
        description="Signature image as a data URI (data:image/png;base64,...)",
    )


# ══════════════════════════════════════════════════════════════════════════
# Vendor Payloads — What we send to ServiceM8
# ══════════════════════════════════════════════════════════════════════════


class AttachmentMetadata(BaseModel):
    """
    What:  JSON body for POST {base}/Attachment.json.
    When:  Built once per request from UploadRequest; never stored.
    """
    related_object: str = Field(default="job")
    related_object_uuid: str
    attachment_name: str
    file_type: str = Field(default=".png", description="Extension with a leading dot")
    active: bool = Field(default=True)

    @classmethod
    def for_job(cls, job_uuid: str) -> "AttachmentMetadata":
        return cls(
            related_object_uuid=job_uuid,
            attachment_name=signature_filename(job_uuid),
        )


def signature_filename(job_uuid: str) -> str:
    """Name used for both the attachment record and the uploaded file."""
    return f"signature-{job_uuid}.png"


# ══════════════════════════════════════════════════════════════════════════
# Response Models — What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class UploadResponse(BaseModel):
    """Returned with HTTP 200 once both vendor calls have succeeded."""
    success: bool = Field(default=True)
    message: str = Field(default=SUCCESS_MESSAGE, description="Human-readable confirmation")


class ErrorResponse(BaseModel):
    """
    What:  Error body shared by every failure path.

    Fields:
        error:      Human-readable description
        kind:       Error kind (InvalidInput, MetadataCreationFailed, ...)
        details:    Upstream response body or validation context, if any
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "Failed to create attachment metadata.",
            "kind": "MetadataCreationFailed",
            "details": "{\"errorCode\": 400, \"message\": \"Invalid related_object_uuid\"}",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Human-readable error description")
    kind: str = Field(description="Machine-readable error kind")
    details: Optional[Any] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health. No vendor call is made to produce it."""
    status: str = Field(description="Overall service status: healthy, degraded")
    version: str = Field(description="Application version")
    servicem8: str = Field(description="ServiceM8 credentials: configured, not_configured")
    uptime_seconds: float = Field(description="Seconds since service started")
