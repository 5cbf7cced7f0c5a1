"""
Signature Relay — Signature Upload Orchestrator
================================================

What:  Relays one signature image from the client to ServiceM8.
How:   Validates the request, decodes the data URI, then runs the two vendor
       calls strictly in order: the upload needs the handle produced by the
       metadata call.
Who:   Called by the POST /api/signature-upload route handler.

Orchestration Flow:
    ┌──────────┐    ┌────────────┐    ┌───────────────────┐    ┌─────────────┐
    │ Validate │───▶│  Decode    │───▶│ Create attachment │───▶│ Upload file │
    │ (400)    │    │  data URI  │    │ (handle)          │    │             │
    └──────────┘    └────────────┘    └───────────────────┘    └─────────────┘

    Processing halts at the first failing step and the error propagates to
    the global handler unchanged. There is no retry and no rollback.

SignatureRelay holds no per-request state. Its only dependency, the
ServiceM8 client, is injected at construction.
"""

import base64
import logging
import re

from signature_relay.exceptions import (
    ConfigurationError,
    InvalidInputError,
    RelayError,
    UnexpectedError,
)
from signature_relay.schemas.signature import (
    SIGNATURE_PREFIX,
    AttachmentMetadata,
    UploadRequest,
    UploadResponse,
    signature_filename,
)
from signature_relay.services.servicem8_client import ServiceM8Client

logger = logging.getLogger(__name__)

# Everything up to the first comma: data:image/png;base64,
# data:image/svg+xml;base64,  data:image/png;charset=utf-8;base64,
DATA_URI_PREFIX = re.compile(r"^data:image/[^,]*,")

# Characters outside the standard base64 alphabet, after URL-safe mapping
NON_BASE64_CHARS = re.compile(r"[^A-Za-z0-9+/]")
URLSAFE_TO_STANDARD = str.maketrans("-_", "+/")


def decode_signature(signature: str) -> bytes:
    """
    Strip the data-URI prefix and base64-decode the remainder leniently.

    Decoding never fails once the data:image prefix has matched:
        - URL-safe '-' and '_' are read as '+' and '/'
        - decoding stops at the first '=' padding character
        - whitespace and any other non-alphabet characters are skipped
        - a dangling final character that cannot form a byte is dropped
        - missing '=' padding is supplied

    Nothing checks that the bytes are a valid PNG.
    """
    payload = DATA_URI_PREFIX.sub("", signature, count=1)
    payload = payload.translate(URLSAFE_TO_STANDARD).split("=", 1)[0]
    payload = NON_BASE64_CHARS.sub("", payload)

    # 4n+1 characters leave 6 bits, less than a byte
    if len(payload) % 4 == 1:
        payload = payload[:-1]
    payload += "=" * (-len(payload) % 4)

    return base64.b64decode(payload)


class SignatureRelay:
    """
    Relays a base64 signature to ServiceM8 as a job attachment.

    Error Handling Strategy:
        RelayError subclasses raised by validation or by the client propagate
        as-is. Anything else is wrapped in UnexpectedError so the client gets
        the standard error body.
    """

    def __init__(self, client: ServiceM8Client):
        self.client = client

    @staticmethod
    def validate(request: UploadRequest) -> None:
        """
        Reject the request before any network call is made.

        Raises:
            InvalidInputError: jobUUID missing/empty, or signature missing or
                not a data:image URI
        """
        if not request.jobUUID:
            raise InvalidInputError(
                message="Missing 'jobUUID' in request body.",
                field="jobUUID",
            )
        if not request.signature or not request.signature.startswith(SIGNATURE_PREFIX):
            raise InvalidInputError(
                message="Invalid or missing 'signature' in base64 format.",
                field="signature",
            )

    async def handle_upload(self, request: UploadRequest) -> UploadResponse:
        """
        Complete workflow: validate → check API key → decode → create attachment
        → upload file.

        Returns:
            UploadResponse(success=True) once both vendor calls succeeded

        Raises:
            InvalidInputError: bad client input (400)
            ConfigurationError: the client has no API key (500), raised
                after validation so bad input still gets its 400
            MetadataCreationFailedError: step 1 non-2xx (upstream status)
            MissingAttachmentHandleError: step 1 gave no handle (500)
            FileUploadFailedError: step 2 non-2xx (upstream status)
            NetworkFailureError: transport error or timeout (500)
            UnexpectedError: anything else (500)
        """
        self.validate(request)
        job_uuid = request.jobUUID

        if not self.client.is_configured:
            logger.error("Signature upload refused: SERVICEM8_API_KEY is not configured")
            raise ConfigurationError()

        try:
            content = decode_signature(request.signature)
            metadata = AttachmentMetadata.for_job(job_uuid)

            # ── Step 1: Create the attachment record ──────────────────────
            handle = await self.client.create_attachment(metadata)

            # ── Step 2: Upload the binary file ────────────────────────────
            await self.client.upload_attachment_file(
                handle=handle,
                filename=signature_filename(job_uuid),
                content=content,
            )

        except RelayError:
            raise
        except Exception as e:
            logger.error("Unexpected error relaying signature for job %s: %s", job_uuid, e, exc_info=True)
            raise UnexpectedError(
                message=f"Internal server error: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Signature for job %s uploaded to attachment %s", job_uuid, handle)
        return UploadResponse()
