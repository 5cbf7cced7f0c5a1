"""
Signature Relay — ServiceM8 Attachment Client
==============================================

What:  Thin async client for the two ServiceM8 Attachment endpoints.
How:   Opens an httpx.AsyncClient per call, authenticates with the X-Api-Key
       header, and translates every outcome into either a return value or a
       RelayError subclass.
Who:   Called by SignatureRelay, once per endpoint per request.

Endpoints:
    POST {base}/Attachment.json           → creates the attachment record;
                                            the new record's UUID comes back
                                            in the `x-record-uuid` header
    POST {base}/Attachment/{uuid}.file    → multipart upload of the bytes

No retries: a failed call is reported immediately. If the upload fails after
the record was created, the record is left without a file.
"""

import logging
import time
from typing import Optional

import httpx

from signature_relay.exceptions import (
    FileUploadFailedError,
    MetadataCreationFailedError,
    MissingAttachmentHandleError,
    NetworkFailureError,
)
from signature_relay.schemas.signature import AttachmentMetadata

logger = logging.getLogger(__name__)

ATTACHMENT_HANDLE_HEADER = "x-record-uuid"
SIGNATURE_CONTENT_TYPE = "image/png"


class ServiceM8Client:
    """
    Client for the ServiceM8 attachment API.

    Args:
        api_key:   ServiceM8 API key (sent as X-Api-Key)
        base_url:  API root, e.g. https://api.servicem8.com/api_1.0
        timeout:   Seconds before a call is abandoned
        transport: Optional httpx transport; tests pass an httpx.MockTransport
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        """False when no API key was supplied; no request is sent then."""
        return bool(self.api_key)

    def _auth_headers(self) -> dict:
        return {"X-Api-Key": self.api_key}

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _post(self, url: str, operation: str, **kwargs) -> httpx.Response:
        """
        POST to ServiceM8, mapping transport failures to NetworkFailureError.

        HTTP error statuses are returned, not raised; the callers decide which
        error kind a non-2xx status means.
        """
        start_time = time.perf_counter()
        try:
            async with self._client() as client:
                response = await client.post(url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("ServiceM8 %s timed out after %.1fs: %s", operation, self.timeout, e)
            raise NetworkFailureError(
                message=f"ServiceM8 did not respond within {self.timeout:g} seconds.",
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e
        except httpx.HTTPError as e:
            logger.error("ServiceM8 %s failed at transport level: %s", operation, e)
            raise NetworkFailureError(
                message=f"Could not reach ServiceM8: {e}",
                context={"operation": operation, "error_type": type(e).__name__},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "ServiceM8 %s returned %d in %.0fms",
            operation,
            response.status_code,
            duration_ms,
        )
        return response

    async def create_attachment(self, metadata: AttachmentMetadata) -> str:
        """
        Create the attachment record and return its handle.

        Raises:
            MetadataCreationFailedError: non-2xx status (upstream status + body)
            MissingAttachmentHandleError: 2xx without the x-record-uuid header
            NetworkFailureError: transport error or timeout
        """
        payload = metadata.model_dump()
        logger.info("Sending attachment metadata to ServiceM8: %s", payload)

        response = await self._post(
            f"{self.base_url}/Attachment.json",
            "attachment metadata creation",
            headers={**self._auth_headers(), "Accept": "application/json"},
            json=payload,
        )

        if not response.is_success:
            logger.error("Metadata creation failed: %s", response.text)
            raise MetadataCreationFailedError(
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        handle = response.headers.get(ATTACHMENT_HANDLE_HEADER)
        if not handle:
            logger.error(
                "Metadata creation response missing %s header: %s",
                ATTACHMENT_HANDLE_HEADER,
                response.text,
            )
            raise MissingAttachmentHandleError(upstream_body=response.text)

        logger.info("Attachment UUID retrieved from headers: %s", handle)
        return handle

    async def upload_attachment_file(self, handle: str, filename: str, content: bytes) -> None:
        """
        Upload the binary content for an existing attachment record.

        Raises:
            FileUploadFailedError: non-2xx status (upstream status + body)
            NetworkFailureError: transport error or timeout
        """
        logger.info("Uploading %s (%d bytes) to ServiceM8 attachment %s", filename, len(content), handle)

        response = await self._post(
            f"{self.base_url}/Attachment/{handle}.file",
            "file upload",
            headers=self._auth_headers(),
            files={"file": (filename, content, SIGNATURE_CONTENT_TYPE)},
        )

        if not response.is_success:
            logger.error("File upload failed: %s", response.text)
            raise FileUploadFailedError(
                upstream_status=response.status_code,
                upstream_body=response.text,
            )

        logger.info("File uploaded successfully to attachment %s", handle)
