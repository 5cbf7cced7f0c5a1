"""
Signature Relay — Signature Upload Route Handler
================================================

What:  POST /api/signature-upload relays a signature image to ServiceM8;
       OPTIONS on the same path answers CORS preflights.
How:   Parses the JSON body into UploadRequest, delegates to SignatureRelay,
       returns UploadResponse.
Who:   Called by the job-sign-off frontend once the customer has signed.

Request Flow:
    1. Client sends JSON {jobUUID, signature}
    2. get_signature_relay() builds the relay from settings
    3. SignatureRelay.handle_upload(): validate → check API key → decode →
       create → upload (400 for bad input comes before 500
       ConfigurationError for a missing key)
    4. Return 200 {success: true, message}
    5. On error: global handlers render ErrorResponse with the matching status

Any other method on the path gets 405 from the router; main.py renders it
in the standard error shape.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from signature_relay.config import settings
from signature_relay.schemas.signature import ErrorResponse, UploadRequest, UploadResponse
from signature_relay.services.servicem8_client import ServiceM8Client
from signature_relay.services.signature_service import SignatureRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Signature"])


def get_signature_relay() -> SignatureRelay:
    """
    FastAPI dependency that builds a SignatureRelay from the current settings.

    Tests replace it through app.dependency_overrides with a relay whose
    client talks to an httpx.MockTransport.

    A placeholder or empty SERVICEM8_API_KEY is passed on as "", so the relay
    reports ConfigurationError only after the request itself was validated.
    """
    client = ServiceM8Client(
        api_key=settings.servicem8_api_key if settings.servicem8_configured else "",
        base_url=settings.servicem8_base_url,
        timeout=settings.servicem8_timeout,
    )
    return SignatureRelay(client)


@router.post(
    "/signature-upload",
    status_code=200,
    response_model=UploadResponse,
    responses={
        200: {"description": "Signature stored on the ServiceM8 job", "model": UploadResponse},
        400: {"description": "Missing jobUUID or invalid signature", "model": ErrorResponse},
        500: {"description": "Integration failure or unexpected error", "model": ErrorResponse},
    },
    summary="Upload a job signature to ServiceM8",
    description=(
        "Creates an attachment record on the ServiceM8 job, then uploads the decoded "
        "signature image to it. Upstream failures are returned with ServiceM8's own "
        "status code and response body."
    ),
)
async def upload_signature(
    payload: Optional[UploadRequest] = None,
    relay: SignatureRelay = Depends(get_signature_relay),
) -> UploadResponse:
    upload_request = payload or UploadRequest()

    logger.info(
        "Received signature upload: jobUUID=%s, signature_length=%d",
        upload_request.jobUUID,
        len(upload_request.signature or ""),
    )

    return await relay.handle_upload(upload_request)


@router.options(
    "/signature-upload",
    status_code=200,
    summary="CORS preflight",
    include_in_schema=False,
)
async def signature_upload_preflight() -> Response:
    """Always 200 with an empty body; CORS headers come from the middleware."""
    return Response(status_code=200)
