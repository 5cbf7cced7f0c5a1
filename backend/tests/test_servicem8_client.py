"""
Signature Relay — ServiceM8 Client Tests (Mocked Transport)
===========================================================

What:  Tests for ServiceM8Client against FakeServiceM8 (httpx.MockTransport).
How:   Every outbound request is recorded, so the tests inspect URL, headers
       and body exactly as ServiceM8 would receive them.

What we test:
    ✅ Metadata call: URL, API key header, JSON body, handle from header
    ✅ Upload call: URL keyed by handle, multipart field, filename, content type
    ✅ Non-2xx statuses map to the right error kind with upstream status/body
    ✅ Transport errors and timeouts become NetworkFailureError
    ❌ Real ServiceM8 calls
"""

import json

import httpx
import pytest

from signature_relay.exceptions import (
    FileUploadFailedError,
    MetadataCreationFailedError,
    MissingAttachmentHandleError,
    NetworkFailureError,
)
from signature_relay.schemas.signature import AttachmentMetadata
from signature_relay.services.servicem8_client import ServiceM8Client

from conftest import TEST_API_KEY, TEST_BASE_URL, extract_multipart_file


class TestCreateAttachment:

    @pytest.mark.asyncio
    async def test_returns_handle_from_header(self, servicem8, servicem8_client):
        handle = await servicem8_client.create_attachment(AttachmentMetadata.for_job("J-1"))

        assert handle == "A-1"
        assert len(servicem8.metadata_requests) == 1

    @pytest.mark.asyncio
    async def test_request_shape(self, servicem8, servicem8_client):
        await servicem8_client.create_attachment(AttachmentMetadata.for_job("J-1"))

        request = servicem8.metadata_requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{TEST_BASE_URL}/Attachment.json"
        assert request.headers["X-Api-Key"] == TEST_API_KEY
        assert request.headers["Accept"] == "application/json"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {
            "related_object": "job",
            "related_object_uuid": "J-1",
            "attachment_name": "signature-J-1.png",
            "file_type": ".png",
            "active": True,
        }

    @pytest.mark.asyncio
    async def test_handle_header_is_case_insensitive(self, servicem8, servicem8_client):
        servicem8.metadata_headers = {"X-Record-UUID": "A-2"}

        assert await servicem8_client.create_attachment(AttachmentMetadata.for_job("J-1")) == "A-2"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_metadata_creation_failed(self, servicem8, servicem8_client):
        servicem8.metadata_status = 401
        servicem8.metadata_body = '{"errorCode": 401, "message": "Invalid API key"}'

        with pytest.raises(MetadataCreationFailedError) as exc_info:
            await servicem8_client.create_attachment(AttachmentMetadata.for_job("J-1"))

        assert exc_info.value.upstream_status == 401
        assert exc_info.value.status_code == 401
        assert "Invalid API key" in exc_info.value.upstream_body
        assert exc_info.value.kind == "MetadataCreationFailed"

    @pytest.mark.asyncio
    async def test_missing_header_raises_missing_handle(self, servicem8, servicem8_client):
        servicem8.metadata_headers = {}

        with pytest.raises(MissingAttachmentHandleError) as exc_info:
            await servicem8_client.create_attachment(AttachmentMetadata.for_job("J-1"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.details == servicem8.metadata_body

    @pytest.mark.asyncio
    async def test_empty_header_raises_missing_handle(self, servicem8, servicem8_client):
        servicem8.metadata_headers = {"x-record-uuid": ""}

        with pytest.raises(MissingAttachmentHandleError):
            await servicem8_client.create_attachment(AttachmentMetadata.for_job("J-1"))


class TestUploadAttachmentFile:

    @pytest.mark.asyncio
    async def test_request_shape(self, servicem8, servicem8_client):
        await servicem8_client.upload_attachment_file("A-1", "signature-J-1.png", b"hello")

        request = servicem8.file_requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{TEST_BASE_URL}/Attachment/A-1.file"
        assert request.headers["X-Api-Key"] == TEST_API_KEY
        assert request.headers["content-type"].startswith("multipart/form-data; boundary=")
        assert b'name="file"; filename="signature-J-1.png"' in request.content
        assert b"Content-Type: image/png" in request.content
        assert extract_multipart_file(request) == b"hello"

    @pytest.mark.asyncio
    async def test_non_2xx_raises_file_upload_failed(self, servicem8, servicem8_client):
        servicem8.file_status = 413
        servicem8.file_body = "Request Entity Too Large"

        with pytest.raises(FileUploadFailedError) as exc_info:
            await servicem8_client.upload_attachment_file("A-1", "signature-J-1.png", b"hello")

        assert exc_info.value.status_code == 413
        assert exc_info.value.details == "Request Entity Too Large"
        assert exc_info.value.kind == "FileUploadFailed"


class TestTransportFailures:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [httpx.ConnectTimeout, httpx.ReadTimeout])
    async def test_timeout_raises_network_failure(self, servicem8, servicem8_client, error):
        servicem8.raise_error = error

        with pytest.raises(NetworkFailureError, match="did not respond") as exc_info:
            await servicem8_client.create_attachment(AttachmentMetadata.for_job("J-1"))

        assert exc_info.value.kind == "NetworkFailure"
        assert exc_info.value.context["error_type"] == error.__name__

    @pytest.mark.asyncio
    async def test_connect_error_raises_network_failure(self, servicem8, servicem8_client):
        servicem8.raise_error = httpx.ConnectError

        with pytest.raises(NetworkFailureError, match="Could not reach ServiceM8"):
            await servicem8_client.upload_attachment_file("A-1", "signature-J-1.png", b"hello")


class TestConfiguration:

    def test_configured_with_key(self, servicem8_client):
        assert servicem8_client.is_configured is True

    def test_not_configured_without_key(self):
        client = ServiceM8Client(api_key="", base_url=TEST_BASE_URL)
        assert client.is_configured is False
