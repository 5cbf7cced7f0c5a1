"""
Signature Relay — Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the entire test suite.
How:   ServiceM8 is replaced by FakeServiceM8, an httpx.MockTransport handler
       that records every request and answers with configurable responses.
       The FastAPI app is driven in-process through httpx's ASGITransport.

Fixture Hierarchy (all function-scoped):
    ├── servicem8: FakeServiceM8 recording outbound requests
    ├── servicem8_client: ServiceM8Client wired to the fake
    ├── valid_payload: The canonical J-1 / "hello" request body
    ├── test_client: AsyncClient for the app, relay dependency overridden
    └── unconfigured_client: AsyncClient for the app, real dependency
"""

import os

# Must be set before signature_relay.config is imported
os.environ["SERVICEM8_API_KEY"] = "test-key-not-real"
os.environ["SERVICEM8_BASE_URL"] = "https://servicem8.test/api_1.0"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import List, Optional  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from signature_relay.services.servicem8_client import ServiceM8Client  # noqa: E402
from signature_relay.services.signature_service import SignatureRelay  # noqa: E402

TEST_API_KEY = "test-key-not-real"
TEST_BASE_URL = "https://servicem8.test/api_1.0"


class FakeServiceM8:
    """
    Stand-in for the ServiceM8 Attachment endpoints.

    Tests adjust `metadata_status`, `metadata_headers`, `file_status` etc.
    before making a request, or set `raise_error` to an httpx exception class
    to simulate a transport failure.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.metadata_status = 200
        self.metadata_headers = {"x-record-uuid": "A-1"}
        self.metadata_body = '{"errorCode": 0, "message": "OK"}'
        self.file_status = 200
        self.file_body = '{"errorCode": 0, "message": "OK"}'
        self.raise_error: Optional[type] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.raise_error is not None:
            raise self.raise_error("simulated transport failure", request=request)
        if request.url.path.endswith("/Attachment.json"):
            return httpx.Response(
                self.metadata_status,
                headers=self.metadata_headers,
                text=self.metadata_body,
            )
        if request.url.path.endswith(".file"):
            return httpx.Response(self.file_status, text=self.file_body)
        return httpx.Response(404, text="unknown endpoint")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def metadata_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/Attachment.json")]

    @property
    def file_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(".file")]


def extract_multipart_file(request: httpx.Request, field: str = "file") -> bytes:
    """Return the raw bytes of one multipart form field from a recorded request."""
    content_type = request.headers["content-type"]
    boundary = content_type.split("boundary=", 1)[1].encode()
    for part in request.content.split(b"--" + boundary):
        head, sep, body = part.partition(b"\r\n\r\n")
        if sep and f'name="{field}"'.encode() in head:
            return body[: -len(b"\r\n")] if body.endswith(b"\r\n") else body
    raise AssertionError(f"multipart field {field!r} not found")


@pytest.fixture
def servicem8():
    return FakeServiceM8()


@pytest.fixture
def servicem8_client(servicem8):
    return ServiceM8Client(
        api_key=TEST_API_KEY,
        base_url=TEST_BASE_URL,
        timeout=5.0,
        transport=servicem8.transport,
    )


@pytest.fixture
def valid_payload():
    return {"jobUUID": "J-1", "signature": "data:image/png;base64,aGVsbG8="}


@pytest_asyncio.fixture
async def test_client(servicem8_client):
    """
    AsyncClient talking to the app, with the relay dependency pointed at the
    fake ServiceM8.

    Usage:
        async def test_upload(test_client, valid_payload):
            response = await test_client.post("/api/signature-upload", json=valid_payload)
    """
    from signature_relay.main import app
    from signature_relay.routes.signature import get_signature_relay

    app.dependency_overrides[get_signature_relay] = lambda: SignatureRelay(servicem8_client)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def unconfigured_client():
    """AsyncClient using the real relay dependency (reads settings)."""
    from signature_relay.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
