"""Tests for document archiving in object storage."""

from unittest.mock import patch

import httpx
import pytest

from fishregs.core.exceptions import StorageError
from fishregs.services import storage_service as module
from fishregs.services.storage_service import StorageService


def _client_factory(handler):
    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    return lambda **kwargs: real_client(transport=transport, **kwargs)


class TestStorageService:
    """Test suite for StorageService."""

    @pytest.fixture
    def service(self) -> StorageService:
        return StorageService(url="https://project.supabase.co/", service_role_key="service-key", timeout=5)

    @pytest.mark.asyncio
    async def test_upload_returns_object_url(self, service):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"Key": "regulation-documents/2026/regs.pdf"})

        with patch.object(module.httpx, "AsyncClient", _client_factory(handler)):
            url = await service.upload_file(b"%PDF", "regulation-documents", "2026/regs.pdf", "application/pdf")

        assert url == "https://project.supabase.co/storage/v1/object/regulation-documents/2026/regs.pdf"
        request = requests[0]
        assert request.headers["Authorization"] == "Bearer service-key"
        assert request.headers["Content-Type"] == "application/pdf"
        assert request.headers["x-upsert"] == "true"
        assert request.content == b"%PDF"

    @pytest.mark.asyncio
    async def test_rejected_upload_raises(self, service):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, text="forbidden")

        with patch.object(module.httpx, "AsyncClient", _client_factory(handler)):
            with pytest.raises(StorageError, match="forbidden"):
                await service.upload_file(b"%PDF", "bucket", "regs.pdf")

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, service):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        with patch.object(module.httpx, "AsyncClient", _client_factory(handler)):
            with pytest.raises(StorageError):
                await service.upload_file(b"%PDF", "bucket", "regs.pdf")

    @pytest.mark.asyncio
    async def test_unconfigured_storage_raises(self):
        service = StorageService(url="", service_role_key="")

        assert service.is_configured is False
        with pytest.raises(StorageError, match="not configured"):
            await service.upload_file(b"%PDF", "bucket", "regs.pdf")
