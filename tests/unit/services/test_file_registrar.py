"""Tests for GuidelineFileRegistrar."""

import pytest

from conftest import make_guideline
from guideline_rag.core.exceptions import APIClientError, AppError, RegistrationError
from guideline_rag.services.ingestion.content_inspector import ContentInspector
from guideline_rag.services.ingestion.file_registrar import (
    GuidelineFileRegistrar,
    resolve_storage_path,
)

BUCKET = "carrier-guidelines"


@pytest.fixture
def registrar(mock_storage_service, mock_gemini_client):
    return GuidelineFileRegistrar(
        mock_storage_service,
        mock_gemini_client,
        inspector=ContentInspector(partial_size_threshold_bytes=10_000_000, partial_page_threshold=100),
        bucket=BUCKET,
        max_file_bytes=1_000_000,
    )


class TestResolveStoragePath:

    def test_prefers_file_path(self):
        row = make_guideline(file_path="a/b.pdf", file_url="https://x/storage/v1/object/public/carrier-guidelines/c/d.pdf")

        assert resolve_storage_path(row, BUCKET) == "a/b.pdf"

    def test_falls_back_to_public_url(self):
        row = make_guideline(
            file_path=None,
            file_url="https://x.supabase.co/storage/v1/object/public/carrier-guidelines/Acme/Term/2025_acme%20term.pdf",
        )

        assert resolve_storage_path(row, BUCKET) == "Acme/Term/2025_acme term.pdf"

    def test_unknown_url_layout(self):
        row = make_guideline(file_path=None, file_url="https://cdn.example.com/acme.pdf")

        assert resolve_storage_path(row, BUCKET) is None


class TestRegister:

    @pytest.mark.asyncio
    async def test_registers_pdf(self, registrar, mock_storage_service, mock_gemini_client):
        row = make_guideline()

        handle = await registrar.register(row)

        assert handle.uri == "https://generativelanguage.googleapis.com/v1beta/files/abc123"
        assert handle.name == "files/abc123"
        assert handle.mime_type == "application/pdf"
        assert handle.page_count == 3
        mock_storage_service.download_file.assert_awaited_once_with(BUCKET, row.file_path)
        _, kwargs = mock_gemini_client.upload_file.call_args
        assert kwargs["mime_type"] == "application/pdf"
        assert kwargs["display_name"] == "Acme Life - Term Life"

    @pytest.mark.asyncio
    async def test_mime_type_inferred_from_name(self, registrar, mock_gemini_client):
        await registrar.register(make_guideline(mime_type=None))

        _, kwargs = mock_gemini_client.upload_file.call_args
        assert kwargs["mime_type"] == "application/pdf"

    @pytest.mark.asyncio
    async def test_unsupported_type(self, registrar, mock_storage_service):
        row = make_guideline(mime_type=None, file_name="rates.xlsx")

        with pytest.raises(RegistrationError, match="Unsupported file type"):
            await registrar.register(row)
        mock_storage_service.download_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_path(self, registrar):
        row = make_guideline(file_path=None, file_url=None)

        with pytest.raises(RegistrationError, match="Could not determine file path for download."):
            await registrar.register(row)

    @pytest.mark.asyncio
    async def test_download_failure(self, registrar, mock_storage_service, mock_gemini_client):
        mock_storage_service.download_file.side_effect = AppError("Failed to download file: 404")

        with pytest.raises(RegistrationError, match="Failed to download file"):
            await registrar.register(make_guideline())
        mock_gemini_client.upload_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_file(self, registrar, mock_storage_service):
        mock_storage_service.download_file.return_value = b""

        with pytest.raises(RegistrationError, match="empty"):
            await registrar.register(make_guideline())

    @pytest.mark.asyncio
    async def test_oversized_file(self, registrar, mock_storage_service, mock_gemini_client):
        mock_storage_service.download_file.return_value = b"%PDF" + b"0" * 1_000_000

        with pytest.raises(RegistrationError, match="limit"):
            await registrar.register(make_guideline())
        mock_gemini_client.upload_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_gemini_upload_failure(self, registrar, mock_gemini_client):
        mock_gemini_client.upload_file.side_effect = APIClientError("Gemini file upload failed: quota")

        with pytest.raises(RegistrationError, match="quota"):
            await registrar.register(make_guideline())
