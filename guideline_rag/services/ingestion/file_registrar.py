"""Registers stored guideline documents with the Gemini File API."""

from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import unquote, urlparse

from guideline_rag.core.config import settings
from guideline_rag.core.exceptions import AppError, RegistrationError
from guideline_rag.core.gemini_client import GeminiClient
from guideline_rag.services.ingestion.content_inspector import ContentInspector
from guideline_rag.services.storage_service import StorageService
from guideline_rag.utils.file_types import resolve_mime_type
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class FileHandle:
    """A document registered with the generative file API.

    Attributes:
        uri: Opaque URI the model accepts as a content reference
        name: File API resource name (``files/...``), needed for deletion
        mime_type: MIME type the file was registered with
        size_bytes: Size of the uploaded content
        page_count: PDF page count, None for other formats
    """

    uri: str
    name: Optional[str]
    mime_type: str
    size_bytes: int
    page_count: Optional[int] = None


def resolve_storage_path(guideline: Any, bucket: str) -> Optional[str]:
    """Object path of a guideline inside the bucket.

    Older rows only carry the public URL, so the path is recovered from the
    segment after ``/<bucket>/``.
    """
    if guideline.file_path:
        return guideline.file_path

    if not guideline.file_url:
        return None

    parts = urlparse(guideline.file_url).path.split(f"/{bucket}/", 1)
    if len(parts) > 1 and parts[1]:
        return unquote(parts[1])
    return None


class GuidelineFileRegistrar:
    """Moves a guideline's bytes from storage to the Gemini File API.

    Stateless: it never writes guideline rows. Every failure surfaces as a
    ``RegistrationError`` whose message is meant for the operator.
    """

    def __init__(
        self,
        storage: StorageService,
        gemini: GeminiClient,
        inspector: Optional[ContentInspector] = None,
        bucket: Optional[str] = None,
        max_file_bytes: Optional[int] = None,
    ):
        self.storage = storage
        self.gemini = gemini
        self.inspector = inspector or ContentInspector()
        self.bucket = bucket or settings.guidelines_bucket
        self.max_file_bytes = max_file_bytes or settings.llm.max_file_bytes

    async def register(self, guideline: Any) -> FileHandle:
        """Upload a guideline document and return its file handle.

        Args:
            guideline: A ``CarrierGuideline`` row (or anything shaped like one)

        Returns:
            FileHandle for the registered document

        Raises:
            RegistrationError: If any step fails
        """
        mime_type = guideline.mime_type or resolve_mime_type(guideline.file_name)
        if not mime_type:
            raise RegistrationError(
                f"Unsupported file type for {guideline.file_name}; upload a PDF or DOCX"
            )

        file_path = resolve_storage_path(guideline, self.bucket)
        if not file_path:
            raise RegistrationError("Could not determine file path for download.")

        LOGGER.info(
            f"Downloading guideline file: {file_path}",
            extra={"guideline_id": str(guideline.id), "bucket": self.bucket},
        )
        try:
            content = await self.storage.download_file(self.bucket, file_path)
        except AppError as e:
            raise RegistrationError(str(e), original_error=e)

        if not content:
            raise RegistrationError(f"Stored file {file_path} is empty")
        if len(content) > self.max_file_bytes:
            raise RegistrationError(
                f"File is {len(content)} bytes; the limit is {self.max_file_bytes} bytes"
            )

        report = await self.inspector.inspect(content, mime_type)

        try:
            uploaded = await self.gemini.upload_file(
                content,
                mime_type=mime_type,
                display_name=f"{guideline.carrier_name} - {guideline.product_type}",
            )
        except AppError as e:
            raise RegistrationError(str(e), original_error=e)

        return FileHandle(
            uri=uploaded.uri,
            name=uploaded.name,
            mime_type=mime_type,
            size_bytes=report.size_bytes,
            page_count=report.page_count,
        )
