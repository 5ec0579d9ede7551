"""Guideline service for carrier guideline management operations."""

from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple
from uuid import UUID

from guideline_rag.core.config import settings
from guideline_rag.core.exceptions import (
    AppError,
    GuidelineNotFoundError,
    InvalidStateTransitionError,
    ValidationError,
)
from guideline_rag.core.gemini_client import GeminiClient
from guideline_rag.database.models import CarrierGuideline
from guideline_rag.models.guideline_state import (
    RETRYABLE_STATUSES,
    TERMINAL_STATUSES,
    Archived,
    GuidelineStatus,
    Processing,
)
from guideline_rag.repositories.guideline_repository import GuidelineRepository
from guideline_rag.schemas.guidelines import GuidelineMetadata
from guideline_rag.services.base_service import BaseService
from guideline_rag.services.ingestion.file_registrar import resolve_storage_path
from guideline_rag.services.storage_service import StorageService
from guideline_rag.utils.file_types import resolve_mime_type, safe_file_name
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


class GuidelineService(BaseService):
    """Service for carrier guideline management.

    Handles uploads, listing, operator status actions and deletion. It never
    runs an ingestion itself; endpoints schedule one after upload or retry.
    """

    def __init__(
        self,
        repository: GuidelineRepository,
        storage: StorageService,
        gemini: Optional[GeminiClient] = None,
        bucket: Optional[str] = None,
    ):
        super().__init__(repository)
        self.storage = storage
        self.gemini = gemini
        self.bucket = bucket or settings.guidelines_bucket

    async def run(self, *args, **kwargs) -> Any:
        """Route to the handler for ``action``."""
        action = kwargs.get("action")

        if action == "upload":
            return await self._upload_logic(
                kwargs["metadata"], kwargs["file_name"], kwargs["content"]
            )
        elif action == "retry":
            return await self._retry_logic(kwargs["guideline_id"])
        elif action == "archive":
            return await self._archive_logic(kwargs["guideline_id"])
        elif action == "delete":
            return await self._delete_logic(kwargs["guideline_id"])
        else:
            raise AppError(f"Unknown action: {action}")

    async def upload_guideline(
        self, metadata: GuidelineMetadata, file_name: str, content: bytes
    ) -> CarrierGuideline:
        """Store a guideline document and insert its pending row.

        Args:
            metadata: Carrier, product and validity metadata
            file_name: Original file name
            content: Document bytes

        Returns:
            The new row, in the ``pending`` state

        Raises:
            ValidationError: If the file is empty or not a PDF/DOCX
            AppError: If the storage upload fails
        """
        return await self.execute(
            action="upload", metadata=metadata, file_name=file_name, content=content
        )

    async def _upload_logic(
        self, metadata: GuidelineMetadata, file_name: str, content: bytes
    ) -> CarrierGuideline:
        mime_type = resolve_mime_type(file_name)
        if not mime_type:
            raise ValidationError(f"Unsupported file type for {file_name}; upload a PDF or DOCX")
        if not content:
            raise ValidationError(f"{file_name} is empty")

        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        storage_path = (
            f"{safe_file_name(metadata.carrier_name)}/{safe_file_name(metadata.product_type)}/"
            f"{timestamp}_{safe_file_name(file_name)}"
        )

        await self.storage.upload_file(
            content, bucket=self.bucket, path=storage_path, content_type=mime_type
        )
        LOGGER.info(
            f"Guideline file uploaded to storage: filename={file_name}, path={storage_path}"
        )

        try:
            return await self.repository.create_guideline(
                carrier_name=metadata.carrier_name,
                product_type=metadata.product_type,
                document_type=metadata.document_type.value,
                file_name=file_name,
                file_size=len(content),
                file_path=storage_path,
                file_url=self.storage.get_public_url(self.bucket, storage_path),
                mime_type=mime_type,
                effective_date=metadata.effective_date,
                expiration_date=metadata.expiration_date,
                min_coverage=metadata.min_coverage,
                max_coverage=metadata.max_coverage,
                min_age=metadata.min_age,
                max_age=metadata.max_age,
                notes=metadata.notes,
                uploaded_by=metadata.uploaded_by,
            )
        except Exception:
            LOGGER.error(
                f"Could not record guideline {file_name}; removing stored file {storage_path}",
                exc_info=True,
            )
            await self._discard_stored_file(storage_path)
            raise

    async def _discard_stored_file(self, storage_path: str) -> None:
        try:
            await self.storage.delete_file(self.bucket, storage_path)
        except AppError as e:
            LOGGER.warning(f"Could not delete stored file {storage_path}: {e}")

    async def list_guidelines(
        self,
        status: Optional[GuidelineStatus] = None,
        carrier_name: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[int, List[CarrierGuideline]]:
        """List guidelines with the total matching count."""
        guidelines = await self.repository.list_guidelines(
            status=status, carrier_name=carrier_name, limit=limit, offset=offset
        )
        total = await self.repository.count(
            {"status": status.value if status else None, "carrier_name": carrier_name}
        )
        return total, guidelines

    async def get_guideline(self, guideline_id: UUID) -> CarrierGuideline:
        guideline = await self.repository.get_by_id(guideline_id)
        if guideline is None:
            raise GuidelineNotFoundError(guideline_id)
        return guideline

    async def retry_guideline(self, guideline_id: UUID) -> CarrierGuideline:
        """Move a failed, partial or stuck guideline back to ``processing``.

        The caller schedules the ingestion that follows.

        Raises:
            GuidelineNotFoundError: If the row does not exist
            InvalidStateTransitionError: If the status does not allow a retry
        """
        return await self.execute(action="retry", guideline_id=guideline_id)

    async def _retry_logic(self, guideline_id: UUID) -> CarrierGuideline:
        guideline = await self.get_guideline(guideline_id)
        if GuidelineStatus(guideline.status) not in RETRYABLE_STATUSES:
            raise InvalidStateTransitionError(guideline_id, guideline.status, "retry")

        updated = await self.repository.apply_state(guideline_id, Processing())
        if updated is None:
            raise GuidelineNotFoundError(guideline_id)
        return updated

    async def archive_guideline(self, guideline_id: UUID) -> CarrierGuideline:
        """Take a guideline out of question answering.

        Raises:
            GuidelineNotFoundError: If the row does not exist
            InvalidStateTransitionError: If ingestion has not finished
        """
        return await self.execute(action="archive", guideline_id=guideline_id)

    async def _archive_logic(self, guideline_id: UUID) -> CarrierGuideline:
        guideline = await self.get_guideline(guideline_id)
        if GuidelineStatus(guideline.status) not in TERMINAL_STATUSES:
            raise InvalidStateTransitionError(guideline_id, guideline.status, "archive")

        updated = await self.repository.apply_state(guideline_id, Archived())
        if updated is None:
            raise GuidelineNotFoundError(guideline_id)
        return updated

    async def delete_guideline(self, guideline_id: UUID) -> None:
        """Delete a guideline row, then its stored and registered files.

        File cleanup is best effort; the row is gone either way.
        """
        await self.execute(action="delete", guideline_id=guideline_id)

    async def _delete_logic(self, guideline_id: UUID) -> None:
        guideline = await self.get_guideline(guideline_id)
        storage_path = resolve_storage_path(guideline, self.bucket)
        gemini_file_name = guideline.gemini_file_name

        await self.repository.delete(guideline_id)
        LOGGER.info(f"Guideline deleted: id={guideline_id}")

        if storage_path:
            await self._discard_stored_file(storage_path)

        if gemini_file_name and self.gemini is not None:
            try:
                await self.gemini.delete_file(gemini_file_name)
            except AppError as e:
                LOGGER.warning(
                    f"Could not delete Gemini file {gemini_file_name}: {e}",
                    extra={"guideline_id": str(guideline_id)},
                )

    async def get_download_url(self, guideline_id: UUID) -> str:
        """Signed, time-limited URL of the stored document."""
        guideline = await self.get_guideline(guideline_id)
        storage_path = resolve_storage_path(guideline, self.bucket)
        if not storage_path:
            raise ValidationError(f"Guideline {guideline_id} has no stored file")

        return await self.storage.get_signed_url(
            self.bucket, storage_path, expires_in=settings.supabase.signed_url_ttl
        )
