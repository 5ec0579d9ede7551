"""Drives a carrier guideline through registration and its status lifecycle."""

from typing import Any, Optional
from uuid import UUID

from guideline_rag.core.exceptions import (
    GuidelineNotFoundError,
    InvalidStateTransitionError,
    ValidationError,
)
from guideline_rag.models.guideline_state import (
    INGESTIBLE_STATUSES,
    Active,
    Error,
    GuidelineState,
    GuidelineStatus,
    Partial,
    Processing,
)
from guideline_rag.repositories.guideline_repository import GuidelineRepository
from guideline_rag.services.base_service import BaseService
from guideline_rag.services.ingestion.content_inspector import ContentInspector
from guideline_rag.services.ingestion.file_registrar import GuidelineFileRegistrar
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


class IngestionService(BaseService):
    """Registers a guideline with Gemini and records the outcome on its row.

    The sequence is load -> processing -> register -> active | partial | error.
    Each status write is its own committed update. Calling ``ingest`` again
    on the same id repeats the whole sequence, which is how retries work.
    Concurrent calls for one id are not serialized; the last terminal write
    wins.
    """

    def __init__(
        self,
        repository: GuidelineRepository,
        registrar: GuidelineFileRegistrar,
        inspector: Optional[ContentInspector] = None,
    ):
        super().__init__(repository)
        self.registrar = registrar
        self.inspector = inspector or registrar.inspector

    async def ingest(self, guideline_id: UUID) -> GuidelineState:
        """Ingest one guideline.

        Args:
            guideline_id: Row to ingest

        Returns:
            The terminal state written to the row

        Raises:
            GuidelineNotFoundError: If the row does not exist (nothing is written)
            InvalidStateTransitionError: If the row is active or archived
                (nothing is written)
        """
        return await self.execute(guideline_id=guideline_id)

    def validate(self, *args, **kwargs):
        if kwargs.get("guideline_id") is None:
            raise ValidationError("guideline_id is required")

    async def run(self, *args, **kwargs) -> GuidelineState:
        guideline_id: UUID = kwargs["guideline_id"]

        guideline = await self.repository.get_by_id(guideline_id)
        if guideline is None:
            LOGGER.warning(f"Ingestion requested for unknown guideline {guideline_id}")
            raise GuidelineNotFoundError(guideline_id)

        if GuidelineStatus(guideline.status) not in INGESTIBLE_STATUSES:
            LOGGER.warning(
                f"Refusing to ingest guideline {guideline_id} in status '{guideline.status}'",
                extra={"guideline_id": str(guideline_id)},
            )
            raise InvalidStateTransitionError(guideline_id, guideline.status, "ingest")

        LOGGER.info(
            f"Processing guideline {guideline_id}: {guideline.file_name}",
            extra={"guideline_id": str(guideline_id), "carrier": guideline.carrier_name},
        )
        await self.repository.apply_state(guideline_id, Processing())

        try:
            handle = await self.registrar.register(guideline)
        except Exception as e:
            state = Error(message=str(e) or type(e).__name__)
            LOGGER.error(
                f"Registration failed for guideline {guideline_id}: {state.message}",
                extra={"guideline_id": str(guideline_id), "error_type": type(e).__name__},
            )
            await self.repository.apply_state(guideline_id, state)
            return state

        state = self._terminal_state(handle)
        await self.repository.apply_state(guideline_id, state)

        LOGGER.info(
            f"Guideline {guideline_id} registered as {state.status.value}",
            extra={"guideline_id": str(guideline_id), "file_uri": handle.uri},
        )
        return state

    def _terminal_state(self, handle: Any) -> GuidelineState:
        reason = self.inspector.truncation_reason(handle.size_bytes, handle.page_count)
        if reason:
            return Partial(
                file_uri=handle.uri,
                message=reason,
                file_name=handle.name,
                chunks_processed_count=handle.page_count,
            )
        return Active(
            file_uri=handle.uri,
            file_name=handle.name,
            chunks_processed_count=handle.page_count,
        )
