from typing import Callable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from guideline_rag.core.database import async_session_maker
from guideline_rag.core.exceptions import AppError
from guideline_rag.repositories.guideline_repository import GuidelineRepository
from guideline_rag.services.ingestion.file_registrar import GuidelineFileRegistrar
from guideline_rag.services.ingestion.ingestion_service import IngestionService
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


class IngestionDispatcher:
    """Runs an ingestion after the HTTP response has been sent.

    The request's session is closed by then, so each run opens its own.
    The outcome lives on the guideline row; callers poll its status.
    """

    def __init__(
        self,
        registrar: GuidelineFileRegistrar,
        session_factory: Callable[[], AsyncSession] = async_session_maker,
    ):
        self.registrar = registrar
        self.session_factory = session_factory

    async def dispatch(self, guideline_id: UUID) -> None:
        async with self.session_factory() as session:
            service = IngestionService(GuidelineRepository(session), self.registrar)
            try:
                await service.ingest(guideline_id)
            except AppError as e:
                # Job boundary: nobody is waiting on this coroutine
                LOGGER.error(
                    f"Background ingestion of {guideline_id} failed: {e}",
                    exc_info=True,
                    extra={"guideline_id": str(guideline_id)},
                )
