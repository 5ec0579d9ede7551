"""Centralized dependency injection for FastAPI application.

Repositories and services are built per request from the request's
database session. The Gemini and storage clients are long-lived and live on
``app.state``; they are created once in the application lifespan.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from guideline_rag.core.config import settings
from guideline_rag.core.database import get_async_session
from guideline_rag.core.exceptions import ConfigurationError
from guideline_rag.core.gemini_client import GeminiClient
from guideline_rag.repositories.guideline_repository import GuidelineRepository
from guideline_rag.repositories.message_repository import UnderwritingMessageRepository
from guideline_rag.services.guideline_service import GuidelineService
from guideline_rag.services.ingestion.dispatcher import IngestionDispatcher
from guideline_rag.services.ingestion.file_registrar import GuidelineFileRegistrar
from guideline_rag.services.query.chat_history import ChatHistoryRecorder
from guideline_rag.services.query.query_service import QueryService
from guideline_rag.services.storage_service import StorageService


async def get_guideline_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> GuidelineRepository:
    """Get guideline repository instance.

    Args:
        db_session: Database session from dependency injection

    Returns:
        GuidelineRepository: Repository for carrier guideline rows
    """
    return GuidelineRepository(db_session)


async def get_message_repository(
    db_session: Annotated[AsyncSession, Depends(get_async_session)]
) -> UnderwritingMessageRepository:
    """Get chat message repository instance."""
    return UnderwritingMessageRepository(db_session)


def get_gemini_client(request: Request) -> GeminiClient:
    """Get the shared Gemini client.

    Raises:
        ConfigurationError: If the application started without one
    """
    gemini = getattr(request.app.state, "gemini_client", None)
    if gemini is None:
        raise ConfigurationError("Gemini client is not configured; set GEMINI_API_KEY")
    return gemini


def get_storage_service(request: Request) -> StorageService:
    """Get the shared storage service."""
    storage = getattr(request.app.state, "storage_service", None)
    if storage is None:
        raise ConfigurationError("Storage service is not configured")
    return storage


def get_registrar(
    storage: Annotated[StorageService, Depends(get_storage_service)],
    gemini: Annotated[GeminiClient, Depends(get_gemini_client)],
) -> GuidelineFileRegistrar:
    return GuidelineFileRegistrar(storage, gemini)


def get_ingestion_dispatcher(
    registrar: Annotated[GuidelineFileRegistrar, Depends(get_registrar)],
) -> IngestionDispatcher:
    return IngestionDispatcher(registrar)


async def get_chat_history_recorder(
    message_repo: Annotated[UnderwritingMessageRepository, Depends(get_message_repository)],
) -> ChatHistoryRecorder:
    return ChatHistoryRecorder(message_repo)


async def get_query_service(
    guideline_repo: Annotated[GuidelineRepository, Depends(get_guideline_repository)],
    gemini: Annotated[GeminiClient, Depends(get_gemini_client)],
    recorder: Annotated[ChatHistoryRecorder, Depends(get_chat_history_recorder)],
) -> QueryService:
    """Get query service instance.

    Returns:
        QueryService: Answers questions against the active guidelines
    """
    return QueryService(
        guideline_repo, gemini, recorder=recorder, timeout=settings.generation_timeout
    )


async def get_guideline_service(
    request: Request,
    guideline_repo: Annotated[GuidelineRepository, Depends(get_guideline_repository)],
    storage: Annotated[StorageService, Depends(get_storage_service)],
) -> GuidelineService:
    """Get guideline management service instance.

    The Gemini client is optional here: without it, deletions skip the
    File API cleanup.
    """
    gemini = getattr(request.app.state, "gemini_client", None)
    return GuidelineService(guideline_repo, storage, gemini=gemini)
