"""Answers underwriting questions from the active carrier guidelines."""

from typing import Any, List, Optional, Sequence

from guideline_rag.core.config import settings
from guideline_rag.core.exceptions import (
    APIClientError,
    APITimeoutError,
    GenerationFailedError,
    ValidationError,
)
from guideline_rag.core.gemini_client import GeminiClient
from guideline_rag.database.models import CarrierGuideline
from guideline_rag.prompts.system_prompts import (
    GUIDELINE_QUESTION_TEMPLATE,
    NO_ACTIVE_GUIDELINES_MESSAGE,
    UNDERWRITING_COACH_PROMPT,
)
from guideline_rag.repositories.guideline_repository import GuidelineRepository
from guideline_rag.schemas.query import GuidelineSource, QueryAnswer
from guideline_rag.services.base_service import BaseService
from guideline_rag.services.query.chat_history import ChatHistoryRecorder
from guideline_rag.utils.file_types import PDF_MIME_TYPE, resolve_mime_type
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


class QueryService(BaseService):
    """Single-shot question answering over whole guideline documents.

    Every active guideline with a registered file is handed to the model in
    one generation call; nothing is retrieved or ranked locally. Because the
    model reads all of them, every document in context is reported as a
    source, whether or not the answer draws on it.
    """

    def __init__(
        self,
        guideline_repo: GuidelineRepository,
        gemini: GeminiClient,
        recorder: Optional[ChatHistoryRecorder] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(guideline_repo)
        self.gemini = gemini
        self.recorder = recorder
        self.timeout = timeout if timeout is not None else settings.generation_timeout

    async def answer(
        self,
        question: str,
        carrier_filters: Optional[Sequence[str]] = None,
        session_id: Optional[str] = None,
    ) -> QueryAnswer:
        """Answer a question.

        Args:
            question: The agent's question
            carrier_filters: Only consult these carriers; empty means all
            session_id: Chat session to record the exchange in

        Returns:
            QueryAnswer with the model text and the documents it was given

        Raises:
            ValidationError: If the question is blank
            GenerationFailedError: If the model call fails or times out
        """
        return await self.execute(
            question=question,
            carrier_filters=carrier_filters,
            session_id=session_id,
        )

    def validate(self, *args, **kwargs):
        question = kwargs.get("question")
        if not question or not question.strip():
            raise ValidationError("Question is required")

    async def run(self, *args, **kwargs) -> QueryAnswer:
        question: str = kwargs["question"].strip()
        carrier_filters = kwargs.get("carrier_filters") or None
        session_id: Optional[str] = kwargs.get("session_id")

        guidelines = await self.repository.get_active_with_files(carrier_filters)
        if not guidelines:
            LOGGER.info(
                "No active guidelines matched the query",
                extra={"carrier_filters": carrier_filters},
            )
            return QueryAnswer(answer=NO_ACTIVE_GUIDELINES_MESSAGE, sources=[], guidelines_searched=0)

        LOGGER.info(
            f"Answering question against {len(guidelines)} guideline(s)",
            extra={"carrier_filters": carrier_filters, "session_id": session_id},
        )

        contents = self._build_contents(question, guidelines)
        try:
            text = await self.gemini.generate_content(
                contents=contents,
                system_instruction=UNDERWRITING_COACH_PROMPT,
                timeout=self.timeout,
            )
        except APITimeoutError as e:
            raise GenerationFailedError(e.message, original_error=e, timed_out=True)
        except APIClientError as e:
            raise GenerationFailedError(e.message, original_error=e)

        sources = [self._to_source(guideline) for guideline in guidelines]
        result = QueryAnswer(
            answer=text,
            sources=sources,
            guidelines_searched=len(guidelines),
        )

        if session_id and self.recorder is not None:
            await self.recorder.record_exchange(session_id, question, text, sources)

        return result

    def _build_contents(self, question: str, guidelines: List[CarrierGuideline]) -> List[Any]:
        contents: List[Any] = [
            GeminiClient.file_part(
                guideline.gemini_file_uri,
                guideline.mime_type or resolve_mime_type(guideline.file_name) or PDF_MIME_TYPE,
            )
            for guideline in guidelines
        ]
        contents.append(GUIDELINE_QUESTION_TEMPLATE.format(question=question))
        return contents

    @staticmethod
    def _to_source(guideline: CarrierGuideline) -> GuidelineSource:
        return GuidelineSource(
            carrier_name=guideline.carrier_name,
            product_type=guideline.product_type,
            document_type=guideline.document_type,
            file_name=guideline.file_name,
        )
