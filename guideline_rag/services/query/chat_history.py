from typing import Any, Dict, List, Sequence

from guideline_rag.database.models import UnderwritingMessage
from guideline_rag.repositories.message_repository import UnderwritingMessageRepository
from guideline_rag.schemas.query import GuidelineSource
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"


class ChatHistoryRecorder:
    """Appends question/answer exchanges to a chat session.

    Recording is best effort: a failed write is logged and never reaches the
    caller, so an answer is returned even when the history is incomplete.
    """

    def __init__(self, message_repo: UnderwritingMessageRepository):
        self.message_repo = message_repo

    async def record_exchange(
        self,
        session_id: str,
        question: str,
        answer: str,
        sources: Sequence[GuidelineSource],
    ) -> bool:
        """Write the user turn, then the assistant turn.

        The assistant turn is skipped when the user turn could not be
        written, so a session never holds an answer without its question.

        Returns:
            True if both turns were written
        """
        try:
            await self.message_repo.create_message(
                chat_id=session_id, role=USER_ROLE, content=question
            )
        except Exception as e:
            LOGGER.warning(
                f"Failed to save user message for session {session_id}: {e}",
                exc_info=True,
                extra={"session_id": session_id},
            )
            return False

        snapshot: List[Dict[str, Any]] = [source.model_dump(mode="json") for source in sources]
        try:
            await self.message_repo.create_message(
                chat_id=session_id,
                role=ASSISTANT_ROLE,
                content=answer,
                sources=snapshot,
            )
        except Exception as e:
            LOGGER.warning(
                f"Failed to save assistant message for session {session_id}: {e}",
                exc_info=True,
                extra={"session_id": session_id},
            )
            return False

        return True

    async def history(self, session_id: str) -> List[UnderwritingMessage]:
        """All turns of a session, oldest first."""
        return list(await self.message_repo.get_by_chat_id(session_id))
