from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from guideline_rag.database.models import UnderwritingMessage
from guideline_rag.repositories.base_repository import BaseRepository


class UnderwritingMessageRepository(BaseRepository[UnderwritingMessage]):
    """Repository for managing underwriting chat turns."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, UnderwritingMessage)

    async def create_message(
        self,
        chat_id: str,
        role: str,
        content: str,
        sources: Optional[List[Dict[str, Any]]] = None,
    ) -> UnderwritingMessage:
        """Append a chat turn.

        Args:
            chat_id: Session the turn belongs to
            role: user | assistant
            content: Message content
            sources: Source snapshot, assistant turns only

        Returns:
            Created UnderwritingMessage instance
        """
        return await self.create(
            chat_id=chat_id,
            role=role,
            content=content,
            sources=sources,
            created_at=datetime.now(timezone.utc),
        )

    async def get_by_chat_id(self, chat_id: str) -> Sequence[UnderwritingMessage]:
        """Get all turns of a session ordered by time."""
        query = select(UnderwritingMessage).where(
            UnderwritingMessage.chat_id == chat_id
        ).order_by(UnderwritingMessage.created_at.asc())

        result = await self.session.execute(query)
        return result.scalars().all()
