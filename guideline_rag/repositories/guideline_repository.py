from datetime import date
from decimal import Decimal
from typing import Optional, List, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from guideline_rag.database.models import CarrierGuideline
from guideline_rag.models.guideline_state import GuidelineState, GuidelineStatus, Pending
from guideline_rag.repositories.base_repository import BaseRepository
from guideline_rag.utils.logging import get_logger

LOGGER = get_logger(__name__)


class GuidelineRepository(BaseRepository[CarrierGuideline]):
    """Repository for ``carrier_guidelines`` rows."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, CarrierGuideline)

    async def create_guideline(
        self,
        carrier_name: str,
        product_type: str,
        document_type: str,
        file_name: str,
        effective_date: date,
        file_size: Optional[int] = None,
        file_path: Optional[str] = None,
        file_url: Optional[str] = None,
        mime_type: Optional[str] = None,
        expiration_date: Optional[date] = None,
        min_coverage: Optional[Decimal] = None,
        max_coverage: Optional[Decimal] = None,
        min_age: Optional[int] = None,
        max_age: Optional[int] = None,
        notes: Optional[str] = None,
        uploaded_by: Optional[str] = None,
    ) -> CarrierGuideline:
        """Insert a guideline row in the ``pending`` state."""
        guideline = await self.create(
            carrier_name=carrier_name,
            product_type=product_type,
            document_type=document_type,
            file_name=file_name,
            file_size=file_size,
            file_path=file_path,
            file_url=file_url,
            mime_type=mime_type,
            effective_date=effective_date,
            expiration_date=expiration_date,
            min_coverage=min_coverage,
            max_coverage=max_coverage,
            min_age=min_age,
            max_age=max_age,
            notes=notes,
            uploaded_by=uploaded_by,
            **Pending().to_columns(),
        )
        LOGGER.info(
            f"Guideline created: id={guideline.id}, carrier={carrier_name}, file={file_name}"
        )
        return guideline

    async def apply_state(
        self, guideline_id: UUID, state: GuidelineState
    ) -> Optional[CarrierGuideline]:
        """Write a processing state as one single-row update.

        Returns:
            The updated row, or None if the row no longer exists
        """
        LOGGER.info(
            f"Guideline {guideline_id} -> {state.status.value}",
            extra={"guideline_id": str(guideline_id), "status": state.status.value},
        )
        return await self.update(guideline_id, **state.to_columns())

    async def list_guidelines(
        self,
        status: Optional[GuidelineStatus] = None,
        carrier_name: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[CarrierGuideline]:
        """List guidelines newest first."""
        query = self._apply_filters(
            select(CarrierGuideline),
            {
                "status": status.value if status else None,
                "carrier_name": carrier_name,
            },
        )
        query = query.order_by(CarrierGuideline.created_at.desc()).offset(offset).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_active_with_files(
        self, carrier_filters: Optional[Sequence[str]] = None
    ) -> List[CarrierGuideline]:
        """Select every guideline the model may read.

        Args:
            carrier_filters: Restrict to these carrier names; empty or None
                means every carrier

        Returns:
            Active rows with a registered Gemini file
        """
        query = (
            select(CarrierGuideline)
            .where(CarrierGuideline.status == GuidelineStatus.ACTIVE.value)
            .where(CarrierGuideline.gemini_file_uri.is_not(None))
        )
        if carrier_filters:
            query = query.where(CarrierGuideline.carrier_name.in_(list(carrier_filters)))

        query = query.order_by(CarrierGuideline.carrier_name, CarrierGuideline.created_at)
        result = await self.session.execute(query)
        return list(result.scalars().all())
