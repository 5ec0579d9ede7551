"""Carrier guideline request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from guideline_rag.models.guideline_state import DocumentType, GuidelineStatus


class GuidelineMetadata(BaseModel):
    """Descriptive and validity metadata supplied with an upload."""

    carrier_name: str = Field(..., min_length=1)
    product_type: str = Field(..., min_length=1)
    document_type: DocumentType = DocumentType.FULL_GUIDELINES
    effective_date: date
    expiration_date: Optional[date] = None
    min_coverage: Optional[Decimal] = Field(default=None, ge=0)
    max_coverage: Optional[Decimal] = Field(default=None, ge=0)
    min_age: Optional[int] = Field(default=None, ge=0, le=120)
    max_age: Optional[int] = Field(default=None, ge=0, le=120)
    notes: Optional[str] = None
    uploaded_by: Optional[str] = None

    @model_validator(mode="after")
    def check_bounds(self) -> "GuidelineMetadata":
        if self.expiration_date is not None and self.expiration_date < self.effective_date:
            raise ValueError("expiration_date must be on or after effective_date")
        if (
            self.min_coverage is not None
            and self.max_coverage is not None
            and self.min_coverage > self.max_coverage
        ):
            raise ValueError("min_coverage must not exceed max_coverage")
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("min_age must not exceed max_age")
        return self


class GuidelineResponse(BaseModel):
    """Guideline row as shown to admins."""

    id: UUID
    carrier_name: str
    product_type: str
    document_type: str
    file_name: str
    file_size: Optional[int] = None
    file_path: Optional[str] = None
    file_url: Optional[str] = None
    mime_type: Optional[str] = None
    effective_date: date
    expiration_date: Optional[date] = None
    min_coverage: Optional[Decimal] = None
    max_coverage: Optional[Decimal] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    notes: Optional[str] = None
    status: GuidelineStatus
    processing_error: Optional[str] = None
    chunks_processed_count: Optional[int] = None
    gemini_file_uri: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GuidelineListResponse(BaseModel):
    total: int
    guidelines: list[GuidelineResponse]


class IngestRequest(BaseModel):
    guideline_id: UUID


class IngestAccepted(BaseModel):
    guideline_id: UUID
    status: str = "accepted"
