"""SQLAlchemy models for all database tables."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TIMESTAMP,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import Mapped, mapped_column

from guideline_rag.core.database import Base


class CarrierGuideline(Base):
    """Uploaded carrier underwriting document and its Gemini registration."""

    __tablename__ = "carrier_guidelines"
    __table_args__ = (
        CheckConstraint(
            "expiration_date IS NULL OR expiration_date >= effective_date",
            name="ck_carrier_guidelines_expiration_after_effective",
        ),
        CheckConstraint(
            "status <> 'active' OR gemini_file_uri IS NOT NULL",
            name="ck_carrier_guidelines_active_has_uri",
        ),
        CheckConstraint(
            "status <> 'error' OR processing_error IS NOT NULL",
            name="ck_carrier_guidelines_error_has_message",
        ),
        CheckConstraint(
            "status <> 'partial' OR "
            "(gemini_file_uri IS NOT NULL AND processing_error IS NOT NULL)",
            name="ck_carrier_guidelines_partial_has_uri_and_message",
        ),
        Index("ix_carrier_guidelines_status_carrier", "status", "carrier_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )

    # Descriptive
    carrier_name: Mapped[str] = mapped_column(String, nullable=False)
    product_type: Mapped[str] = mapped_column(String, nullable=False)
    document_type: Mapped[str] = mapped_column(
        String, nullable=False, default="full_guidelines"
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Source
    file_name: Mapped[str] = mapped_column(String, nullable=False)
    file_size: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    file_path: Mapped[str | None] = mapped_column(String, nullable=True)
    file_url: Mapped[str | None] = mapped_column(String, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(String, nullable=True)

    # Validity
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    min_coverage: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    max_coverage: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    min_age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_age: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Processing
    status: Mapped[str] = mapped_column(
        String, nullable=False, default="pending"
    )  # pending | processing | active | partial | error | archived
    processing_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    chunks_processed_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gemini_file_uri: Mapped[str | None] = mapped_column(String, nullable=True)
    gemini_file_name: Mapped[str | None] = mapped_column(String, nullable=True)
    gemini_uploaded_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    uploaded_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class UnderwritingMessage(Base):
    """Persisted underwriting chat turn."""

    __tablename__ = "underwriting_messages"
    __table_args__ = (
        Index("ix_underwriting_messages_chat_created", "chat_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    chat_id: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(
        String, nullable=False, comment="user | assistant"
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    sources: Mapped[list | None] = mapped_column(JSONB, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
