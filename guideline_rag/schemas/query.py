"""
Underwriting Q&A Schema Definitions

Request/response models for the guideline question answering endpoint and
the persisted chat history.
"""

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


class GuidelineSource(BaseModel):
    """A guideline document that was in the model's context for an answer."""

    carrier_name: str
    product_type: str
    document_type: str
    file_name: str


class QueryRequest(BaseModel):
    """Question asked against the active carrier guidelines."""

    question: str = Field(..., description="Natural-language underwriting question")
    carrier_filters: Optional[list[str]] = Field(
        default=None,
        description="Only consult guidelines from these carriers",
    )
    session_id: Optional[str] = Field(
        default=None,
        description="Chat session to append this exchange to",
    )

    @field_validator("carrier_filters")
    @classmethod
    def drop_blank_filters(cls, value: Optional[list[str]]) -> Optional[list[str]]:
        if value is None:
            return None
        return [carrier.strip() for carrier in value if carrier and carrier.strip()]

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "question": "What are the smoker guidelines?",
                "carrier_filters": ["Acme Life"],
                "session_id": "2f0c7c1e-5d6b-4a53-9a3e-1f0f7b1f9a10",
            }
        }
    )


class QueryAnswer(BaseModel):
    """Answer returned to the agent."""

    answer: str
    sources: list[GuidelineSource] = Field(default_factory=list)
    guidelines_searched: int = 0


class ChatMessage(BaseModel):
    """One persisted chat turn."""

    id: UUID
    chat_id: str
    role: Literal["user", "assistant"]
    content: str
    sources: Optional[list[GuidelineSource]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class QueryError(BaseModel):
    error: str
