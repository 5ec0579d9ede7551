"""Processing state of a carrier guideline.

A guideline's ``status`` column never travels alone: ``active`` needs a
Gemini file URI, ``error`` needs a message, ``partial`` needs both. Each
state below is a frozen dataclass that refuses to be built without the data
its status requires, and renders exactly the columns the ingestion pipeline
owns. Repositories write states, never bare status strings.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union


class GuidelineStatus(str, Enum):
    """Lifecycle status stored in ``carrier_guidelines.status``."""

    PENDING = "pending"
    PROCESSING = "processing"
    ACTIVE = "active"
    PARTIAL = "partial"
    ERROR = "error"
    ARCHIVED = "archived"


class DocumentType(str, Enum):
    """Kinds of carrier documents an admin can upload."""

    FULL_GUIDELINES = "full_guidelines"
    QUICK_REFERENCE = "quick_reference"
    MEDICATION_GUIDE = "medication_guide"
    FINANCIAL_GUIDELINES = "financial_guidelines"
    BUILD_CHART = "build_chart"
    FOREIGN_TRAVEL = "foreign_travel"


TERMINAL_STATUSES = frozenset(
    {GuidelineStatus.ACTIVE, GuidelineStatus.PARTIAL, GuidelineStatus.ERROR}
)

# Stuck "processing" rows are recovered only by an operator retry
RETRYABLE_STATUSES = frozenset(
    {GuidelineStatus.ERROR, GuidelineStatus.PARTIAL, GuidelineStatus.PROCESSING}
)

# Archived and already-active rows are never re-registered
INGESTIBLE_STATUSES = RETRYABLE_STATUSES | {GuidelineStatus.PENDING}


def _require(value: Optional[str], field_name: str, status: GuidelineStatus) -> None:
    if value is None or not str(value).strip():
        raise ValueError(f"{status.value} state requires a non-empty {field_name}")


@dataclass(frozen=True)
class Pending:
    status = GuidelineStatus.PENDING

    def to_columns(self) -> Dict[str, Any]:
        return {"status": self.status.value}


@dataclass(frozen=True)
class Processing:
    status = GuidelineStatus.PROCESSING

    def to_columns(self) -> Dict[str, Any]:
        return {"status": self.status.value}


@dataclass(frozen=True)
class Active:
    """Registered and fully readable by the model."""

    file_uri: str
    file_name: Optional[str] = None
    chunks_processed_count: Optional[int] = None
    uploaded_at: Optional[datetime] = None

    status = GuidelineStatus.ACTIVE

    def __post_init__(self):
        _require(self.file_uri, "file_uri", self.status)

    def to_columns(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "gemini_file_uri": self.file_uri,
            "gemini_file_name": self.file_name,
            "gemini_uploaded_at": self.uploaded_at or datetime.now(timezone.utc),
            "chunks_processed_count": self.chunks_processed_count,
            "processing_error": None,
        }


@dataclass(frozen=True)
class Partial:
    """Registered, but the model will probably see a truncated document."""

    file_uri: str
    message: str
    file_name: Optional[str] = None
    chunks_processed_count: Optional[int] = None
    uploaded_at: Optional[datetime] = None

    status = GuidelineStatus.PARTIAL

    def __post_init__(self):
        _require(self.file_uri, "file_uri", self.status)
        _require(self.message, "message", self.status)

    def to_columns(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "gemini_file_uri": self.file_uri,
            "gemini_file_name": self.file_name,
            "gemini_uploaded_at": self.uploaded_at or datetime.now(timezone.utc),
            "chunks_processed_count": self.chunks_processed_count,
            "processing_error": self.message,
        }


@dataclass(frozen=True)
class Error:
    """Registration or a required step failed; the file URI is left untouched."""

    message: str

    status = GuidelineStatus.ERROR

    def __post_init__(self):
        _require(self.message, "message", self.status)

    def to_columns(self) -> Dict[str, Any]:
        return {"status": self.status.value, "processing_error": self.message}


@dataclass(frozen=True)
class Archived:
    status = GuidelineStatus.ARCHIVED

    def to_columns(self) -> Dict[str, Any]:
        return {"status": self.status.value}


GuidelineState = Union[Pending, Processing, Active, Partial, Error, Archived]

