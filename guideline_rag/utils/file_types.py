"""File type helpers for guideline documents."""

from pathlib import PurePosixPath
from typing import Optional

PDF_MIME_TYPE = "application/pdf"
DOCX_MIME_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

SUPPORTED_MIME_TYPES = {
    ".pdf": PDF_MIME_TYPE,
    ".docx": DOCX_MIME_TYPE,
}


def resolve_mime_type(file_name: Optional[str]) -> Optional[str]:
    """MIME type for a guideline file name, or None if the extension is unsupported."""
    if not file_name:
        return None
    return SUPPORTED_MIME_TYPES.get(PurePosixPath(file_name).suffix.lower())


def safe_file_name(file_name: str) -> str:
    """Replace characters storage keys and display names choke on."""
    return "".join(ch if ch.isalnum() or ch in ".-_" else "_" for ch in file_name)
