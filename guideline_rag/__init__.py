"""Carrier guidelines assistant: Gemini-backed RAG over underwriting documents."""

__version__ = "0.1.0"
