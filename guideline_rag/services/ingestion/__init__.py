"""
Guideline ingestion

Registers stored carrier guideline documents with the Gemini File API and
tracks each document through its processing lifecycle.
"""
