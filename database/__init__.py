"""
Database Layer for DocSearch

SQLite-based document storage.

Features:
- Structured filtering
- Case-insensitive substring search
- Atomic search counters

Usage:
    from database import DocumentRepository

    repo = DocumentRepository()
    repo.save(document)
    results = repo.text_search("brand guide", limit=10)
"""

from .repository import DocumentRepository

__all__ = [
    'DocumentRepository',
]
