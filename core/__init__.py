"""
Core Layer for DocSearch

Settings, the error taxonomy, the data model and the document service
that the HTTP layer calls.

Usage:
    from core import load_settings, Category, InvalidRequestError
"""

from .config import Settings, load_settings
from .errors import (
    DocSearchError,
    InvalidRequestError,
    NotFoundError,
    StoreError,
    SearchCountUpdateError,
    EmbeddingTierError,
)
from .models import Category, Document, MatchType, SearchFilters, ScoredCandidate, SearchResult

__all__ = [
    'Settings',
    'load_settings',
    'DocSearchError',
    'InvalidRequestError',
    'NotFoundError',
    'StoreError',
    'SearchCountUpdateError',
    'EmbeddingTierError',
    'Category',
    'Document',
    'MatchType',
    'SearchFilters',
    'ScoredCandidate',
    'SearchResult',
]
