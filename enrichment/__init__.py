"""
Enrichment System for DocSearch

Zero-cost metadata for uploads:
- Text extraction from stored files
- Keyword categorization, tagging and team inference

Usage:
    from enrichment import DocumentCategorizer, TextExtractor

    text = TextExtractor().extract(path, 'md')
    category = DocumentCategorizer().categorize(text, 'brand_guide.md')
"""

from .categorizer import DocumentCategorizer
from .text_extraction import TextExtractor

__all__ = [
    'DocumentCategorizer',
    'TextExtractor',
]
