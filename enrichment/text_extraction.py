"""
Plain-Text Extraction

Reads text out of uploaded files. Only plain-text formats are parsed;
binary formats (PDF, Office, images) get a short description built from
the filename so they remain findable by name.
"""

import re
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

PLAIN_TEXT_TYPES = frozenset({'txt', 'md', 'csv'})

_NEWLINES = re.compile(r'\r\n?|\n+')
_WHITESPACE = re.compile(r'\s+')
_NAME_SEPARATORS = re.compile(r'[._-]')


def clean_text(text: str) -> str:
    """Normalize line endings and collapse all whitespace to single spaces."""
    text = _NEWLINES.sub('\n', text)
    return _WHITESPACE.sub(' ', text).strip()


def describe_from_filename(filename: str, file_type: str) -> str:
    """Searchable stand-in text for files whose content cannot be read."""
    stem = Path(filename).stem
    words = [w for w in _NAME_SEPARATORS.sub(' ', stem).split(' ') if len(w) > 2]
    return (
        f"File: {filename} ({file_type.upper()}). "
        f"Keywords from filename: {' '.join(words)}. "
        f"Content extraction not available for this file format."
    )


class TextExtractor:
    """Extract text content from an uploaded file."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    def extract(self, file_path: str, file_type: str, filename: str = None) -> str:
        """
        Extract text from a file.

        Args:
            file_path: Where the upload is stored
            file_type: Lowercase extension without the dot
            filename: Original upload name (defaults to the stored name)

        Returns:
            Non-empty text
        """
        filename = filename or Path(file_path).name
        file_type = file_type.lower()

        if file_type in PLAIN_TEXT_TYPES:
            try:
                raw = Path(file_path).read_text(encoding=self.encoding, errors='replace')
            except OSError as e:
                logger.error(f"Error reading {file_path}: {e}")
                return describe_from_filename(filename, file_type)

            text = clean_text(raw)
            if text:
                return text
            logger.info(f"{filename} is empty, describing it from its name")

        return describe_from_filename(filename, file_type)
