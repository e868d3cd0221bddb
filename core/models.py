"""
Data Models for DocSearch

Typed records that cross layer boundaries: the stored Document, the
structured search filters, the per-query ScoredCandidate and the
SearchResult projection handed back to callers.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import InvalidRequestError

MAX_TAGS = 10
PREVIEW_SUFFIX = '...'
MAX_PREVIEW_LENGTH = 200


class Category(Enum):
    """
    Closed set of document categories.

    Definition order matters: the categorizer breaks score ties in favour
    of the first category defined here.
    """
    CAMPAIGN = "campaign"
    BRAND = "brand"
    SOCIAL_MEDIA = "social-media"
    EMAIL = "email"
    CONTENT = "content"
    ANALYTICS = "analytics"
    STRATEGY = "strategy"
    CREATIVE = "creative"

    @classmethod
    def parse(cls, value: Any) -> 'Category':
        """Parse a user-supplied category, raising InvalidRequestError."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidRequestError(
                'Invalid category',
                category=value,
                valid_categories=cls.values()
            )

    @classmethod
    def values(cls) -> List[str]:
        return [c.value for c in cls]


DEFAULT_CATEGORY = Category.CONTENT


class MatchType(Enum):
    """How a document ended up in a result set."""
    SEMANTIC = "semantic"
    TEXT = "text"
    FILTER = "filter"


# File extension -> content type for downloads
CONTENT_TYPES = {
    'pdf': 'application/pdf',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'txt': 'text/plain',
    'md': 'text/markdown',
    'csv': 'text/csv',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'pptx': 'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
}

SUPPORTED_FILE_TYPES = frozenset(CONTENT_TYPES)


@dataclass
class Document:
    """
    A stored document.

    The embedding is either empty (not embedded yet; lexical matching only)
    or exactly `embedding_dimension` floats long.
    """
    title: str
    content: str
    category: Category
    team: str
    project: str = 'general'
    tags: List[str] = field(default_factory=list)
    embedding: List[float] = field(default_factory=list)
    file_path: str = ''
    file_type: str = 'txt'
    file_size: int = 0
    search_count: int = 0
    is_active: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def validate(self, embedding_dimension: Optional[int] = None) -> 'Document':
        """
        Enforce record invariants at the ingestion boundary.

        Raises:
            InvalidRequestError: On the first violated invariant
        """
        if not self.title or not self.title.strip():
            raise InvalidRequestError('Document title is required')
        if not self.content or not self.content.strip():
            raise InvalidRequestError('Document content is empty', title=self.title)

        self.category = Category.parse(self.category)

        if self.file_type not in SUPPORTED_FILE_TYPES:
            raise InvalidRequestError(
                f'Unsupported file type: {self.file_type}',
                supported=sorted(SUPPORTED_FILE_TYPES)
            )
        if len(set(self.tags)) > MAX_TAGS:
            raise InvalidRequestError(f'At most {MAX_TAGS} tags allowed')
        if self.search_count < 0:
            raise InvalidRequestError('search_count cannot be negative')
        if (embedding_dimension is not None and self.embedding
                and len(self.embedding) != embedding_dimension):
            raise InvalidRequestError(
                'Embedding has the wrong dimension',
                expected=embedding_dimension,
                actual=len(self.embedding)
            )
        return self

    def preview(self, length: int = MAX_PREVIEW_LENGTH) -> str:
        """First `length` characters followed by an ellipsis."""
        return self.content[:length] + PREVIEW_SUFFIX

    def to_summary(self) -> Dict[str, Any]:
        """Projection returned after upload."""
        return {
            'id': self.id,
            'title': self.title,
            'category': self.category.value,
            'team': self.team,
            'project': self.project,
            'tags': list(self.tags),
            'fileType': self.file_type,
            'fileSize': self.file_size,
            'createdAt': _isoformat(self.created_at),
        }

    def to_dict(self, include_content: bool = True) -> Dict[str, Any]:
        """Full record for the detail endpoint. The embedding is never exposed."""
        data = self.to_summary()
        if include_content:
            data['content'] = self.content
        data.update({
            'metadata': self.metadata,
            'updatedAt': _isoformat(self.updated_at),
            'searchCount': self.search_count,
            'fileUrl': f'/api/documents/file/{self.id}',
        })
        return data


@dataclass(frozen=True)
class SearchFilters:
    """Structured-field equality filters. None means wildcard."""
    category: Optional[str] = None
    team: Optional[str] = None
    project: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.category or self.team or self.project)

    def to_dict(self) -> Dict[str, str]:
        return {
            'category': self.category or '',
            'team': self.team or '',
            'project': self.project or '',
        }


@dataclass
class ScoredCandidate:
    """A document scored against one query. Never persisted."""
    document: Document
    similarity: float
    match_type: MatchType

    @property
    def document_id(self) -> Optional[int]:
        return self.document.id


@dataclass
class SearchResult:
    """What a caller sees for each hit."""
    id: Optional[int]
    title: str
    category: str
    team: str
    project: str
    tags: List[str]
    file_type: str
    file_size: int
    created_at: Optional[str]
    similarity: float
    match_type: str
    preview: str
    search_count: int

    @classmethod
    def from_candidate(cls, candidate: ScoredCandidate, preview_length: int = MAX_PREVIEW_LENGTH) -> 'SearchResult':
        doc = candidate.document
        return cls(
            id=doc.id,
            title=doc.title,
            category=doc.category.value,
            team=doc.team,
            project=doc.project,
            tags=list(doc.tags),
            file_type=doc.file_type,
            file_size=doc.file_size,
            created_at=_isoformat(doc.created_at),
            similarity=candidate.similarity,
            match_type=candidate.match_type.value,
            preview=doc.preview(preview_length),
            search_count=doc.search_count,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'title': self.title,
            'category': self.category,
            'team': self.team,
            'project': self.project,
            'tags': self.tags,
            'fileType': self.file_type,
            'fileSize': self.file_size,
            'createdAt': self.created_at,
            'similarity': self.similarity,
            'matchType': self.match_type,
            'preview': self.preview,
            'searchCount': self.search_count,
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
