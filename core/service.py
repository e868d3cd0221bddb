"""
Document Service

The operations the HTTP layer calls: upload, search, lookups and facet
listing. Components are constructed once per process (build_service) and
passed in, so request handlers share one embedder and one categorizer.

Usage:
    from core.config import load_settings
    from core.service import build_service

    service = build_service(load_settings())
    envelope = service.search(query="brand guidelines", team="marketing")
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path, PurePath
from threading import Lock
from typing import Any, Dict, List, Optional

from .config import Settings
from .errors import InvalidRequestError, NotFoundError, safe_operation
from .models import (
    CONTENT_TYPES, SUPPORTED_FILE_TYPES, Category, Document, SearchFilters, SearchResult
)

logger = logging.getLogger(__name__)

TEAM_LENGTH = (2, 50)
PROJECT_LENGTH = (2, 100)
DEFAULT_PROJECT = 'general'


class DocumentService:
    """
    Upload and search documents.

    Search-count updates run on a single background worker after the
    results are computed; the response never waits on them.
    """

    def __init__(
        self,
        repository,
        embedder,
        searcher,
        categorizer,
        extractor,
        settings: Optional[Settings] = None,
        audit=None
    ):
        self.repository = repository
        self.embedder = embedder
        self.searcher = searcher
        self.categorizer = categorizer
        self.extractor = extractor
        self.settings = settings or Settings()
        self.audit = audit

        self._counter_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='search-count')
        self._pending: List[Future] = []
        self._pending_lock = Lock()

    # =========================================================================
    # Upload
    # =========================================================================

    def upload(
        self,
        file_path: str,
        filename: str,
        file_size: Optional[int] = None,
        team: Optional[str] = None,
        project: Optional[str] = None,
        category: Optional[str] = None,
        author: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Index a stored upload.

        Args:
            file_path: Where the uploaded file was saved
            filename: Name the client sent (may include folders)
            file_size: Bytes; read from disk when omitted
            team: Owning team; inferred from the filename path when omitted
            project: Project name, 'general' when omitted
            category: One of Category; auto-assigned when omitted

        Returns:
            Document summary dict

        Raises:
            InvalidRequestError: A field failed validation
        """
        try:
            document = self._build_document(
                file_path, filename, file_size, team, project, category, author
            )
            saved = self.repository.save(document)
        except Exception:
            # Keep no orphaned upload behind
            Path(file_path).unlink(missing_ok=True)
            raise

        logger.info(
            f"Indexed document {saved.id}: {saved.title}",
            extra={'document_id': saved.id, 'category': saved.category.value, 'team': saved.team}
        )
        if self.audit:
            self.audit.log_upload(saved.id, saved.title, saved.category.value, saved.team)

        return saved.to_summary()

    def _build_document(self, file_path, filename, file_size, team, project, category, author) -> Document:
        if not filename:
            raise InvalidRequestError('No file uploaded')

        title = PurePath(filename.replace('\\', '/')).name
        file_type = PurePath(title).suffix.lstrip('.').lower()
        if file_type not in SUPPORTED_FILE_TYPES:
            raise InvalidRequestError(
                f'Unsupported file type: {file_type or "none"}',
                supported=sorted(SUPPORTED_FILE_TYPES)
            )

        parsed_category = Category.parse(category) if category else None
        team = _validate_length('Team name', team, *TEAM_LENGTH)
        project = _validate_length('Project name', project, *PROJECT_LENGTH)

        content = self.extractor.extract(file_path, file_type, title)

        if parsed_category is None:
            parsed_category = self.categorizer.categorize(content, title)
        if team is None:
            team = self.categorizer.infer_team(filename)

        now = datetime.now()
        document = Document(
            title=title,
            content=content,
            category=parsed_category,
            team=team,
            project=project or DEFAULT_PROJECT,
            tags=self.categorizer.extract_tags(content, title),
            embedding=self.embedder.embed(content),
            file_path=str(file_path),
            file_type=file_type,
            file_size=file_size if file_size is not None else Path(file_path).stat().st_size,
            metadata={
                'author': author,
                'createdDate': now.isoformat(),
                'lastModified': now.isoformat(),
                'version': '1.0',
            },
        )
        return document.validate(self.settings.embedding_dimension)

    # =========================================================================
    # Search
    # =========================================================================

    def search(
        self,
        query: Optional[str] = None,
        category: Optional[str] = None,
        team: Optional[str] = None,
        project: Optional[str] = None,
        limit: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Hybrid search with structured filters.

        Returns:
            {'query', 'results', 'total', 'filters'}; store failures give an
            empty envelope with an 'error' field instead of raising

        Raises:
            InvalidRequestError: Bad query, limit or category
        """
        query, filters, limit = self._validate_search(query, category, team, project, limit)

        try:
            outcome = self.searcher.search(query, filters, limit)
        except InvalidRequestError:
            raise
        except Exception as e:
            logger.exception(f"Search failed, returning empty results: {e}")
            return {
                'query': query,
                'results': [],
                'total': 0,
                'filters': filters.to_dict(),
                'error': 'Search temporarily unavailable',
            }

        results = [
            SearchResult.from_candidate(c, self.settings.preview_length)
            for c in outcome.candidates
        ]

        if query:
            self._schedule_search_count([c.document_id for c in outcome.candidates])

        if self.audit:
            self.audit.log_search(query, len(results), filters.to_dict())

        return {
            'query': outcome.query,
            'results': [r.to_dict() for r in results],
            'total': len(results),
            'filters': filters.to_dict(),
        }

    def _validate_search(self, query, category, team, project, limit):
        query = (query or '').strip()
        filters = SearchFilters(
            category=Category.parse(category).value if category else None,
            team=(team or '').strip() or None,
            project=(project or '').strip() or None,
        )

        if not query and filters.is_empty():
            raise InvalidRequestError('Search query or filters required')

        if len(query) > self.settings.max_query_length:
            raise InvalidRequestError(
                f'Search query too long (max {self.settings.max_query_length} characters)'
            )

        if limit is None:
            limit = self.settings.default_limit
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise InvalidRequestError(f'Limit must be between 1 and {self.settings.max_limit}')
        if limit < 1 or limit > self.settings.max_limit:
            raise InvalidRequestError(f'Limit must be between 1 and {self.settings.max_limit}')

        return query, filters, limit

    def _schedule_search_count(self, doc_ids: List[Optional[int]]):
        ids = [doc_id for doc_id in doc_ids if doc_id is not None]
        if not ids:
            return
        future = self._counter_executor.submit(self._increment_search_counts, ids)
        with self._pending_lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(future)

    @safe_operation(default_value=0)
    def _increment_search_counts(self, ids: List[int]) -> int:
        return self.repository.increment_search_count(ids)

    def flush(self, timeout: Optional[float] = None):
        """Wait for outstanding search-count updates."""
        with self._pending_lock:
            pending = list(self._pending)
        wait(pending, timeout=timeout)

    # =========================================================================
    # Lookups
    # =========================================================================

    def _get_active(self, doc_id) -> Document:
        try:
            doc_id = int(doc_id)
        except (TypeError, ValueError):
            raise InvalidRequestError('Invalid ID format', id=doc_id)

        document = self.repository.find_by_id(doc_id)
        if document is None:
            raise NotFoundError('Document not found', id=doc_id)
        return document

    def get_document(self, doc_id) -> Dict[str, Any]:
        """Full document record (without embedding)."""
        return self._get_active(doc_id).to_dict()

    def preview_document(self, doc_id) -> Dict[str, Any]:
        document = self._get_active(doc_id)
        data = document.to_summary()
        data['content'] = document.content
        return data

    def get_file(self, doc_id) -> Dict[str, Any]:
        """Location and content type of the stored upload."""
        document = self._get_active(doc_id)
        path = Path(document.file_path)
        if not document.file_path or not path.is_file():
            raise NotFoundError('File not found', id=document.id)
        return {
            'path': path,
            'filename': document.title,
            'content_type': CONTENT_TYPES.get(document.file_type, 'application/octet-stream'),
        }

    def deactivate(self, doc_id) -> None:
        document = self._get_active(doc_id)
        self.repository.deactivate(document.id)
        logger.info(f"Deactivated document {document.id}")

    def get_categories(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Category, team and project counts over active documents.

        An empty store lists every category with a zero count.
        """
        facets = self.repository.get_facets()
        if not facets['categories']:
            facets['categories'] = [{'name': name, 'count': 0} for name in Category.values()]
        return facets

    # =========================================================================
    # Maintenance
    # =========================================================================

    def reindex_missing_embeddings(self) -> int:
        """Embed every active document that has no embedding yet."""
        count = 0
        for document in self.repository.find_missing_embeddings():
            self.repository.update_embedding(document.id, self.embedder.embed(document.content))
            count += 1
        logger.info(f"Embedded {count} documents")
        return count

    def close(self):
        self._counter_executor.shutdown(wait=True)
        if hasattr(self.embedder, 'close'):
            self.embedder.close()


def _validate_length(label: str, value: Optional[str], min_len: int, max_len: int) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) < min_len or len(value) > max_len:
        raise InvalidRequestError(f'{label} must be between {min_len} and {max_len} characters')
    return value


def build_service(settings: Settings, audit=None) -> DocumentService:
    """Construct the process-wide service and its components."""
    from database.repository import DocumentRepository
    from enrichment.categorizer import DocumentCategorizer
    from enrichment.text_extraction import TextExtractor
    from search.embeddings import create_embedder
    from search.hybrid_search import HybridSearcher

    repository = DocumentRepository(settings.db_path)
    embedder = create_embedder(settings)
    searcher = HybridSearcher.from_settings(repository, embedder, settings)

    return DocumentService(
        repository=repository,
        embedder=embedder,
        searcher=searcher,
        categorizer=DocumentCategorizer(),
        extractor=TextExtractor(),
        settings=settings,
        audit=audit,
    )
