"""
SQLite Document Repository for DocSearch

Provides indexed storage with:
- Structured filtering on category/team/project
- Case-insensitive substring search over title, content and tags
- Atomic search counters
- Soft deletion via is_active

Usage:
    from database.repository import DocumentRepository

    repo = DocumentRepository('data/docsearch.db')
    saved = repo.save(document)
    hits = repo.text_search("q4 launch", SearchFilters(team="marketing"))
"""

import json
import sqlite3
import logging
from dataclasses import replace
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from contextlib import contextmanager

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from core.errors import StoreError, SearchCountUpdateError
from core.models import Category, Document, SearchFilters

logger = logging.getLogger(__name__)


# =============================================================================
# Schema
# =============================================================================

SCHEMA = '''
CREATE TABLE IF NOT EXISTS documents (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    file_path TEXT,
    file_type TEXT NOT NULL,
    file_size INTEGER DEFAULT 0,
    category TEXT NOT NULL,
    team TEXT NOT NULL,
    project TEXT DEFAULT 'general',
    tags TEXT DEFAULT '[]',  -- JSON array
    embedding TEXT DEFAULT '[]',  -- JSON array of floats, empty or fixed length
    metadata TEXT DEFAULT '{}',  -- JSON object
    search_count INTEGER DEFAULT 0 CHECK (search_count >= 0),
    is_active BOOLEAN DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_documents_category_team ON documents(category, team);
CREATE INDEX IF NOT EXISTS idx_documents_project ON documents(project);
CREATE INDEX IF NOT EXISTS idx_documents_created ON documents(created_at);
CREATE INDEX IF NOT EXISTS idx_documents_active ON documents(is_active);
'''

JSON_FIELDS = ('tags', 'embedding', 'metadata')


def _py_lower(value):
    return value.lower() if isinstance(value, str) else value


def store_operation(func):
    """Translate sqlite3 errors raised by a repository method into StoreError."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except sqlite3.Error as e:
            logger.error(f"Store operation {func.__name__} failed: {e}")
            raise StoreError(f"{func.__name__} failed: {e}", operation=func.__name__)
    return wrapper


class DocumentRepository:
    """
    Repository for document storage and retrieval.

    Opens a fresh connection per operation so it can be shared across
    request threads.
    """

    def __init__(self, db_path: str = None, busy_timeout: float = 5.0):
        """
        Initialize the repository.

        Args:
            db_path: Path to SQLite database. Defaults to data/docsearch.db
            busy_timeout: Seconds a connection waits on a locked database
        """
        if db_path is None:
            db_path = Path(__file__).parent.parent / 'data' / 'docsearch.db'

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout = busy_timeout

        self._init_db()

    def _init_db(self):
        """Initialize the database schema."""
        with self._connection() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connection(self):
        """Get a database connection with proper cleanup."""
        conn = sqlite3.connect(str(self.db_path), timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        # Unicode-aware lower(); SQLite's builtin only folds ASCII
        conn.create_function('py_lower', 1, _py_lower, deterministic=True)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # =========================================================================
    # CRUD Operations
    # =========================================================================

    @store_operation
    def save(self, document: Document) -> Document:
        """
        Insert a new document or update an existing one.

        Args:
            document: Document to persist; id is assigned on insert

        Returns:
            Copy of the document with id and timestamps set
        """
        now = datetime.now()
        created_at = document.created_at or now

        values = {
            'title': document.title,
            'content': document.content,
            'file_path': document.file_path,
            'file_type': document.file_type,
            'file_size': document.file_size,
            'category': document.category.value,
            'team': document.team,
            'project': document.project,
            'tags': json.dumps(list(document.tags)),
            'embedding': json.dumps(list(document.embedding)),
            'metadata': json.dumps(document.metadata, default=str),
            'search_count': document.search_count,
            'is_active': 1 if document.is_active else 0,
            'created_at': created_at.isoformat(),
            'updated_at': now.isoformat(),
        }

        with self._connection() as conn:
            if document.id is None:
                columns = ', '.join(values)
                placeholders = ', '.join('?' for _ in values)
                cursor = conn.execute(
                    f'INSERT INTO documents ({columns}) VALUES ({placeholders})',
                    list(values.values())
                )
                doc_id = cursor.lastrowid
            else:
                assignments = ', '.join(f'{col} = ?' for col in values)
                conn.execute(
                    f'UPDATE documents SET {assignments} WHERE id = ?',
                    list(values.values()) + [document.id]
                )
                doc_id = document.id

        return replace(document, id=doc_id, created_at=created_at, updated_at=now)

    @store_operation
    def find_by_id(self, doc_id: int, include_inactive: bool = False) -> Optional[Document]:
        """
        Get a document by ID.

        Args:
            doc_id: Document ID
            include_inactive: Also return soft-deleted documents

        Returns:
            Document or None
        """
        sql = 'SELECT * FROM documents WHERE id = ?'
        if not include_inactive:
            sql += ' AND is_active = 1'

        with self._connection() as conn:
            row = conn.execute(sql, (doc_id,)).fetchone()

        return self._row_to_document(row) if row else None

    @store_operation
    def deactivate(self, doc_id: int) -> bool:
        """
        Soft-delete a document.

        Returns:
            True if an active document was deactivated
        """
        with self._connection() as conn:
            cursor = conn.execute(
                'UPDATE documents SET is_active = 0, updated_at = ? '
                'WHERE id = ? AND is_active = 1',
                (datetime.now().isoformat(), doc_id)
            )
            return cursor.rowcount > 0

    @store_operation
    def update_embedding(self, doc_id: int, embedding: List[float]) -> bool:
        """Replace a document's stored embedding."""
        with self._connection() as conn:
            cursor = conn.execute(
                'UPDATE documents SET embedding = ?, updated_at = ? WHERE id = ?',
                (json.dumps(list(embedding)), datetime.now().isoformat(), doc_id)
            )
            return cursor.rowcount > 0

    @store_operation
    def count(self, filters: Optional[SearchFilters] = None) -> int:
        """Count active documents matching the filters."""
        where_clause, params = self._build_where(filters)

        with self._connection() as conn:
            row = conn.execute(
                f'SELECT COUNT(*) FROM documents d WHERE {where_clause}', params
            ).fetchone()
            return row[0]

    # =========================================================================
    # Queries
    # =========================================================================

    @store_operation
    def find_active(
        self,
        filters: Optional[SearchFilters] = None,
        limit: Optional[int] = None
    ) -> List[Document]:
        """
        Active documents matching structured filters, newest first.

        Args:
            filters: Equality filters; unset fields match anything
            limit: Optional maximum number of rows

        Returns:
            List of documents
        """
        where_clause, params = self._build_where(filters)
        sql = f'''
            SELECT * FROM documents d
            WHERE {where_clause}
            ORDER BY d.created_at DESC, d.id DESC
        '''
        if limit is not None:
            sql += ' LIMIT ?'
            params.append(limit)

        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        return [self._row_to_document(row) for row in rows]

    @store_operation
    def text_search(
        self,
        query: str,
        filters: Optional[SearchFilters] = None,
        limit: Optional[int] = None
    ) -> List[Document]:
        """
        Case-insensitive substring match on title, content or any tag.

        Args:
            query: Raw query text
            filters: Equality filters
            limit: Optional maximum number of rows

        Returns:
            Matching active documents, newest first
        """
        if not query or not query.strip():
            return []

        needle = query.lower()
        where_clause, params = self._build_where(filters)
        sql = f'''
            SELECT * FROM documents d
            WHERE {where_clause}
              AND (
                instr(py_lower(d.title), ?) > 0
                OR instr(py_lower(d.content), ?) > 0
                OR EXISTS (
                    SELECT 1 FROM json_each(d.tags) t
                    WHERE instr(py_lower(t.value), ?) > 0
                )
              )
            ORDER BY d.created_at DESC, d.id DESC
        '''
        params.extend([needle, needle, needle])
        if limit is not None:
            sql += ' LIMIT ?'
            params.append(limit)

        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        return [self._row_to_document(row) for row in rows]

    @store_operation
    def find_missing_embeddings(self) -> List[Document]:
        """Active documents that have not been embedded yet."""
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM documents "
                "WHERE is_active = 1 AND (embedding IS NULL OR embedding = '[]') "
                "ORDER BY id"
            ).fetchall()

        return [self._row_to_document(row) for row in rows]

    # =========================================================================
    # Counters
    # =========================================================================

    def increment_search_count(self, doc_ids: Iterable[int]) -> int:
        """
        Add 1 to search_count for each distinct id, in one statement.

        Args:
            doc_ids: Document ids that appeared in a result list

        Returns:
            Number of rows updated

        Raises:
            SearchCountUpdateError: If the update fails after retries
        """
        ids = sorted({doc_id for doc_id in doc_ids if doc_id is not None})
        if not ids:
            return 0

        try:
            return self._increment(ids)
        except sqlite3.Error as e:
            raise SearchCountUpdateError(f"Could not update search counts: {e}", ids=ids)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(sqlite3.OperationalError),
        reraise=True
    )
    def _increment(self, ids: List[int]) -> int:
        placeholders = ', '.join('?' for _ in ids)
        with self._connection() as conn:
            cursor = conn.execute(
                f'UPDATE documents SET search_count = search_count + 1 '
                f'WHERE id IN ({placeholders})',
                ids
            )
            return cursor.rowcount

    # =========================================================================
    # Statistics
    # =========================================================================

    @store_operation
    def get_facets(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Counts of active documents per category, team and project.

        Returns:
            {'categories': [...], 'teams': [...], 'projects': [...]}, each a
            list of {'name', 'count'} sorted by count descending
        """
        facets = {}
        with self._connection() as conn:
            for key, column in (('categories', 'category'), ('teams', 'team'), ('projects', 'project')):
                rows = conn.execute(f'''
                    SELECT {column} AS name, COUNT(*) AS count
                    FROM documents
                    WHERE is_active = 1
                    GROUP BY {column}
                    ORDER BY count DESC, name ASC
                ''').fetchall()
                facets[key] = [{'name': row['name'], 'count': row['count']} for row in rows]

        return facets

    # =========================================================================
    # Helpers
    # =========================================================================

    def _build_where(self, filters: Optional[SearchFilters]):
        """WHERE clause for active documents plus equality filters."""
        where_parts = ['d.is_active = 1']
        params: List[Any] = []

        if filters:
            if filters.category:
                where_parts.append('d.category = ?')
                params.append(filters.category)
            if filters.team:
                where_parts.append('d.team = ?')
                params.append(filters.team)
            if filters.project:
                where_parts.append('d.project = ?')
                params.append(filters.project)

        return ' AND '.join(where_parts), params

    def _row_to_document(self, row: sqlite3.Row) -> Document:
        """Convert a database row to a Document with JSON parsing."""
        data = dict(row)

        for field_name in JSON_FIELDS:
            raw = data.get(field_name)
            try:
                data[field_name] = json.loads(raw) if raw else None
            except (json.JSONDecodeError, TypeError):
                logger.warning(f"Corrupt {field_name} on document {data.get('id')}")
                data[field_name] = None

        return Document(
            id=data['id'],
            title=data['title'],
            content=data['content'],
            category=Category(data['category']),
            team=data['team'],
            project=data['project'] or 'general',
            tags=data['tags'] or [],
            embedding=data['embedding'] or [],
            file_path=data['file_path'] or '',
            file_type=data['file_type'],
            file_size=data['file_size'] or 0,
            search_count=data['search_count'] or 0,
            is_active=bool(data['is_active']),
            metadata=data['metadata'] or {},
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
        )


# =============================================================================
# CLI
# =============================================================================

if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description="DocSearch Database Management")
    parser.add_argument('action', choices=['stats', 'search', 'deactivate'],
                        help="Action to perform")
    parser.add_argument('--query', '-q', help="Search query")
    parser.add_argument('--id', type=int, help="Document id")
    parser.add_argument('--db', help="Database path")

    args = parser.parse_args()

    repo = DocumentRepository(args.db)

    if args.action == 'stats':
        stats = repo.get_facets()
        stats['total'] = repo.count()
        print(json.dumps(stats, indent=2))

    elif args.action == 'search':
        if not args.query:
            print("Error: --query required for search")
        else:
            for doc in repo.text_search(args.query, limit=10):
                print(f"- [{doc.id}] {doc.title} ({doc.category.value}, {doc.team})")

    elif args.action == 'deactivate':
        if args.id is None:
            print("Error: --id required for deactivate")
        else:
            print("Deactivated" if repo.deactivate(args.id) else "No active document with that id")
