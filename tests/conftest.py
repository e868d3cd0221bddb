"""
Shared fixtures for DocSearch tests.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent / 'fixtures'))

from core.config import Settings
from core.models import Category, Document
from core.service import DocumentService
from database.repository import DocumentRepository
from enrichment.categorizer import DocumentCategorizer
from enrichment.text_extraction import TextExtractor
from search.embeddings import EmbeddingChain, HashEmbeddingTier
from search.hybrid_search import HybridSearcher


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a temp directory, local model and remote tier off."""
    return Settings(
        db_path=str(tmp_path / 'test.db'),
        upload_dir=str(tmp_path / 'uploads'),
        gemini_api_key=None,
        enable_local_model=False,
    )


@pytest.fixture
def repo(tmp_path):
    return DocumentRepository(tmp_path / 'test.db')


@pytest.fixture
def make_document():
    """Factory for Document objects with sensible defaults."""
    def _make(title='doc.txt', content='Some content', category=Category.CONTENT, **kwargs):
        kwargs.setdefault('team', 'marketing')
        return Document(title=title, content=content, category=category, **kwargs)
    return _make


@pytest.fixture
def hash_embedder(settings):
    return EmbeddingChain([HashEmbeddingTier(settings.embedding_dimension)],
                          dimension=settings.embedding_dimension)


@pytest.fixture
def service(settings, repo, hash_embedder):
    """DocumentService over a temp database with hash-only embeddings."""
    svc = DocumentService(
        repository=repo,
        embedder=hash_embedder,
        searcher=HybridSearcher.from_settings(repo, hash_embedder, settings),
        categorizer=DocumentCategorizer(),
        extractor=TextExtractor(),
        settings=settings,
    )
    yield svc
    svc.close()
