"""
Tests for Hybrid Search

Ranks against a real temp-file repository with a stub embedder whose
query vector is always e_0, so stored embeddings fix each similarity.
"""

from datetime import datetime, timedelta
from pathlib import Path
import sys
from unittest.mock import Mock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import InvalidRequestError
from core.models import Category, Document, MatchType, ScoredCandidate, SearchFilters
from search.hybrid_search import HybridSearcher, fuse_results

from sample_data import generate_documents, unit_vector, vector_with_similarity

DIM = 4


class StubEmbedder:
    def __init__(self):
        self.texts = []

    def embed(self, text):
        self.texts.append(text)
        return unit_vector(0, DIM)


@pytest.fixture
def embedder():
    return StubEmbedder()


@pytest.fixture
def searcher(repo, embedder):
    return HybridSearcher(repo, embedder)


def candidate(doc_id, similarity, match_type=MatchType.SEMANTIC):
    doc = Document(title=f'{doc_id}.txt', content='x', category=Category.CONTENT, team='t', id=doc_id)
    return ScoredCandidate(doc, similarity, match_type)


class TestFuseResults:
    """Tests for fusion of the two passes."""

    def test_semantic_entry_wins(self):
        semantic = [candidate(1, 0.9)]
        lexical = [candidate(1, 0.5, MatchType.TEXT), candidate(2, 0.5, MatchType.TEXT)]

        fused = fuse_results(semantic, lexical, limit=10)

        assert [(c.document_id, c.match_type) for c in fused] == [
            (1, MatchType.SEMANTIC),
            (2, MatchType.TEXT),
        ]
        assert fused[0].similarity == 0.9

    def test_semantic_below_lexical_similarity_sorts_after(self):
        semantic = [candidate(1, 0.3)]
        lexical = [candidate(2, 0.5, MatchType.TEXT)]

        fused = fuse_results(semantic, lexical, limit=10)

        assert [c.document_id for c in fused] == [2, 1]

    def test_ties_keep_insertion_order(self):
        semantic = [candidate(3, 0.5)]
        lexical = [candidate(1, 0.5, MatchType.TEXT), candidate(2, 0.5, MatchType.TEXT)]

        assert [c.document_id for c in fuse_results(semantic, lexical, limit=10)] == [3, 1, 2]

    def test_truncates_to_limit(self):
        semantic = [candidate(i, 0.9 - i * 0.01) for i in range(10)]
        lexical = [candidate(i, 0.5, MatchType.TEXT) for i in range(10, 20)]

        fused = fuse_results(semantic, lexical, limit=5)

        assert [c.document_id for c in fused] == [0, 1, 2, 3, 4]


class TestQuerySearch:
    """Tests for query ranking."""

    def test_lexical_never_overrides_semantic(self, repo, searcher, make_document):
        a = repo.save(make_document('a.txt', 'The launch plan for Q4',
                                    embedding=vector_with_similarity(0.9, DIM)))
        b = repo.save(make_document('b.txt', 'Notes from the launch party'))

        results = searcher.rank('launch', limit=10)

        assert [c.document_id for c in results] == [a.id, b.id]
        assert results[0].match_type == MatchType.SEMANTIC
        assert results[0].similarity == pytest.approx(0.9)
        assert results[1].match_type == MatchType.TEXT
        assert results[1].similarity == 0.5

    def test_no_duplicates(self, repo, searcher, make_document):
        for i in range(5):
            repo.save(make_document(f'{i}.txt', 'launch', embedding=unit_vector(0, DIM)))

        results = searcher.rank('launch', limit=20)
        ids = [c.document_id for c in results]

        assert len(ids) == 5
        assert len(set(ids)) == 5

    def test_limit_respected(self, repo, searcher, make_document):
        for i in range(20):
            repo.save(make_document(f'{i}.txt', 'launch', embedding=unit_vector(0, DIM)))

        results = searcher.rank('launch', limit=5)

        assert len(results) == 5
        assert len({c.document_id for c in results}) == 5

    def test_below_threshold_excluded(self, repo, searcher, make_document):
        repo.save(make_document('weak.txt', 'unrelated', embedding=vector_with_similarity(0.4, DIM)))
        assert searcher.rank('launch') == []

    def test_semantic_only_threshold(self, repo, embedder, make_document):
        weak = repo.save(make_document('weak.txt', 'unrelated', embedding=vector_with_similarity(0.4, DIM)))
        searcher = HybridSearcher(repo, embedder, lexical_fallback=False)

        results = searcher.rank('launch')

        assert searcher.threshold == 0.3
        assert [c.document_id for c in results] == [weak.id]

    def test_semantic_only_skips_lexical(self, repo, embedder, make_document):
        repo.save(make_document('text.txt', 'launch'))
        searcher = HybridSearcher(repo, embedder, lexical_fallback=False)

        assert searcher.rank('launch') == []

    def test_filters_apply_to_both_passes(self, repo, searcher, make_document):
        repo.save(make_document('mine.txt', 'launch', team='marketing', embedding=unit_vector(0, DIM)))
        repo.save(make_document('theirs.txt', 'launch', team='sales', embedding=unit_vector(0, DIM)))

        results = searcher.rank('launch', SearchFilters(team='marketing'))

        assert [c.document.title for c in results] == ['mine.txt']

    def test_query_is_expanded_before_embedding(self, searcher, embedder):
        outcome = searcher.search('brand', SearchFilters(team='any'))

        assert outcome.query == 'brand brand branding identity logo'
        assert embedder.texts == ['brand brand branding identity logo']

    def test_lexical_uses_raw_query(self, repo, embedder):
        store = Mock()
        store.find_active.return_value = []
        store.text_search.return_value = []
        HybridSearcher(store, embedder).rank('brand')

        store.text_search.assert_called_once_with('brand', SearchFilters())


class TestFilterOnly:
    """Tests for requests without a query."""

    def test_newest_first_with_similarity_one(self, repo, searcher, make_document):
        start = datetime(2024, 1, 1)
        for i, data in enumerate(generate_documents(3)):
            repo.save(make_document(
                data['title'], data['content'], team='marketing',
                created_at=start + timedelta(days=i)
            ))

        results = searcher.rank('', SearchFilters(team='marketing'))

        assert [c.document.created_at for c in results] == [
            start + timedelta(days=2), start + timedelta(days=1), start
        ]
        assert all(c.similarity == 1.0 for c in results)
        assert all(c.match_type == MatchType.FILTER for c in results)

    def test_filter_only_limit(self, repo, searcher, make_document):
        for i in range(8):
            repo.save(make_document(f'{i}.txt', team='marketing'))

        assert len(searcher.rank(None, SearchFilters(team='marketing'), limit=3)) == 3

    def test_filter_only_does_not_embed(self, searcher, embedder):
        searcher.rank('', SearchFilters(category='brand'))
        assert embedder.texts == []

    @pytest.mark.parametrize("query", [None, '', '   '])
    def test_empty_query_without_filters_rejected(self, searcher, query):
        with pytest.raises(InvalidRequestError):
            searcher.rank(query, SearchFilters())
