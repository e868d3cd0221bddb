"""
Tests for the SQLite Document Repository
"""

import threading
from datetime import datetime
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import SearchCountUpdateError
from core.models import Category, SearchFilters
from database.repository import DocumentRepository


class TestSaveAndFind:
    """Tests for CRUD operations."""

    def test_save_assigns_id_and_timestamps(self, repo, make_document):
        saved = repo.save(make_document(tags=['a', 'b'], embedding=[0.1, 0.2]))

        assert saved.id is not None
        assert saved.created_at is not None
        assert saved.updated_at is not None

        loaded = repo.find_by_id(saved.id)
        assert loaded.title == saved.title
        assert loaded.tags == ['a', 'b']
        assert loaded.embedding == [0.1, 0.2]
        assert loaded.category == Category.CONTENT

    def test_save_existing_updates(self, repo, make_document):
        saved = repo.save(make_document(title='old.txt'))
        saved.title = 'new.txt'
        repo.save(saved)

        assert repo.find_by_id(saved.id).title == 'new.txt'
        assert repo.count() == 1

    def test_find_missing(self, repo):
        assert repo.find_by_id(12345) is None

    def test_deactivate_hides_document(self, repo, make_document):
        saved = repo.save(make_document())

        assert repo.deactivate(saved.id) is True
        assert repo.find_by_id(saved.id) is None
        assert repo.find_by_id(saved.id, include_inactive=True) is not None
        assert repo.deactivate(saved.id) is False

    def test_metadata_round_trip(self, repo, make_document):
        saved = repo.save(make_document(metadata={'author': 'kim', 'version': '1.0'}))
        assert repo.find_by_id(saved.id).metadata == {'author': 'kim', 'version': '1.0'}


class TestQueries:
    """Tests for filtered and lexical queries."""

    @pytest.fixture
    def populated(self, repo, make_document):
        repo.save(make_document('a.txt', 'Alpha launch plan', Category.CAMPAIGN, team='marketing',
                                created_at=datetime(2024, 1, 1)))
        repo.save(make_document('b.txt', 'Brand logo', Category.BRAND, team='creative',
                                created_at=datetime(2024, 1, 2)))
        repo.save(make_document('c.txt', 'Café menu', Category.CONTENT, team='marketing',
                                project='bistro', tags=['Menu', 'Food'],
                                created_at=datetime(2024, 1, 3)))
        return repo

    def test_find_active_newest_first(self, populated):
        titles = [d.title for d in populated.find_active()]
        assert titles == ['c.txt', 'b.txt', 'a.txt']

    def test_find_active_filters(self, populated):
        docs = populated.find_active(SearchFilters(team='marketing'))
        assert [d.title for d in docs] == ['c.txt', 'a.txt']

        docs = populated.find_active(SearchFilters(team='marketing', project='bistro'))
        assert [d.title for d in docs] == ['c.txt']

        docs = populated.find_active(SearchFilters(category='brand'))
        assert [d.title for d in docs] == ['b.txt']

    def test_find_active_limit(self, populated):
        assert len(populated.find_active(limit=2)) == 2

    def test_text_search_case_insensitive(self, populated):
        assert [d.title for d in populated.text_search('LAUNCH')] == ['a.txt']

    def test_text_search_unicode_case(self, populated):
        assert [d.title for d in populated.text_search('CAFÉ')] == ['c.txt']

    def test_text_search_matches_tags(self, populated):
        assert [d.title for d in populated.text_search('food')] == ['c.txt']

    def test_text_search_matches_title(self, populated):
        assert [d.title for d in populated.text_search('b.txt')] == ['b.txt']

    def test_text_search_respects_filters(self, populated):
        assert populated.text_search('logo', SearchFilters(team='marketing')) == []

    def test_text_search_empty_query(self, populated):
        assert populated.text_search('   ') == []

    def test_text_search_skips_inactive(self, populated):
        doc = populated.text_search('logo')[0]
        populated.deactivate(doc.id)
        assert populated.text_search('logo') == []

    def test_count(self, populated):
        assert populated.count() == 3
        assert populated.count(SearchFilters(team='creative')) == 1


class TestSearchCount:
    """Tests for the atomic search counter."""

    def test_increment_distinct_ids(self, repo, make_document):
        first = repo.save(make_document('1.txt'))
        second = repo.save(make_document('2.txt'))

        updated = repo.increment_search_count([first.id, first.id, second.id])

        assert updated == 2
        assert repo.find_by_id(first.id).search_count == 1
        assert repo.find_by_id(second.id).search_count == 1

    def test_empty_ids(self, repo):
        assert repo.increment_search_count([]) == 0
        assert repo.increment_search_count([None]) == 0

    def test_concurrent_increments_not_lost(self, repo, make_document):
        doc = repo.save(make_document())

        threads = [
            threading.Thread(target=repo.increment_search_count, args=([doc.id],))
            for _ in range(10)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert repo.find_by_id(doc.id).search_count == 10

    def test_failure_raises_count_error(self, tmp_path, make_document):
        repo = DocumentRepository(tmp_path / 'broken.db')
        doc = repo.save(make_document())
        with repo._connection() as conn:
            conn.execute('DROP TABLE documents')

        with pytest.raises(SearchCountUpdateError):
            repo.increment_search_count([doc.id])


class TestMaintenance:
    """Tests for embedding maintenance and facets."""

    def test_missing_embeddings(self, repo, make_document):
        missing = repo.save(make_document('missing.txt'))
        repo.save(make_document('embedded.txt', embedding=[1.0, 0.0]))

        assert [d.id for d in repo.find_missing_embeddings()] == [missing.id]

        repo.update_embedding(missing.id, [0.0, 1.0])
        assert repo.find_missing_embeddings() == []
        assert repo.find_by_id(missing.id).embedding == [0.0, 1.0]

    def test_facets(self, repo, make_document):
        repo.save(make_document('1.txt', category=Category.BRAND, team='creative'))
        repo.save(make_document('2.txt', category=Category.BRAND, team='marketing'))
        repo.save(make_document('3.txt', category=Category.EMAIL, team='marketing', project='promo'))

        facets = repo.get_facets()

        assert facets['categories'] == [{'name': 'brand', 'count': 2}, {'name': 'email', 'count': 1}]
        assert facets['teams'] == [{'name': 'marketing', 'count': 2}, {'name': 'creative', 'count': 1}]
        assert facets['projects'] == [{'name': 'general', 'count': 2}, {'name': 'promo', 'count': 1}]

    def test_facets_empty(self, repo):
        assert repo.get_facets() == {'categories': [], 'teams': [], 'projects': []}
