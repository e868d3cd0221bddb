"""
Hybrid Search for DocSearch

Combines semantic similarity (embeddings) and lexical substring matching
into one ranked, deduplicated list.

Ranking policy:
- Filter-only requests return every matching document, newest first,
  with similarity 1.0.
- Query requests run a semantic pass and a lexical pass over the same
  filtered candidates, then fuse them. A document found by both keeps its
  semantic entry: lexical never overrides a semantic hit.

Usage:
    from search.hybrid_search import HybridSearcher

    searcher = HybridSearcher(repo, embedder)
    for candidate in searcher.rank("q4 launch plan", SearchFilters(team="marketing"), limit=10):
        print(f"{candidate.similarity:.2f} {candidate.match_type.value} {candidate.document.title}")
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from core.errors import InvalidRequestError
from core.models import Document, MatchType, ScoredCandidate, SearchFilters
from .query_enhancer import enhance_query
from .similarity import find_similar_documents

logger = logging.getLogger(__name__)

# Similarity assigned to lexical-only matches
TEXT_MATCH_SIMILARITY = 0.5
FILTER_MATCH_SIMILARITY = 1.0


@dataclass
class RankingOutcome:
    """Ranked candidates plus the query text that was actually embedded."""
    query: str
    candidates: List[ScoredCandidate] = field(default_factory=list)


def fuse_results(
    semantic: List[ScoredCandidate],
    lexical: List[ScoredCandidate],
    limit: int
) -> List[ScoredCandidate]:
    """
    Merge semantic and lexical candidates.

    Semantic candidates (already sorted) are truncated to `limit` and go in
    first; lexical candidates are added only for ids not seen yet. The
    merged list is stably sorted by similarity and truncated to `limit`.

    Args:
        semantic: Semantic matches, best first
        lexical: Lexical matches in store order
        limit: Maximum results

    Returns:
        Deduplicated candidates, best first
    """
    merged: Dict[object, ScoredCandidate] = {}

    for candidate in semantic[:limit]:
        merged.setdefault(_dedup_key(candidate.document), candidate)

    for candidate in lexical:
        key = _dedup_key(candidate.document)
        if key not in merged:
            merged[key] = candidate

    # sorted() is stable, so ties keep insertion order
    ranked = sorted(merged.values(), key=lambda c: c.similarity, reverse=True)
    return ranked[:limit]


def _dedup_key(document: Document):
    return document.id if document.id is not None else ('unsaved', id(document))


class HybridSearcher:
    """
    Hybrid search combining semantic and lexical matching.

    The store supplies candidates (find_active) and lexical matches
    (text_search); the embedder turns the expanded query into a vector.
    """

    def __init__(
        self,
        store,
        embedder,
        semantic_threshold: float = 0.5,
        semantic_only_threshold: float = 0.3,
        lexical_fallback: bool = True
    ):
        """
        Initialize hybrid searcher.

        Args:
            store: Document store (DocumentRepository or compatible)
            embedder: Object with embed(text) -> vector
            semantic_threshold: Minimum similarity when the lexical pass also runs
            semantic_only_threshold: Minimum similarity when semantic is the only signal
            lexical_fallback: Run the lexical pass
        """
        self.store = store
        self.embedder = embedder
        self.semantic_threshold = semantic_threshold
        self.semantic_only_threshold = semantic_only_threshold
        self.lexical_fallback = lexical_fallback

    @classmethod
    def from_settings(cls, store, embedder, settings) -> 'HybridSearcher':
        return cls(
            store,
            embedder,
            semantic_threshold=settings.semantic_threshold,
            semantic_only_threshold=settings.semantic_only_threshold,
            lexical_fallback=settings.lexical_fallback
        )

    @property
    def threshold(self) -> float:
        """Similarity cut-off for the current mode."""
        return self.semantic_threshold if self.lexical_fallback else self.semantic_only_threshold

    def rank(
        self,
        query: Optional[str],
        filters: Optional[SearchFilters] = None,
        limit: int = 20
    ) -> List[ScoredCandidate]:
        """
        Rank documents for a query.

        Args:
            query: Free-text query; empty means filter-only
            filters: Structured equality filters
            limit: Maximum results

        Returns:
            At most `limit` candidates, best first

        Raises:
            InvalidRequestError: Empty query and no filters
        """
        return self.search(query, filters, limit).candidates

    def search(
        self,
        query: Optional[str],
        filters: Optional[SearchFilters] = None,
        limit: int = 20
    ) -> RankingOutcome:
        """Like rank(), also returning the expanded query."""
        filters = filters or SearchFilters()
        query = (query or '').strip()

        if not query:
            if filters.is_empty():
                raise InvalidRequestError('Search query or filters required')
            return RankingOutcome(query='', candidates=self._filter_only(filters, limit))

        enhanced = enhance_query(query)
        query_vec = self.embedder.embed(enhanced)

        candidates = self.store.find_active(filters)
        semantic = self._semantic_pass(query_vec, candidates)

        lexical: List[ScoredCandidate] = []
        if self.lexical_fallback:
            lexical = [
                ScoredCandidate(doc, TEXT_MATCH_SIMILARITY, MatchType.TEXT)
                for doc in self.store.text_search(query, filters)
            ]

        ranked = fuse_results(semantic, lexical, limit)

        logger.debug(
            f"Ranked '{query[:50]}': {len(candidates)} candidates, "
            f"{len(semantic)} semantic, {len(lexical)} lexical, {len(ranked)} returned "
            f"(threshold {self.threshold})"
        )

        return RankingOutcome(query=enhanced, candidates=ranked)

    def _filter_only(self, filters: SearchFilters, limit: int) -> List[ScoredCandidate]:
        """Every matching document, newest first."""
        documents = self.store.find_active(filters, limit=limit)
        return [
            ScoredCandidate(doc, FILTER_MATCH_SIMILARITY, MatchType.FILTER)
            for doc in documents
        ]

    def _semantic_pass(self, query_vec, candidates: List[Document]) -> List[ScoredCandidate]:
        """Candidates at or above the threshold, best first."""
        return [
            ScoredCandidate(doc, score, MatchType.SEMANTIC)
            for doc, score in find_similar_documents(query_vec, candidates, self.threshold)
        ]
