"""
Search System for DocSearch

Provides:
- Tiered embeddings (remote API, local model, hash fallback)
- Hybrid search fusing semantic similarity with substring matching
- Query expansion for marketing vocabulary

Usage:
    from search import create_embedder, HybridSearcher

    embedder = create_embedder(settings)
    searcher = HybridSearcher(repo, embedder)
    candidates = searcher.rank("brand guidelines", limit=10)
"""

from .embeddings import EmbeddingChain, create_embedder, preprocess_text
from .hybrid_search import HybridSearcher, fuse_results
from .query_enhancer import enhance_query
from .similarity import cosine_similarity, find_similar_documents

__all__ = [
    'EmbeddingChain',
    'create_embedder',
    'preprocess_text',
    'HybridSearcher',
    'fuse_results',
    'enhance_query',
    'cosine_similarity',
    'find_similar_documents',
]
