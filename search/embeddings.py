"""
Tiered Embedding Generation

Turns text into a fixed-length vector. Tiers are tried in order and a
failing tier hands over to the next one, so embed() always returns a
vector of the configured dimension:

1. Remote provider (Google Generative Language embedContent)
2. Local sentence-transformers model, loaded once per process
3. Deterministic hash-based vector (never fails, no I/O)

Usage:
    from search.embeddings import create_embedder

    embedder = create_embedder(settings)
    vec = embedder.embed("Q4 campaign brief")
    assert len(vec) == settings.embedding_dimension
"""

import math
import re
import threading
import time
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import requests

from core.errors import EmbeddingTierError

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 384
DEFAULT_MAX_CHARS = 512

_WHITESPACE = re.compile(r'\s+')
_DISALLOWED = re.compile(r'[^\w\s.,!?-]', re.ASCII)


def preprocess_text(text: str, max_length: int = DEFAULT_MAX_CHARS) -> str:
    """
    Normalize text before embedding.

    Collapses whitespace, drops characters outside the word/punctuation
    set, trims and truncates. Ingest and query text both go through here,
    so their vectors stay comparable.
    """
    text = _WHITESPACE.sub(' ', text or '')
    text = _DISALLOWED.sub('', text)
    return text.strip()[:max_length]


# =============================================================================
# Tier Interface
# =============================================================================

class EmbeddingTier(ABC):
    """One strategy in the embedding fallback chain."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION):
        self.dimension = dimension

    @property
    @abstractmethod
    def name(self) -> str:
        """Tier name for logging/stats."""

    def is_available(self) -> bool:
        """Whether the tier is configured at all. Checked before each call."""
        return True

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Embed already-preprocessed text.

        Raises:
            EmbeddingTierError: If this tier cannot produce a vector
        """


# =============================================================================
# Tier 1: Remote Provider
# =============================================================================

class RemoteEmbeddingTier(EmbeddingTier):
    """
    Google Generative Language embedding API over plain HTTP.

    Asks the API for exactly `dimension` values so remote vectors live in
    the same space size as the local ones.
    """

    BASE_URL = 'https://generativelanguage.googleapis.com/v1beta'

    def __init__(
        self,
        api_key: Optional[str],
        model: str = 'text-embedding-004',
        dimension: int = DEFAULT_DIMENSION,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None
    ):
        super().__init__(dimension)
        self._api_key = api_key
        self.model = model
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return 'remote'

    def is_available(self) -> bool:
        return bool(self._api_key) and self._api_key != 'disabled'

    def embed(self, text: str) -> List[float]:
        url = f"{self.BASE_URL}/models/{self.model}:embedContent"
        payload = {
            'model': f'models/{self.model}',
            'content': {'parts': [{'text': text}]},
            'outputDimensionality': self.dimension,
        }

        try:
            response = self._session.post(
                url,
                json=payload,
                headers={'x-goog-api-key': self._api_key},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.Timeout as e:
            raise EmbeddingTierError(
                f"Remote embedding timed out after {self.timeout}s", self.name, e
            )
        except (requests.RequestException, ValueError) as e:
            raise EmbeddingTierError(f"Remote embedding failed: {e}", self.name, e)

        values = (data.get('embedding') or {}).get('values')
        if not values:
            raise EmbeddingTierError(
                f"Remote response has no embedding values (keys: {list(data.keys())})",
                self.name
            )
        return [float(v) for v in values]


# =============================================================================
# Tier 2: Local Model
# =============================================================================

def _load_sentence_transformer(model_name: str):
    """Import and construct the sentence-transformers model."""
    from sentence_transformers import SentenceTransformer
    return SentenceTransformer(model_name)


class LocalModelTier(EmbeddingTier):
    """
    Local sentence-transformers inference.

    The model is loaded at most once for the lifetime of this tier, which
    the application builds once per process. Concurrent first callers block
    on the load lock instead of each loading their own copy. A failed load
    is remembered and not attempted again.
    """

    def __init__(
        self,
        model_name: str = 'all-MiniLM-L6-v2',
        dimension: int = DEFAULT_DIMENSION,
        timeout: float = 30.0,
        model_factory: Callable[[str], Any] = _load_sentence_transformer
    ):
        super().__init__(dimension)
        self.model_name = model_name
        self.timeout = timeout
        self._model_factory = model_factory
        self._model = None
        self._loaded = False
        self._load_error: Optional[Exception] = None
        self._load_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='local-embed')

    @property
    def name(self) -> str:
        return 'local'

    @property
    def is_loaded(self) -> bool:
        return self._loaded and self._model is not None

    def _ensure_model(self):
        """Load the model exactly once; later calls reuse the outcome."""
        if self._loaded:
            if self._model is None:
                raise EmbeddingTierError(
                    f"Local model unavailable: {self._load_error}", self.name, self._load_error
                )
            return self._model

        with self._load_lock:
            if not self._loaded:
                try:
                    logger.info(f"Loading embedding model: {self.model_name}")
                    self._model = self._model_factory(self.model_name)
                    logger.info(f"Local embedding model loaded: {self.model_name}")
                except Exception as e:
                    self._load_error = e
                    logger.error(f"Failed to load local embedding model {self.model_name}: {e}")
                finally:
                    self._loaded = True

        if self._model is None:
            raise EmbeddingTierError(
                f"Local model unavailable: {self._load_error}", self.name, self._load_error
            )
        return self._model

    def _encode(self, text: str) -> List[float]:
        model = self._ensure_model()
        vector = model.encode(text, convert_to_numpy=True, normalize_embeddings=True)
        return np.asarray(vector, dtype=np.float64).reshape(-1).tolist()

    def embed(self, text: str) -> List[float]:
        future = self._executor.submit(self._encode, text)
        try:
            return future.result(timeout=self.timeout)
        except FutureTimeout as e:
            raise EmbeddingTierError(
                f"Local embedding timed out after {self.timeout}s", self.name, e
            )
        except EmbeddingTierError:
            raise
        except Exception as e:
            raise EmbeddingTierError(f"Local inference failed: {e}", self.name, e)

    def close(self):
        self._executor.shutdown(wait=False)


# =============================================================================
# Tier 3: Deterministic Fallback
# =============================================================================

def rolling_hash(text: str) -> int:
    """
    31-multiplier rolling hash over UTF-16 code units, as a signed 32-bit int.
    """
    data = text.encode('utf-16-le')
    h = 0
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


class HashEmbeddingTier(EmbeddingTier):
    """
    Hash-seeded sine vector.

    Same text always gives the bit-identical vector; different texts almost
    always give different ones. Carries no semantic meaning.
    """

    @property
    def name(self) -> str:
        return 'hash'

    def embed(self, text: str) -> List[float]:
        h = rolling_hash(text)
        return [math.sin(h + i) * 0.5 for i in range(self.dimension)]


# =============================================================================
# Chain
# =============================================================================

class EmbeddingChain:
    """
    Ordered fallback over embedding tiers.

    Each available tier gets one attempt per call (no retries). Errors and
    vectors of the wrong length count as tier failures and move on to the
    next tier. The hash tier always terminates the chain.
    """

    def __init__(
        self,
        tiers: List[EmbeddingTier],
        dimension: int = DEFAULT_DIMENSION,
        max_chars: int = DEFAULT_MAX_CHARS
    ):
        self.dimension = dimension
        self.max_chars = max_chars
        self.tiers = list(tiers)
        if not self.tiers or not isinstance(self.tiers[-1], HashEmbeddingTier):
            self.tiers.append(HashEmbeddingTier(dimension))

        self._lock = threading.Lock()
        self._tier_stats: Dict[str, Dict[str, float]] = {}

    def embed(self, text: str) -> List[float]:
        """
        Embed text, falling through tiers until one succeeds.

        Returns:
            List of exactly `dimension` floats
        """
        clean = preprocess_text(text, self.max_chars)

        for tier in self.tiers:
            if not tier.is_available():
                logger.debug(f"Skipping unavailable embedding tier: {tier.name}")
                continue

            start_time = time.time()
            try:
                vector = tier.embed(clean)
            except EmbeddingTierError as e:
                self._record(tier.name, time.time() - start_time, success=False)
                logger.warning(f"Embedding tier {tier.name} failed: {e}")
                continue
            except Exception as e:
                self._record(tier.name, time.time() - start_time, success=False)
                logger.warning(f"Embedding tier {tier.name} raised {type(e).__name__}: {e}")
                continue

            if len(vector) != self.dimension:
                self._record(tier.name, time.time() - start_time, success=False)
                logger.warning(
                    f"Embedding tier {tier.name} returned {len(vector)} values, "
                    f"expected {self.dimension}"
                )
                continue

            self._record(tier.name, time.time() - start_time, success=True)
            logger.debug(f"Embedded with {tier.name} tier: {clean[:50]}...")
            return vector

        # Unreachable unless the hash tier was replaced by a failing subclass
        return HashEmbeddingTier(self.dimension).embed(clean)

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        return [self.embed(text) for text in texts]

    def _record(self, tier_name: str, elapsed: float, success: bool):
        with self._lock:
            stats = self._tier_stats.setdefault(tier_name, {
                'calls': 0,
                'failures': 0,
                'total_latency_ms': 0.0,
            })
            stats['calls'] += 1
            stats['total_latency_ms'] += elapsed * 1000
            if not success:
                stats['failures'] += 1

    def get_stats(self) -> Dict[str, Any]:
        """Per-tier call counts, failures and average latency."""
        with self._lock:
            return {
                name: {
                    **stats,
                    'avg_latency_ms': (
                        stats['total_latency_ms'] / stats['calls']
                        if stats['calls'] > 0 else 0
                    )
                }
                for name, stats in self._tier_stats.items()
            }

    def get_health(self) -> Dict[str, Dict[str, Any]]:
        """Availability of each tier, in chain order."""
        health = {}
        for tier in self.tiers:
            entry = {'available': tier.is_available()}
            if isinstance(tier, LocalModelTier):
                entry['loaded'] = tier.is_loaded
            health[tier.name] = entry
        return health

    def close(self):
        for tier in self.tiers:
            if isinstance(tier, LocalModelTier):
                tier.close()


# =============================================================================
# Factory
# =============================================================================

def create_embedder(settings) -> EmbeddingChain:
    """
    Build the embedding chain from Settings.

    Args:
        settings: core.config.Settings

    Returns:
        Configured EmbeddingChain (remote -> local -> hash)
    """
    dimension = settings.embedding_dimension
    tiers: List[EmbeddingTier] = []

    if settings.remote_enabled:
        tiers.append(RemoteEmbeddingTier(
            api_key=settings.gemini_api_key,
            model=settings.remote_model,
            dimension=dimension,
            timeout=settings.remote_timeout
        ))
    else:
        logger.warning('Remote embedding API key not configured. Using local embeddings.')

    if settings.enable_local_model:
        tiers.append(LocalModelTier(
            model_name=settings.local_model,
            dimension=dimension,
            timeout=settings.local_timeout
        ))

    tiers.append(HashEmbeddingTier(dimension))

    logger.info(f"Embedding chain: {' -> '.join(t.name for t in tiers)} (dimension {dimension})")
    return EmbeddingChain(tiers, dimension=dimension, max_chars=settings.max_embed_chars)
