"""Embedding providers for chunk and query text.

The rest of the engine only relies on the EmbeddingProvider contract:
a fixed dimension, deterministic output for identical text, and caching
by content hash. Any model can sit behind it.
"""

import hashlib
import logging
import math
import threading
from abc import ABC, abstractmethod
from collections import Counter, OrderedDict

import numpy as np

from .config import EmbeddingSettings
from .lexical import tokenize
from .models import content_hash

logger = logging.getLogger(__name__)


class EmbeddingProvider(ABC):
    """Maps text to a fixed-dimension float vector, with an LRU cache.

    Subclasses implement `_embed_uncached` (and optionally
    `_embed_uncached_batch`); callers use `embed` / `embed_batch`.
    """

    def __init__(self, cache_size: int = 10000):
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, np.ndarray]" = OrderedDict()
        self._lock = threading.Lock()
        self.cache_hits = 0
        self.cache_misses = 0

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector this provider returns."""
        pass

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def _embed_uncached(self, text: str) -> np.ndarray:
        pass

    def _embed_uncached_batch(self, texts: list[str]) -> list[np.ndarray]:
        return [self._embed_uncached(t) for t in texts]

    def embed(self, text: str) -> np.ndarray:
        """Embed one text.

        Args:
            text: Chunk content or query

        Returns:
            Vector of length `dimension`
        """
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Embed several texts, computing only those not already cached.

        Args:
            texts: Texts to embed

        Returns:
            One vector per text, in order
        """
        keys = [content_hash(t) for t in texts]
        results: list[np.ndarray | None] = [None] * len(texts)
        missing: dict[str, list[int]] = {}

        with self._lock:
            for i, key in enumerate(keys):
                cached = self._cache.get(key)
                if cached is not None:
                    self._cache.move_to_end(key)
                    results[i] = cached
                    self.cache_hits += 1
                else:
                    missing.setdefault(key, []).append(i)

        if missing:
            order = list(missing)
            vectors = self._embed_uncached_batch([texts[missing[k][0]] for k in order])
            with self._lock:
                for key, vector in zip(order, vectors):
                    vector = np.asarray(vector, dtype=np.float64)
                    if vector.shape != (self.dimension,):
                        raise ValueError(
                            f"{self.name} returned shape {vector.shape}, expected ({self.dimension},)"
                        )
                    self.cache_misses += 1
                    self._cache[key] = vector
                    self._cache.move_to_end(key)
                    for i in missing[key]:
                        results[i] = vector
                while len(self._cache) > self.cache_size:
                    self._cache.popitem(last=False)

        return results

    def clear_cache(self) -> None:
        """Forget every cached vector."""
        with self._lock:
            self._cache.clear()
            self.cache_hits = 0
            self.cache_misses = 0

    def cache_info(self) -> dict:
        with self._lock:
            return {
                "size": len(self._cache),
                "max_size": self.cache_size,
                "hits": self.cache_hits,
                "misses": self.cache_misses,
            }


class HashEmbeddingProvider(EmbeddingProvider):
    """Deterministic feature-hashing embedding.

    Each identifier-aware token is hashed with blake2b to a bucket and a
    sign; bucket weights use sublinear term frequency and the result is
    L2-normalised. Texts sharing identifiers score higher under cosine
    similarity. Identical across processes and platforms.
    """

    def __init__(self, dimension: int = 512, cache_size: int = 10000):
        super().__init__(cache_size)
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def _bucket(self, token: str) -> tuple[int, float]:
        digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
        value = int.from_bytes(digest, "little")
        sign = 1.0 if value & 1 else -1.0
        return (value >> 1) % self._dimension, sign

    def _embed_uncached(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=np.float64)
        for token, count in Counter(tokenize(text)).items():
            index, sign = self._bucket(token)
            vector[index] += sign * (1.0 + math.log(count))
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a sentence-transformers model.

    Requires the optional `embeddings` extra. The model is loaded once,
    when the provider is created.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", cache_size: int = 10000):
        super().__init__(cache_size)
        from sentence_transformers import SentenceTransformer

        self.model_name = model_name
        logger.info(f"Loading sentence-transformers model {model_name}")
        self.model = SentenceTransformer(model_name)
        self._dimension = int(self.model.get_sentence_embedding_dimension())

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def name(self) -> str:
        return f"sentence-transformers:{self.model_name}"

    def _embed_uncached(self, text: str) -> np.ndarray:
        return self._embed_uncached_batch([text])[0]

    def _embed_uncached_batch(self, texts: list[str]) -> list[np.ndarray]:
        arr = self.model.encode(texts, normalize_embeddings=True, show_progress_bar=False)
        return [np.asarray(row, dtype=np.float64) for row in arr]


PROVIDERS = {
    "hash": lambda s: HashEmbeddingProvider(dimension=s.dimension, cache_size=s.cache_size),
    "sentence-transformers": lambda s: SentenceTransformerEmbeddingProvider(
        model_name=s.model, cache_size=s.cache_size
    ),
}


def create_embedding_provider(settings: EmbeddingSettings | None = None) -> EmbeddingProvider:
    """Create the provider named in the settings.

    Args:
        settings: Embedding settings (defaults to the hash provider)

    Returns:
        EmbeddingProvider instance

    Raises:
        ValueError: If the provider name is unknown
    """
    settings = settings or EmbeddingSettings()
    factory = PROVIDERS.get(settings.provider.strip().lower())
    if factory is None:
        raise ValueError(
            f"Unknown embedding provider '{settings.provider}'. "
            f"Choose one of: {', '.join(sorted(PROVIDERS))}"
        )
    return factory(settings)
