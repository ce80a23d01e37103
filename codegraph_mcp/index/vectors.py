"""In-memory vector store with cosine nearest-neighbour search.

Search is a linear scan over every stored vector. That is fine for one
workspace; a larger corpus would want an approximate index behind the
same interface.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

import numpy as np

from .errors import PersistenceError

logger = logging.getLogger(__name__)


def cosine_similarity(a, b) -> float:
    """dot(a, b) / (|a| * |b|), or 0.0 when either vector is all zeros."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))


class VectorIndex:
    """Maps chunk ids to fixed-dimension vectors.

    The dimension is fixed by the first vector added (or by the
    constructor) and enforced for every later one.
    """

    def __init__(self, dimension: int | None = None):
        self.dimension = dimension
        self._vectors: dict[str, np.ndarray] = {}

    def __len__(self) -> int:
        return len(self._vectors)

    def __contains__(self, chunk_id: str) -> bool:
        return chunk_id in self._vectors

    def ids(self) -> list[str]:
        return list(self._vectors)

    def get(self, chunk_id: str) -> np.ndarray | None:
        return self._vectors.get(chunk_id)

    def add(self, ids: list[str], vectors) -> None:
        """Insert or replace vectors.

        Args:
            ids: Chunk ids
            vectors: One vector per id

        Raises:
            ValueError: On a length mismatch or a vector of the wrong dimension
        """
        vectors = list(vectors)
        if len(ids) != len(vectors):
            raise ValueError(f"Got {len(ids)} ids but {len(vectors)} vectors")
        prepared = []
        for chunk_id, vector in zip(ids, vectors):
            arr = np.array(vector, dtype=np.float64)
            if arr.ndim != 1:
                raise ValueError(f"Vector for {chunk_id} is not one-dimensional")
            dimension = self.dimension if self.dimension is not None else arr.shape[0]
            if arr.shape[0] != dimension:
                raise ValueError(
                    f"Vector for {chunk_id} has dimension {arr.shape[0]}, index uses {dimension}"
                )
            if self.dimension is None:
                self.dimension = dimension
            prepared.append((chunk_id, arr))
        for chunk_id, arr in prepared:
            self._vectors[chunk_id] = arr

    def delete(self, ids) -> int:
        """Remove vectors by id; unknown ids are ignored.

        Returns:
            Number of vectors removed
        """
        removed = 0
        for chunk_id in ids:
            if self._vectors.pop(chunk_id, None) is not None:
                removed += 1
        return removed

    def clear(self) -> None:
        self._vectors.clear()

    def copy(self) -> "VectorIndex":
        """Shallow copy; stored arrays are never mutated in place."""
        index = VectorIndex(self.dimension)
        index._vectors = dict(self._vectors)
        return index

    def search(self, query, k: int, exclude: set[str] | None = None) -> list[tuple[str, float]]:
        """Rank stored vectors by cosine similarity to the query.

        Args:
            query: Query vector
            k: Maximum number of results (k <= 0 returns nothing)
            exclude: Ids to leave out of the ranking

        Returns:
            (chunk id, score) pairs, highest score first, ties broken by id
        """
        if k <= 0 or not self._vectors:
            return []
        query = np.asarray(query, dtype=np.float64)
        if self.dimension is not None and query.shape != (self.dimension,):
            raise ValueError(
                f"Query has shape {query.shape}, index uses dimension {self.dimension}"
            )

        ids = [i for i in self._vectors if not exclude or i not in exclude]
        if not ids:
            return []
        matrix = np.stack([self._vectors[i] for i in ids])
        norms = np.linalg.norm(matrix, axis=1)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            scores = np.zeros(len(ids))
        else:
            with np.errstate(divide="ignore", invalid="ignore"):
                scores = np.where(norms > 0, (matrix @ query) / (norms * query_norm), 0.0)

        ranked = sorted(zip(ids, scores.tolist()), key=lambda pair: (-pair[1], pair[0]))
        return ranked[:k]

    def save(self, path: Path) -> None:
        """Write {chunk id: [floats]} as JSON, atomically.

        Python floats serialise with repr, so float64 values load back
        bit-identical.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {chunk_id: vector.tolist() for chunk_id, vector in self._vectors.items()}

        fd, temp_path = tempfile.mkstemp(suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f)
            os.replace(temp_path, path)
        except Exception:
            # Clean up temp file on failure
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    @classmethod
    def load(cls, path: Path) -> "VectorIndex":
        """Load an index written by save().

        Raises:
            PersistenceError: If the file is missing or corrupt
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text())
        except FileNotFoundError:
            raise PersistenceError(f"Vector file not found: {path}")
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read vector file {path}: {e}")

        if not isinstance(data, dict):
            raise PersistenceError(f"Vector file {path} does not hold an object")
        index = cls()
        try:
            index.add(list(data), list(data.values()))
        except (ValueError, TypeError) as e:
            raise PersistenceError(f"Corrupt vector file {path}: {e}")
        return index
