"""Index persistence using JSON files."""

import contextlib
import fcntl
import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from .errors import PersistenceError
from .models import IndexedDocument
from .vectors import VectorIndex

logger = logging.getLogger(__name__)


class IndexStorage:
    """Stores and loads document metadata and vectors.

    Writers are serialised in-process with a lock and across processes
    with an advisory lock file; every file is written to a temp file and
    renamed into place, so readers only ever see complete files.

    Attributes:
        index_dir: Directory for storing index files
    """

    DOCUMENTS_FILE = "documents.json"
    VECTORS_FILE = "vectors.json"
    LOCK_FILE = ".index.lock"

    def __init__(self, index_dir: Path):
        """Initialize storage.

        Args:
            index_dir: Directory for index files
        """
        self.index_dir = Path(index_dir)
        self._write_lock = threading.Lock()

    @property
    def documents_path(self) -> Path:
        return self.index_dir / self.DOCUMENTS_FILE

    @property
    def vectors_path(self) -> Path:
        return self.index_dir / self.VECTORS_FILE

    @contextlib.contextmanager
    def _file_lock(self):
        """File lock context manager to prevent concurrent writers."""
        lock_path = self.index_dir / self.LOCK_FILE
        with open(lock_path, "a") as f:
            try:
                fcntl.flock(f, fcntl.LOCK_EX)
                yield
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)

    def save(self, documents: list[IndexedDocument], vectors: VectorIndex) -> None:
        """Save documents and vectors to disk.

        Args:
            documents: Indexed documents (chunk content is not written)
            vectors: Vector index holding one vector per embedded chunk

        Raises:
            PersistenceError: If the files cannot be written
        """
        with self._write_lock:
            try:
                self.index_dir.mkdir(parents=True, exist_ok=True)
                with self._file_lock():
                    data = [d.to_dict() for d in sorted(documents, key=lambda d: d.file_path)]
                    self._write_json(self.documents_path, data)
                    vectors.save(self.vectors_path)
            except OSError as e:
                raise PersistenceError(f"Cannot write index to {self.index_dir}: {e}")
        logger.debug(f"Saved {len(documents)} documents and {len(vectors)} vectors to {self.index_dir}")

    def _write_json(self, path: Path, data) -> None:
        # Write to temp file in same directory (required for atomic rename)
        fd, temp_path = tempfile.mkstemp(suffix=".tmp", dir=path.parent)
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(temp_path, path)
        except Exception:
            # Clean up temp file on failure
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def load(self) -> tuple[list[IndexedDocument], VectorIndex]:
        """Load documents and vectors from disk.

        Returns:
            Tuple of (documents, vector index)

        Raises:
            PersistenceError: If either file is missing or corrupt
        """
        if not self.documents_path.exists():
            raise PersistenceError(f"No index at {self.index_dir}")

        try:
            data = json.loads(self.documents_path.read_text())
            if not isinstance(data, list):
                raise PersistenceError(f"{self.documents_path} does not hold an array")
            documents = [IndexedDocument.from_dict(d) for d in data]
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Cannot read {self.documents_path}: {e}")
        except (KeyError, TypeError, AttributeError) as e:
            raise PersistenceError(f"Corrupt document metadata in {self.documents_path}: {e}")

        vectors = VectorIndex.load(self.vectors_path)
        return documents, vectors

    def exists(self) -> bool:
        """Check if index exists.

        Returns:
            True if index file exists
        """
        return self.documents_path.exists()

    def clear(self) -> None:
        """Clear the index."""
        with self._write_lock:
            for path in (self.documents_path, self.vectors_path):
                if path.exists():
                    path.unlink()
