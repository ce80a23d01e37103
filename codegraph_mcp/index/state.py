"""Immutable-by-convention snapshot of the whole index."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from .graph import CodeGraph
from .models import Chunk, IndexedDocument, Symbol
from .vectors import VectorIndex

logger = logging.getLogger(__name__)


@dataclass
class IndexState:
    """Everything a query needs, swapped in as one reference.

    Writers never mutate a committed state: they build a new one (usually
    via `copy()`) and the coordinator replaces its reference under its
    writer lock. Readers grab the reference once and use it throughout.
    """
    documents: dict[str, IndexedDocument] = field(default_factory=dict)
    graph: CodeGraph = field(default_factory=CodeGraph)
    vectors: VectorIndex = field(default_factory=VectorIndex)
    last_indexed: Optional[float] = None
    needs_full_build: bool = False

    @classmethod
    def from_documents(
        cls,
        documents: list[IndexedDocument],
        vectors: VectorIndex,
        last_indexed: float | None = None,
    ) -> "IndexState":
        """Assemble a state from loaded documents and vectors.

        Vectors whose chunk id belongs to no document are dropped, so the
        state keeps at most one vector per chunk it knows about.
        """
        chunk_ids = {c.id for d in documents for c in d.chunks}
        orphans = [chunk_id for chunk_id in vectors.ids() if chunk_id not in chunk_ids]
        if orphans:
            vectors.delete(orphans)
            logger.info(f"Dropped {len(orphans)} vectors with no matching chunk")
        return cls(
            documents={d.id: d for d in documents},
            graph=CodeGraph.build(documents),
            vectors=vectors,
            last_indexed=last_indexed,
        )

    def copy(self) -> "IndexState":
        """Copy the containers; documents themselves are shared."""
        return IndexState(
            documents=dict(self.documents),
            graph=self.graph.copy(),
            vectors=self.vectors.copy(),
            last_indexed=self.last_indexed,
            needs_full_build=self.needs_full_build,
        )

    @property
    def chunk_count(self) -> int:
        return sum(len(d.chunks) for d in self.documents.values())

    @property
    def symbol_count(self) -> int:
        return sum(len(d.symbols) for d in self.documents.values())

    def document_by_path(self, file_path: str) -> IndexedDocument | None:
        node_id = self.graph.file_node_id(file_path)
        if node_id is not None and node_id in self.documents:
            return self.documents[node_id]
        for doc in self.documents.values():
            if doc.file_path == file_path:
                return doc
        return None

    def find_chunk(self, chunk_id: str) -> tuple[IndexedDocument, Chunk] | None:
        """Look a chunk up by id; the document id is its prefix."""
        doc = self.documents.get(chunk_id.split("::", 1)[0])
        if doc is None:
            return None
        for chunk in doc.chunks:
            if chunk.id == chunk_id:
                return doc, chunk
        return None

    def all_symbols(self) -> list[Symbol]:
        symbols = []
        for doc in self.documents.values():
            symbols.extend(doc.symbols)
        return symbols

    def put_document(self, doc: IndexedDocument) -> None:
        """Insert or replace a document, its graph nodes and its vectors.

        Only valid on an uncommitted copy.
        """
        old = self.documents.get(doc.id)
        if old is not None:
            self.vectors.delete(old.chunk_ids)
        self.documents[doc.id] = doc
        self.graph.replace_document(old, doc, self.documents)
        embedded = [c for c in doc.chunks if c.embedding is not None]
        if embedded:
            self.vectors.add([c.id for c in embedded], [c.embedding for c in embedded])

    def relink_document(self, doc: IndexedDocument) -> None:
        """Replace a document whose imports changed; its vectors stay as they are.

        Only valid on an uncommitted copy.
        """
        old = self.documents.get(doc.id)
        self.documents[doc.id] = doc
        self.graph.replace_document(old, doc, self.documents)

    def drop_document(self, doc_id: str) -> IndexedDocument | None:
        """Remove a document, its graph nodes and every vector of its chunks.

        Only valid on an uncommitted copy.
        """
        doc = self.documents.pop(doc_id, None)
        if doc is None:
            return None
        self.vectors.delete(doc.chunk_ids)
        self.graph.remove_document(doc)
        return doc
