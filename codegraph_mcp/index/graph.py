"""File-level import graph with symbol nodes hanging off each file."""

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Optional

from .models import Edge, IndexedDocument, Symbol

logger = logging.getLogger(__name__)


@dataclass
class GraphNode:
    """A file or symbol in the code graph.

    File nodes carry the import adjacency lists; symbol nodes point at
    their file through `parent`.
    """
    id: str
    name: str
    kind: str
    file_path: str
    line_start: int = 1
    line_end: int = 1
    dependencies: list[str] = field(default_factory=list)
    dependents: list[str] = field(default_factory=list)
    children: list[str] = field(default_factory=list)
    parent: Optional[str] = None
    symbol: Optional[Symbol] = None

    @property
    def is_file(self) -> bool:
        return self.kind == "file"

    def copy(self) -> "GraphNode":
        return GraphNode(
            id=self.id,
            name=self.name,
            kind=self.kind,
            file_path=self.file_path,
            line_start=self.line_start,
            line_end=self.line_end,
            dependencies=list(self.dependencies),
            dependents=list(self.dependents),
            children=list(self.children),
            parent=self.parent,
            symbol=self.symbol,
        )


class CodeGraph:
    """Directed import graph; cycles are allowed.

    Every edge endpoint is a node in `nodes`. Imports whose target is not
    indexed are left out rather than given placeholder nodes.
    """

    def __init__(self):
        self.nodes: dict[str, GraphNode] = {}
        self._edges: dict[tuple[str, str, str], Edge] = {}
        self._path_index: dict[str, str] = {}

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    @classmethod
    def build(cls, documents: Iterable[IndexedDocument]) -> "CodeGraph":
        """Build a graph from scratch.

        Args:
            documents: All indexed documents

        Returns:
            New CodeGraph
        """
        graph = cls()
        documents = list(documents)
        for doc in documents:
            graph._add_document_nodes(doc)
        for doc in documents:
            graph._link_outgoing(doc)
        logger.debug(f"Built graph with {len(graph.nodes)} nodes and {len(graph._edges)} edges")
        return graph

    def copy(self) -> "CodeGraph":
        """Deep enough copy for copy-on-write updates."""
        graph = CodeGraph()
        graph.nodes = {node_id: node.copy() for node_id, node in self.nodes.items()}
        graph._edges = dict(self._edges)
        graph._path_index = dict(self._path_index)
        return graph

    def file_node_id(self, file_path: str) -> str | None:
        return self._path_index.get(file_path)

    def add_edge(self, source: str, target: str, edge_type: str = "imports") -> bool:
        """Add a directed edge, keeping both adjacency lists in step.

        Returns:
            True if the edge was added; False if it already existed or an
            endpoint is missing
        """
        if source not in self.nodes or target not in self.nodes:
            return False
        edge = Edge(source, target, edge_type)
        if edge.key in self._edges:
            return False
        self._edges[edge.key] = edge
        self.nodes[source].dependencies.append(target)
        self.nodes[target].dependents.append(source)
        return True

    def remove_edge(self, source: str, target: str, edge_type: str = "imports") -> bool:
        """Remove a directed edge and both of its adjacency entries."""
        if self._edges.pop((source, target, edge_type), None) is None:
            return False
        # Another edge type may still connect the pair
        if not any(k[0] == source and k[1] == target for k in self._edges):
            if source in self.nodes and target in self.nodes[source].dependencies:
                self.nodes[source].dependencies.remove(target)
            if target in self.nodes and source in self.nodes[target].dependents:
                self.nodes[target].dependents.remove(source)
        return True

    def replace_document(
        self,
        old: IndexedDocument | None,
        new: IndexedDocument,
        documents: dict[str, IndexedDocument],
    ) -> None:
        """Swap one file's nodes and edges for those of its new version.

        Args:
            old: Previous version of the document, if any
            new: New version of the document
            documents: All documents after the swap, keyed by id
        """
        self._drop_document(old if old is not None else new)
        self._add_document_nodes(new)
        self._link_outgoing(new)
        self._link_incoming(new, documents)

    def remove_document(self, doc: IndexedDocument) -> None:
        """Remove a file node, its symbol nodes and every edge touching it."""
        self._drop_document(doc)

    def _add_document_nodes(self, doc: IndexedDocument) -> None:
        file_node = GraphNode(
            id=doc.id,
            name=doc.file_path.rsplit("/", 1)[-1],
            kind="file",
            file_path=doc.file_path,
            line_start=1,
            line_end=max((c.end_line for c in doc.chunks), default=1),
        )
        self.nodes[doc.id] = file_node
        self._path_index[doc.file_path] = doc.id
        for symbol in doc.symbols:
            self.nodes[symbol.id] = GraphNode(
                id=symbol.id,
                name=symbol.name,
                kind=symbol.kind,
                file_path=symbol.file_path,
                line_start=symbol.line_start,
                line_end=symbol.line_end,
                parent=doc.id,
                symbol=symbol,
            )
            file_node.children.append(symbol.id)

    def _link_outgoing(self, doc: IndexedDocument) -> None:
        for info in doc.imports:
            if not info.resolved_path:
                continue
            target = self._path_index.get(info.resolved_path)
            if target is not None and target != doc.id:
                self.add_edge(doc.id, target)

    def _link_incoming(self, doc: IndexedDocument, documents: dict[str, IndexedDocument]) -> None:
        for other in documents.values():
            if other.id == doc.id:
                continue
            if any(i.resolved_path == doc.file_path for i in other.imports):
                self.add_edge(other.id, doc.id)

    def _drop_document(self, doc: IndexedDocument) -> None:
        node = self.nodes.get(doc.id)
        if node is None:
            return
        for target in list(node.dependencies):
            self.remove_edge(doc.id, target)
        for source in list(node.dependents):
            self.remove_edge(source, doc.id)
        for child in node.children:
            self.nodes.pop(child, None)
        del self.nodes[doc.id]
        if self._path_index.get(doc.file_path) == doc.id:
            del self._path_index[doc.file_path]

    def related_symbols(self, node_id: str, max_depth: int | None = None) -> list[Symbol]:
        """Symbols in files reachable from a node through imports, either way.

        Traversal is breadth-first over dependencies and dependents with a
        visited set, so import cycles terminate.

        Args:
            node_id: A symbol id or file (document) id
            max_depth: Stop after this many hops (None for no limit)

        Returns:
            Symbols of every reached file, the start file included, minus
            the start symbol itself
        """
        node = self.nodes.get(node_id)
        if node is None:
            return []
        start_file = node.id if node.is_file else node.parent
        if start_file not in self.nodes:
            return []

        visited = {start_file}
        order = [start_file]
        queue = deque([(start_file, 0)])
        while queue:
            current, depth = queue.popleft()
            if max_depth is not None and depth >= max_depth:
                continue
            file_node = self.nodes[current]
            for neighbour in file_node.dependencies + file_node.dependents:
                if neighbour not in visited:
                    visited.add(neighbour)
                    order.append(neighbour)
                    queue.append((neighbour, depth + 1))

        related = []
        for file_id in order:
            for child in self.nodes[file_id].children:
                if child != node_id:
                    related.append(self.nodes[child].symbol)
        return related

    def dependencies_of(self, file_path: str) -> list[str]:
        """Paths of the files a file imports."""
        node_id = self._path_index.get(file_path)
        if node_id is None:
            return []
        return sorted(self.nodes[d].file_path for d in self.nodes[node_id].dependencies)

    def dependents_of(self, file_path: str) -> list[str]:
        """Paths of the files importing a file."""
        node_id = self._path_index.get(file_path)
        if node_id is None:
            return []
        return sorted(self.nodes[d].file_path for d in self.nodes[node_id].dependents)
