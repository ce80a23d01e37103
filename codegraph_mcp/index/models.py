"""Data models for code indexing."""

import hashlib
from dataclasses import dataclass, field
from typing import Any, Optional


SYMBOL_KINDS = frozenset({
    "function", "class", "interface", "constant", "type", "method",
    "struct", "enum", "module",
})
CHUNK_TYPES = frozenset({"function", "class", "block", "file"})


def document_id_for(file_path: str) -> str:
    """Stable document id for a workspace-relative path."""
    return hashlib.sha256(file_path.encode("utf-8")).hexdigest()[:16]


def content_hash(text: str) -> str:
    """Hex sha256 of text, used for change detection and embedding caching."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass
class Symbol:
    """A named declaration with a known location.

    Attributes:
        id: Unique id, derived from document id, name and declaration line
        name: Declared name
        kind: One of SYMBOL_KINDS
        file_path: Workspace-relative path of the owning file
        line_start: Declaration line (1-based)
        line_end: Last line of the declaration (1-based, inclusive)
        visibility: 'public', 'private' or 'protected'
        signature: The declaration line, stripped
        docstring: Documentation string (when the extractor finds one)
    """
    id: str
    name: str
    kind: str
    file_path: str
    line_start: int
    line_end: int
    visibility: str = "public"
    signature: Optional[str] = None
    docstring: Optional[str] = None

    @staticmethod
    def make_id(document_id: str, name: str, line: int) -> str:
        return f"{document_id}::{name}:{line}"

    def contains_line(self, line: int) -> bool:
        return self.line_start <= line <= self.line_end

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "file_path": self.file_path,
            "line_start": self.line_start,
            "line_end": self.line_end,
            "visibility": self.visibility,
            "signature": self.signature,
            "docstring": self.docstring,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Symbol":
        """Deserialize from dictionary."""
        return cls(
            id=d["id"],
            name=d["name"],
            kind=d["kind"],
            file_path=d["file_path"],
            line_start=d["line_start"],
            line_end=d["line_end"],
            visibility=d.get("visibility", "public"),
            signature=d.get("signature"),
            docstring=d.get("docstring"),
        )


@dataclass
class ImportInfo:
    """One import/require statement found in a file.

    Attributes:
        module: The module specifier as written
        imported_symbols: Names pulled in by the statement
        line: Line number of the statement
        resolved_path: Workspace-relative target path, or None
        is_external: True for package (non-relative) specifiers
    """
    module: str
    line: int
    imported_symbols: list[str] = field(default_factory=list)
    resolved_path: Optional[str] = None
    is_external: bool = False

    def to_dict(self) -> dict:
        """Serialize to dictionary."""
        return {
            "module": self.module,
            "line": self.line,
            "imported_symbols": self.imported_symbols,
            "resolved_path": self.resolved_path,
            "is_external": self.is_external,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ImportInfo":
        """Deserialize from dictionary."""
        return cls(
            module=d["module"],
            line=d["line"],
            imported_symbols=d.get("imported_symbols", []),
            resolved_path=d.get("resolved_path"),
            is_external=d.get("is_external", False),
        )


@dataclass
class Chunk:
    """A contiguous unit of source text used for semantic search.

    Attributes:
        id: Unique chunk id
        content: Source text (empty after loading from disk until re-read)
        file_path: Workspace-relative path of the owning file
        start_line: First line (1-based)
        end_line: Last line (1-based, inclusive)
        symbols: Ids of the symbols declared inside the chunk
        chunk_type: One of CHUNK_TYPES
        content_hash: sha256 of the content at indexing time
        embedding: Vector for the chunk, when embedded
    """
    id: str
    content: str
    file_path: str
    start_line: int
    end_line: int
    symbols: list[str] = field(default_factory=list)
    chunk_type: str = "file"
    content_hash: str = ""
    embedding: Optional[Any] = field(default=None, repr=False, compare=False)

    def contains_line(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def to_dict(self, include_content: bool = False) -> dict:
        """Serialize to dictionary. Raw content is left out unless asked for."""
        d = {
            "id": self.id,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "symbols": self.symbols,
            "chunk_type": self.chunk_type,
            "content_hash": self.content_hash,
        }
        if include_content:
            d["content"] = self.content
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Chunk":
        """Deserialize from dictionary."""
        return cls(
            id=d["id"],
            content=d.get("content", ""),
            file_path=d["file_path"],
            start_line=d["start_line"],
            end_line=d["end_line"],
            symbols=d.get("symbols", []),
            chunk_type=d.get("chunk_type", "file"),
            content_hash=d.get("content_hash", ""),
        )


@dataclass
class Edge:
    """Directed graph edge between two node ids."""
    source: str
    target: str
    type: str = "imports"

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.source, self.target, self.type)

    def to_dict(self) -> dict:
        return {"source": self.source, "target": self.target, "type": self.type}


@dataclass
class IndexedDocument:
    """Per-file aggregate; the unit of incremental update.

    Replacing a document replaces all of its symbols, chunks and vectors.

    Attributes:
        id: Document id (see document_id_for)
        file_path: Workspace-relative POSIX path
        language: Detected language
        last_modified: File mtime at indexing time
        size: File size in bytes at indexing time
        mtime_ns: Exact file mtime in nanoseconds at indexing time
        content_hash: sha256 of the file content at indexing time
        symbols: Symbols declared in the file
        chunks: Chunks cut from the file
        imports: Import statements found in the file
        indexed_at: Wall-clock time the document was built
        parse_error: True when symbol extraction failed
    """
    id: str
    file_path: str
    language: str
    last_modified: float
    size: int = 0
    mtime_ns: int = 0
    content_hash: str = ""
    symbols: list[Symbol] = field(default_factory=list)
    chunks: list[Chunk] = field(default_factory=list)
    imports: list[ImportInfo] = field(default_factory=list)
    indexed_at: float = 0.0
    parse_error: bool = False

    @property
    def chunk_ids(self) -> list[str]:
        return [c.id for c in self.chunks]

    def is_fresh(self, mtime_ns: int, size: int) -> bool:
        """True if the file on disk still matches this document's marker."""
        if size != self.size:
            return False
        if self.mtime_ns:
            return mtime_ns == self.mtime_ns
        # Documents saved without mtime_ns only carry the float mtime
        return mtime_ns // 1_000_000_000 == int(self.last_modified)

    def to_dict(self) -> dict:
        """Serialize document metadata (no raw chunk content)."""
        return {
            "id": self.id,
            "file_path": self.file_path,
            "language": self.language,
            "last_modified": self.last_modified,
            "size": self.size,
            "mtime_ns": self.mtime_ns,
            "content_hash": self.content_hash,
            "indexed_at": self.indexed_at,
            "parse_error": self.parse_error,
            "symbols": [s.to_dict() for s in self.symbols],
            "chunks": [c.to_dict() for c in self.chunks],
            "imports": [i.to_dict() for i in self.imports],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "IndexedDocument":
        """Deserialize document metadata."""
        return cls(
            id=d["id"],
            file_path=d["file_path"],
            language=d["language"],
            last_modified=d["last_modified"],
            size=d.get("size", 0),
            mtime_ns=d.get("mtime_ns", 0),
            content_hash=d.get("content_hash", ""),
            symbols=[Symbol.from_dict(s) for s in d.get("symbols", [])],
            chunks=[Chunk.from_dict(c) for c in d.get("chunks", [])],
            imports=[ImportInfo.from_dict(i) for i in d.get("imports", [])],
            indexed_at=d.get("indexed_at", 0.0),
            parse_error=d.get("parse_error", False),
        )


@dataclass
class SearchResult:
    """One semantic search hit."""
    document_id: str
    file_path: str
    chunk_id: str
    score: float
    matched_terms: list[str]
    snippet: str
    start_line: int
    end_line: int
    chunk_type: str = "file"

    def to_dict(self) -> dict:
        return {
            "document_id": self.document_id,
            "file_path": self.file_path,
            "chunk_id": self.chunk_id,
            "score": self.score,
            "matched_terms": self.matched_terms,
            "snippet": self.snippet,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "chunk_type": self.chunk_type,
        }


@dataclass
class SimilarChunk:
    """A chunk found similar to a source chunk, with the reason why."""
    chunk: Chunk
    similarity: float
    reason: str

    def to_dict(self) -> dict:
        return {
            "chunk": self.chunk.to_dict(include_content=True),
            "similarity": self.similarity,
            "reason": self.reason,
        }


@dataclass
class SimilarCodeResult:
    """Result of find_similar_code."""
    source_chunk: Chunk
    similar_chunks: list[SimilarChunk] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "source_chunk": self.source_chunk.to_dict(include_content=True),
            "similar_chunks": [s.to_dict() for s in self.similar_chunks],
        }


@dataclass
class IndexStatus:
    """Snapshot of the coordinator's state."""
    is_indexing: bool
    document_count: int
    chunk_count: int = 0
    symbol_count: int = 0
    vector_count: int = 0
    last_indexed: Optional[float] = None
    needs_full_build: bool = False

    def to_dict(self) -> dict:
        return {
            "is_indexing": self.is_indexing,
            "document_count": self.document_count,
            "chunk_count": self.chunk_count,
            "symbol_count": self.symbol_count,
            "vector_count": self.vector_count,
            "last_indexed": self.last_indexed,
            "needs_full_build": self.needs_full_build,
        }


@dataclass
class FileNode:
    """A directory or file in the workspace overview tree."""
    name: str
    path: str
    type: str
    language: Optional[str] = None
    children: list["FileNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        if self.type == "file":
            return {"name": self.name, "path": self.path, "type": self.type, "language": self.language}
        return {
            "name": self.name,
            "path": self.path,
            "type": self.type,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass
class ProjectContext:
    """Workspace overview.

    Attributes:
        root: Absolute workspace root
        language: Language with the most indexed files ('unknown' if none)
        framework: Framework detected from manifests, if any
        languages: Indexed file count per language
        dependencies: Declared and imported packages
        file_tree: Indexed files as a directory tree
    """
    root: str
    language: str
    framework: Optional[str] = None
    languages: dict[str, int] = field(default_factory=dict)
    dependencies: dict[str, list[str]] = field(default_factory=dict)
    file_tree: list[FileNode] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "root": self.root,
            "language": self.language,
            "framework": self.framework,
            "languages": self.languages,
            "dependencies": self.dependencies,
            "file_tree": [n.to_dict() for n in self.file_tree],
        }
