"""Code indexing and semantic search for one workspace."""

from .models import (
    Symbol,
    ImportInfo,
    Chunk,
    Edge,
    IndexedDocument,
    SearchResult,
    SimilarChunk,
    SimilarCodeResult,
    IndexStatus,
    FileNode,
    ProjectContext,
)
from .errors import (
    CodeIndexError,
    FileReadError,
    ParseError,
    ResolutionError,
    PersistenceError,
    IndexCancelledError,
    IndexBusyError,
)
from .config import IndexConfig, EmbeddingSettings, load_config
from .scanner import FileScanner
from .extractor import SymbolExtractor, LexicalSymbolExtractor, ExtractorRegistry
from .parser import PythonSymbolExtractor
from .imports import ImportResolver
from .project import build_file_tree, detect_framework, detect_primary_language
from .graph import CodeGraph, GraphNode
from .chunker import Chunker
from .embeddings import (
    EmbeddingProvider,
    HashEmbeddingProvider,
    SentenceTransformerEmbeddingProvider,
    create_embedding_provider,
)
from .vectors import VectorIndex, cosine_similarity
from .storage import IndexStorage
from .state import IndexState
from .indexer import IndexCoordinator

__all__ = [
    "Symbol",
    "ImportInfo",
    "Chunk",
    "Edge",
    "IndexedDocument",
    "SearchResult",
    "SimilarChunk",
    "SimilarCodeResult",
    "IndexStatus",
    "FileNode",
    "ProjectContext",
    "CodeIndexError",
    "FileReadError",
    "ParseError",
    "ResolutionError",
    "PersistenceError",
    "IndexCancelledError",
    "IndexBusyError",
    "IndexConfig",
    "EmbeddingSettings",
    "load_config",
    "FileScanner",
    "SymbolExtractor",
    "LexicalSymbolExtractor",
    "ExtractorRegistry",
    "PythonSymbolExtractor",
    "ImportResolver",
    "build_file_tree",
    "detect_framework",
    "detect_primary_language",
    "CodeGraph",
    "GraphNode",
    "Chunker",
    "EmbeddingProvider",
    "HashEmbeddingProvider",
    "SentenceTransformerEmbeddingProvider",
    "create_embedding_provider",
    "VectorIndex",
    "cosine_similarity",
    "IndexStorage",
    "IndexState",
    "IndexCoordinator",
]
