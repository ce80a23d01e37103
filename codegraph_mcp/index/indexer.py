"""Index coordinator: builds, updates and queries the code index."""

import dataclasses
import logging
import os
import threading
import time
from concurrent.futures import CancelledError, ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from .chunker import Chunker
from .config import IndexConfig, load_config
from .embeddings import EmbeddingProvider, create_embedding_provider
from .errors import (
    FileReadError,
    IndexBusyError,
    IndexCancelledError,
    ParseError,
    PersistenceError,
)
from .extractor import ExtractorRegistry, default_registry
from .graph import CodeGraph
from .imports import ImportResolver, read_manifest_dependencies
from .languages import detect_language
from .lexical import describe_similarity, find_matching_terms, shared_identifiers
from .models import (
    Chunk,
    IndexedDocument,
    IndexStatus,
    ProjectContext,
    SearchResult,
    SimilarChunk,
    SimilarCodeResult,
    Symbol,
    content_hash,
    document_id_for,
)
from .project import build_file_tree, count_languages, detect_framework, detect_primary_language
from .scanner import FileScanner
from .state import IndexState
from .storage import IndexStorage
from .vectors import VectorIndex

logger = logging.getLogger(__name__)


# Default staleness threshold (1 hour)
DEFAULT_STALENESS_THRESHOLD = timedelta(hours=1)

ProgressCallback = Callable[[int, int, str], None]


class IndexCoordinator:
    """Owns one workspace index and everything that touches it.

    Queries read the last committed IndexState and never block. Writers
    (builds, updates, removals) prepare a new state and swap it in under
    a single writer lock. Only one build runs at a time.
    """

    def __init__(
        self,
        root: Path,
        storage_dir: Path | None = None,
        config: IndexConfig | None = None,
        embedding_provider: EmbeddingProvider | None = None,
        extractors: ExtractorRegistry | None = None,
    ):
        """Initialize coordinator.

        Args:
            root: Workspace root directory
            storage_dir: Where to persist the index (default from config,
                relative paths are taken from the workspace root)
            config: Index configuration (default: loaded from the workspace)
            embedding_provider: Embedding provider (default from config)
            extractors: Symbol extractors (default: Python AST + lexical)
        """
        self.root = Path(root).expanduser().resolve()
        self.config = config or load_config(self.root)

        index_dir = Path(storage_dir or self.config.storage_dir).expanduser()
        self.index_dir = index_dir if index_dir.is_absolute() else self.root / index_dir

        self.scanner = FileScanner(
            self.config.extensions,
            self.config.ignore_dirs,
            self.config.ignore_patterns,
            self.config.max_file_size_kb,
        )
        self.extractors = extractors or default_registry()
        self.resolver = ImportResolver(self.root)
        self.chunker = Chunker(self.config.min_block_lines)
        self.embedder = embedding_provider or create_embedding_provider(self.config.embedding)
        self.storage = IndexStorage(self.index_dir)

        self._state = IndexState()
        self._write_lock = threading.RLock()
        self._build_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._stale: set[str] = set()
        self._build_started: float | None = None
        self._removed_during_build: set[str] = set()

    @property
    def state(self) -> IndexState:
        """The last committed snapshot."""
        return self._state

    @property
    def is_indexing(self) -> bool:
        return self._build_lock.locked()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, build: bool = True) -> dict | None:
        """Load the persisted index, then bring it up to date.

        A missing or corrupt index is replaced by an empty one flagged
        `needs_full_build`. Documents whose file changed since they were
        saved are remembered as stale.

        Args:
            build: Run build_full() after loading

        Returns:
            Build statistics, or None when build is False
        """
        documents: list[IndexedDocument] = []
        try:
            documents, vectors = self.storage.load()
            if vectors.dimension is not None and vectors.dimension != self.embedder.dimension:
                raise PersistenceError(
                    f"Stored vectors have dimension {vectors.dimension}, "
                    f"provider {self.embedder.name} uses {self.embedder.dimension}"
                )
            last_indexed = max((d.indexed_at for d in documents), default=None)
            by_id = {d.id: d for d in documents}
            for doc in self._link_pending_imports(by_id):
                by_id[doc.id] = doc
            state = IndexState.from_documents(list(by_id.values()), vectors, last_indexed or None)
            logger.info(f"Loaded {len(documents)} documents from {self.index_dir}")
        except PersistenceError as e:
            logger.warning(f"{e}; starting from an empty index")
            documents = []
            state = IndexState(needs_full_build=True)

        stale = {
            doc.id for doc in documents
            if not self._is_fresh(doc) or any(c.id not in state.vectors for c in doc.chunks)
        }
        with self._write_lock:
            self._state = state
            self._stale = stale
        if stale:
            logger.info(f"{len(stale)} indexed files changed since the index was saved")

        if build:
            return self.build_full()
        return None

    def build_full(
        self,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> dict:
        """Index the whole workspace.

        Unchanged files (same mtime and size) keep their committed
        document; everything else is parsed again. Safe to call repeatedly.

        Args:
            cancel_event: Optional event; when set, the build stops between files
            progress: Optional callback(done, total, file_path)

        Returns:
            Statistics about the build

        Raises:
            IndexBusyError: If another build is running
        """
        return self._run_exclusive(self._build, True, "full", cancel_event, progress)

    def rebuild_index(
        self,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
    ) -> dict:
        """Throw the index away and build it again from scratch.

        Queries keep seeing the old snapshot until the new one commits.

        Raises:
            IndexBusyError: If another build is running
        """
        self.embedder.clear_cache()
        return self._run_exclusive(self._build, False, "rebuild", cancel_event, progress)

    def refresh(self) -> dict:
        """Re-index only files that were modified, added or deleted.

        Raises:
            IndexBusyError: If a build is running
        """
        return self._run_exclusive(self._refresh)

    def cancel(self) -> bool:
        """Ask the running build to stop after the current file.

        Returns:
            True if a build was running
        """
        if not self.is_indexing:
            return False
        self._cancel_event.set()
        return True

    def save(self) -> None:
        """Persist the committed snapshot."""
        with self._write_lock:
            self.storage.save(list(self._state.documents.values()), self._state.vectors)

    def _run_exclusive(self, func, *args) -> dict:
        if not self._build_lock.acquire(blocking=False):
            raise IndexBusyError("Indexing is already in progress")
        try:
            self._cancel_event.clear()
            self._build_started = time.time()
            self._removed_during_build = set()
            return func(*args)
        finally:
            self._build_started = None
            self._build_lock.release()

    def _check_cancelled(self, cancel_event: threading.Event | None) -> None:
        if self._cancel_event.is_set() or (cancel_event is not None and cancel_event.is_set()):
            raise IndexCancelledError("Index build cancelled")

    def _build(
        self,
        reuse: bool,
        build_type: str,
        cancel_event: threading.Event | None,
        progress: ProgressCallback | None,
    ) -> dict:
        started = self._build_started
        base = self._state
        logger.info(f"Starting {build_type} index build of {self.root}")

        reused: dict[str, IndexedDocument] = {}
        to_parse: list[str] = []
        for file_path in self.scanner.iter_files(self.root):
            rel_path = self._relative(file_path)
            doc = base.documents.get(document_id_for(rel_path)) if reuse else None
            if doc is not None and doc.id not in self._stale and self._is_fresh(doc):
                reused[doc.id] = doc
            else:
                to_parse.append(rel_path)

        parsed: dict[str, IndexedDocument] = {}
        errors = 0
        cancelled = False
        total = len(to_parse)

        try:
            self._check_cancelled(cancel_event)
            with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
                futures = {executor.submit(self._index_file, rel): rel for rel in to_parse}
                try:
                    for future in as_completed(futures):
                        rel_path = futures[future]
                        try:
                            doc = future.result()
                            parsed[doc.id] = doc
                        except CancelledError:
                            continue
                        except FileReadError as e:
                            logger.warning(f"Skipping {rel_path}: {e.reason}")
                            errors += 1
                        except Exception as e:
                            logger.warning(f"Failed to index {rel_path}: {e}")
                            errors += 1

                        if progress:
                            progress(len(parsed) + errors, total, rel_path)
                        self._check_cancelled(cancel_event)
                except IndexCancelledError:
                    for future in futures:
                        future.cancel()
                    raise
        except IndexCancelledError:
            cancelled = True
            logger.info(f"Index build cancelled after {len(parsed)} of {total} files")

        self._embed_documents(parsed.values())

        with self._write_lock:
            current = self._state
            if cancelled:
                # No rollback: processed files land on top of the last snapshot
                documents = dict(current.documents)
                documents.update(parsed)
            else:
                documents = {**reused, **parsed}

            # Updates and removals committed while the build ran win
            for doc_id in self._removed_during_build:
                documents.pop(doc_id, None)
            for doc_id, doc in current.documents.items():
                if started is not None and doc.indexed_at > started:
                    documents[doc_id] = doc
            for doc in self._link_pending_imports(documents):
                documents[doc.id] = doc

            vectors = self._collect_vectors(documents.values(), current.vectors, base.vectors)
            state = IndexState(
                documents=documents,
                graph=CodeGraph.build(documents.values()),
                vectors=vectors,
                last_indexed=time.time(),
                needs_full_build=current.needs_full_build if cancelled else False,
            )
            removed = len([d for d in base.documents if d not in documents])
            self._state = state
            self._stale -= set(parsed)
            self._stale &= set(documents)
            self._persist(state)

        stats = {
            "files_indexed": len(documents),
            "symbols_indexed": state.symbol_count,
            "chunks_indexed": state.chunk_count,
            "reused": len(reused),
            "parsed": len(parsed),
            "removed": removed,
            "errors": errors,
            "type": "cancelled" if cancelled else build_type,
            "index_dir": str(self.index_dir),
        }
        logger.info(
            f"Index build {stats['type']}: {stats['files_indexed']} files, "
            f"{stats['chunks_indexed']} chunks ({len(parsed)} parsed, {len(reused)} reused, {errors} errors)"
        )
        return stats

    def _refresh(self) -> dict:
        changed = self.get_changed_files()
        if not changed["modified"] and not changed["added"] and not changed["deleted"]:
            state = self._state
            return {
                "files_indexed": len(state.documents),
                "symbols_indexed": state.symbol_count,
                "index_dir": str(self.index_dir),
                "type": "cached",
            }

        docs: list[IndexedDocument] = []
        errors = 0
        for rel_path in changed["modified"] + changed["added"]:
            try:
                docs.append(self._index_file(rel_path))
            except FileReadError as e:
                logger.warning(f"Skipping {rel_path}: {e.reason}")
                errors += 1
        self._embed_documents(docs)
        state = self._commit(docs, [document_id_for(p) for p in changed["deleted"]])

        return {
            "files_indexed": len(state.documents),
            "symbols_indexed": state.symbol_count,
            "index_dir": str(self.index_dir),
            "type": "incremental",
            "errors": errors,
            "changed": changed,
        }

    # ------------------------------------------------------------------
    # Single-document updates
    # ------------------------------------------------------------------

    def update_document(self, path: str | Path) -> IndexedDocument | None:
        """Re-index one file and swap it into the index atomically.

        A file that no longer exists (or is no longer indexable) is
        removed instead.

        Args:
            path: Absolute or workspace-relative file path

        Returns:
            The new document, or None if the file was removed or skipped

        Raises:
            FileReadError: If the file exists but cannot be read
            ValueError: If the path is outside the workspace
        """
        rel_path = self._relative(path)
        abs_path = self.root / rel_path
        if not abs_path.is_file() or not self.scanner.accepts(abs_path, self.root):
            logger.debug(f"{rel_path} is not an indexable file; removing it from the index")
            self.remove_document(rel_path)
            return None

        doc = self._index_file(rel_path)
        self._embed_documents([doc])
        self._commit([doc], [])
        logger.debug(f"Updated {rel_path}: {len(doc.symbols)} symbols, {len(doc.chunks)} chunks")
        return doc

    def remove_document(self, path: str | Path) -> bool:
        """Remove a file's symbols, chunks, graph nodes and vectors.

        Args:
            path: Absolute or workspace-relative file path

        Returns:
            True if the document was indexed
        """
        doc_id = document_id_for(self._relative(path))
        if doc_id not in self._state.documents:
            return False
        self._commit([], [doc_id])
        return True

    def _commit(self, put: list[IndexedDocument], drop: list[str]) -> IndexState:
        """Copy the committed state, apply changes, swap it in and persist."""
        with self._write_lock:
            state = self._state.copy()
            for doc_id in drop:
                state.drop_document(doc_id)
            for doc in put:
                state.put_document(doc)
                for chunk in doc.chunks:
                    chunk.embedding = None
            if put:
                for doc in self._link_pending_imports(state.documents):
                    state.relink_document(doc)
            state.last_indexed = time.time()
            self._state = state

            building = self._build_started is not None
            for doc_id in drop:
                self._stale.discard(doc_id)
                if building:
                    self._removed_during_build.add(doc_id)
            for doc in put:
                self._stale.discard(doc.id)
                self._removed_during_build.discard(doc.id)

            self._persist(state)
        return state

    def _persist(self, state: IndexState) -> None:
        try:
            self.storage.save(list(state.documents.values()), state.vectors)
        except PersistenceError as e:
            logger.warning(f"Failed to persist index: {e}")

    # ------------------------------------------------------------------
    # Per-file work (runs on worker threads)
    # ------------------------------------------------------------------

    def _index_file(self, rel_path: str) -> IndexedDocument:
        """Read, extract, resolve and chunk one file. Touches no shared state.

        Raises:
            FileReadError: If the file cannot be stat'ed or read
        """
        indexed_at = time.time()
        abs_path = self.root / rel_path
        try:
            stat = abs_path.stat()
            raw = abs_path.read_bytes()
        except OSError as e:
            raise FileReadError(rel_path, e.strerror or str(e))

        doc_id = document_id_for(rel_path)
        language = detect_language(rel_path)
        parse_error = False
        symbols: list[Symbol] = []
        imports = []

        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning(f"{rel_path} is not valid UTF-8; indexing it without symbols")
            content = raw.decode("utf-8", errors="replace")
            parse_error = True

        if not parse_error:
            extractor = self.extractors.find(language)
            if extractor is not None:
                try:
                    symbols = extractor.extract(content, rel_path, doc_id, language)
                except ParseError as e:
                    logger.warning(f"{e}; indexing as a single chunk")
                    parse_error = True
            imports = self.resolver.resolve_imports(
                self.resolver.parse_imports(content, rel_path), rel_path
            )

        chunks = self.chunker.chunk(content, rel_path, doc_id, [] if parse_error else symbols)
        return IndexedDocument(
            id=doc_id,
            file_path=rel_path,
            language=language,
            last_modified=stat.st_mtime,
            size=stat.st_size,
            mtime_ns=stat.st_mtime_ns,
            content_hash=content_hash(content),
            symbols=[] if parse_error else symbols,
            chunks=chunks,
            imports=imports,
            indexed_at=indexed_at,
            parse_error=parse_error,
        )

    def _embed_documents(self, documents) -> None:
        chunks = [c for doc in documents for c in doc.chunks]
        if not chunks:
            return
        vectors = self.embedder.embed_batch([c.content for c in chunks])
        for chunk, vector in zip(chunks, vectors):
            chunk.embedding = vector

    def _collect_vectors(self, documents, *sources: VectorIndex) -> VectorIndex:
        """One vector per chunk: fresh embeddings first, then committed ones."""
        index = VectorIndex(self.embedder.dimension)
        for doc in documents:
            for chunk in doc.chunks:
                vector = chunk.embedding
                if vector is None:
                    for source in sources:
                        vector = source.get(chunk.id)
                        if vector is not None:
                            break
                if vector is not None:
                    index.add([chunk.id], [vector])
                chunk.embedding = None
        return index

    def _link_pending_imports(self, documents: dict[str, IndexedDocument]) -> list[IndexedDocument]:
        """Resolve relative imports whose target was not indexed when their file was parsed.

        Documents are shared between snapshots, so the ones that change
        come back as copies rather than being edited in place.

        Args:
            documents: Documents of the state being prepared, keyed by id

        Returns:
            New versions of the documents that gained a resolved import
        """
        pending = [
            doc for doc in documents.values()
            if any(i.resolved_path is None and not i.is_external for i in doc.imports)
        ]
        if not pending:
            return []

        known_paths = {doc.file_path for doc in documents.values()}
        relinked = []
        for doc in pending:
            imports = []
            for info in doc.imports:
                if info.resolved_path is None and not info.is_external:
                    target = self.resolver.resolve_among(doc.file_path, info.module, known_paths)
                    if target is not None:
                        info = dataclasses.replace(info, resolved_path=target)
                imports.append(info)
            if imports != doc.imports:
                relinked.append(dataclasses.replace(doc, imports=imports))

        if relinked:
            logger.debug(f"Resolved pending imports in {len(relinked)} documents")
        return relinked

    def _is_fresh(self, doc: IndexedDocument) -> bool:
        try:
            stat = (self.root / doc.file_path).stat()
        except OSError:
            return False
        return doc.is_fresh(stat.st_mtime_ns, stat.st_size)

    def _relative(self, path: str | Path) -> str:
        """Workspace-relative POSIX path for an absolute or relative path.

        Raises:
            ValueError: If the path is outside the workspace
        """
        path = Path(path)
        if not path.is_absolute():
            path = self.root / path
        path = Path(os.path.normpath(path))
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            pass
        try:
            return path.resolve().relative_to(self.root).as_posix()
        except ValueError:
            raise ValueError(f"{path} is outside the workspace {self.root}")

    def _chunk_text(self, chunk: Chunk) -> str:
        """Chunk content, re-read from disk for chunks loaded without it."""
        if chunk.content:
            return chunk.content
        try:
            text = (self.root / chunk.file_path).read_text(errors="replace")
        except OSError as e:
            logger.debug(f"Cannot read {chunk.file_path} for chunk content: {e}")
            return ""
        lines = text.split("\n")
        return "\n".join(lines[chunk.start_line - 1:chunk.end_line])

    def _reindex_stale(self, rel_paths: list[str]) -> None:
        for rel_path in rel_paths:
            logger.debug(f"Re-indexing stale document {rel_path}")
            try:
                self.update_document(rel_path)
            except FileReadError as e:
                # Left to the next build
                logger.warning(f"Cannot refresh {rel_path}: {e.reason}")
                with self._write_lock:
                    self._stale.discard(document_id_for(rel_path))

    def _refresh_stale(self) -> None:
        """Re-index every stale document before a query that reads the whole index."""
        with self._write_lock:
            stale = set(self._stale)
        if not stale:
            return
        state = self._state
        self._reindex_stale(sorted(
            state.documents[doc_id].file_path for doc_id in stale if doc_id in state.documents
        ))

    def _fresh_document(self, rel_path: str) -> IndexedDocument | None:
        """The committed document for a path, re-indexed first if it is stale."""
        doc = self._state.document_by_path(rel_path)
        if doc is not None and doc.id in self._stale:
            self._reindex_stale([rel_path])
            doc = self._state.document_by_path(rel_path)
        return doc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def semantic_search(self, query: str, top_k: int = 10) -> list[SearchResult]:
        """Find the chunks closest in meaning to a query.

        Args:
            query: Natural-language or code query
            top_k: Maximum number of results

        Returns:
            At most top_k results, highest score first, each with the query
            terms found in the chunk
        """
        if top_k <= 0 or not query.strip():
            return []
        self._refresh_stale()
        state = self._state
        vector = self.embedder.embed(query)

        results = []
        for chunk_id, score in state.vectors.search(vector, top_k * 2):
            found = state.find_chunk(chunk_id)
            if found is None:
                continue
            doc, chunk = found
            text = self._chunk_text(chunk)
            results.append(SearchResult(
                document_id=doc.id,
                file_path=doc.file_path,
                chunk_id=chunk.id,
                score=score,
                matched_terms=find_matching_terms(query, text),
                snippet=text[:self.config.snippet_chars],
                start_line=chunk.start_line,
                end_line=chunk.end_line,
                chunk_type=chunk.chunk_type,
            ))
            if len(results) >= top_k:
                break
        return results

    def search_symbol_by_name(self, name: str) -> list[Symbol]:
        """Case-insensitive substring search over symbol names.

        Exact matches come first, then prefix matches, then the rest;
        ties are ordered by path and line.
        """
        needle = name.strip().lower()
        if not needle:
            return []
        self._refresh_stale()

        def rank(symbol: Symbol) -> tuple:
            lowered = symbol.name.lower()
            if lowered == needle:
                tier = 0
            elif lowered.startswith(needle):
                tier = 1
            else:
                tier = 2
            return (tier, symbol.file_path, symbol.line_start, symbol.name)

        matches = [s for s in self._state.all_symbols() if needle in s.name.lower()]
        return sorted(matches, key=rank)

    def get_symbols_in_file(self, path: str | Path) -> list[Symbol]:
        """Symbols declared in one file, ordered by line."""
        doc = self._fresh_document(self._relative(path))
        if doc is None:
            return []
        return sorted(doc.symbols, key=lambda s: (s.line_start, s.name))

    def find_related_symbols(self, symbol_id: str, max_depth: int | None = None) -> list[Symbol]:
        """Symbols in files connected to the symbol's file by imports.

        Args:
            symbol_id: Symbol id (or document id)
            max_depth: Limit on import hops (None for unlimited)

        Returns:
            Related symbols, excluding the symbol itself
        """
        self._refresh_stale()
        return self._state.graph.related_symbols(symbol_id, max_depth)

    def find_similar_code(self, path: str | Path, line: int, limit: int = 5) -> SimilarCodeResult | None:
        """Find chunks similar to the one enclosing a line.

        Args:
            path: File containing the code
            line: 1-based line inside the code of interest
            limit: Maximum number of similar chunks

        Returns:
            The source chunk and its nearest neighbours (itself excluded),
            or None if no indexed chunk covers the line
        """
        doc = self._fresh_document(self._relative(path))
        if doc is None:
            return None
        enclosing = [c for c in doc.chunks if c.contains_line(line)]
        if not enclosing:
            return None
        source = min(enclosing, key=lambda c: (c.line_count, c.start_line))

        state = self._state
        source_text = self._chunk_text(source)
        vector = state.vectors.get(source.id)
        if vector is None:
            vector = self.embedder.embed(source_text)

        similar = []
        for chunk_id, score in state.vectors.search(vector, limit, exclude={source.id}):
            found = state.find_chunk(chunk_id)
            if found is None:
                continue
            _, chunk = found
            text = self._chunk_text(chunk)
            similar.append(SimilarChunk(
                chunk=dataclasses.replace(chunk, content=text),
                similarity=score,
                reason=describe_similarity(source, chunk, shared_identifiers(source_text, text)),
            ))
        return SimilarCodeResult(
            source_chunk=dataclasses.replace(source, content=source_text),
            similar_chunks=similar,
        )

    def get_status(self) -> IndexStatus:
        state = self._state
        return IndexStatus(
            is_indexing=self.is_indexing,
            document_count=len(state.documents),
            chunk_count=state.chunk_count,
            symbol_count=state.symbol_count,
            vector_count=len(state.vectors),
            last_indexed=state.last_indexed,
            needs_full_build=state.needs_full_build,
        )

    def get_document(self, path: str | Path) -> IndexedDocument | None:
        return self._state.document_by_path(self._relative(path))

    def get_all_documents(self) -> list[IndexedDocument]:
        return sorted(self._state.documents.values(), key=lambda d: d.file_path)

    def get_all_functions(self) -> list[Symbol]:
        return [s for s in self._state.all_symbols() if s.kind in ("function", "method")]

    def get_all_classes(self) -> list[Symbol]:
        return [s for s in self._state.all_symbols() if s.kind == "class"]

    def get_external_dependencies(self) -> dict[str, list[str]]:
        """Packages declared in manifests and packages imported by indexed files."""
        imported = {
            info.module
            for doc in self._state.documents.values()
            for info in doc.imports
            if info.is_external
        }
        return {
            "declared": read_manifest_dependencies(self.root),
            "imported": sorted(imported),
        }

    def get_project_context(self) -> ProjectContext:
        """Overview of the workspace: languages, framework, dependencies and file tree."""
        documents = sorted(self._state.documents.values(), key=lambda d: d.file_path)
        return ProjectContext(
            root=str(self.root),
            language=detect_primary_language(documents),
            framework=detect_framework(self.root),
            languages=count_languages(documents),
            dependencies=self.get_external_dependencies(),
            file_tree=build_file_tree(documents),
        )

    def get_changed_files(self) -> dict[str, list[str]]:
        """Get files that have changed since they were indexed.

        Returns:
            Dict with keys 'modified', 'added', 'deleted' containing file paths
        """
        indexed = {doc.file_path: doc for doc in self._state.documents.values()}
        current = {self._relative(p) for p in self.scanner.iter_files(self.root)}

        modified: list[str] = []
        deleted: list[str] = []
        for rel_path, doc in indexed.items():
            if rel_path not in current:
                deleted.append(rel_path)
            elif not self._is_fresh(doc):
                modified.append(rel_path)
        added = [p for p in current if p not in indexed]

        return {"modified": sorted(modified), "added": sorted(added), "deleted": sorted(deleted)}

    def get_staleness_report(self, threshold: timedelta | None = None) -> dict:
        """Get a detailed report on index staleness.

        Returns:
            Dict with staleness information
        """
        state = self._state
        if state.last_indexed is None:
            return {
                "is_stale": True,
                "reason": "no_index",
                "message": "No index exists. Run indexing first.",
            }

        threshold = threshold or DEFAULT_STALENESS_THRESHOLD
        last_indexed = datetime.fromtimestamp(state.last_indexed)
        age = datetime.now() - last_indexed
        changed = self.get_changed_files()

        is_time_stale = age > threshold
        is_file_stale = bool(changed["modified"] or changed["added"] or changed["deleted"])

        reasons = []
        if is_time_stale:
            reasons.append(f"Index is {age.total_seconds() / 3600:.1f} hours old")
        if changed["modified"]:
            reasons.append(f"{len(changed['modified'])} files modified")
        if changed["added"]:
            reasons.append(f"{len(changed['added'])} files added")
        if changed["deleted"]:
            reasons.append(f"{len(changed['deleted'])} files deleted")

        return {
            "is_stale": is_time_stale or is_file_stale,
            "reason": "stale" if (is_time_stale or is_file_stale) else "fresh",
            "age_hours": age.total_seconds() / 3600,
            "last_indexed": last_indexed.isoformat(),
            "files_changed": changed,
            "message": "; ".join(reasons) if reasons else "Index is fresh",
        }
