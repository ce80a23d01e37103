"""Tests for the index coordinator."""

import json
import logging
import threading

import pytest


UNRELATED = {
    "date.ts": "export function formatDate(d: Date): string {\n  return d.toISOString();\n}\n",
    "url.ts": "export function parseUrl(raw: string): URL {\n  return new URL(raw);\n}\n",
    "config.ts": "export function readConfig(path: string) {\n  return JSON.parse(fs.readFileSync(path));\n}\n",
    "mail.ts": "export function sendEmail(to: string, body: string) {\n  smtp.deliver(to, body);\n}\n",
    "button.tsx": "export function renderButton(label: string) {\n  return <button>{label}</button>;\n}\n",
    "users.ts": "export function sortUsers(users: User[]) {\n  return users.sort(byName);\n}\n",
    "password.ts": "export function hashPassword(secret: string) {\n  return bcrypt.hash(secret);\n}\n",
    "weather.ts": "export function fetchWeather(city: string) {\n  return http.get(city);\n}\n",
    "log.ts": "export function logMessage(message: string) {\n  console.log(message);\n}\n",
    "image.ts": "export function compressImage(image: Blob) {\n  return zlib.deflate(image);\n}\n",
}

ADD = "export function addNumbers(a: number, b: number): number {\n  return a + b;\n}\n"


def write(root, rel_path, content):
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def make_coordinator(root, workers=2):
    from codegraph_mcp.index.config import IndexConfig
    from codegraph_mcp.index.indexer import IndexCoordinator

    return IndexCoordinator(root, config=IndexConfig(workers=workers))


@pytest.fixture
def search_workspace(tmp_path):
    """Workspace with one adding function among ten unrelated ones."""
    write(tmp_path, "math.ts", ADD)
    for rel_path, content in UNRELATED.items():
        write(tmp_path, rel_path, content)
    return tmp_path


class TestBuild:
    """Tests for full and incremental builds."""

    def test_build_full_stats(self, tmp_path):
        """A full build indexes every file and persists the index."""
        write(tmp_path, "src/a.ts", "import { b } from './b';\nexport function a() {\n  return b();\n}\n")
        write(tmp_path, "src/b.ts", "export function b() {\n  return 1;\n}\n")

        coordinator = make_coordinator(tmp_path)
        stats = coordinator.build_full()

        assert stats["files_indexed"] == 2
        assert stats["parsed"] == 2
        assert stats["reused"] == 0
        assert stats["errors"] == 0
        assert stats["type"] == "full"
        status = coordinator.get_status()
        assert status.document_count == 2
        assert status.symbol_count == 2
        assert status.vector_count == status.chunk_count
        assert not status.is_indexing
        assert (tmp_path / ".codegraph" / "index" / "documents.json").exists()

    def test_second_build_reuses_unchanged_files(self, tmp_path):
        """Unchanged files are not parsed again."""
        write(tmp_path, "a.ts", "export function a() {}\n")
        write(tmp_path, "b.ts", "export function b() {}\n")

        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()
        stats = coordinator.build_full()

        assert stats["reused"] == 2
        assert stats["parsed"] == 0
        assert coordinator.get_status().vector_count == 2

    def test_deleted_files_are_dropped(self, tmp_path):
        """A file deleted between builds leaves the index."""
        write(tmp_path, "a.ts", "export function a() {}\n")
        gone = write(tmp_path, "b.ts", "export function b() {}\n")

        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()
        gone.unlink()
        stats = coordinator.build_full()

        assert stats["removed"] == 1
        assert coordinator.get_document("b.ts") is None

    def test_same_size_edit_within_a_second_is_detected(self, tmp_path):
        """An edit that keeps the size and the whole-second mtime is re-indexed."""
        import os

        path = write(tmp_path, "a.ts", "export function alpha() {}\n")
        base = 1_700_000_000_000_000_000
        os.utime(path, ns=(base, base))
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        path.write_text("export function bravo() {}\n")
        os.utime(path, ns=(base + 1000, base + 1000))

        assert coordinator.get_changed_files()["modified"] == ["a.ts"]
        stats = coordinator.build_full()
        assert stats["parsed"] == 1
        assert [s.name for s in coordinator.get_symbols_in_file("a.ts")] == ["bravo"]

    def test_read_errors_are_counted(self, tmp_path, monkeypatch, caplog):
        """A file that cannot be read is skipped and the build continues."""
        from codegraph_mcp.index.errors import FileReadError

        write(tmp_path, "good.ts", "export function good() {}\n")
        write(tmp_path, "bad.ts", "export function bad() {}\n")
        coordinator = make_coordinator(tmp_path)
        original = coordinator._index_file

        def flaky(rel_path):
            if rel_path == "bad.ts":
                raise FileReadError(rel_path, "Permission denied")
            return original(rel_path)

        monkeypatch.setattr(coordinator, "_index_file", flaky)

        with caplog.at_level(logging.WARNING, logger="codegraph_mcp.index.indexer"):
            stats = coordinator.build_full()

        assert stats["errors"] == 1
        assert stats["files_indexed"] == 1
        assert "bad.ts" in caplog.text

    def test_python_syntax_error_is_indexed_as_one_chunk(self, tmp_path, caplog):
        """A file that fails to parse is still searchable as a whole."""
        write(tmp_path, "broken.py", "def broken(:\n    pass\n")

        coordinator = make_coordinator(tmp_path)
        with caplog.at_level(logging.WARNING, logger="codegraph_mcp.index.indexer"):
            coordinator.build_full()

        doc = coordinator.get_document("broken.py")
        assert doc.parse_error
        assert doc.symbols == []
        assert [c.chunk_type for c in doc.chunks] == ["file"]
        assert "broken.py" in caplog.text

    def test_non_utf8_file(self, tmp_path):
        """Undecodable bytes mark a parse error instead of failing the build."""
        (tmp_path / "bin.js").write_bytes(b"const x = '\xff\xfe';\nfunction f() {}\n")

        coordinator = make_coordinator(tmp_path)
        stats = coordinator.build_full()

        doc = coordinator.get_document("bin.js")
        assert stats["errors"] == 0
        assert doc.parse_error
        assert len(doc.chunks) == 1

    def test_python_files_use_the_ast_extractor(self, tmp_path):
        """Python symbols carry AST signatures and method kinds."""
        write(tmp_path, "svc.py", "class Service:\n    def run(self, job: str) -> None:\n        pass\n")

        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        symbols = coordinator.get_symbols_in_file("svc.py")
        assert [(s.name, s.kind) for s in symbols] == [("Service", "class"), ("run", "method")]
        assert symbols[1].signature == "def run(self, job: str) -> None"


class TestConcurrency:
    """Tests for build exclusivity and cancellation."""

    def test_second_build_is_rejected(self, tmp_path):
        """Starting a build while one runs raises IndexBusyError."""
        from codegraph_mcp.index.errors import IndexBusyError

        for i in range(3):
            write(tmp_path, f"f{i}.ts", f"export function f{i}() {{}}\n")
        coordinator = make_coordinator(tmp_path)
        rejected = []

        def progress(done, total, rel_path):
            assert coordinator.is_indexing
            try:
                coordinator.rebuild_index()
            except IndexBusyError:
                rejected.append(rel_path)

        stats = coordinator.build_full(progress=progress)

        assert len(rejected) == 3
        assert stats["files_indexed"] == 3
        assert not coordinator.is_indexing

    def test_cancel_commits_partial_progress(self, tmp_path):
        """A cancelled build keeps the files it finished."""
        for i in range(4):
            write(tmp_path, f"f{i}.ts", f"export function f{i}() {{}}\n")
        coordinator = make_coordinator(tmp_path, workers=1)
        cancel = threading.Event()
        seen = []

        def progress(done, total, rel_path):
            seen.append(done)
            cancel.set()

        stats = coordinator.build_full(cancel_event=cancel, progress=progress)

        assert stats["type"] == "cancelled"
        assert stats["parsed"] == 1
        assert seen == [1]
        assert coordinator.get_status().document_count == 1
        assert coordinator.get_status().vector_count == 1

    def test_queries_see_last_snapshot_during_rebuild(self, search_workspace):
        """Status and search answer from the committed index until the rebuild commits."""
        coordinator = make_coordinator(search_workspace, workers=1)
        coordinator.build_full()
        before_status = coordinator.get_status()
        before = [(r.chunk_id, r.score) for r in coordinator.semantic_search("add two numbers", 3)]
        write(search_workspace, "extra.ts", "export function addMore(a: number) {\n  return a + 1;\n}\n")
        seen = []

        def progress(done, total, rel_path):
            status = coordinator.get_status()
            results = coordinator.semantic_search("add two numbers", 3)
            seen.append((status.document_count, status.vector_count, [(r.chunk_id, r.score) for r in results]))

        stats = coordinator.rebuild_index(progress=progress)

        assert stats["parsed"] == 12
        assert seen == [(11, before_status.vector_count, before)] * 12
        assert coordinator.get_status().document_count == 12

    def test_cancel_without_build(self, tmp_path):
        """cancel() reports False when nothing is running."""
        assert make_coordinator(tmp_path).cancel() is False

    def test_removal_during_build_wins(self, tmp_path):
        """A document removed while a rebuild runs stays removed."""
        write(tmp_path, "a.ts", "export function a() {}\n")
        write(tmp_path, "b.ts", "export function b() {}\n")
        coordinator = make_coordinator(tmp_path, workers=1)
        coordinator.build_full()
        removed = []

        def progress(done, total, rel_path):
            if not removed:
                removed.append(coordinator.remove_document("b.ts"))

        coordinator.rebuild_index(progress=progress)

        assert removed == [True]
        assert coordinator.get_document("b.ts") is None
        assert coordinator.get_document("a.ts") is not None


class TestPersistence:
    """Tests for loading a saved index."""

    def test_reload_serves_queries_without_rebuilding(self, search_workspace):
        """A second coordinator answers from the saved index; snippets are re-read."""
        make_coordinator(search_workspace).build_full()

        reloaded = make_coordinator(search_workspace)
        assert reloaded.initialize(build=False) is None
        results = reloaded.semantic_search("add two numbers", 3)
        hit = next(r for r in results if r.file_path == "math.ts")

        assert reloaded.get_status().document_count == 11
        assert "addNumbers" in hit.snippet

    def test_corrupt_index_needs_full_build(self, tmp_path, caplog):
        """A corrupt documents file starts an empty index flagged for a build."""
        write(tmp_path, "a.ts", "export function a() {}\n")
        index_dir = tmp_path / ".codegraph" / "index"
        index_dir.mkdir(parents=True)
        (index_dir / "documents.json").write_text("{corrupt")

        coordinator = make_coordinator(tmp_path)
        with caplog.at_level(logging.WARNING, logger="codegraph_mcp.index.indexer"):
            coordinator.initialize(build=False)

        assert coordinator.get_status().needs_full_build
        assert coordinator.get_status().document_count == 0
        assert "empty index" in caplog.text

        coordinator.build_full()
        assert not coordinator.get_status().needs_full_build
        assert coordinator.get_status().document_count == 1

    def test_initialize_builds_by_default(self, tmp_path):
        """initialize() loads then runs a full build, reusing fresh documents."""
        write(tmp_path, "a.ts", "export function a() {}\n")
        make_coordinator(tmp_path).build_full()

        stats = make_coordinator(tmp_path).initialize()

        assert stats["reused"] == 1
        assert stats["parsed"] == 0

    def test_stale_document_is_reindexed_on_query(self, tmp_path):
        """Files changed since the save are re-indexed when first queried."""
        write(tmp_path, "a.ts", "export function alpha() {}\n")
        make_coordinator(tmp_path).build_full()
        write(tmp_path, "a.ts", "export function alpha() {}\nexport function beta() {}\n")

        coordinator = make_coordinator(tmp_path)
        coordinator.initialize(build=False)

        assert coordinator.get_status().symbol_count == 1
        assert [s.name for s in coordinator.get_symbols_in_file("a.ts")] == ["alpha", "beta"]
        assert coordinator.get_status().symbol_count == 2

    @pytest.mark.parametrize("query,expected", [
        ("symbol", ["gamma"]),
        ("related", ["alpha", "gamma"]),
        ("semantic", ["gamma"]),
    ])
    def test_stale_documents_are_reindexed_before_queries(self, tmp_path, query, expected):
        """Index-wide queries re-index stale files before answering."""
        from codegraph_mcp.index.models import document_id_for

        write(tmp_path, "a.ts", "export function alpha() {}\n")
        write(tmp_path, "b.ts", "import { alpha } from './a';\nexport function useIt() {\n  return alpha();\n}\n")
        make_coordinator(tmp_path).build_full()
        write(tmp_path, "a.ts", "export function alpha() {}\nexport function gamma() {}\n")

        coordinator = make_coordinator(tmp_path)
        coordinator.initialize(build=False)

        if query == "symbol":
            names = [s.name for s in coordinator.search_symbol_by_name("gamma")]
        elif query == "related":
            use_it = coordinator.state.documents[document_id_for("b.ts")].symbols[0]
            names = [s.name for s in coordinator.find_related_symbols(use_it.id)]
        else:
            results = coordinator.semantic_search("gamma", 10)
            names = ["gamma" for r in results if "gamma" in r.snippet]
        assert names == expected
        assert coordinator.get_status().symbol_count == 3

    def test_dimension_change_needs_full_build(self, tmp_path):
        """Vectors saved with another dimension are discarded."""
        from codegraph_mcp.index.config import EmbeddingSettings, IndexConfig
        from codegraph_mcp.index.indexer import IndexCoordinator

        write(tmp_path, "a.ts", "export function a() {}\n")
        make_coordinator(tmp_path).build_full()

        config = IndexConfig(embedding=EmbeddingSettings(dimension=64))
        coordinator = IndexCoordinator(tmp_path, config=config)
        coordinator.initialize(build=False)

        assert coordinator.get_status().needs_full_build
        coordinator.build_full()
        assert coordinator.state.vectors.dimension == 64


class TestSemanticSearch:
    """Tests for semantic_search."""

    def test_finds_adding_function(self, search_workspace):
        """The adding function ranks in the top three for a plain-language query."""
        coordinator = make_coordinator(search_workspace)
        coordinator.build_full()

        results = coordinator.semantic_search("add two numbers", 3)

        assert "math.ts" in [r.file_path for r in results]
        hit = next(r for r in results if r.file_path == "math.ts")
        assert hit.matched_terms == ["add", "numbers"]
        assert hit.chunk_type == "function"
        assert (hit.start_line, hit.end_line) == (1, 3)

    @pytest.mark.parametrize("top_k", [0, 1, 3, 50])
    def test_result_count_and_order(self, search_workspace, top_k):
        """At most top_k results, scores non-increasing."""
        coordinator = make_coordinator(search_workspace)
        coordinator.build_full()

        results = coordinator.semantic_search("return value", top_k)

        assert len(results) == min(top_k, coordinator.get_status().chunk_count)
        scores = [r.score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_snippet_is_truncated(self, tmp_path):
        """Snippets never exceed the configured length."""
        body = "\n".join(f"  total += values[{i}];" for i in range(100))
        write(tmp_path, "big.ts", f"export function sumAll(values) {{\n{body}\n}}\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        results = coordinator.semantic_search("sum all values", 5)

        assert results
        assert all(len(r.snippet) <= 500 for r in results)

    def test_blank_query(self, search_workspace):
        """A blank query returns nothing."""
        coordinator = make_coordinator(search_workspace)
        coordinator.build_full()

        assert coordinator.semantic_search("   ") == []

    def test_results_serialize_to_json(self, search_workspace):
        """Result dicts use snake_case keys and are JSON-serialisable."""
        coordinator = make_coordinator(search_workspace)
        coordinator.build_full()

        data = [r.to_dict() for r in coordinator.semantic_search("parse url", 2)]

        json.dumps(data)
        assert set(data[0]) >= {"document_id", "file_path", "chunk_id", "score", "matched_terms", "snippet"}


class TestDocumentUpdates:
    """Tests for update_document and remove_document."""

    def test_remove_document_leaves_no_vectors(self, search_workspace):
        """Removing a file removes every vector of its chunks."""
        coordinator = make_coordinator(search_workspace)
        coordinator.build_full()
        doc = coordinator.get_document("math.ts")

        assert coordinator.remove_document("math.ts") is True

        assert not any(i.startswith(doc.id) for i in coordinator.state.vectors.ids())
        results = coordinator.semantic_search("add two numbers", 50)
        assert "math.ts" not in [r.file_path for r in results]
        assert coordinator.remove_document("math.ts") is False

    def test_update_replaces_symbols_in_graph(self, tmp_path):
        """Old symbols of an updated file disappear from related-symbol results."""
        write(tmp_path, "a.ts", "import { oldName } from './b';\nexport function useIt() {\n  return oldName();\n}\n")
        write(tmp_path, "b.ts", "export function oldName() {\n  return 1;\n}\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()
        use_it = coordinator.search_symbol_by_name("useIt")[0]

        assert [s.name for s in coordinator.find_related_symbols(use_it.id)] == ["oldName"]

        write(tmp_path, "b.ts", "export function newName() {\n  return 2;\n}\n")
        doc = coordinator.update_document("b.ts")

        assert [s.name for s in doc.symbols] == ["newName"]
        assert [s.name for s in coordinator.find_related_symbols(use_it.id)] == ["newName"]
        assert coordinator.search_symbol_by_name("oldName") == []

    def test_update_of_deleted_file_removes_it(self, tmp_path):
        """Updating a path that no longer exists removes the document."""
        path = write(tmp_path, "a.ts", "export function a() {}\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()
        path.unlink()

        assert coordinator.update_document("a.ts") is None
        assert coordinator.get_status().document_count == 0

    def test_update_accepts_absolute_paths(self, tmp_path):
        """Absolute paths inside the workspace are accepted."""
        path = write(tmp_path, "src/a.ts", "export function a() {}\n")
        coordinator = make_coordinator(tmp_path)

        doc = coordinator.update_document(str(path))

        assert doc.file_path == "src/a.ts"
        assert coordinator.get_status().vector_count == 1

    def test_paths_outside_workspace(self, tmp_path):
        """Paths outside the workspace raise ValueError."""
        workspace = tmp_path / "ws"
        workspace.mkdir()
        coordinator = make_coordinator(workspace)

        with pytest.raises(ValueError):
            coordinator.get_symbols_in_file(str(tmp_path / "other.ts"))
        with pytest.raises(ValueError):
            coordinator.update_document("../other.ts")


class TestImportLinks:
    """Tests for import edges whose target appears after the importing file."""

    MAIN = "import { x } from './util';\nexport function m() {\n  return x;\n}\n"

    def edge_pairs(self, coordinator):
        return [(e.source, e.target, e.type) for e in coordinator.state.graph.edges]

    def test_target_added_before_full_build(self, tmp_path):
        """A full build links an unchanged file to a newly created import target."""
        from codegraph_mcp.index.models import document_id_for

        write(tmp_path, "main.ts", self.MAIN)
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()
        assert self.edge_pairs(coordinator) == []

        write(tmp_path, "util.ts", "export const x = 1;\n")
        stats = coordinator.build_full()

        assert stats["reused"] == 1
        assert self.edge_pairs(coordinator) == [
            (document_id_for("main.ts"), document_id_for("util.ts"), "imports")
        ]
        assert coordinator.get_document("main.ts").imports[0].resolved_path == "util.ts"

    def test_target_added_with_update_document(self, tmp_path):
        """Indexing the new target alone links the files, and the link survives a reload."""
        from codegraph_mcp.index.models import document_id_for

        write(tmp_path, "main.ts", self.MAIN)
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()
        write(tmp_path, "util.ts", "export const x = 1;\n")

        coordinator.update_document("util.ts")

        expected = [(document_id_for("main.ts"), document_id_for("util.ts"), "imports")]
        main_symbol = coordinator.get_symbols_in_file("main.ts")[0]
        assert self.edge_pairs(coordinator) == expected
        assert [s.name for s in coordinator.find_related_symbols(main_symbol.id)] == ["x"]
        assert coordinator.get_status().vector_count == coordinator.get_status().chunk_count

        reloaded = make_coordinator(tmp_path)
        reloaded.initialize(build=False)
        assert self.edge_pairs(reloaded) == expected

    def test_unresolvable_import_stays_unlinked(self, tmp_path):
        """Imports of files that never appear leave no edge."""
        write(tmp_path, "main.ts", self.MAIN)
        write(tmp_path, "other.ts", "export const y = 2;\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        coordinator.update_document("other.ts")

        assert self.edge_pairs(coordinator) == []
        assert coordinator.get_document("main.ts").imports[0].resolved_path is None


class TestQueries:
    """Tests for symbol, similarity and dependency queries."""

    def test_symbol_search_ranking(self, tmp_path):
        """Exact matches first, then prefixes, then substrings."""
        write(tmp_path, "a.ts", "export function urlParser() {}\n")
        write(tmp_path, "b.ts", "export function parseUrl() {}\n")
        write(tmp_path, "c.ts", "export function parse() {}\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        names = [s.name for s in coordinator.search_symbol_by_name("PARSE")]

        assert names == ["parse", "parseUrl", "urlParser"]
        assert coordinator.search_symbol_by_name("  ") == []

    def test_find_similar_code(self, tmp_path):
        """The most similar chunk shares structure and identifiers."""
        write(tmp_path, "a.ts", "\n".join([
            "export function sumPrices(items) {",
            "  let total = 0;",
            "  for (const item of items) {",
            "    total += item.price;",
            "  }",
            "  return total;",
            "}",
            "",
        ]))
        write(tmp_path, "b.ts", "\n".join([
            "export function sumCosts(entries) {",
            "  let total = 0;",
            "  for (const entry of entries) {",
            "    total += entry.cost;",
            "  }",
            "  return total;",
            "}",
            "",
        ]))
        write(tmp_path, "c.ts", "export function greet(name) {\n  console.log('hello ' + name);\n}\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        result = coordinator.find_similar_code("a.ts", 4)

        assert "sumPrices" in result.source_chunk.content
        assert result.source_chunk.id not in [s.chunk.id for s in result.similar_chunks]
        best = result.similar_chunks[0]
        assert best.chunk.file_path == "b.ts"
        assert "sumCosts" in best.chunk.content
        assert "Both are functions" in best.reason
        assert "total" in best.reason
        assert [s.similarity for s in result.similar_chunks] == sorted(
            (s.similarity for s in result.similar_chunks), reverse=True
        )

    def test_find_similar_code_outside_chunks(self, tmp_path):
        """Lines no chunk covers, and unindexed files, give None."""
        write(tmp_path, "a.ts", "export function a() {\n  return 1;\n}\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        assert coordinator.find_similar_code("a.ts", 100) is None
        assert coordinator.find_similar_code("missing.ts", 1) is None

    def test_functions_and_classes(self, tmp_path):
        """Functions include methods; classes are listed separately."""
        write(tmp_path, "calc.ts", "\n".join([
            "export class Calculator {",
            "  add(value: number): number {",
            "    return value;",
            "  }",
            "}",
            "export function helper() {}",
        ]))
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        assert sorted(s.name for s in coordinator.get_all_functions()) == ["add", "helper"]
        assert [s.name for s in coordinator.get_all_classes()] == ["Calculator"]
        assert [d.file_path for d in coordinator.get_all_documents()] == ["calc.ts"]

    def test_external_dependencies(self, tmp_path):
        """Declared manifest packages and imported packages are reported."""
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"react": "^18.0.0"}}))
        write(tmp_path, "app.tsx", "import React from 'react';\nimport { debounce } from 'lodash';\nimport { x } from './x';\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        assert coordinator.get_external_dependencies() == {
            "declared": ["react"],
            "imported": ["lodash", "react"],
        }

    def test_project_context(self, tmp_path):
        """The project overview combines languages, framework, dependencies and tree."""
        (tmp_path / "package.json").write_text(json.dumps({"dependencies": {"react": "^18.0.0"}}))
        write(tmp_path, "src/app.tsx", "import React from 'react';\nexport function App() {}\n")
        write(tmp_path, "src/util.ts", "export function util() {}\n")
        write(tmp_path, "scripts/build.py", "def build():\n    pass\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        context = coordinator.get_project_context()

        assert context.root == str(tmp_path.resolve())
        assert context.language == "typescript"
        assert context.languages == {"python": 1, "typescript": 2}
        assert context.framework == "react"
        assert context.dependencies == {"declared": ["react"], "imported": ["react"]}
        assert [(n.name, n.type) for n in context.file_tree] == [("scripts", "directory"), ("src", "directory")]
        assert [c.path for c in context.file_tree[1].children] == ["src/app.tsx", "src/util.ts"]
        json.dumps(context.to_dict())

    def test_changed_files_and_refresh(self, tmp_path):
        """Modified, added and deleted files are detected and refreshed."""
        write(tmp_path, "a.ts", "export function a() {}\n")
        write(tmp_path, "b.ts", "export function b() {}\n")
        coordinator = make_coordinator(tmp_path)
        coordinator.build_full()

        write(tmp_path, "a.ts", "export function a() {}\nexport function a2() {}\n")
        (tmp_path / "b.ts").unlink()
        write(tmp_path, "c.ts", "export function c() {}\n")

        assert coordinator.get_changed_files() == {
            "modified": ["a.ts"],
            "added": ["c.ts"],
            "deleted": ["b.ts"],
        }
        assert coordinator.get_staleness_report()["is_stale"]

        stats = coordinator.refresh()

        assert stats["type"] == "incremental"
        assert stats["files_indexed"] == 2
        assert sorted(s.name for s in coordinator.search_symbol_by_name("a")) == ["a", "a2"]
        assert coordinator.refresh()["type"] == "cached"
        assert coordinator.get_staleness_report()["reason"] == "fresh"

    def test_staleness_without_index(self, tmp_path):
        """A coordinator that never built reports no_index."""
        assert make_coordinator(tmp_path).get_staleness_report()["reason"] == "no_index"
