"""Tests for the Python AST extractor."""

import pytest


SAMPLE = "\n".join([
    "MAX_RETRIES = 3",
    "",
    "",
    "def fetch(url: str) -> bytes:",
    '    """Fetch a URL."""',
    '    return b""',
    "",
    "",
    "class Client(Base):",
    '    """HTTP client."""',
    "",
    "    def get(self, path):",
    "        return fetch(path)",
    "",
    "    async def _close(self):",
    "        pass",
])


class TestPythonSymbolExtractor:
    """Tests for PythonSymbolExtractor."""

    def test_extracts_all_symbol_kinds(self):
        """Constants, functions, classes and methods are extracted in line order."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        symbols = PythonSymbolExtractor().extract(SAMPLE, "pkg/client.py", "doc1")

        assert [(s.name, s.kind, s.line_start, s.line_end) for s in symbols] == [
            ("MAX_RETRIES", "constant", 1, 1),
            ("fetch", "function", 4, 6),
            ("Client", "class", 9, 16),
            ("get", "method", 12, 13),
            ("_close", "method", 15, 16),
        ]

    def test_signatures_and_docstrings(self):
        """Signatures include annotations; docstrings are captured."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        symbols = {s.name: s for s in PythonSymbolExtractor().extract(SAMPLE, "c.py", "doc1")}

        assert symbols["fetch"].signature == "def fetch(url: str) -> bytes"
        assert symbols["fetch"].docstring == "Fetch a URL."
        assert symbols["Client"].signature == "class Client(Base)"
        assert symbols["Client"].docstring == "HTTP client."
        assert symbols["_close"].signature == "async def _close(self)"
        assert symbols["MAX_RETRIES"].signature == "MAX_RETRIES = 3"

    def test_visibility_from_underscore(self):
        """Leading underscore means private; dunder methods are public."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        content = "class A:\n    def __init__(self):\n        pass\n\n    def _hidden(self):\n        pass\n"
        symbols = {s.name: s for s in PythonSymbolExtractor().extract(content, "a.py", "d")}

        assert symbols["__init__"].visibility == "public"
        assert symbols["_hidden"].visibility == "private"

    def test_methods_are_not_duplicated(self):
        """Each method is reported once, as a method."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        symbols = PythonSymbolExtractor().extract(SAMPLE, "c.py", "doc1")

        assert [s.kind for s in symbols if s.name == "get"] == ["method"]
        assert len({(s.name, s.line_start) for s in symbols}) == len(symbols)

    def test_nested_functions_are_skipped(self):
        """Functions defined inside functions are covered by their parent."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        content = "def outer():\n    def inner():\n        pass\n    return inner\n"
        symbols = PythonSymbolExtractor().extract(content, "n.py", "d")

        assert [s.name for s in symbols] == ["outer"]

    def test_decorators_start_the_declaration(self):
        """A decorated function starts at its first decorator."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        content = "import functools\n\n@functools.cache\ndef compute():\n    return 1\n"
        symbols = PythonSymbolExtractor().extract(content, "d.py", "d")

        assert (symbols[0].name, symbols[0].line_start, symbols[0].line_end) == ("compute", 3, 5)

    def test_lowercase_assignments_are_not_constants(self):
        """Only UPPER_CASE module assignments count as constants."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        content = "logger = object()\nTIMEOUT: int = 5\n"
        symbols = PythonSymbolExtractor().extract(content, "k.py", "d")

        assert [(s.name, s.kind) for s in symbols] == [("TIMEOUT", "constant")]

    def test_syntax_error_raises_parse_error(self):
        """Malformed Python raises ParseError with the line number."""
        from codegraph_mcp.index.errors import ParseError
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        with pytest.raises(ParseError) as exc_info:
            PythonSymbolExtractor().extract("def broken(:\n    pass\n", "bad.py", "d")

        assert exc_info.value.path == "bad.py"
        assert exc_info.value.line == 1

    def test_only_handles_python(self):
        """The AST extractor only claims Python."""
        from codegraph_mcp.index.parser import PythonSymbolExtractor

        extractor = PythonSymbolExtractor()

        assert extractor.can_extract("python")
        assert not extractor.can_extract("javascript")
