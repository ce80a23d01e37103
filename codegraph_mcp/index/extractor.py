"""Lexical symbol extraction for brace- and keyword-delimited languages.

Uses per-language declaration patterns applied line by line. Less accurate
than a real parser but language-agnostic and fast; any language can be
handed to a real parser by registering a more specific extractor ahead of
this one in an ExtractorRegistry.
"""

import re
from abc import ABC, abstractmethod

from .models import Symbol


# Most declarations fit on one line; multi-line parameter lists rarely exceed this
MAX_HEADER_LINES = 10

# Keywords that look like calls in an indented "name(...) {" line
_CONTROL = r"(?!(?:if|for|foreach|while|switch|catch|with|return|function|else|do|try|new|throw|sizeof|typeof|await|yield|super|this)\b)"
# Method parameters: no string literals or inline functions, which mark a call taking a callback
_JS_PARAMS = r"\((?![^)]*\bfunction\b)[^)'\"`]*\)"
_JAVA_MODS = r"(?:(?:public|private|protected|internal|static|final|abstract|sealed|partial|synchronized|native|default|override|virtual|async|extern|unsafe|readonly|new)\s+)*"

_JS_PATTERNS: list[tuple[str, str]] = [
    (r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(?P<name>[\w$]+)", "function"),
    (r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?class\s+(?P<name>[\w$]+)", "class"),
    (r"^\s*(?:export\s+)?(?:const|let|var)\s+(?P<name>[\w$]+)\s*(?::[^=]+)?=\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*(?::[^=]+)?=>|[\w$]+\s*=>)", "function"),
    (r"^\s*(?:export\s+)?(?:const|let|var)\s+(?P<name>[\w$]+)\s*(?::[^=]+)?=", "constant"),
    (r"^\s+(?:(?:public|private|protected|static|async|readonly|override|abstract|get|set)\s+)*" + _CONTROL + r"(?P<name>[A-Za-z_$#][\w$]*)\s*" + _JS_PARAMS + r"\s*(?::\s*[^={;]+)?\{", "method"),
]

_TS_PATTERNS: list[tuple[str, str]] = _JS_PATTERNS[:2] + [
    (r"^\s*(?:export\s+)?(?:declare\s+)?interface\s+(?P<name>\w+)", "interface"),
    (r"^\s*(?:export\s+)?(?:declare\s+)?type\s+(?P<name>\w+)\s*(?:<[^>]*>)?\s*=", "type"),
    (r"^\s*(?:export\s+)?(?:declare\s+)?(?:const\s+)?enum\s+(?P<name>\w+)", "enum"),
] + _JS_PATTERNS[2:]

LANGUAGE_PATTERNS: dict[str, list[tuple[str, str]]] = {
    "javascript": _JS_PATTERNS,
    "typescript": _TS_PATTERNS,
    "go": [
        (r"^func\s+\([^)]*\)\s*(?P<name>\w+)\s*[\[(]", "method"),
        (r"^func\s+(?P<name>\w+)\s*[\[(]", "function"),
        (r"^type\s+(?P<name>\w+)\s+struct\b", "struct"),
        (r"^type\s+(?P<name>\w+)\s+interface\b", "interface"),
        (r"^type\s+(?P<name>\w+)\b", "type"),
        (r"^\s*const\s+(?P<name>\w+)\s*(?:\w+\s*)?=", "constant"),
    ],
    "java": [
        (r"^\s*" + _JAVA_MODS + r"class\s+(?P<name>\w+)", "class"),
        (r"^\s*" + _JAVA_MODS + r"@?interface\s+(?P<name>\w+)", "interface"),
        (r"^\s*" + _JAVA_MODS + r"(?:enum|record)\s+(?P<name>\w+)", "enum"),
        (r"^\s*(?:(?:public|private|protected)\s+)?static\s+final\s+[\w<>\[\], ]+\s+(?P<name>[A-Z_][A-Z0-9_]*)\s*=", "constant"),
        (r"^\s*" + _CONTROL + _JAVA_MODS + r"(?:<[^>]+>\s+)?[\w<>\[\],.?]+\s+(?P<name>\w+)\s*\([^;]*$", "method"),
    ],
    "csharp": [
        (r"^\s*namespace\s+(?P<name>[\w.]+)", "module"),
        (r"^\s*" + _JAVA_MODS + r"(?:class|record)\s+(?P<name>\w+)", "class"),
        (r"^\s*" + _JAVA_MODS + r"interface\s+(?P<name>\w+)", "interface"),
        (r"^\s*" + _JAVA_MODS + r"struct\s+(?P<name>\w+)", "struct"),
        (r"^\s*" + _JAVA_MODS + r"enum\s+(?P<name>\w+)", "enum"),
        (r"^\s*" + _JAVA_MODS + r"const\s+[\w<>\[\]?]+\s+(?P<name>\w+)\s*=", "constant"),
        (r"^\s*" + _CONTROL + _JAVA_MODS + r"(?:<[^>]+>\s+)?[\w<>\[\],.?]+\s+(?P<name>\w+)\s*(?:<[^>]+>)?\s*\([^;]*$", "method"),
    ],
    "kotlin": [
        (r"^\s*(?:(?:public|private|protected|internal|open|abstract|sealed|data|inner|enum)\s+)*class\s+(?P<name>\w+)", "class"),
        (r"^\s*(?:(?:public|private|protected|internal|fun)\s+)*interface\s+(?P<name>\w+)", "interface"),
        (r"^\s*(?:(?:public|private|protected|internal|companion|data)\s+)*object\s+(?P<name>\w+)", "class"),
        (r"^\s*(?:(?:public|private|protected|internal|open|override|suspend|inline)\s+)*fun\s+(?:<[^>]+>\s*)?(?:[\w.]+\.)?(?P<name>\w+)\s*\(", "function"),
        (r"^\s*(?:(?:public|private|protected|internal)\s+)?const\s+val\s+(?P<name>\w+)", "constant"),
        (r"^\s*typealias\s+(?P<name>\w+)", "type"),
    ],
    "swift": [
        (r"^\s*(?:(?:public|private|fileprivate|internal|open|final)\s+)*class\s+(?P<name>\w+)", "class"),
        (r"^\s*(?:(?:public|private|fileprivate|internal)\s+)*struct\s+(?P<name>\w+)", "struct"),
        (r"^\s*(?:(?:public|private|fileprivate|internal|indirect)\s+)*enum\s+(?P<name>\w+)", "enum"),
        (r"^\s*(?:(?:public|private|fileprivate|internal)\s+)*protocol\s+(?P<name>\w+)", "interface"),
        (r"^\s*(?:(?:public|private|fileprivate|internal|open|override|static|class|mutating|final)\s+)*func\s+(?P<name>\w+)", "function"),
        (r"^\s*(?:(?:public|private|fileprivate|internal)\s+)*typealias\s+(?P<name>\w+)", "type"),
        (r"^(?:(?:public|private|fileprivate|internal)\s+)*let\s+(?P<name>\w+)\s*(?::[^=]+)?=", "constant"),
    ],
    "rust": [
        (r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:const\s+)?(?:async\s+)?(?:unsafe\s+)?(?:extern\s+\"[^\"]*\"\s+)?fn\s+(?P<name>\w+)", "function"),
        (r"^\s*(?:pub(?:\([^)]*\))?\s+)?struct\s+(?P<name>\w+)", "struct"),
        (r"^\s*(?:pub(?:\([^)]*\))?\s+)?enum\s+(?P<name>\w+)", "enum"),
        (r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:unsafe\s+)?trait\s+(?P<name>\w+)", "interface"),
        (r"^\s*(?:pub(?:\([^)]*\))?\s+)?type\s+(?P<name>\w+)", "type"),
        (r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:const|static)\s+(?:mut\s+)?(?P<name>\w+)\s*:", "constant"),
        (r"^\s*(?:pub(?:\([^)]*\))?\s+)?mod\s+(?P<name>\w+)", "module"),
    ],
    "c": [
        (r"^\s*(?:typedef\s+)?struct\s+(?P<name>\w+)\s*\{?\s*$", "struct"),
        (r"^\s*(?:typedef\s+)?enum\s+(?P<name>\w+)\s*\{?\s*$", "enum"),
        (r"^\s*#define\s+(?P<name>[A-Z_][A-Z0-9_]*)\b", "constant"),
        (r"^" + _CONTROL + r"(?:(?:static|inline|extern|const|unsigned|signed|struct)\s+)*[A-Za-z_][\w]*[\s*&]+(?P<name>[A-Za-z_]\w*)\s*\([^;]*$", "function"),
    ],
    "cpp": [
        (r"^\s*namespace\s+(?P<name>\w+)", "module"),
        (r"^\s*(?:template\s*<[^>]*>\s*)?class\s+(?P<name>\w+)(?!\s*;)", "class"),
        (r"^\s*(?:template\s*<[^>]*>\s*)?(?:typedef\s+)?struct\s+(?P<name>\w+)(?!\s*;)", "struct"),
        (r"^\s*enum\s+(?:class\s+)?(?P<name>\w+)", "enum"),
        (r"^\s*#define\s+(?P<name>[A-Z_][A-Z0-9_]*)\b", "constant"),
        (r"^\s*using\s+(?P<name>\w+)\s*=", "type"),
        (r"^" + _CONTROL + r"(?:(?:static|inline|virtual|extern|constexpr|const|unsigned|signed)\s+)*[A-Za-z_][\w:<>]*[\s*&]+(?P<name>[A-Za-z_][\w:~]*)\s*\([^;]*$", "function"),
    ],
    "php": [
        (r"^\s*(?:(?:abstract|final)\s+)?class\s+(?P<name>\w+)", "class"),
        (r"^\s*interface\s+(?P<name>\w+)", "interface"),
        (r"^\s*trait\s+(?P<name>\w+)", "interface"),
        (r"^\s*(?:(?:public|private|protected|static|abstract|final)\s+)+function\s+&?(?P<name>\w+)", "method"),
        (r"^\s*function\s+&?(?P<name>\w+)", "function"),
        (r"^\s*(?:(?:public|private|protected)\s+)?const\s+(?P<name>\w+)\s*=", "constant"),
    ],
    "scala": [
        (r"^\s*(?:(?:case|abstract|sealed|final|private|protected|implicit)\s+)*class\s+(?P<name>\w+)", "class"),
        (r"^\s*(?:(?:case|private|protected)\s+)*object\s+(?P<name>\w+)", "class"),
        (r"^\s*(?:(?:sealed|private|protected)\s+)*trait\s+(?P<name>\w+)", "interface"),
        (r"^\s*(?:(?:override|private|protected|final|implicit)\s+)*def\s+(?P<name>\w+)", "function"),
        (r"^\s*type\s+(?P<name>\w+)", "type"),
        (r"^\s*(?:(?:private|protected|final)\s+)*val\s+(?P<name>[A-Z]\w*)\s*(?::[^=]+)?=", "constant"),
    ],
    "ruby": [
        (r"^\s*def\s+(?:self\.)?(?P<name>\w+[?!=]?)", "function"),
        (r"^\s*class\s+(?P<name>\w+)", "class"),
        (r"^\s*module\s+(?P<name>\w+)", "module"),
        (r"^\s*(?P<name>[A-Z][A-Z0-9_]*)\s*=", "constant"),
    ],
}

# Characters that open a string literal, per language
_QUOTES = {
    "rust": '"',
    "javascript": "\"'`",
    "typescript": "\"'`",
    "go": "\"'`",
}
_DEFAULT_QUOTES = "\"'"
_CONTINUATION_SUFFIXES = ("(", ",", "=", "=>", ":", "->", "extends", "implements", "where")

_VISIBILITY = re.compile(r"\b(private|protected|fileprivate)\b")


def extract_visibility(line: str, name: str, language: str) -> str:
    """Visibility from the declaration line and naming conventions."""
    match = _VISIBILITY.search(line)
    if match:
        return "private" if match.group(1) == "fileprivate" else match.group(1)
    if language == "go":
        return "public" if name[:1].isupper() else "private"
    if language == "rust":
        return "public" if re.match(r"^\s*pub\b", line) else "private"
    if name.startswith("_") and not name.startswith("__") or name.startswith("#"):
        return "private"
    return "public"


class SymbolExtractor(ABC):
    """Interface every symbol extractor implements.

    Implementations must return symbols ordered by declaration line with
    no two sharing the same (name, line_start).
    """

    @abstractmethod
    def can_extract(self, language: str) -> bool:
        """Check if this extractor handles the given language."""
        pass

    @abstractmethod
    def extract(
        self, content: str, file_path: str, document_id: str, language: str
    ) -> list[Symbol]:
        """Extract symbols from file content.

        Args:
            content: Decoded file content
            file_path: Workspace-relative path of the file
            document_id: Id of the owning document
            language: Language hint

        Returns:
            Symbols ordered by line

        Raises:
            ParseError: If the content cannot be parsed
        """
        pass


class ExtractorRegistry:
    """Ordered list of extractors; the first one accepting a language wins."""

    def __init__(self, extractors: list[SymbolExtractor] | None = None):
        self.extractors: list[SymbolExtractor] = list(extractors or [])

    def register(self, extractor: SymbolExtractor, first: bool = False) -> None:
        """Register an extractor, optionally ahead of the existing ones."""
        if first:
            self.extractors.insert(0, extractor)
        else:
            self.extractors.append(extractor)

    def find(self, language: str) -> SymbolExtractor | None:
        for extractor in self.extractors:
            if extractor.can_extract(language):
                return extractor
        return None


class LexicalSymbolExtractor(SymbolExtractor):
    """Extracts symbols with per-language regex patterns and brace balance."""

    def __init__(self, patterns: dict[str, list[tuple[str, str]]] | None = None):
        """Initialize extractor with compiled regex patterns."""
        self._compiled_patterns: dict[str, list[tuple[re.Pattern, str]]] = {}
        for language, language_patterns in (patterns or LANGUAGE_PATTERNS).items():
            self._compiled_patterns[language] = [
                (re.compile(pattern), kind) for pattern, kind in language_patterns
            ]

    def can_extract(self, language: str) -> bool:
        return language in self._compiled_patterns

    def extract(
        self, content: str, file_path: str, document_id: str, language: str
    ) -> list[Symbol]:
        patterns = self._compiled_patterns.get(language)
        if not patterns:
            return []

        lines = content.split("\n")
        symbols: list[Symbol] = []
        seen: set[tuple[str, int]] = set()

        for line_num, line in enumerate(lines, start=1):
            for pattern, kind in patterns:
                match = pattern.match(line)
                if not match:
                    continue
                name = match.group("name")
                # Several patterns can match one declaration; first one wins
                key = (name, line_num)
                if key in seen:
                    continue
                seen.add(key)

                symbols.append(
                    Symbol(
                        id=Symbol.make_id(document_id, name, line_num),
                        name=name,
                        kind=kind,
                        file_path=file_path,
                        line_start=line_num,
                        line_end=self.find_end_line(lines, line_num - 1, language),
                        visibility=extract_visibility(line, name, language),
                        signature=line.strip(),
                    )
                )

        return symbols

    def find_end_line(self, lines: list[str], start_idx: int, language: str) -> int:
        """Find the last line (1-based) of the declaration starting at start_idx."""
        if language == "ruby":
            return self._find_end_by_keyword(lines, start_idx, "end")
        return self._find_end_by_braces(lines, start_idx, _QUOTES.get(language, _DEFAULT_QUOTES))

    def _find_end_by_braces(self, lines: list[str], start_idx: int, quotes: str) -> int:
        """Find end line by counting braces.

        The counter goes up on '{' and down on '}' (ignoring braces inside
        strings and comments); the declaration ends where it returns to zero
        after having been incremented. If no brace appears in the
        declaration header, the declaration ends on its own line.

        Args:
            lines: All lines in the file
            start_idx: Starting line index (0-based)
            quotes: Characters that open string literals

        Returns:
            Ending line number (1-based)
        """
        brace_count = 0
        paren_count = 0
        found_opening = False
        in_string = False
        string_char = None
        in_block_comment = False

        for i in range(start_idx, len(lines)):
            line = lines[i]
            escaped = False
            j = 0
            while j < len(line):
                char = line[j]
                nxt = line[j + 1] if j + 1 < len(line) else ""

                if in_block_comment:
                    if char == "*" and nxt == "/":
                        in_block_comment = False
                        j += 1
                elif escaped:
                    escaped = False
                elif in_string:
                    if char == "\\":
                        escaped = True
                    elif char == string_char:
                        in_string = False
                        string_char = None
                elif char == "/" and nxt == "/":
                    break
                elif char == "/" and nxt == "*":
                    in_block_comment = True
                    j += 1
                elif char in quotes:
                    in_string = True
                    string_char = char
                elif char == "{":
                    brace_count += 1
                    found_opening = True
                elif char == "}":
                    brace_count -= 1
                elif char == "(":
                    paren_count += 1
                elif char == ")":
                    paren_count -= 1
                j += 1

            # Only template literals may span lines
            if in_string and string_char != "`":
                in_string = False
                string_char = None

            if found_opening:
                if brace_count <= 0:
                    return i + 1
                continue

            # Still in the declaration header: decide whether it goes on
            if i - start_idx + 1 >= MAX_HEADER_LINES:
                return start_idx + 1
            if not self._header_continues(lines, i, paren_count):
                return start_idx + 1

        return len(lines) if found_opening else start_idx + 1

    @staticmethod
    def _header_continues(lines: list[str], idx: int, paren_count: int) -> bool:
        """True if the declaration header carries on past line idx."""
        if paren_count > 0:
            return True
        code = lines[idx].split("//", 1)[0].rstrip()
        if code.endswith(";"):
            return False
        if code.endswith(_CONTINUATION_SUFFIXES):
            return True
        if idx + 1 < len(lines) and lines[idx + 1].lstrip().startswith("{"):
            return True
        return False

    def _find_end_by_keyword(self, lines: list[str], start_idx: int, keyword: str) -> int:
        """Find end line by matching closing keyword (for Ruby).

        Args:
            lines: All lines in the file
            start_idx: Starting line index (0-based)
            keyword: Closing keyword to find

        Returns:
            Ending line number (1-based)
        """
        start_line = lines[start_idx]
        if re.search(rf"\b{keyword}\s*$", start_line) and not start_line.strip().startswith(keyword):
            return start_idx + 1
        start_indent = len(start_line) - len(start_line.lstrip())

        for i in range(start_idx + 1, len(lines)):
            line = lines[i]
            if line.strip() == keyword:
                line_indent = len(line) - len(line.lstrip())
                if line_indent <= start_indent:
                    return i + 1

        return start_idx + 1


def default_registry() -> ExtractorRegistry:
    """Registry with the Python AST extractor ahead of the lexical one."""
    from .parser import PythonSymbolExtractor

    return ExtractorRegistry([PythonSymbolExtractor(), LexicalSymbolExtractor()])
