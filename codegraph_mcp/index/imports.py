"""Import statement parsing and in-workspace module resolution."""

import json
import logging
import posixpath
import re
import tomllib
from pathlib import Path

from .errors import ResolutionError
from .models import ImportInfo

logger = logging.getLogger(__name__)


# Tried in order after the specifier itself; the first existing file wins
RESOLVE_EXTENSIONS = [".ts", ".tsx", ".js", ".jsx", ".json", ".mjs", ".cjs", ".py"]

_SPEC = r"""['"](?P<spec>[^'"\n]+)['"]"""

# Applied to the whole file so that multi-line import clauses are found
_SCRIPT_PATTERNS = [
    # import x, { a, b as c } from 'mod' / import * as ns from 'mod'
    re.compile(r"^[ \t]*import\s+(?:type\s+)?(?P<clause>[\w$*{}\s,]+?)\s+from\s+" + _SPEC, re.MULTILINE),
    # import 'mod'
    re.compile(r"^[ \t]*import\s+" + _SPEC, re.MULTILINE),
    # export { a } from 'mod' / export * from 'mod'
    re.compile(r"^[ \t]*export\s+(?:type\s+)?(?P<clause>[\w$*{}\s,]+?)\s+from\s+" + _SPEC, re.MULTILINE),
    # const x = require('mod') / const { a } = require('mod') / require('mod')
    re.compile(r"(?:\b(?:const|let|var)\s+(?P<clause>[\w$]+|\{[^}]*\})\s*=\s*)?\brequire\s*\(\s*" + _SPEC + r"\s*\)"),
    # import('mod')
    re.compile(r"\bimport\s*\(\s*" + _SPEC + r"\s*\)"),
]

_PY_FROM = re.compile(r"^[ \t]*from\s+(?P<spec>\.+[\w.]*|[A-Za-z_][\w.]*)\s+import\s+(?P<names>\([^)]*\)|[^\n#]+)", re.MULTILINE)
_PY_IMPORT = re.compile(r"^[ \t]*import\s+(?P<names>[A-Za-z_][\w.]*(?:\s+as\s+\w+)?(?:\s*,\s*[A-Za-z_][\w.]*(?:\s+as\s+\w+)?)*)", re.MULTILINE)


def parse_imported_symbols(clause: str | None) -> list[str]:
    """Names brought in by an import clause, taken before any 'as' alias.

    e.g., "React, { useState, useEffect as effect }" -> ["React", "useState", "useEffect"]
    """
    if not clause:
        return []
    clause = clause.strip()
    symbols = []

    brace = re.search(r"\{([^}]*)\}", clause)
    if brace:
        default_part = clause[:brace.start()].strip().rstrip(",").strip()
        if default_part and re.fullmatch(r"[\w$]+", default_part):
            symbols.append(default_part)
        for item in brace.group(1).split(","):
            name = item.strip()
            if name.startswith("type "):
                name = name[5:].strip()
            name = name.split(" as ")[0].strip()
            if name:
                symbols.append(name)
        return symbols

    for item in clause.split(","):
        item = item.strip()
        if item.startswith("*"):
            # Namespace import binds the alias
            alias = item.split(" as ")[-1].strip()
            if alias and alias != "*":
                symbols.append(alias)
        elif item:
            symbols.append(item.split(" as ")[0].strip())
    return symbols


def _line_of(content: str, offset: int) -> int:
    return content.count("\n", 0, offset) + 1


def is_relative_specifier(specifier: str) -> bool:
    return specifier.startswith(".") or specifier.startswith("/")


class ImportResolver:
    """Parses import statements and resolves them to workspace files.

    Attributes:
        root: Workspace root directory
    """

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def parse_imports(self, content: str, file_path: str) -> list[ImportInfo]:
        """Extract import statements from file content.

        Args:
            content: Decoded file content
            file_path: Workspace-relative path of the file

        Returns:
            ImportInfo records ordered by line, one per (specifier, line)
        """
        if file_path.endswith(".py"):
            found = self._parse_python(content)
        else:
            found = self._parse_script(content)

        seen: set[tuple[str, int]] = set()
        imports = []
        for info in sorted(found, key=lambda i: (i.line, i.module)):
            key = (info.module, info.line)
            if key in seen:
                continue
            seen.add(key)
            info.is_external = not is_relative_specifier(info.module)
            imports.append(info)
        return imports

    def _parse_script(self, content: str) -> list[ImportInfo]:
        found = []
        for pattern in _SCRIPT_PATTERNS:
            for match in pattern.finditer(content):
                clause = match.groupdict().get("clause")
                found.append(ImportInfo(
                    module=match.group("spec"),
                    line=_line_of(content, match.start()),
                    imported_symbols=parse_imported_symbols(clause),
                ))
        return found

    def _parse_python(self, content: str) -> list[ImportInfo]:
        found = []
        for match in _PY_FROM.finditer(content):
            names = match.group("names").strip().strip("()")
            symbols = [
                n.strip().split(" as ")[0].strip()
                for n in names.replace("\n", " ").split(",")
                if n.strip() and n.strip() != "*"
            ]
            found.append(ImportInfo(
                module=match.group("spec"),
                line=_line_of(content, match.start()),
                imported_symbols=symbols,
            ))
        for match in _PY_IMPORT.finditer(content):
            line = _line_of(content, match.start())
            for name in match.group("names").split(","):
                module = name.strip().split(" as ")[0].strip()
                found.append(ImportInfo(module=module, line=line))
        return found

    def resolve(self, from_file: str, specifier: str) -> str | None:
        """Resolve a module specifier to a workspace-relative file path.

        Only specifiers starting with '.' or '/' are resolved; package
        names return None. '/x' is taken relative to the workspace root.

        Args:
            from_file: Workspace-relative path of the importing file
            specifier: Module specifier as written

        Returns:
            Workspace-relative POSIX path of the target, or None
        """
        for candidate in self._candidates(from_file, specifier):
            if (self.root / candidate).is_file():
                return candidate
        return None

    def resolve_among(self, from_file: str, specifier: str, known_paths: set[str]) -> str | None:
        """Resolve a specifier against already indexed paths instead of the disk.

        Args:
            from_file: Workspace-relative path of the importing file
            specifier: Module specifier as written
            known_paths: Workspace-relative paths of indexed files

        Returns:
            The first candidate found in known_paths, or None
        """
        for candidate in self._candidates(from_file, specifier):
            if candidate in known_paths:
                return candidate
        return None

    def _candidates(self, from_file: str, specifier: str) -> list[str]:
        if not is_relative_specifier(specifier):
            return []
        if from_file.endswith(".py") and specifier.startswith("."):
            candidates = self._python_candidates(from_file, specifier)
        else:
            candidates = self._script_candidates(from_file, specifier)
        return [c for c in candidates if c is not None]

    def resolve_strict(self, from_file: str, specifier: str) -> str:
        """Like resolve() but raises ResolutionError when nothing matches."""
        resolved = self.resolve(from_file, specifier)
        if resolved is None:
            raise ResolutionError(from_file, specifier)
        return resolved

    def resolve_imports(self, imports: list[ImportInfo], from_file: str) -> list[ImportInfo]:
        """Fill in resolved_path for each relative import (in place)."""
        for info in imports:
            if info.is_external:
                continue
            info.resolved_path = self.resolve(from_file, info.module)
            if info.resolved_path is None:
                logger.debug(f"Unresolved import '{info.module}' in {from_file}:{info.line}")
        return imports

    def _script_candidates(self, from_file: str, specifier: str) -> list[str | None]:
        if specifier.startswith("/"):
            base = self._normalize(specifier.lstrip("/"))
        else:
            base = self._normalize(posixpath.join(posixpath.dirname(from_file), specifier))
        if base is None:
            return []

        candidates: list[str | None] = []
        if posixpath.splitext(base)[1]:
            candidates.append(base)
        candidates.extend(base + ext for ext in RESOLVE_EXTENSIONS)
        candidates.extend(self._normalize(posixpath.join(base, f"index{ext}")) for ext in RESOLVE_EXTENSIONS)
        return candidates

    def _python_candidates(self, from_file: str, specifier: str) -> list[str | None]:
        level = len(specifier) - len(specifier.lstrip("."))
        package = posixpath.dirname(from_file)
        for _ in range(level - 1):
            package = posixpath.dirname(package)
        rest = specifier[level:].replace(".", "/")
        base = posixpath.join(package, rest) if rest else package
        if not rest:
            return [self._normalize(posixpath.join(base, "__init__.py"))]
        return [
            self._normalize(base + ".py"),
            self._normalize(posixpath.join(base, "__init__.py")),
        ]

    @staticmethod
    def _normalize(path: str) -> str | None:
        """Normalize a relative path; None if it escapes the workspace."""
        normalized = posixpath.normpath(path)
        if normalized == ".." or normalized.startswith("../") or normalized.startswith("/"):
            return None
        return normalized


def _package_name(requirement: str) -> str:
    """'requests>=2.0; python_version<"3.12"' -> 'requests'."""
    return re.split(r"[\s\[<>=!~;@]", requirement.strip(), maxsplit=1)[0]


def package_json_dependencies(root: Path) -> set[str]:
    """Package names under dependencies and devDependencies of package.json."""
    package_json = Path(root) / "package.json"
    if not package_json.exists():
        return set()
    try:
        pkg = json.loads(package_json.read_text())
        return set(pkg.get("dependencies", {}) or {}) | set(pkg.get("devDependencies", {}) or {})
    except (json.JSONDecodeError, OSError, AttributeError, TypeError) as e:
        logger.warning(f"Failed to read {package_json}: {e}")
        return set()


def python_dependencies(root: Path) -> set[str]:
    """Package names from requirements.txt and the [project] table of pyproject.toml."""
    root = Path(root)
    deps: set[str] = set()

    requirements = root / "requirements.txt"
    if requirements.exists():
        try:
            for line in requirements.read_text().splitlines():
                line = line.split("#", 1)[0].strip()
                if line and not line.startswith("-"):
                    deps.add(_package_name(line))
        except OSError as e:
            logger.warning(f"Failed to read {requirements}: {e}")

    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        try:
            data = tomllib.loads(pyproject.read_text())
            for requirement in data.get("project", {}).get("dependencies", []):
                deps.add(_package_name(requirement))
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.warning(f"Failed to read {pyproject}: {e}")

    deps.discard("")
    return deps


def read_manifest_dependencies(root: Path) -> list[str]:
    """Declared dependencies from package.json, requirements.txt and pyproject.toml.

    Args:
        root: Workspace root

    Returns:
        Sorted, de-duplicated package names
    """
    deps = package_json_dependencies(root) | python_dependencies(root)
    deps.discard("")
    return sorted(deps)
