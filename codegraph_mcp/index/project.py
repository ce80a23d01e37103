"""Workspace overview: primary language, framework and file tree."""

import logging
from collections import Counter
from pathlib import Path
from typing import Iterable

from .imports import package_json_dependencies, python_dependencies
from .models import FileNode, IndexedDocument

logger = logging.getLogger(__name__)


# Checked in order; meta-frameworks come before the libraries they build on
PACKAGE_JSON_FRAMEWORKS = [
    ("next", "next"),
    ("@nestjs/core", "nestjs"),
    ("@angular/core", "angular"),
    ("vue", "vue"),
    ("react", "react"),
    ("express", "express"),
]

PYTHON_FRAMEWORKS = [
    ("django", "django"),
    ("flask", "flask"),
    ("fastapi", "fastapi"),
]

# Substrings of go.mod module paths
GO_FRAMEWORKS = [
    ("gin-gonic", "gin"),
    ("beego", "beego"),
]


def count_languages(documents: Iterable[IndexedDocument]) -> dict[str, int]:
    """Indexed file count per language, unknown languages left out."""
    counts = Counter(doc.language for doc in documents if doc.language != "unknown")
    return dict(sorted(counts.items()))


def detect_primary_language(documents: Iterable[IndexedDocument]) -> str:
    """Language with the most indexed files; ties go to the first name alphabetically."""
    counts = count_languages(documents)
    if not counts:
        return "unknown"
    return min(counts, key=lambda lang: (-counts[lang], lang))


def detect_framework(root: Path) -> str | None:
    """Detect the framework from package.json, Python manifests or go.mod.

    Args:
        root: Workspace root

    Returns:
        Framework name, or None if none is recognised
    """
    root = Path(root)

    js_deps = package_json_dependencies(root)
    for package, framework in PACKAGE_JSON_FRAMEWORKS:
        if package in js_deps:
            return framework

    py_deps = {dep.lower() for dep in python_dependencies(root)}
    for package, framework in PYTHON_FRAMEWORKS:
        if package in py_deps:
            return framework

    go_mod = root / "go.mod"
    if go_mod.exists():
        try:
            content = go_mod.read_text()
        except OSError as e:
            logger.warning(f"Failed to read {go_mod}: {e}")
            return None
        for marker, framework in GO_FRAMEWORKS:
            if marker in content:
                return framework
    return None


def build_file_tree(documents: Iterable[IndexedDocument]) -> list[FileNode]:
    """Nest indexed file paths into directories.

    Directories come before files at each level, each sorted by name.
    """
    root = FileNode(name="", path="", type="directory")
    directories = {"": root}
    for doc in documents:
        parts = doc.file_path.split("/")
        parent = root
        for depth in range(1, len(parts)):
            dir_path = "/".join(parts[:depth])
            node = directories.get(dir_path)
            if node is None:
                node = FileNode(name=parts[depth - 1], path=dir_path, type="directory")
                directories[dir_path] = node
                parent.children.append(node)
            parent = node
        parent.children.append(FileNode(
            name=parts[-1],
            path=doc.file_path,
            type="file",
            language=doc.language,
        ))

    for node in directories.values():
        node.children.sort(key=lambda n: (n.type != "directory", n.name))
    return root.children
