"""Language detection for indexed source files."""

from pathlib import Path


# Extension -> language name
EXTENSION_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".vue": "javascript",
    ".svelte": "javascript",
    ".py": "python",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".c": "c",
    ".h": "c",
    ".cs": "csharp",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
}

SUPPORTED_EXTENSIONS = frozenset(EXTENSION_LANGUAGES)


def detect_language(file_path: str | Path) -> str:
    """Map a file path to a language name ('unknown' if unsupported)."""
    return EXTENSION_LANGUAGES.get(Path(file_path).suffix.lower(), "unknown")
