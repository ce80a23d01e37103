"""File scanner for finding source files to index."""

import fnmatch
import logging
import os
from pathlib import Path
from typing import Iterator

from .config import DEFAULT_IGNORE_DIRS, DEFAULT_IGNORE_PATTERNS
from .languages import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)


class FileScanner:
    """Walks a workspace for source files to index.

    Hidden entries (leading '.') and dependency/build directories are never
    entered. Only files with a supported extension are yielded.

    Attributes:
        extensions: Lower-case file extensions to include
        ignore_dirs: Directory names pruned anywhere in the tree
        ignore_patterns: Glob patterns for files/directories to ignore
        max_file_size: Largest file (bytes) to yield, or None for no limit
    """

    def __init__(
        self,
        extensions: list[str] | None = None,
        ignore_dirs: list[str] | None = None,
        ignore_patterns: list[str] | None = None,
        max_file_size_kb: int | None = None,
    ):
        """Initialize scanner.

        Args:
            extensions: File extensions to include (default: all supported)
            ignore_dirs: Directory names to skip
            ignore_patterns: Glob patterns to ignore
            max_file_size_kb: Skip files larger than this
        """
        self.extensions = frozenset(
            e.lower() for e in (extensions or SUPPORTED_EXTENSIONS)
        )
        self.ignore_dirs = frozenset(
            DEFAULT_IGNORE_DIRS if ignore_dirs is None else ignore_dirs
        )
        self.ignore_patterns = (
            DEFAULT_IGNORE_PATTERNS if ignore_patterns is None else ignore_patterns
        )
        self.max_file_size = max_file_size_kb * 1024 if max_file_size_kb else None

    def iter_files(self, root: Path) -> Iterator[Path]:
        """Lazily yield matching files under root.

        Each call starts a fresh walk, so the sequence is restartable.
        Unreadable directories are logged and skipped.

        Args:
            root: Root directory to scan

        Yields:
            Absolute paths of matching files
        """
        root = Path(root)
        if not root.is_dir():
            return

        def on_error(err: OSError) -> None:
            logger.warning(f"Skipping unreadable directory {err.filename}: {err.strerror}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            current = Path(dirpath)
            # Prune in place so os.walk never descends into ignored dirs
            dirnames[:] = sorted(
                d for d in dirnames
                if not self._is_ignored_dir(d, current / d, root)
            )
            for name in sorted(filenames):
                if name.startswith("."):
                    continue
                file_path = current / name
                if file_path.suffix.lower() not in self.extensions:
                    continue
                if self._should_ignore(file_path, root):
                    continue
                if self.max_file_size is not None:
                    try:
                        if file_path.stat().st_size > self.max_file_size:
                            logger.debug(f"Skipping large file {file_path}")
                            continue
                    except OSError as e:
                        logger.warning(f"Cannot stat {file_path}: {e}")
                        continue
                yield file_path

    def scan(self, root: Path) -> list[Path]:
        """Scan directory for matching files.

        Args:
            root: Root directory to scan

        Returns:
            Sorted list of matching file paths
        """
        return sorted(self.iter_files(root))

    def accepts(self, file_path: Path, root: Path) -> bool:
        """Check whether a single file would be yielded by a scan of root."""
        file_path = Path(file_path)
        try:
            rel_parts = file_path.relative_to(root).parts
        except ValueError:
            return False
        for part in rel_parts[:-1]:
            if part.startswith(".") or part in self.ignore_dirs:
                return False
        if file_path.name.startswith("."):
            return False
        if file_path.suffix.lower() not in self.extensions:
            return False
        return not self._should_ignore(file_path, root)

    def _is_ignored_dir(self, name: str, dir_path: Path, root: Path) -> bool:
        if name.startswith(".") or name in self.ignore_dirs:
            return True
        return self._should_ignore(dir_path, root)

    def _should_ignore(self, file_path: Path, root: Path) -> bool:
        """Check if a path should be ignored.

        Handles glob patterns including:
        - **/generated/** - ignore directories named generated anywhere
        - **/*.min.js - ignore files matching pattern anywhere
        - *.test.* - ignore files matching pattern

        Args:
            file_path: Path to check
            root: Root directory

        Returns:
            True if path should be ignored
        """
        try:
            rel_path = file_path.relative_to(root)
        except ValueError:
            rel_path = file_path

        path_parts = rel_path.parts
        filename = file_path.name

        for pattern in self.ignore_patterns:
            if self._matches_pattern(rel_path, path_parts, filename, pattern):
                return True

        return False

    def _matches_pattern(
        self, rel_path: Path, path_parts: tuple, filename: str, pattern: str
    ) -> bool:
        """Check if a path matches an ignore pattern.

        Args:
            rel_path: Relative path
            path_parts: Tuple of path components
            filename: Just the filename
            pattern: Ignore pattern to check

        Returns:
            True if matches
        """
        # Pattern: **/dirname/** - match if dirname appears anywhere in path
        if pattern.startswith("**/") and pattern.endswith("/**"):
            dirname = pattern[3:-3]
            return dirname in path_parts

        rel_str = rel_path.as_posix()

        # Pattern: **/*.ext - match filename anywhere
        if pattern.startswith("**/"):
            file_pattern = pattern[3:]
            return fnmatch.fnmatch(filename, file_pattern) or fnmatch.fnmatch(
                rel_str, file_pattern
            )

        # Pattern: *.ext or simple pattern - match filename, then full path
        if fnmatch.fnmatch(filename, pattern):
            return True
        return fnmatch.fnmatch(rel_str, pattern)
