"""Error taxonomy for the indexing engine.

Every failure raised while indexing is file-local: the coordinator catches
these per file and keeps going, so a single bad file never aborts a build.
"""


class CodeIndexError(Exception):
    """Base class for indexing errors."""
    pass


class FileReadError(CodeIndexError):
    """Raised when a source file cannot be read (permissions, I/O)."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class ParseError(CodeIndexError):
    """Raised when symbol extraction fails on malformed or unsupported syntax."""

    def __init__(self, path: str, reason: str, line: int | None = None):
        self.path = path
        self.reason = reason
        self.line = line
        where = f"{path}:{line}" if line else path
        super().__init__(f"Cannot parse {where}: {reason}")


class ResolutionError(CodeIndexError):
    """Raised when an import specifier cannot be resolved inside the workspace."""

    def __init__(self, from_file: str, specifier: str):
        self.from_file = from_file
        self.specifier = specifier
        super().__init__(f"Cannot resolve '{specifier}' imported from {from_file}")


class PersistenceError(CodeIndexError):
    """Raised when a persisted index file is missing or corrupt."""
    pass


class IndexCancelledError(CodeIndexError):
    """Raised inside a build when cancellation has been requested."""
    pass


class IndexBusyError(CodeIndexError):
    """Raised when a build is requested while another build is running."""
    pass
