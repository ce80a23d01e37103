"""Workspace context management for the codegraph MCP server."""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

from .index import IndexBusyError, IndexCoordinator

logger = logging.getLogger(__name__)


@dataclass
class WorkspacePaths:
    """Resolved paths for an indexed workspace."""
    root: Path
    index_dir: Path


class WorkspaceContext:
    """Manages the active workspace and its index coordinator."""

    def __init__(self):
        self._workspace: WorkspacePaths | None = None
        self._coordinator: IndexCoordinator | None = None
        self._build_thread: threading.Thread | None = None
        self.last_build: dict | None = None
        self.last_error: str | None = None

    @property
    def workspace(self) -> WorkspacePaths | None:
        return self._workspace

    @property
    def is_set(self) -> bool:
        return self._workspace is not None

    def set_workspace(self, workspace_path: str, background: bool = True) -> WorkspacePaths:
        """Validate and set the active workspace, then start indexing it.

        The persisted index is loaded straight away so queries work while
        the build runs.

        Args:
            workspace_path: Path to workspace root directory
            background: Build on a background thread instead of blocking

        Returns:
            WorkspacePaths with resolved paths

        Raises:
            ValueError: If the directory does not exist
        """
        root = Path(workspace_path).expanduser().resolve()
        if not root.is_dir():
            raise ValueError(f"Workspace root does not exist: {root}")

        if self._coordinator is not None:
            self._coordinator.cancel()

        coordinator = IndexCoordinator(root)
        coordinator.initialize(build=False)
        self._coordinator = coordinator
        self._workspace = WorkspacePaths(root=root, index_dir=coordinator.index_dir)
        self.last_build = None
        self.last_error = None

        if background:
            self.start_build()
        else:
            self.last_build = coordinator.build_full()
        return self._workspace

    def start_build(self, rebuild: bool = False) -> bool:
        """Run a build on a background thread.

        Returns:
            False if a build is already running
        """
        coordinator = self.require_coordinator()
        if coordinator.is_indexing:
            return False

        def run():
            try:
                if rebuild:
                    self.last_build = coordinator.rebuild_index()
                else:
                    self.last_build = coordinator.build_full()
            except IndexBusyError:
                logger.info("Skipped background build; another build is running")
            except Exception as e:
                logger.exception(f"Background index build failed: {e}")
                self.last_error = str(e)

        self._build_thread = threading.Thread(target=run, name="codegraph-build", daemon=True)
        self._build_thread.start()
        return True

    def wait_for_build(self, timeout: float | None = None) -> None:
        """Block until the current background build (if any) finishes."""
        if self._build_thread is not None:
            self._build_thread.join(timeout)

    def require_coordinator(self) -> IndexCoordinator:
        """Get current coordinator, raising if no workspace is set."""
        if self._coordinator is None:
            raise ValueError("No workspace set. Use codegraph_set_workspace first.")
        return self._coordinator

    def clear(self):
        """Clear the current workspace context."""
        if self._coordinator is not None:
            self._coordinator.cancel()
        self._workspace = None
        self._coordinator = None
        self._build_thread = None
        self.last_build = None
        self.last_error = None
