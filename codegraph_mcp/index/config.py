"""Configuration loader for code indexing."""

import os
import yaml
import logging
from pathlib import Path
from dataclasses import dataclass, field

from .languages import SUPPORTED_EXTENSIONS

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".codegraph"
DEFAULT_STORAGE_DIR = ".codegraph/index"

DEFAULT_IGNORE_DIRS = [
    "node_modules", "dist", "build", "out", "target", "vendor",
    "__pycache__", "venv", ".venv", "coverage",
]
DEFAULT_IGNORE_PATTERNS = [
    "**/*.min.js",
    "**/*.bundle.js",
    "**/*.d.ts",
]


@dataclass
class EmbeddingSettings:
    """Which embedding provider to use and how to size it."""
    provider: str = "hash"
    model: str = "all-MiniLM-L6-v2"
    dimension: int = 512
    cache_size: int = 10000


@dataclass
class IndexConfig:
    """Configuration for the indexing engine."""
    extensions: list[str] = field(default_factory=lambda: sorted(SUPPORTED_EXTENSIONS))
    ignore_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_DIRS))
    ignore_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_IGNORE_PATTERNS))
    max_file_size_kb: int = 1024
    workers: int = 4
    min_block_lines: int = 5
    snippet_chars: int = 500
    storage_dir: str = DEFAULT_STORAGE_DIR
    embedding: EmbeddingSettings = field(default_factory=EmbeddingSettings)


def _env_int(name: str, default: int) -> int:
    """Read an integer override from the environment."""
    try:
        return int(os.environ.get(name, default))
    except (ValueError, TypeError):
        logger.warning(f"Ignoring invalid {name}={os.environ.get(name)!r}")
        return default


def _apply_env_overrides(config: IndexConfig) -> IndexConfig:
    storage = os.environ.get("CODEGRAPH_STORAGE_DIR")
    if storage:
        config.storage_dir = storage
    config.workers = max(1, _env_int("CODEGRAPH_WORKERS", config.workers))
    return config


def load_config(project_root: Path) -> IndexConfig:
    """Load configuration from .codegraph/config.yaml.

    Args:
        project_root: Workspace root directory

    Returns:
        IndexConfig object (with defaults if file missing)
    """
    config_file = Path(project_root) / CONFIG_DIR_NAME / "config.yaml"

    if not config_file.exists():
        return _apply_env_overrides(IndexConfig())

    try:
        content = yaml.safe_load(config_file.read_text())
        if not content:
            return _apply_env_overrides(IndexConfig())

        if "index" not in content:
            logger.debug(f"Config file {config_file} found but 'index' section missing")
            return _apply_env_overrides(IndexConfig())

        data = content["index"] or {}
        defaults = IndexConfig()
        emb = data.get("embedding", {}) or {}
        embedding = EmbeddingSettings(
            provider=emb.get("provider", defaults.embedding.provider),
            model=emb.get("model", defaults.embedding.model),
            dimension=int(emb.get("dimension", defaults.embedding.dimension)),
            cache_size=int(emb.get("cache_size", defaults.embedding.cache_size)),
        )
        config = IndexConfig(
            extensions=[e.lower() for e in data.get("extensions", defaults.extensions)],
            ignore_dirs=data.get("ignore_dirs", defaults.ignore_dirs),
            ignore_patterns=data.get("ignore_patterns", defaults.ignore_patterns),
            max_file_size_kb=int(data.get("max_file_size_kb", defaults.max_file_size_kb)),
            workers=max(1, int(data.get("workers", defaults.workers))),
            min_block_lines=int(data.get("min_block_lines", defaults.min_block_lines)),
            snippet_chars=int(data.get("snippet_chars", defaults.snippet_chars)),
            storage_dir=data.get("storage_dir", defaults.storage_dir),
            embedding=embedding,
        )
        return _apply_env_overrides(config)
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse config file {config_file}: {e}. Using defaults.")
        return _apply_env_overrides(IndexConfig())
    except (TypeError, ValueError, AttributeError) as e:
        logger.warning(f"Invalid values in config {config_file}: {e}. Using defaults.")
        return _apply_env_overrides(IndexConfig())
