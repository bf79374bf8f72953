"""compcache package initialization."""

from __future__ import annotations

from .config import cache_dir_context, resolve_cache_dir, set_cache_dir
from .deps import DependencyGraph, ImmutableDependencyFilter, belongs_to_immutable_package
from .paths import CachePaths, content_hash, resolve_cache_paths
from .sourcemaps import SourceMapRegistry, retrieve_source_map
from .store import (
    CacheEntry,
    CompilationCache,
    LookupResult,
    get_default_cache,
    reset_default_cache,
)
from .transfer import SnapshotError, merge_state, serialize_state

__all__ = [
    "__version__",
    "CacheEntry",
    "CachePaths",
    "CompilationCache",
    "DependencyGraph",
    "ImmutableDependencyFilter",
    "LookupResult",
    "SnapshotError",
    "SourceMapRegistry",
    "belongs_to_immutable_package",
    "cache_dir_context",
    "content_hash",
    "get_default_cache",
    "get_version",
    "merge_state",
    "reset_default_cache",
    "resolve_cache_dir",
    "resolve_cache_paths",
    "retrieve_source_map",
    "serialize_state",
    "set_cache_dir",
]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the current package version."""
    return __version__
