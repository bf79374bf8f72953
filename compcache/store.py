"""Compilation cache: in-memory index backed by sharded on-disk artifacts."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from .atomic import atomic_write_text
from .config import resolve_cache_dir
from .deps import DependencyGraph, reset_immutable_filter
from .paths import CachePaths, resolve_cache_paths
from .sourcemaps import (
    SourceMapRegistry,
    active_registry,
    install_source_map_hook,
    uninstall_source_map_hook,
)

logger = logging.getLogger(__name__)

SourceMap = Mapping[str, Any] | str
Populate = Callable[..., None]


@dataclass(frozen=True, slots=True)
class CacheEntry:
    code_path: str
    source_map_path: str
    module_url: str | None = None


@dataclass(slots=True)
class LookupResult:
    cached_code: str | None = None
    populate: Populate | None = None

    @property
    def hit(self) -> bool:
        return self.cached_code is not None


class CompilationCache:
    """Per-process compilation cache.

    ``lookup`` answers from memory first (keyed by file path only; a file
    compiled earlier in this process is assumed current), then from disk
    (keyed by file path and content hash). Misses hand back a ``populate``
    callable bound to the resolved artifact paths.
    """

    def __init__(
        self,
        cache_dir: Path | str | None = None,
        *,
        registry: SourceMapRegistry | None = None,
        dependencies: DependencyGraph | None = None,
        install_hook: bool = False,
    ) -> None:
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        self._entries: dict[str, CacheEntry] = {}
        self.source_maps = registry if registry is not None else SourceMapRegistry()
        self.dependencies = dependencies if dependencies is not None else DependencyGraph()
        if install_hook:
            install_source_map_hook(self.source_maps)

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir if self._cache_dir is not None else resolve_cache_dir()

    def resolve_paths(self, file_path: str | os.PathLike[str], content_hash: str) -> CachePaths:
        return resolve_cache_paths(file_path, content_hash, self.cache_dir)

    def _record(self, file_path: str, entry: CacheEntry) -> None:
        self.source_maps.register(entry.module_url or file_path, entry.source_map_path)
        self._entries[file_path] = entry

    def lookup(
        self,
        file_path: str | os.PathLike[str],
        content_hash: str,
        module_url: str | None = None,
    ) -> LookupResult:
        key = os.fspath(file_path)
        entry = self._entries.get(key)
        if entry is not None and entry.code_path:
            try:
                code = Path(entry.code_path).read_text(encoding="utf-8")
            except (FileNotFoundError, NotADirectoryError):
                logger.debug("Dropping stale memory entry for %s", key)
                del self._entries[key]
            else:
                logger.debug("Memory hit for %s", key)
                return LookupResult(cached_code=code)

        paths = self.resolve_paths(key, content_hash)
        try:
            code = paths.code_path.read_text(encoding="utf-8")
        except (FileNotFoundError, NotADirectoryError):
            code = None
        if code is not None:
            logger.debug("Disk hit for %s (%s)", key, content_hash)
            self._record(
                key,
                CacheEntry(
                    code_path=str(paths.code_path),
                    source_map_path=str(paths.source_map_path),
                    module_url=module_url,
                ),
            )
            return LookupResult(cached_code=code)

        def populate(code: str, source_map: SourceMap | None = None) -> None:
            self._populate(key, paths, module_url, code, source_map)

        return LookupResult(populate=populate)

    def _populate(
        self,
        file_path: str,
        paths: CachePaths,
        module_url: str | None,
        code: str,
        source_map: SourceMap | None,
    ) -> None:
        paths.shard_dir.mkdir(parents=True, exist_ok=True)
        if source_map is not None:
            text = source_map if isinstance(source_map, str) else json.dumps(source_map)
            atomic_write_text(paths.source_map_path, text)
        atomic_write_text(paths.code_path, code)
        self._record(
            file_path,
            CacheEntry(
                code_path=str(paths.code_path),
                source_map_path=str(paths.source_map_path),
                module_url=module_url,
            ),
        )
        logger.debug("Cached %s at %s", file_path, paths.code_path)

    def entry_for(self, file_path: str | os.PathLike[str]) -> CacheEntry | None:
        return self._entries.get(os.fspath(file_path))

    def entries(self) -> list[tuple[str, CacheEntry]]:
        return list(self._entries.items())

    def add_entry(self, file_path: str, entry: CacheEntry) -> None:
        """Insert *entry* without registering a source map."""
        self._entries[file_path] = entry

    def clear(self) -> None:
        """Forget everything held in memory. Disk artifacts are kept."""
        self._entries.clear()
        self.source_maps.clear()

    # Dependency tracking, forwarded so loaders only need the cache object.

    def begin_collecting(self) -> None:
        self.dependencies.begin_collecting()

    def current_collector(self) -> set[str] | None:
        return self.dependencies.current_collector()

    def end_collecting(self, file_path: str | os.PathLike[str]) -> None:
        self.dependencies.end_collecting(file_path)

    def set_external_dependencies(
        self,
        file_path: str | os.PathLike[str],
        deps: Iterable[str | os.PathLike[str]],
    ) -> None:
        self.dependencies.set_external_dependencies(file_path, deps)

    def affected_by(self, changed_file: str | os.PathLike[str]) -> set[str]:
        return self.dependencies.affected_by(changed_file)

    def dependencies_of(self, file_path: str | os.PathLike[str]) -> set[str]:
        return self.dependencies.dependencies_of(file_path)

    def serialize(self) -> dict[str, list]:
        from .transfer import serialize_state

        return serialize_state(self)

    def merge(self, payload: Mapping[str, Any]) -> None:
        from .transfer import merge_state

        merge_state(self, payload)

    def __contains__(self, file_path: object) -> bool:
        if not isinstance(file_path, (str, os.PathLike)):
            return False
        return os.fspath(file_path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


_DEFAULT_CACHE: CompilationCache | None = None


def get_default_cache() -> CompilationCache:
    """Return the process-wide cache, creating it on first use."""
    global _DEFAULT_CACHE
    if _DEFAULT_CACHE is None:
        _DEFAULT_CACHE = CompilationCache(install_hook=True)
    return _DEFAULT_CACHE


def reset_default_cache() -> None:
    """Drop the process-wide cache and re-read the immutable-path settings."""
    global _DEFAULT_CACHE
    if _DEFAULT_CACHE is not None and active_registry() is _DEFAULT_CACHE.source_maps:
        uninstall_source_map_hook()
    _DEFAULT_CACHE = None
    reset_immutable_filter()
