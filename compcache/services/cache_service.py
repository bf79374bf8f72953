"""Shared helpers for inspecting and removing the on-disk cache."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from ..config import CODE_SUFFIX, SOURCE_MAP_SUFFIX, resolve_cache_dir


@dataclass(frozen=True, slots=True)
class CacheSummary:
    root: Path
    exists: bool
    shards: int = 0
    code_files: int = 0
    map_files: int = 0
    size_bytes: int = 0


def _resolve_root(cache_dir: Path | str | None) -> Path:
    return Path(cache_dir) if cache_dir is not None else resolve_cache_dir()


def cache_summary(cache_dir: Path | str | None = None) -> CacheSummary:
    """Return counts for the artifacts currently stored under the cache root."""

    root = _resolve_root(cache_dir)
    if not root.is_dir():
        return CacheSummary(root=root, exists=False)
    shards = code_files = map_files = size_bytes = 0
    for shard in root.iterdir():
        if not shard.is_dir():
            continue
        shards += 1
        for artifact in shard.iterdir():
            if artifact.name.startswith("."):
                continue
            if artifact.suffix == CODE_SUFFIX:
                code_files += 1
            elif artifact.suffix == SOURCE_MAP_SUFFIX:
                map_files += 1
            else:
                continue
            size_bytes += artifact.stat().st_size
    return CacheSummary(
        root=root,
        exists=True,
        shards=shards,
        code_files=code_files,
        map_files=map_files,
        size_bytes=size_bytes,
    )


def clear_cache_dir(cache_dir: Path | str | None = None) -> int:
    """Remove the whole cache root, returning the number of code artifacts removed."""

    root = _resolve_root(cache_dir)
    if not root.exists():
        return 0
    if not root.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {root}")
    removed = cache_summary(root).code_files
    shutil.rmtree(root)
    return removed
