"""Mapping from (file, content hash) to on-disk cache artifacts."""

from __future__ import annotations

import hashlib
import os
import re
from dataclasses import dataclass
from pathlib import Path

from .config import CODE_SUFFIX, SOURCE_MAP_SUFFIX, resolve_cache_dir

_NON_WORD_RE = re.compile(r"\W", re.ASCII)


@dataclass(frozen=True, slots=True)
class CachePaths:
    base: Path
    code_path: Path
    source_map_path: Path

    @property
    def shard_dir(self) -> Path:
        return self.base.parent


def sanitize_stem(file_path: str | os.PathLike[str]) -> str:
    """Return the file name without extension and without non-word characters."""

    stem, _ext = os.path.splitext(os.path.basename(os.fspath(file_path)))
    return _NON_WORD_RE.sub("", stem)


def resolve_cache_paths(
    file_path: str | os.PathLike[str],
    content_hash: str,
    cache_dir: Path | str | None = None,
) -> CachePaths:
    """Return the code and source map locations for *file_path* at *content_hash*.

    Entries are sharded by the first two characters of the hash so no single
    directory grows unbounded. Two files whose names sanitize identically are
    told apart only by the hash suffix.
    """

    if not content_hash or len(content_hash) < 2:
        raise ValueError(f"Content hash must be at least 2 characters: {content_hash!r}")
    root = Path(cache_dir) if cache_dir is not None else resolve_cache_dir()
    name = f"{sanitize_stem(file_path)}_{content_hash}"
    base = root / content_hash[:2] / name
    return CachePaths(
        base=base,
        code_path=base.with_name(name + CODE_SUFFIX),
        source_map_path=base.with_name(name + SOURCE_MAP_SUFFIX),
    )


def content_hash(source: str, *salt: str) -> str:
    """Return a stable hash for compiled-input state.

    *salt* carries anything besides the source text that changes the output,
    e.g. transformer options or version strings.
    """

    digest = hashlib.sha1(source.encode("utf-8"))
    for part in salt:
        digest.update(b"\0")
        digest.update((part or "").encode("utf-8"))
    return digest.hexdigest()
