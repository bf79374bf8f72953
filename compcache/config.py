"""Global configuration management for compcache."""

from __future__ import annotations

import os
import sys
import tempfile
from contextlib import contextmanager
from contextvars import ContextVar
from pathlib import Path

ENV_CACHE_DIR = "COMPCACHE_CACHE_DIR"
ENV_DEBUG = "COMPCACHE_DEBUG"
ENV_IMMUTABLE_PATTERNS = "COMPCACHE_IMMUTABLE_PATTERNS"
ENV_COVERAGE_SHIM = "COMPCACHE_COVERAGE_SHIM"

CACHE_DIR_NAME = "compcache-transform-cache"
CODE_SUFFIX = ".js"
SOURCE_MAP_SUFFIX = ".map"
IMMUTABLE_PACKAGE_DIRS: tuple[str, ...] = ("node_modules", "site-packages", "dist-packages")

_TRUTHY = {"1", "true", "t", "yes", "y", "on"}

CACHE_DIR: Path | None = None
_CACHE_DIR_OVERRIDE: ContextVar[Path | None] = ContextVar(
    "compcache_cache_dir_override",
    default=None,
)


def default_cache_dir() -> Path:
    """Return the per-user cache root under the OS temp directory."""

    base = Path(tempfile.gettempdir())
    if sys.platform == "win32" or not hasattr(os, "geteuid"):
        return base / CACHE_DIR_NAME
    # geteuid() rather than the login name, which is not always resolvable
    return base / f"{CACHE_DIR_NAME}-{os.geteuid()}"


def _validate_dir(path: Path | str) -> Path:
    dir_path = Path(path).expanduser().resolve()
    if dir_path.exists() and not dir_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {dir_path}")
    return dir_path


def resolve_cache_dir() -> Path:
    """Return the active cache root.

    Context overrides win over :func:`set_cache_dir`, which wins over the
    ``COMPCACHE_CACHE_DIR`` environment variable, which wins over the default.
    """

    override = _CACHE_DIR_OVERRIDE.get()
    if override is not None:
        return override
    if CACHE_DIR is not None:
        return CACHE_DIR
    env_value = (os.environ.get(ENV_CACHE_DIR) or "").strip()
    if env_value:
        return Path(env_value).expanduser().resolve()
    return default_cache_dir()


def set_cache_dir(path: Path | str | None) -> None:
    global CACHE_DIR
    if path is None:
        CACHE_DIR = None
        return
    CACHE_DIR = _validate_dir(path)


@contextmanager
def cache_dir_context(path: Path | str | None):
    """Temporarily override the cache directory for the current context."""

    if path is None:
        yield
        return
    token = _CACHE_DIR_OVERRIDE.set(_validate_dir(path))
    try:
        yield
    finally:
        _CACHE_DIR_OVERRIDE.reset(token)


def debug_enabled() -> bool:
    return (os.environ.get(ENV_DEBUG) or "").strip().lower() in _TRUTHY


def immutable_patterns() -> tuple[str, ...]:
    """Return extra gitignore-style patterns marking immutable dependencies."""

    raw = os.environ.get(ENV_IMMUTABLE_PATTERNS) or ""
    patterns: list[str] = []
    seen: set[str] = set()
    for part in raw.split(os.pathsep):
        token = part.strip()
        if not token or token in seen:
            continue
        seen.add(token)
        patterns.append(token)
    return tuple(patterns)


def coverage_shim_path() -> Path | None:
    raw = (os.environ.get(ENV_COVERAGE_SHIM) or "").strip()
    if not raw:
        return None
    return Path(raw).expanduser().resolve()


def cache_dir_source() -> str:
    """Describe where the active cache root comes from."""

    if _CACHE_DIR_OVERRIDE.get() is not None or CACHE_DIR is not None:
        return "override"
    if (os.environ.get(ENV_CACHE_DIR) or "").strip():
        return ENV_CACHE_DIR
    return "default"
