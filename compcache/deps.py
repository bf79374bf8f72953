"""Per-file dependency tracking used to map an edit back to affected files."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path, PurePath
from types import MappingProxyType

from .config import (
    IMMUTABLE_PACKAGE_DIRS,
    coverage_shim_path,
    immutable_patterns,
)

logger = logging.getLogger(__name__)

# Only reachable when running from a source checkout; installed copies are
# already covered by the package directory markers.
_INTERNAL_PREFIX = str(Path(__file__).resolve().parent)
_INTERNAL_SUFFIX = ".py"


def _under(path: str, prefix: str) -> bool:
    # a prefix is either a directory or a single file (the coverage shim)
    if path == prefix:
        return True
    return path.startswith(prefix.rstrip(os.sep) + os.sep)


class ImmutableDependencyFilter:
    """Decide which paths are exempt from per-file dependency tracking.

    Installed packages only change through a version bump, which invalidates
    the cache as a whole, so they are never recorded as dependencies.
    """

    def __init__(
        self,
        *,
        package_dirs: Iterable[str] = IMMUTABLE_PACKAGE_DIRS,
        patterns: Iterable[str] = (),
        internal_prefixes: Iterable[str] = (),
    ) -> None:
        self.package_dirs = frozenset(package_dirs)
        self.patterns = tuple(patterns)
        self.internal_prefixes = tuple(internal_prefixes)
        self._spec = None
        if self.patterns:
            from pathspec.gitignore import GitIgnoreSpec

            self._spec = GitIgnoreSpec.from_lines(self.patterns)

    @classmethod
    def from_environment(cls) -> "ImmutableDependencyFilter":
        prefixes = [_INTERNAL_PREFIX]
        shim = coverage_shim_path()
        if shim is not None:
            prefixes.append(str(shim))
        return cls(patterns=immutable_patterns(), internal_prefixes=prefixes)

    def __call__(self, path: str) -> bool:
        parts = PurePath(path).parts
        if any(part in self.package_dirs for part in parts[:-1]):
            return True
        if self._spec is not None:
            candidate = PurePath(path).as_posix().lstrip("/")
            if candidate and self._spec.match_file(candidate):
                return True
        if path.endswith(_INTERNAL_SUFFIX):
            return any(_under(path, prefix) for prefix in self.internal_prefixes)
        return False


_DEFAULT_FILTER: ImmutableDependencyFilter | None = None


def reset_immutable_filter() -> None:
    """Forget the cached default filter so the next check re-reads the environment."""
    global _DEFAULT_FILTER
    _DEFAULT_FILTER = None


def belongs_to_immutable_package(path: str | os.PathLike[str]) -> bool:
    """Return True if *path* is an installed/immutable dependency."""
    global _DEFAULT_FILTER
    if _DEFAULT_FILTER is None:
        _DEFAULT_FILTER = ImmutableDependencyFilter.from_environment()
    return _DEFAULT_FILTER(os.fspath(path))


class DependencyGraph:
    """Internal and external dependency records plus the collector slot.

    Only one file can be collected at a time. Starting a new collection while
    one is open abandons the open one.
    """

    def __init__(self, *, immutable_filter: ImmutableDependencyFilter | None = None) -> None:
        self._filter = immutable_filter
        self._internal: dict[str, set[str]] = {}
        self._external: dict[str, set[str]] = {}
        self._collector: set[str] | None = None

    def _is_immutable(self, path: str) -> bool:
        if self._filter is None:
            return belongs_to_immutable_package(path)
        return self._filter(path)

    def _filtered(self, file_path: str, deps: Iterable[str | os.PathLike[str]]) -> set[str]:
        result: set[str] = set()
        for dep in deps:
            dep_path = os.fspath(dep)
            if dep_path == file_path or self._is_immutable(dep_path):
                continue
            result.add(dep_path)
        return result

    def begin_collecting(self) -> None:
        if self._collector is not None:
            logger.debug("Abandoning unfinished dependency collection")
        self._collector = set()

    def current_collector(self) -> set[str] | None:
        """Return the live collector the import hook adds resolved files to."""
        return self._collector

    def end_collecting(self, file_path: str | os.PathLike[str]) -> None:
        collector = self._collector
        if collector is None:
            return
        self._collector = None
        key = os.fspath(file_path)
        self._internal[key] = self._filtered(key, collector)
        logger.debug("Recorded %d dependencies for %s", len(self._internal[key]), key)

    def set_external_dependencies(
        self,
        file_path: str | os.PathLike[str],
        deps: Iterable[str | os.PathLike[str]],
    ) -> None:
        key = os.fspath(file_path)
        self._external[key] = self._filtered(key, deps)

    def collect_affected(self, changed_file: str | os.PathLike[str], collector: set[str]) -> None:
        """Add *changed_file* and its direct dependents to *collector*."""

        changed = os.fspath(changed_file)
        collector.add(changed)
        for namespace in (self._internal, self._external):
            for dependent, deps in namespace.items():
                if changed in deps:
                    collector.add(dependent)

    def affected_by(self, changed_file: str | os.PathLike[str]) -> set[str]:
        """Return *changed_file* plus every file that directly depends on it.

        This is a single hop; callers wanting transitive invalidation iterate
        until the result stops growing.
        """

        affected: set[str] = set()
        self.collect_affected(changed_file, affected)
        return affected

    def dependencies_of(self, file_path: str | os.PathLike[str]) -> set[str]:
        return set(self._internal.get(os.fspath(file_path), ()))

    def internal_dependencies(self) -> Mapping[str, set[str]]:
        return MappingProxyType(self._internal)

    def external_dependencies(self) -> Mapping[str, set[str]]:
        return MappingProxyType(self._external)

    def replace_internal(self, file_path: str, deps: Iterable[str]) -> None:
        self._internal[file_path] = set(deps)

    def replace_external(self, file_path: str, deps: Iterable[str]) -> None:
        self._external[file_path] = set(deps)
