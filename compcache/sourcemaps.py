"""Registry of source maps consulted when errors are formatted."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterator

from .atomic import read_text_if_exists

logger = logging.getLogger(__name__)


class SourceMapRegistry:
    """Map a runtime module identifier (or file path) to its source map file."""

    def __init__(self) -> None:
        self._paths: dict[str, str] = {}

    def register(self, key: str, source_map_path: str | Path) -> None:
        self._paths[key] = str(source_map_path)

    def path_for(self, key: str) -> str | None:
        return self._paths.get(key)

    def resolve(self, key: str) -> dict[str, Any] | None:
        """Return the parsed source map for *key*, or None when unavailable.

        Unregistered keys, deleted map files and unparsable maps all yield
        None; callers fall back to compiled-code locations.
        """

        path = self._paths.get(key)
        if path is None:
            return None
        try:
            text = read_text_if_exists(path)
        except OSError as exc:
            logger.debug("Unable to read source map %s: %s", path, exc)
            return None
        if text is None:
            return None
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Ignoring malformed source map %s", path)
            return None
        if not isinstance(data, dict):
            return None
        return data

    def items(self) -> list[tuple[str, str]]:
        return list(self._paths.items())

    def clear(self) -> None:
        self._paths.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._paths

    def __len__(self) -> int:
        return len(self._paths)

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)


_ACTIVE_REGISTRY: SourceMapRegistry | None = None


def install_source_map_hook(registry: SourceMapRegistry) -> None:
    """Make *registry* the one consulted by :func:`retrieve_source_map`."""
    global _ACTIVE_REGISTRY
    _ACTIVE_REGISTRY = registry


def uninstall_source_map_hook() -> None:
    global _ACTIVE_REGISTRY
    _ACTIVE_REGISTRY = None


def active_registry() -> SourceMapRegistry | None:
    return _ACTIVE_REGISTRY


def retrieve_source_map(source: str) -> dict[str, Any] | None:
    """Hook for stack-trace formatters.

    Returns ``{"url": source, "map": <parsed map>}`` when a map is registered
    for *source* and still readable, otherwise None.
    """

    registry = _ACTIVE_REGISTRY
    if registry is None:
        return None
    source_map = registry.resolve(source)
    if source_map is None:
        return None
    return {"url": source, "map": source_map}
