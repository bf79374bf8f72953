"""Export and import of cache state between cooperating processes.

The snapshot is a plain JSON-serializable mapping of ordered ``[key, value]``
pairs::

    {
        "source_maps": [[key, source_map_path], ...],
        "memory_cache": [[file_path, {"code_path": ..., "source_map_path": ...,
                                      "module_url": ...}], ...],
        "file_dependencies": [[file_path, [dep, ...]], ...],
        "external_dependencies": [[file_path, [dep, ...]], ...],
    }

``module_url`` is omitted when unset. Snapshots come from a trusted peer, so a
payload with the wrong shape is an error rather than something to repair.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .store import CompilationCache

logger = logging.getLogger(__name__)

SNAPSHOT_KEYS: tuple[str, ...] = (
    "source_maps",
    "memory_cache",
    "file_dependencies",
    "external_dependencies",
)


class SnapshotError(ValueError):
    """Raised when a cache snapshot does not have the expected structure."""


def _entry_to_dict(entry) -> dict[str, str]:
    data = {
        "code_path": entry.code_path,
        "source_map_path": entry.source_map_path,
    }
    if entry.module_url:
        data["module_url"] = entry.module_url
    return data


def serialize_state(cache: "CompilationCache") -> dict[str, list]:
    """Snapshot source maps, the memory index and both dependency namespaces."""

    deps = cache.dependencies
    return {
        "source_maps": [[key, path] for key, path in cache.source_maps.items()],
        "memory_cache": [
            [file_path, _entry_to_dict(entry)] for file_path, entry in cache.entries()
        ],
        "file_dependencies": [
            [file_path, sorted(values)]
            for file_path, values in deps.internal_dependencies().items()
        ],
        "external_dependencies": [
            [file_path, sorted(values)]
            for file_path, values in deps.external_dependencies().items()
        ],
    }


def _pairs(payload: Mapping[str, Any], name: str) -> Sequence[Sequence[Any]]:
    value = payload.get(name, [])
    if not isinstance(value, (list, tuple)):
        raise SnapshotError(f"Snapshot field {name!r} must be a list of pairs")
    for item in value:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            raise SnapshotError(f"Snapshot field {name!r} contains a malformed entry: {item!r}")
        if not isinstance(item[0], str):
            raise SnapshotError(f"Snapshot field {name!r} has a non-string key: {item[0]!r}")
    return value


def _string_list(value: object, name: str) -> list[str]:
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise SnapshotError(f"Snapshot field {name!r} expects lists of paths")
    return list(value)


def merge_state(cache: "CompilationCache", payload: Mapping[str, Any]) -> None:
    """Apply *payload* on top of *cache*, overwriting entries with equal keys."""

    from .store import CacheEntry

    if not isinstance(payload, Mapping):
        raise SnapshotError("Snapshot must be a mapping")

    source_maps = _pairs(payload, "source_maps")
    memory_cache = _pairs(payload, "memory_cache")
    file_deps = _pairs(payload, "file_dependencies")
    external_deps = _pairs(payload, "external_dependencies")

    entries: list[tuple[str, CacheEntry]] = []
    for file_path, raw in memory_cache:
        if not isinstance(raw, Mapping):
            raise SnapshotError(f"Cache entry for {file_path} must be a mapping")
        try:
            entries.append(
                (
                    file_path,
                    CacheEntry(
                        code_path=str(raw["code_path"]),
                        source_map_path=str(raw["source_map_path"]),
                        module_url=raw.get("module_url") or None,
                    ),
                )
            )
        except KeyError as exc:
            raise SnapshotError(f"Cache entry for {file_path} is missing {exc}") from exc

    internal = [
        (file_path, _string_list(values, "file_dependencies"))
        for file_path, values in file_deps
    ]
    external = [
        (file_path, _string_list(values, "external_dependencies"))
        for file_path, values in external_deps
    ]

    for key, path in source_maps:
        cache.source_maps.register(key, str(path))
    for file_path, entry in entries:
        cache.add_entry(file_path, entry)
    for file_path, values in internal:
        cache.dependencies.replace_internal(file_path, values)
    for file_path, values in external:
        cache.dependencies.replace_external(file_path, values)
    logger.debug(
        "Merged snapshot: %d source maps, %d entries, %d internal, %d external",
        len(source_maps),
        len(entries),
        len(file_deps),
        len(external_deps),
    )


def dumps_state(cache: "CompilationCache", *, indent: int | None = None) -> str:
    return json.dumps(serialize_state(cache), ensure_ascii=False, indent=indent)


def loads_state(text: str) -> dict[str, Any]:
    """Parse a JSON snapshot, raising :class:`SnapshotError` when unusable."""

    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise SnapshotError(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise SnapshotError("Snapshot must be a JSON object")
    return payload
