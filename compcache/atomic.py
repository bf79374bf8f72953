"""Crash-safe file writes for cache artifacts."""

from __future__ import annotations

import os
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


@contextmanager
def atomic_target(path: Path | str) -> Iterator[Path]:
    """Yield a temporary sibling of *path* that replaces it on clean exit.

    The temporary file lives in the target's directory so the final
    ``os.replace`` never crosses a filesystem boundary. On any exception the
    temporary file is removed and the error re-raised; the target is left
    untouched.
    """

    target = Path(path)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=target.parent,
    )
    os.close(fd)
    tmp_path = Path(tmp_name)
    try:
        yield tmp_path
        os.replace(tmp_path, target)
    except BaseException:
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        raise


def atomic_write_text(path: Path | str, text: str, *, encoding: str = "utf-8") -> None:
    """Write *text* to *path* so readers see either the old or the new file."""

    with atomic_target(path) as tmp_path:
        with open(tmp_path, "w", encoding=encoding) as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())


def read_text_if_exists(path: Path | str, *, encoding: str = "utf-8") -> str | None:
    """Return the file content, or None when the file does not exist."""

    try:
        return Path(path).read_text(encoding=encoding)
    except FileNotFoundError:
        return None
