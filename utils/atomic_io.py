"""JSON config reads and atomic writes guarded by in-process path locks."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

_lock_registry: dict[Path, threading.RLock] = {}
_lock_registry_lock = threading.Lock()


def _get_path_lock(path: Path) -> threading.RLock:
    resolved = path.resolve()
    with _lock_registry_lock:
        lock = _lock_registry.get(resolved)
        if lock is None:
            lock = threading.RLock()
            _lock_registry[resolved] = lock
        return lock


@contextmanager
def locked_path(path: Path) -> Iterator[None]:
    lock = _get_path_lock(path)
    with lock:
        yield


def read_json(path: Path) -> Any:
    """Read a JSON document while holding the path lock.

    Raises:
        OSError: If the file cannot be read
        json.JSONDecodeError: If the file is not valid JSON
    """
    with locked_path(path):
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)


def atomic_write_json(path: Path, payload: Any, *, indent: int | None = 2) -> None:
    """Write ``payload`` next to ``path`` and swap it into place."""
    data = json.dumps(payload, indent=indent, ensure_ascii=False).encode("utf-8")
    path.parent.mkdir(parents=True, exist_ok=True)
    with locked_path(path):
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass
