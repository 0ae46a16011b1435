"""Reading and writing the components lock file."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable

from block_graph.errors import BlockGraphError, LockFileCorruptError
from block_graph.lock.serialization import dumps, loads, serializable_map
from block_graph.models import LockRecord

logger = logging.getLogger(__name__)

LOCK_NAME = "components-lock.json"


def lock_path(directory: Path, lock_prefix: str = "") -> Path:
    return directory / f"{lock_prefix}{LOCK_NAME}"


def read_lock_file(path: Path) -> dict[str, Any] | None:
    """Return the decoded lock file, ``None`` if it does not exist.

    Raises:
        LockFileCorruptError: the file is unreadable or malformed.
    """
    if not path.exists():
        return None
    try:
        data = loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, TypeError, ValueError) as e:
        raise LockFileCorruptError(path, str(e)) from e

    if not isinstance(data, dict) or not isinstance(data.get("hash"), str) or not isinstance(data.get("data"), dict):
        raise LockFileCorruptError(path, "expected {hash, data}")
    return data


def load_lock(path: Path, factory: Callable[[dict[str, Any], Path], Any] | None = None) -> LockRecord | None:
    """Load a lock file, treating a corrupt one as absent.

    ``factory(record, base_dir)`` rebuilds each stored entry; records are
    returned as-is without one.
    """
    try:
        data = read_lock_file(path)
        if data is None:
            return None
        entries = data["data"]
        if factory is not None:
            try:
                entries = {name: factory(record, path.parent) for name, record in entries.items()}
            except (BlockGraphError, KeyError, TypeError, AttributeError) as e:
                raise LockFileCorruptError(path, f"invalid record: {e}") from e
        return LockRecord(hash=data["hash"], data=entries)
    except LockFileCorruptError as e:
        logger.warning("%s, ignoring it", e)
        return None


def save_lock(path: Path, hash: str, blocks: dict[str, Any]) -> None:
    """Write the lock file atomically, paths relative to its directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"hash": hash, "data": serializable_map(blocks)}
    text = dumps(payload, path.parent, indent=2) + "\n"

    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise

    logger.info("wrote %s (%d blocks)", path, len(blocks))
