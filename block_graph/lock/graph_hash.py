"""Content hash of everything the resolved block graph depends on."""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any, Iterable

from block_graph.lock.lock_file import read_lock_file
from block_graph.lock.serialization import to_jsonable
from block_graph.errors import LockFileCorruptError
from block_graph.models import BLOCK_TYPE_LIST, MANIFEST_NAME

_TYPES = "".join(BLOCK_TYPE_LIST)
_MANIFEST_PATTERNS = (f"**/[{_TYPES}]-*/{MANIFEST_NAME}", f"**/[{_TYPES}]-*.{MANIFEST_NAME}")
_ASSET_PATTERN = f"**/[{_TYPES}]-*/*"
_ASSET_SUFFIXES = {".js", ".ts", ".styl", ".ss", ".ess"}


def _ignored(path: Path, root: Path, ignore_dirs: list[Path]) -> bool:
    if "tmp" in path.relative_to(root).parts[:-1]:
        return True
    return any(path.is_relative_to(d) for d in ignore_dirs)


def _glob(root: Path, patterns: Iterable[str], ignore_dirs: list[Path]) -> list[Path]:
    if not root.is_dir():
        return []
    found: set[Path] = set()
    for pattern in patterns:
        found.update(p for p in root.glob(pattern) if p.is_file() and not _ignored(p, root, ignore_dirs))
    return sorted(found)


def _rel(path: Path, base: Path) -> str:
    return Path(os.path.relpath(path, base)).as_posix()


def compute_project_hash(
    source_dirs: list[Path],
    entry_dir: Path | None = None,
    lock_prefix: str = "",
    obj_to_hash: Any = None,
    project_root: Path | None = None,
    ignore_dirs: list[Path] | None = None,
) -> str:
    """Hash manifests of every layer, asset names of the project layer and ``obj_to_hash``.

    Manifests contribute their path, modification time and content, so
    touching one changes the hash. ``**/tmp/**`` and the entries
    directory are skipped. ``obj_to_hash`` is normalized the way lock data
    is, so sets and paths hash the same in every process.
    """
    root = project_root or Path.cwd()
    ignore = list(ignore_dirs) if ignore_dirs is not None else ([entry_dir] if entry_dir else [])

    src = hashlib.sha256()
    for source_dir in source_dirs:
        for manifest in _glob(source_dir, _MANIFEST_PATTERNS, ignore):
            src.update(_rel(manifest, root).encode())
            src.update(str(manifest.stat().st_mtime_ns).encode())
            src.update(hashlib.sha256(manifest.read_bytes()).digest())

    project_files: list[str] = []
    if source_dirs:
        project_files = [
            _rel(p, root)
            for p in _glob(source_dirs[0], (_ASSET_PATTERN,), ignore)
            if p.suffix in _ASSET_SUFFIXES
        ]

    payload = {
        "lockPrefix": lock_prefix,
        "srcHash": src.hexdigest(),
        "projectFiles": project_files,
        "objToHash": to_jsonable(obj_to_hash, root),
    }
    return hashlib.sha256(json.dumps(payload, sort_keys=True, default=str).encode()).hexdigest()


def read_graph_hash(lock_file: Path) -> str | None:
    """Hash stored in ``lock_file``, ``None`` if missing or corrupt."""
    try:
        data = read_lock_file(lock_file)
    except LockFileCorruptError:
        return None
    return data["hash"] if data else None
