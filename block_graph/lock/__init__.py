"""Project graph hashing and the persisted components lock file."""

from __future__ import annotations

from block_graph.lock.graph_hash import compute_project_hash, read_graph_hash
from block_graph.lock.lock_file import LOCK_NAME, load_lock, lock_path, read_lock_file, save_lock
from block_graph.lock.serialization import serializable_map, serializable_set

__all__ = [
    "LOCK_NAME",
    "compute_project_hash",
    "load_lock",
    "lock_path",
    "read_graph_hash",
    "read_lock_file",
    "save_lock",
    "serializable_map",
    "serializable_set",
]
