"""Entry points: import graphs, build configuration and common chunks."""

from __future__ import annotations

from block_graph.entries.build_config import BuildConfig, Entry, get_build_config
from block_graph.entries.commons import get_common_name, split_common_chunks, union_entry_points
from block_graph.entries.imports import EntryGrapher, iter_imports

__all__ = [
    "BuildConfig",
    "Entry",
    "EntryGrapher",
    "get_build_config",
    "get_common_name",
    "iter_imports",
    "split_common_chunks",
    "union_entry_points",
]
