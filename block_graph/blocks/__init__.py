"""Blocks and the block graph."""

from __future__ import annotations

from block_graph.blocks.block import Block
from block_graph.blocks.file_cache import FileCache
from block_graph.blocks.graph import BlockGraph, strip_qualifier
from block_graph.blocks.runtime import Visit, collect_runtime

__all__ = ["Block", "BlockGraph", "FileCache", "Visit", "collect_runtime", "strip_qualifier"]
