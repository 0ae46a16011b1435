"""block-graph: dependency resolution for layered BEM-style components."""

from __future__ import annotations

from block_graph.blocks import Block, BlockGraph
from block_graph.config import RcConfig, load_rc
from block_graph.declaration import Declaration, parse, serialize, validate
from block_graph.entries import BuildConfig, Entry
from block_graph.errors import (
    AmbiguousContextError,
    BlockGraphError,
    BlockNotFoundError,
    ConfigError,
    DeclarationError,
    LockFileCorruptError,
)
from block_graph.layers import Layer, LayerStack
from block_graph.models import BlockType, EntryUnit, Location, RuntimeDependencies, UnionEntryPoints
from block_graph.project import Project
from block_graph.resolver import Resolver

__version__ = "0.1.0"

__all__ = [
    "AmbiguousContextError",
    "Block",
    "BlockGraph",
    "BlockGraphError",
    "BlockNotFoundError",
    "BlockType",
    "BuildConfig",
    "ConfigError",
    "Declaration",
    "DeclarationError",
    "Entry",
    "EntryUnit",
    "Layer",
    "LayerStack",
    "Location",
    "LockFileCorruptError",
    "Project",
    "RcConfig",
    "Resolver",
    "RuntimeDependencies",
    "UnionEntryPoints",
    "load_rc",
    "parse",
    "serialize",
    "validate",
]
