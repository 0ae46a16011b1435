"""Data models shared across the resolution pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    from block_graph.blocks.block import Block


class BlockType(enum.Enum):
    INTERFACE = "interface"
    BLOCK = "block"
    PAGE = "page"
    GLOBAL = "global"
    VIRTUAL = "virtual"


# First character of a component name -> its type
BLOCK_TYPES: dict[str, BlockType] = {
    "i": BlockType.INTERFACE,
    "b": BlockType.BLOCK,
    "p": BlockType.PAGE,
    "g": BlockType.GLOBAL,
    "v": BlockType.VIRTUAL,
}

BLOCK_TYPE_LIST: tuple[str, ...] = tuple(BLOCK_TYPES)

# Name of the declaration file inside a component folder
MANIFEST_NAME = "index.js"


@dataclass(frozen=True)
class Location:
    """Where a name resolved to.

    ``from_layer`` is the index of the matching layer plus one, so it can be
    fed back as a skip count to continue an override chain past the match.
    ``manifest`` is set for component lookups (not for asset lookups).
    """
    path: Path
    from_layer: int
    manifest: Path | None = None


# A runtime unit is either a resolved block or an opaque import specifier
RuntimeUnit = Union["Block", str]
BlockMap = dict[str, "Block"]


@dataclass
class RuntimeDependencies:
    """Transitive closure needed to run a block or an entry."""
    runtime: dict[str, RuntimeUnit] = field(default_factory=dict)
    parents: dict[str, RuntimeUnit] = field(default_factory=dict)
    libs: set[str] = field(default_factory=set)


@dataclass(frozen=True)
class EntryUnit:
    """A runtime unit as placed into an entry or a common chunk."""
    name: str
    is_parent: bool = False


@dataclass
class UnionEntryPoints:
    """Result of common-chunk extraction over a set of entries."""
    dependencies: dict[str, list[str]] = field(default_factory=dict)
    entry: dict[str, dict[str, EntryUnit]] = field(default_factory=dict)


@dataclass(frozen=True)
class LockRecord:
    """Decoded content of a components lock file."""
    hash: str
    data: dict[str, Any]
