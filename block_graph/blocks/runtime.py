"""Runtime-dependency closure of a block."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from block_graph.models import BlockMap, RuntimeDependencies

if TYPE_CHECKING:
    from block_graph.blocks.block import Block


class Visit(enum.Enum):
    PARENT_ONLY = "parent_only"  # reached only through parent edges so far
    DIRECT = "direct"  # reached through a dependency edge (or the root)


def collect_runtime(root: Block, cache: BlockMap | None = None) -> RuntimeDependencies:
    """Depth-first closure over own dependencies and parents of ``root``.

    A block stays in ``parents`` only while every path to it is a parent
    edge; one dependency edge anywhere promotes it to a direct unit.
    """
    states: dict[str, Visit] = {}
    runtime: dict[str, Block] = {}
    libs: set[str] = set()

    def visit(block: Block, via_parent: bool) -> None:
        state = states.get(block.name)

        if state is Visit.DIRECT:
            return

        if state is Visit.PARENT_ONLY:
            if not via_parent:
                states[block.name] = Visit.DIRECT
            return

        states[block.name] = Visit.PARENT_ONLY if via_parent else Visit.DIRECT
        runtime[block.name] = block
        libs.update(block.libs)

        for dep in block.get_dependencies(only_own=True, cache=cache).values():
            visit(dep, False)

        parent = block.get_parent(cache=cache)
        if parent is not None:
            visit(parent, True)

    visit(root, False)

    parents = {
        name: runtime[name]
        for name, state in states.items()
        if state is Visit.PARENT_ONLY
    }
    return RuntimeDependencies(runtime=runtime, parents=parents, libs=libs)
