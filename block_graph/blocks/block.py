"""Resolved component: a declaration plus its files on disk."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from block_graph.blocks.runtime import collect_runtime
from block_graph.declaration import Declaration, validate
from block_graph.models import BlockMap, BlockType, RuntimeDependencies

if TYPE_CHECKING:
    from block_graph.blocks.graph import BlockGraph

_PATH_FIELDS = ("manifest", "logic", "tpl", "etpl")


class Block:
    """A component declaration resolved against the source layers.

    ``logic``, ``tpl`` and ``etpl`` are ``None`` and ``styles`` is empty when
    the component has no such file. Graph views (parents, dependency sets,
    runtime closure) go through the owning :class:`BlockGraph` and are
    memoized per graph generation.
    """

    def __init__(
        self,
        declaration: Declaration,
        manifest: Path,
        *,
        logic: Path | None = None,
        tpl: Path | None = None,
        etpl: Path | None = None,
        styles: list[Path] | None = None,
        graph: BlockGraph | None = None,
    ):
        self.declaration = declaration
        self.manifest = manifest
        self.logic = logic
        self.tpl = tpl
        self.etpl = etpl
        self.styles = list(styles or [])
        self._graph = graph
        self._memo: dict[tuple, tuple[int, Any, Any]] = {}

    def __repr__(self) -> str:
        return f"Block({self.name!r}, manifest={str(self.manifest)!r})"

    # ── Declaration fields ──────────────────────────────────

    @property
    def name(self) -> str:
        return self.declaration.name

    @property
    def type(self) -> BlockType:
        return self.declaration.type

    @property
    def parent(self) -> str | None:
        return self.declaration.parent

    @property
    def mixin(self) -> bool:
        return self.declaration.mixin

    @property
    def dependencies(self) -> tuple[str, ...]:
        return self.declaration.dependencies

    @property
    def libs(self) -> tuple[str, ...]:
        return self.declaration.libs

    @property
    def graph(self) -> BlockGraph:
        if self._graph is None:
            raise RuntimeError(f"Block {self.name!r} is not attached to a graph")
        return self._graph

    # ── Graph views ─────────────────────────────────────────

    def _memoized(self, key: tuple, cache: BlockMap | None, compute: Callable[[], Any]) -> Any:
        generation = self.graph.generation
        entry = self._memo.get(key)
        if entry is not None and entry[0] == generation and entry[1] is cache:
            return entry[2]
        value = compute()
        self._memo[key] = (generation, cache, value)
        return value

    def get_parent(self, cache: BlockMap | None = None) -> Block | None:
        if not self.parent:
            return None
        return self.graph.lookup(self.parent, cache=cache, referrer=self.name)

    def _ancestors(self, cache: BlockMap | None) -> list[Block]:
        """Parent chain, nearest first; a cyclic ``extends`` chain stops at the repeat."""
        chain: list[Block] = []
        seen = {self.name}
        parent = self.get_parent(cache)
        while parent is not None and parent.name not in seen:
            seen.add(parent.name)
            chain.append(parent)
            parent = parent.get_parent(cache)
        return chain

    def _collect(self, field: str, only_own: bool, cache: BlockMap | None) -> list[str]:
        values = list(getattr(self, field))
        if not only_own:
            for ancestor in self._ancestors(cache):
                values[0:0] = getattr(ancestor, field)
        return list(dict.fromkeys(values))

    def get_dependencies(self, only_own: bool = False, cache: BlockMap | None = None) -> BlockMap:
        """Dependencies resolved to blocks.

        With ``only_own`` just the declared dependencies; otherwise the
        dependencies of every ancestor come first, most distant ancestor
        first, duplicates collapsed to their first occurrence.
        """
        def compute() -> BlockMap:
            names = self._collect("dependencies", only_own, cache)
            blocks = (self.graph.lookup(name, cache=cache, referrer=self.name) for name in names)
            return {block.name: block for block in blocks}

        return self._memoized(("dependencies", only_own), cache, compute)

    def get_libs(self, only_own: bool = False, cache: BlockMap | None = None) -> list[str]:
        """Library identifiers, ancestor libraries first, without duplicates."""
        return self._memoized(
            ("libs", only_own), cache, lambda: self._collect("libs", only_own, cache),
        )

    def get_runtime_dependencies(self, cache: BlockMap | None = None) -> RuntimeDependencies:
        return self._memoized(("runtime",), cache, lambda: collect_runtime(self, cache))

    # ── Lock records ────────────────────────────────────────

    def to_record(self) -> dict[str, Any]:
        return {
            "declaration": self.declaration.model_dump(mode="json"),
            "manifest": self.manifest,
            "logic": self.logic,
            "tpl": self.tpl,
            "etpl": self.etpl,
            "styles": list(self.styles),
        }

    @classmethod
    def from_record(cls, record: dict[str, Any], base: Path, graph: BlockGraph | None = None) -> Block:
        """Rebuild a block from a lock record whose paths are relative to ``base``."""
        paths = {
            key: _absolute(base, record[key]) if record.get(key) else None
            for key in _PATH_FIELDS
        }
        return cls(
            validate(record["declaration"]),
            paths.pop("manifest"),
            styles=[_absolute(base, src) for src in record.get("styles") or []],
            graph=graph,
            **paths,
        )


def _absolute(base: Path, value: str) -> Path:
    return Path(os.path.normpath(base / value))
