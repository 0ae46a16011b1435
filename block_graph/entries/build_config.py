"""Entry points of the project and their build configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import Callable

from block_graph.entries.commons import union_entry_points
from block_graph.entries.imports import EntryGrapher
from block_graph.models import BlockMap, RuntimeDependencies, UnionEntryPoints


@dataclass
class Entry:
    """A bundler entry file; its source is read on first use."""
    name: str
    path: Path
    grapher: EntryGrapher = field(repr=False, compare=False)

    @cached_property
    def source(self) -> str:
        return self.path.read_text(encoding="utf-8")

    @cached_property
    def parents(self) -> list[str]:
        return self.grapher.get_entry_parents(self.source)

    @property
    def parent(self) -> str | None:
        return self.parents[0] if self.parents else None

    def get_imports(self) -> list[str]:
        return self.grapher.get_entry_imports(self.path.parent, self.source)

    def get_runtime_dependencies(self, cache: BlockMap | None = None) -> RuntimeDependencies:
        return self.grapher.get_entry_runtime_dependencies(self.path.parent, self.source, cache=cache)


class BuildConfig:
    """A set of entries with the relations between them."""

    def __init__(self, entries: dict[str, Entry], max_workers: int = 8):
        self.entries = entries
        self.max_workers = max_workers

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, name: str) -> Entry:
        return self.entries[name]

    def filter(self, predicate: Callable[[Entry, str], bool]) -> BuildConfig:
        return BuildConfig(
            {name: entry for name, entry in self.entries.items() if predicate(entry, name)},
            max_workers=self.max_workers,
        )

    @cached_property
    def dependencies(self) -> dict[str, list[str]]:
        """Every entry with its foundation chain, most distant foundation first."""
        def down(name: str, acc: list[str], visiting: frozenset[str]) -> list[str]:
            acc = [name, *(n for n in acc if n != name)]
            entry = self.entries.get(name)
            if entry is None or name in visiting:
                return acc
            for parent in reversed(entry.parents):
                acc = down(parent, acc, visiting | {name})
            return acc

        return {name: down(name, [], frozenset()) for name in self.entries}

    @cached_property
    def commons(self) -> dict[str, set[str]]:
        """Each direct foundation mapped to the entries built on top of it."""
        result: dict[str, set[str]] = {}
        for entry in self.entries.values():
            parent = entry.parent
            if not parent or parent in result:
                continue
            result[parent] = {
                name for name, chain in self.dependencies.items() if parent in chain
            }
        return result

    def get_union_entry_points(self, cache: BlockMap | None = None) -> UnionEntryPoints:
        return union_entry_points(self.entries, cache=cache, max_workers=self.max_workers)


def get_build_config(grapher: EntryGrapher) -> BuildConfig:
    """Collect the ``*.js`` files of the project entries directory."""
    entries_dir = grapher.layers.entry()
    entries: dict[str, Entry] = {}
    if entries_dir.is_dir():
        for src in sorted(entries_dir.glob("*.js")):
            entries[src.stem] = Entry(name=src.stem, path=src, grapher=grapher)
    return BuildConfig(entries, max_workers=grapher.graph.max_workers)
