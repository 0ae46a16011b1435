"""Common-chunk extraction over the runtime graphs of all entries."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Mapping

from block_graph.models import BlockMap, EntryUnit, RuntimeDependencies, UnionEntryPoints

if TYPE_CHECKING:
    from block_graph.entries.build_config import Entry

COMMON_PREFIX = "common_"


def get_common_name(index: int | str) -> str:
    return f"{COMMON_PREFIX}{index}"


def split_common_chunks(
    graphs: Mapping[str, RuntimeDependencies],
    parents: Mapping[str, list[str]] | None = None,
) -> UnionEntryPoints:
    """Move units shared by several entries into ``common_<n>`` chunks.

    A unit referenced by ``k`` of ``n`` entries (``k > 1``) goes to bucket
    ``n - k``, so ``common_0`` holds what the most entries share; empty
    buckets are dropped and the rest renumbered. A chunk unit is marked as
    a parent when it is a parent-only unit in every entry using it.

    ``parents`` maps an entry to the foundations it imports. An entry
    depends on its nearest foundations that kept any units of their own,
    then on the chunks those foundations do not already pull in.
    """
    parents = parents or {}
    total = len(graphs)

    refs: dict[str, int] = {}
    parent_only: dict[str, bool] = {}
    for graph in graphs.values():
        for unit in graph.runtime:
            refs[unit] = refs.get(unit, 0) + 1
            parent_only[unit] = parent_only.get(unit, True) and unit in graph.parents

    buckets: list[list[str]] = [[] for _ in range(total)]
    for unit, count in refs.items():
        if count > 1:
            buckets[total - count].append(unit)

    result = UnionEntryPoints()
    chunk_of: dict[str, str] = {}
    for index, bucket in enumerate(b for b in buckets if b):
        chunk = get_common_name(index)
        result.entry[chunk] = {unit: EntryUnit(unit, parent_only[unit]) for unit in bucket}
        chunk_of.update(dict.fromkeys(bucket, chunk))

    own_chunks: dict[str, list[str]] = {}
    for name, graph in graphs.items():
        units: dict[str, EntryUnit] = {}
        chunks: dict[str, None] = {}
        for unit in graph.runtime:
            chunk = chunk_of.get(unit)
            if chunk is not None:
                chunks[chunk] = None
            else:
                units[unit] = EntryUnit(unit, unit in graph.parents)
        result.entry[name] = units
        own_chunks[name] = sorted(chunks, key=lambda c: int(c[len(COMMON_PREFIX):]))

    resolved: dict[str, list[str]] = {}

    def foundations(name: str, visiting: set[str]) -> list[str]:
        found: dict[str, None] = {}
        for parent in parents.get(name, []):
            if parent not in graphs or parent in visiting:
                continue
            if result.entry[parent]:
                found[parent] = None
            else:
                found.update(dict.fromkeys(foundations(parent, visiting | {parent})))
        return list(found)

    def reachable(name: str, visiting: set[str]) -> set[str]:
        out: set[str] = set()
        for dep in dependencies_of(name, visiting):
            out.add(dep)
            if dep in graphs and dep not in visiting:
                out |= reachable(dep, visiting | {dep})
        return out

    def dependencies_of(name: str, visiting: set[str]) -> list[str]:
        if name in resolved:
            return resolved[name]
        bases = foundations(name, visiting | {name})
        inherited: set[str] = set()
        for base in bases:
            inherited |= reachable(base, visiting | {name, base})
        deps = bases + [c for c in own_chunks.get(name, []) if c not in inherited]
        resolved[name] = deps
        return deps

    for name in graphs:
        result.dependencies[name] = dependencies_of(name, set())

    return result


def union_entry_points(
    entries: Mapping[str, Entry],
    cache: BlockMap | None = None,
    max_workers: int = 8,
) -> UnionEntryPoints:
    """Runtime graphs of ``entries`` split into entry-owned units and common chunks."""
    names = list(entries)
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        graphs = list(pool.map(lambda n: entries[n].get_runtime_dependencies(cache=cache), names))

    return split_common_chunks(
        dict(zip(names, graphs)),
        {name: entries[name].parents for name in names},
    )
