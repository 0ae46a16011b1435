"""Static import analysis of bundler entry files."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from block_graph.blocks import BlockGraph
from block_graph.declaration import block_name
from block_graph.layers import LayerStack, is_node_module
from block_graph.models import BlockMap, RuntimeDependencies

logger = logging.getLogger(__name__)

_IMPORT_RE = re.compile(r"""^import\s+(['"])(.*?)\1;?""")
_EOL_RE = re.compile(r"\r?\n|\r")
_INSIDE_ENTRY = "./"


def iter_imports(source: str):
    """Yield specifiers of top-of-line ``import '<specifier>';`` statements."""
    for line in _EOL_RE.split(source):
        m = _IMPORT_RE.match(line)
        if m:
            yield m.group(2)


class EntryGrapher:
    """Builds import and runtime graphs for entry files.

    A *foundation* import (``./other-entry`` or an entry of a dependency
    package) is inlined: its own imports are read recursively instead of
    becoming a graph edge. Every other specifier is either a component
    (its basename is a block name) or an opaque runtime unit.
    """

    def __init__(self, layers: LayerStack, graph: BlockGraph):
        self.layers = layers
        self.graph = graph
        prefixes = layers.entry_dependencies
        self._entries_dir_re = (
            re.compile(rf"^(?:{'|'.join(map(re.escape, prefixes))})(?:[/\\]|$)")
            if prefixes else None
        )

    def is_foundation(self, url: str) -> bool:
        if url.startswith(_INSIDE_ENTRY):
            return True
        return (
            self._entries_dir_re is not None
            and is_node_module(url)
            and self._entries_dir_re.match(url) is not None
        )

    def _foundation_file(self, directory: Path, url: str) -> Path:
        base = self.layers.lib_dir if is_node_module(url) else directory
        file = base / f"{url}.js"
        if not file.exists():
            file = base / url / "index.js"
        return file

    def get_entry_imports(self, directory: Path, source: str) -> list[str]:
        """Flattened import list of an entry, foundations inlined in place."""
        result: list[str] = []
        self._collect_imports(Path(directory), source, result, set())
        return result

    def _collect_imports(self, directory: Path, source: str, acc: list[str], seen: set[Path]) -> None:
        for url in iter_imports(source):
            if self.is_foundation(url):
                file = self._foundation_file(directory, url)
                if file in seen:
                    continue
                seen.add(file)
                self._collect_imports(file.parent, self.graph.files.read(file), acc, seen)
            elif is_node_module(url):
                acc.append(url)
            else:
                acc.append(os.path.normpath(directory / url))

    def get_entry_parents(self, source: str) -> list[str]:
        """Foundations an entry is built on, in import order, without duplicates."""
        parents: dict[str, None] = {}
        for url in iter_imports(source):
            if self.is_foundation(url):
                parents[url.replace(_INSIDE_ENTRY, "", 1)] = None
        return list(parents)

    def get_entry_runtime_dependencies(
        self,
        directory: Path,
        source: str,
        cache: BlockMap | None = None,
    ) -> RuntimeDependencies:
        """Merge the runtime closures of every component the entry imports.

        Opaque specifiers are kept as themselves. A unit reached directly
        through any imported component is never reported as a parent.
        """
        deps = RuntimeDependencies()
        direct: set[str] = set()

        for spec in self.get_entry_imports(directory, source):
            name = Path(spec).stem
            if not block_name(name):
                deps.runtime[spec] = spec
                continue

            block = self.graph.lookup(name, cache=cache, referrer=spec)
            block_deps = block.get_runtime_dependencies(cache=cache)

            direct.update(n for n in block_deps.runtime if n not in block_deps.parents)
            deps.runtime.update(block_deps.runtime)
            merged = {**deps.parents, **block_deps.parents}
            deps.parents = {n: unit for n, unit in merged.items() if n not in direct}
            deps.libs |= block_deps.libs

        logger.debug(
            "entry in %s: %d runtime units, %d parents", directory, len(deps.runtime), len(deps.parents),
        )
        return deps
