"""Block graph builder: loads declarations through the resolver and caches blocks."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Iterable

from block_graph.blocks.block import Block
from block_graph.blocks.file_cache import FileCache
from block_graph.declaration import Declaration, DeclarationParser, block_name
from block_graph.errors import BlockNotFoundError
from block_graph.lock import compute_project_hash, load_lock, lock_path, save_lock
from block_graph.models import BLOCK_TYPE_LIST, MANIFEST_NAME, BlockMap, LockRecord, Location
from block_graph.resolver import Resolver

logger = logging.getLogger(__name__)

_TYPES = "".join(BLOCK_TYPE_LIST)
_VIRTUAL_SUFFIX = f".{MANIFEST_NAME}"

# (manifest, st_mtime_ns) of every file a loaded block was built from
Stamps = tuple[tuple[Path, int], ...]


def _union(values: Iterable[str], extra: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys([*values, *extra]))


def _stamp(path: Path) -> tuple[Path, int]:
    return path, path.stat().st_mtime_ns


def _fresh(stamps: Stamps) -> bool:
    try:
        return all(path.stat().st_mtime_ns == mtime for path, mtime in stamps)
    except FileNotFoundError:
        return False


def strip_qualifier(reference: str) -> str:
    """Drop the ``@`` qualifier of a dependency reference.

    ``@b-foo`` names the top-most ``b-foo``; a ``<package>/b-foo`` reference
    stays as it is, it is pinned to that package's layer.
    """
    return reference[1:] if reference.startswith("@") else reference


def is_package_qualified(reference: str) -> bool:
    return "/" in reference


class BlockGraph:
    """Resolves component names into :class:`Block` objects.

    Loaded blocks are cached by manifest path until the modification time
    of the manifest (or of any lower-layer manifest folded into a mixin)
    changes. ``generation`` increases every time :meth:`get_all` produces a
    new block map, which invalidates the views memoized on blocks.
    """

    def __init__(
        self,
        resolver: Resolver,
        *,
        parser: DeclarationParser | None = None,
        files: FileCache | None = None,
        max_workers: int = 8,
    ):
        self.resolver = resolver
        self.layers = resolver.layers
        self.parser = parser or DeclarationParser()
        self.files = files or FileCache()
        self.max_workers = max_workers
        self.generation = 0
        self._blocks: dict[Path, tuple[Stamps, Block]] = {}
        self._lock = threading.Lock()
        self._obj_to_hash: Any = None

    # ── Single blocks ───────────────────────────────────────

    def get(self, name: str, referrer: str | None = None) -> Block:
        """Return the block for ``name`` (plain, ``@``- or package-qualified).

        Raises:
            BlockNotFoundError: no layer provides a manifest for ``name``.
        """
        location = self.resolver.find(strip_qualifier(name))
        if location is None or location.manifest is None or not location.manifest.is_file():
            raise BlockNotFoundError(name, referrer)
        return self.load(location)

    def lookup(self, name: str, cache: BlockMap | None = None, referrer: str | None = None) -> Block:
        """Resolve ``name`` against ``cache`` when one is given, else the filesystem.

        A block map holds the top-most block of every name only, so
        package-qualified references always go to their own layer.
        """
        reference = strip_qualifier(name)
        if cache is None or is_package_qualified(reference):
            return self.get(name, referrer=referrer)
        block = cache.get(reference)
        if block is None:
            raise BlockNotFoundError(name, referrer)
        return block

    def load(self, location: Location) -> Block:
        """Build (or reuse) the block declared by ``location.manifest``."""
        manifest = location.manifest
        if manifest is None:
            raise ValueError(f"{location.path} is not a component location (no manifest)")

        cached = self._blocks.get(manifest)
        if cached is not None and _fresh(cached[0]):
            return cached[1]

        stamps = [_stamp(manifest)]
        declaration = self.parser.parse(self.files.read(manifest))
        if declaration.mixin:
            declaration = self._fold_mixins(declaration, location.from_layer, stamps)

        block = Block(declaration, manifest, graph=self, **self._assets(declaration.name))
        with self._lock:
            self._blocks[manifest] = (tuple(stamps), block)
        return block

    def _fold_mixins(
        self,
        declaration: Declaration,
        from_layer: int,
        stamps: list[tuple[Path, int]],
    ) -> Declaration:
        """Merge the same-named declarations of lower layers into a mixin.

        Walks down the override chain until a non-mixin declaration or the
        last layer; each step starts one layer past the previous match, so
        the loop runs at most once per layer. Every manifest read is added
        to ``stamps``.
        """
        parent = declaration.parent
        dependencies = declaration.dependencies
        libs = declaration.libs
        skip = from_layer

        for _ in range(len(self.layers)):
            location = self.resolver.find(declaration.name, skip=skip)
            if location is None or location.manifest is None or not location.manifest.is_file():
                break

            stamps.append(_stamp(location.manifest))
            ancestor = self.parser.parse(self.files.read(location.manifest))
            if parent is None:
                parent = ancestor.parent
            dependencies = _union(dependencies, ancestor.dependencies)
            libs = _union(libs, ancestor.libs)

            if not ancestor.mixin:
                break
            skip = location.from_layer

        return declaration.model_copy(update={
            "parent": parent,
            "dependencies": dependencies,
            "libs": libs,
        })

    def _find_file(self, name: str) -> Path | None:
        location = self.resolver.find(name)
        return location.path if location is not None else None

    def _assets(self, name: str) -> dict[str, Any]:
        styles: list[Path] = []
        main_style = self._find_file(f"{name}/{name}.styl")
        if main_style is not None:
            styles.append(main_style)
            styles.extend(p for p in sorted(main_style.parent.glob("*.styl")) if p != main_style)

        return {
            "logic": self._find_file(f"{name}/{name}.logic"),
            "tpl": self._find_file(f"{name}/{name}.ss"),
            "etpl": self._find_file(f"{name}/{name}.ess"),
            "styles": styles,
        }

    # ── Whole graph ─────────────────────────────────────────

    def set_obj_to_hash(self, obj: Any) -> None:
        """Extra data that invalidates the lock file when it changes."""
        self._obj_to_hash = obj

    def lock_path(self, lock_prefix: str | None = None) -> Path:
        prefix = self.layers.config.lock_prefix if lock_prefix is None else lock_prefix
        return lock_path(self.layers.cwd, prefix)

    def project_hash(self, lock_prefix: str | None = None) -> str:
        prefix = self.layers.config.lock_prefix if lock_prefix is None else lock_prefix
        return compute_project_hash(
            self.layers.source_dirs,
            entry_dir=self.layers.entry(),
            lock_prefix=prefix,
            obj_to_hash=self._obj_to_hash,
            project_root=self.layers.cwd,
        )

    def get_all(
        self,
        names: Iterable[str] | None = None,
        *,
        lock_prefix: str | None = None,
        use_lock: bool = True,
    ) -> BlockMap:
        """Resolve ``names``, or every component of every layer.

        The full map is served from the lock file while the project hash
        matches; otherwise it is rebuilt and the lock file rewritten once
        the whole resolution has succeeded.
        """
        if names is not None:
            return self._resolve_many(list(names))

        if not use_lock:
            return self._advance(self._discover())

        path = self.lock_path(lock_prefix)
        project_hash = self.project_hash(lock_prefix)

        record = self._read_lock(path)
        if record is not None and record.hash == project_hash:
            logger.debug("lock %s is up to date, %d blocks", path, len(record.data))
            return self._advance(record.data)

        logger.info("resolving all blocks (lock %s is stale or missing)", path)
        blocks = self._discover()
        save_lock(path, project_hash, blocks)
        return self._advance(blocks)

    def cache_from_path(self, path: Path | str) -> BlockMap | None:
        """Read the block map stored in a lock file, without checking its hash.

        Returns None when the file is missing or unreadable.
        """
        record = self._read_lock(Path(path))
        return None if record is None else record.data

    def _read_lock(self, path: Path) -> LockRecord | None:
        return load_lock(path, lambda rec, base: Block.from_record(rec, base, graph=self))

    def _advance(self, blocks: BlockMap) -> BlockMap:
        with self._lock:
            self.generation += 1
        return blocks

    def _resolve_many(self, names: list[str]) -> BlockMap:
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            blocks = list(pool.map(self.get, names))
        return {block.name: block for block in blocks}

    def discover(self) -> list[Location]:
        """Component manifests of all layers, project layer shadowing lower ones."""
        seen: dict[str, Location] = {}

        for layer in self.layers:
            root = layer.root
            if not root.is_dir():
                continue

            found: list[tuple[str, Path, Path]] = []
            for manifest in root.glob(f"**/[{_TYPES}]-*/{MANIFEST_NAME}"):
                found.append((manifest.parent.name, manifest.parent, manifest))
            for manifest in root.glob(f"**/[{_TYPES}]-*{_VIRTUAL_SUFFIX}"):
                found.append((manifest.name[:-len(_VIRTUAL_SUFFIX)], manifest.parent, manifest))

            for name, folder, manifest in sorted(found, key=lambda f: str(f[2])):
                if not block_name(name) or name in seen or not manifest.is_file():
                    continue
                seen[name] = Location(folder, layer.index + 1, manifest=manifest)

        return list(seen.values())

    def _discover(self) -> BlockMap:
        locations = self.discover()
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            blocks = list(pool.map(self.load, locations))
        return {block.name: block for block in blocks}

    def clear(self) -> None:
        """Forget loaded blocks, parsed declarations and resolver results."""
        with self._lock:
            self._blocks.clear()
            self.generation += 1
        self.files.clear()
        self.parser.clear()
        self.resolver.clear_cache()
