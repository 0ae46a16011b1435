"""Layered filesystem resolution of component names and asset paths."""

from __future__ import annotations

import logging
import re
import threading
import time
from pathlib import Path, PurePosixPath
from typing import Hashable

from block_graph.errors import AmbiguousContextError
from block_graph.layers import Layer, LayerStack
from block_graph.models import MANIFEST_NAME, Location

logger = logging.getLogger(__name__)

_MAGIC_RE = re.compile(r"[*?[]")
_LOGIC_SUFFIX = ".logic"
_MISSING = object()


class TTLCache:
    """Thread-safe mapping whose entries expire after ``ttl`` seconds."""

    def __init__(self, ttl: float = 1.0):
        self.ttl = ttl
        self._data: dict[Hashable, tuple[float, object]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> object:
        now = time.monotonic()
        with self._lock:
            entry = self._data.get(key)
            if entry is None:
                return _MISSING
            if now - entry[0] > self.ttl:
                del self._data[key]
                return _MISSING
            return entry[1]

    def set(self, key: Hashable, value: object) -> None:
        with self._lock:
            self._data[key] = (time.monotonic(), value)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class Resolver:
    """Finds where a component name (or a component asset path) lives.

    Layers are searched in rank order, the first hit wins. A name ending
    with an extension is an asset path (``b-foo/b-foo.styl``), anything else
    names a component folder holding an ``index.js`` manifest (or a
    flattened ``b-foo.index.js`` manifest).
    """

    def __init__(self, layers: LayerStack, ttl: float = 1.0):
        self.layers = layers
        self._cache = TTLCache(ttl)

    def clear_cache(self) -> None:
        self._cache.clear()

    def block(
        self,
        name: str = "",
        skip: int = 0,
        context: Path | None = None,
    ) -> Path | Location | None:
        """Resolve ``name`` the way build tooling expects.

        Without a name the project block directory is returned. With
        ``skip == 0`` the result is a plain path, otherwise a
        :class:`Location` that reports the matching layer.

        When nothing matches, a bare component name looked up from the top
        layer falls back to a best-guess path under the project block
        directory (callers probing optional assets rely on it); asset paths
        and skip lookups yield ``None``.
        """
        if not name:
            return self.layers.project.block_dir

        location = self.find(name, skip=skip, context=context)
        if location is not None:
            return location if skip else location.path

        if skip or PurePosixPath(name).suffix:
            return None

        clean = self.layers.strip_escape(name) or name
        return self.layers.project.block_dir / clean

    def find(self, name: str, skip: int = 0, context: Path | None = None) -> Location | None:
        """Return the first :class:`Location` for ``name`` at or below layer ``skip``."""
        key = (name, skip, str(context) if context is not None else None)
        cached = self._cache.get(key)
        if cached is not _MISSING:
            return cached  # type: ignore[return-value]

        location = self._find(name, skip, context)
        self._cache.set(key, location)
        logger.debug("resolve %s (skip=%d) -> %s", name, skip, location.path if location else None)
        return location

    def _find(self, name: str, skip: int, context: Path | None) -> Location | None:
        start = skip
        stripped = self.layers.strip_escape(name)

        if stripped is not None:
            if context is None:
                raise AmbiguousContextError(name)
            name = stripped
            owner = self.layers.layer_for_path(context)
            start = max(skip, (owner.index if owner else 0) + 1)

        ext = PurePosixPath(name).suffix

        for layer in self.layers.layers[start:]:
            if ext and ext in layer.exclude:
                continue
            hit = self._search(layer, name, ext)
            if hit is not None:
                return hit

        # "<package>/<name>" targets a single dependency layer
        for layer in self.layers.dependencies:
            prefix = f"{layer.package}/"
            if not name.startswith(prefix):
                continue
            if ext and ext in layer.exclude:
                continue
            return self._search(layer, name[len(prefix):], ext)

        return None

    def _search(self, layer: Layer, name: str, ext: str) -> Location | None:
        root = layer.root
        file = name if ext else f"{name}/{MANIFEST_NAME}"
        if file.endswith(_LOGIC_SUFFIX):
            file = f"{file[:-len(_LOGIC_SUFFIX)]}.{layer.project_type}"

        level = layer.index + 1

        if not _MAGIC_RE.search(file) and (root / file).exists():
            if ext:
                return Location(root / file, level)
            return Location(root / name, level, manifest=root / file)

        match = _first(root, f"**/{file}")
        if match is not None:
            if ext:
                return Location(match, level)
            return Location(match.parent, level, manifest=match)

        if not ext:
            match = _first(root, f"**/{name}.{MANIFEST_NAME}")
            if match is not None:
                return Location(match.parent, level, manifest=match)

        return None


def _first(root: Path, pattern: str) -> Path | None:
    if not root.is_dir():
        return None
    matches = sorted(root.glob(pattern))
    return matches[0] if matches else None
