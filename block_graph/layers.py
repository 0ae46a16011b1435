"""Ranked source layers: the project itself plus its dependency packages."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from block_graph.config import RcConfig, load_rc

logger = logging.getLogger(__name__)

LIB_DIR_NAME = "node_modules"


@dataclass(frozen=True)
class Layer:
    """One ranked source root.

    ``root`` is where component lookups start: the whole source directory
    for the project layer, the block directory for dependency layers.
    """
    index: int
    package: str
    root: Path
    source_dir: Path
    block_dir: Path
    server_dir: Path
    project_type: str
    exclude: frozenset[str] = field(default_factory=frozenset)
    entries_prefix: str | None = None  # import prefix of the package entries


def is_path_inside(path: Path, parent: Path) -> bool:
    try:
        Path(os.path.abspath(path)).relative_to(os.path.abspath(parent))
    except ValueError:
        return False
    return True


def is_node_module(url: str) -> bool:
    """True for bare package specifiers (not relative or absolute paths)."""
    return not os.path.isabs(url) and re.match(r"^[^./\\]", url) is not None


class LayerStack:
    """Ordered layers, index 0 being the project's own sources."""

    def __init__(self, cwd: Path, config: RcConfig, layers: list[Layer], lib_dir: Path):
        self.cwd = cwd
        self.config = config
        self.layers = layers
        self.lib_dir = lib_dir
        self.escape_re = re.compile(rf"^{re.escape(config.super_)}[/\\]")

    @classmethod
    def from_config(cls, cwd: Path, config: RcConfig, lib_dir: Path | None = None) -> LayerStack:
        cwd = Path(os.path.abspath(cwd))
        lib_dir = lib_dir or cwd / LIB_DIR_NAME
        source_dir = cwd / config.source_dir

        layers = [Layer(
            index=0,
            package=config.project_name,
            root=source_dir,
            source_dir=source_dir,
            block_dir=source_dir / config.block_dir,
            server_dir=cwd / config.server_dir,
            project_type=config.project_type,
        )]

        seen: set[str] = set()
        for spec in config.dependency_specs():
            if spec.src in seen:
                continue
            seen.add(spec.src)

            package_dir = lib_dir / spec.src
            if (package_dir / ".pzlrrc").exists():
                dep_config = load_rc(package_dir, warn_missing=False)
            else:
                dep_config = config

            base = package_dir / dep_config.source_dir
            block_dir = base / dep_config.block_dir
            entries_prefix = str(PurePosixPath(spec.src, dep_config.source_dir, dep_config.entries_dir))

            layers.append(Layer(
                index=len(layers),
                package=spec.src,
                root=block_dir,
                source_dir=base,
                block_dir=block_dir,
                server_dir=base / dep_config.server_dir,
                project_type=dep_config.project_type,
                exclude=frozenset(spec.exclude),
                entries_prefix=entries_prefix,
            ))
            logger.debug("layer %d: %s -> %s", len(layers) - 1, spec.src, block_dir)

        return cls(cwd, config, layers, lib_dir)

    def __len__(self) -> int:
        return len(self.layers)

    def __iter__(self):
        return iter(self.layers)

    def __getitem__(self, index: int) -> Layer:
        return self.layers[index]

    @property
    def project(self) -> Layer:
        return self.layers[0]

    @property
    def dependencies(self) -> list[Layer]:
        return self.layers[1:]

    @property
    def source_dirs(self) -> list[Path]:
        return [layer.root for layer in self.layers]

    @property
    def entry_dependencies(self) -> list[str]:
        return [layer.entries_prefix for layer in self.dependencies if layer.entries_prefix]

    def entry(self, name: str = "") -> Path:
        """Path to an entry file, or to the entries directory without a name."""
        entries = self.project.source_dir / self.config.entries_dir
        return entries / f"{name}.js" if name else entries

    def layer_for_path(self, path: Path) -> Layer | None:
        """The layer owning ``path``; dependency layers are checked first."""
        for layer in self.dependencies:
            if is_path_inside(path, layer.source_dir):
                return layer
        if is_path_inside(path, self.cwd):
            return self.project
        return None

    def strip_escape(self, name: str) -> str | None:
        """Return ``name`` without the ancestor-layer marker, or None if absent."""
        if self.escape_re.match(name):
            return self.escape_re.sub("", name, count=1)
        return None
