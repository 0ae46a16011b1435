"""Wiring of configuration, layers, caches, resolver, graph and entries."""

from __future__ import annotations

from pathlib import Path

from block_graph.blocks import BlockGraph, FileCache
from block_graph.config import RcConfig, load_rc
from block_graph.declaration import DeclarationParser
from block_graph.entries import BuildConfig, EntryGrapher, get_build_config
from block_graph.layers import LayerStack
from block_graph.resolver import Resolver


class Project:
    """One independent resolution context for a project directory.

    Each instance owns its caches, so two projects (or two test cases)
    never share resolved state.
    """

    def __init__(
        self,
        root: Path,
        config: RcConfig,
        *,
        lib_dir: Path | None = None,
        ttl: float = 1.0,
        max_workers: int = 8,
    ):
        self.root = root
        self.config = config
        self.layers = LayerStack.from_config(root, config, lib_dir=lib_dir)
        self.resolver = Resolver(self.layers, ttl=ttl)
        self.blocks = BlockGraph(
            self.resolver,
            parser=DeclarationParser(),
            files=FileCache(),
            max_workers=max_workers,
        )
        self.entries = EntryGrapher(self.layers, self.blocks)

    @classmethod
    def load(cls, root: Path | str | None = None, **kwargs) -> Project:
        """Read ``.pzlrrc`` from ``root`` (default: current directory)."""
        root = Path(root or Path.cwd()).resolve()
        return cls(root, load_rc(root), **kwargs)

    def get_build_config(self) -> BuildConfig:
        return get_build_config(self.entries)

    def __repr__(self) -> str:
        return f"Project({str(self.root)!r}, layers={len(self.layers)})"
