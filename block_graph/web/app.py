"""FastAPI application factory."""

from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI

from block_graph import __version__
from block_graph.project import Project
from block_graph.web.api import router


def create_app(project: Project | None = None, root: Path | None = None) -> FastAPI:
    """Build the API app for ``project`` (or the project found at ``root``)."""
    app = FastAPI(title="block-graph", version=__version__)
    app.state.project = project or Project.load(root)
    app.include_router(router)
    return app
