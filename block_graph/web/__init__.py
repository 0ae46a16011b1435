"""Read-only HTTP API over the component graph."""

from block_graph.web.app import create_app

__all__ = ["create_app"]
