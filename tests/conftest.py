"""Shared fixtures: throwaway layered projects written into tmp_path."""

from __future__ import annotations

import pytest

from block_graph.project import Project

from fixtures.projects import LAYERED, write_tree


@pytest.fixture
def make_project(tmp_path):
    """Write ``files`` under tmp_path and load a Project from it."""
    def _make(files: dict[str, str], **kwargs) -> Project:
        write_tree(tmp_path, files)
        return Project.load(tmp_path, **kwargs)
    return _make


@pytest.fixture
def layered(make_project) -> Project:
    return make_project(LAYERED)
