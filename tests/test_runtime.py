"""Tests for runtime-dependency closures of blocks."""

import pytest

from block_graph.blocks import Visit, collect_runtime

from fixtures.projects import LAYERED, decl


@pytest.fixture
def graph(make_project):
    files = dict(LAYERED)
    files["src/components/b-form/index.js"] = decl("b-form", deps=["b-input", "b-button"])
    files["src/components/b-form-rev/index.js"] = decl("b-form-rev", deps=["b-button", "b-input"])
    return make_project(files).blocks


class TestRuntimeClosure:
    def test_closure(self, graph):
        result = graph.get("b-input").get_runtime_dependencies()
        assert set(result.runtime) == {"b-input", "b-icon", "b-label", "b-button", "b-spinner", "i-base"}
        assert set(result.parents) == {"b-button", "i-base"}
        assert result.libs == {"core-js", "lodash"}

    def test_root_is_first(self, graph):
        assert next(iter(graph.get("b-input").get_runtime_dependencies().runtime)) == "b-input"

    def test_units_are_blocks(self, graph):
        result = graph.get("b-input").get_runtime_dependencies()
        assert result.runtime["b-button"] is graph.get("b-button")

    def test_dependency_edge_after_parent_edge(self, graph):
        result = graph.get("b-form").get_runtime_dependencies()
        assert "b-button" in result.runtime
        assert set(result.parents) == {"i-base"}

    def test_dependency_edge_before_parent_edge(self, graph):
        result = graph.get("b-form-rev").get_runtime_dependencies()
        assert set(result.parents) == {"i-base"}

    def test_leaf(self, graph):
        result = graph.get("b-icon").get_runtime_dependencies()
        assert list(result.runtime) == ["b-icon"]
        assert result.parents == {}
        assert result.libs == set()

    def test_memoized_per_generation(self, graph):
        block = graph.get("b-input")
        first = block.get_runtime_dependencies()
        assert block.get_runtime_dependencies() is first
        graph.get_all(use_lock=False)
        assert block.get_runtime_dependencies() is not first

    def test_cyclic_dependencies(self, make_project):
        graph = make_project({
            "src/components/b-a/index.js": decl("b-a", deps=["b-b"]),
            "src/components/b-b/index.js": decl("b-b", deps=["b-a"]),
        }).blocks
        assert set(collect_runtime(graph.get("b-a")).runtime) == {"b-a", "b-b"}


def test_visit_states():
    assert {v.name for v in Visit} == {"PARENT_ONLY", "DIRECT"}
