"""Tests for common-chunk extraction across entries."""

from block_graph.entries import get_common_name, split_common_chunks
from block_graph.models import EntryUnit, RuntimeDependencies

from fixtures.projects import LAYERED


def graph(units, parents=()):
    return RuntimeDependencies(
        runtime={u: u for u in units},
        parents={p: p for p in parents},
    )


class TestSplitCommonChunks:
    def test_shared_units_extracted(self):
        result = split_common_chunks({
            "p-one": graph(["a", "b", "c"]),
            "p-two": graph(["b", "c", "d"]),
            "p-three": graph(["b", "c"]),
        })
        assert set(result.entry["common_0"]) == {"b", "c"}
        assert set(result.entry["p-one"]) == {"a"}
        assert set(result.entry["p-two"]) == {"d"}
        assert result.entry["p-three"] == {}
        assert result.dependencies == {
            "p-one": ["common_0"],
            "p-two": ["common_0"],
            "p-three": ["common_0"],
        }

    def test_buckets_ordered_by_sharing(self):
        result = split_common_chunks({
            "p-1": graph(["x", "y"]),
            "p-2": graph(["x", "y"]),
            "p-3": graph(["x"]),
            "p-4": graph(["x"]),
        })
        # "x" is in all four entries, "y" in two; the three-entry bucket is empty
        assert set(result.entry["common_0"]) == {"x"}
        assert set(result.entry["common_1"]) == {"y"}
        assert "common_2" not in result.entry
        assert result.dependencies["p-1"] == ["common_0", "common_1"]
        assert result.dependencies["p-3"] == ["common_0"]

    def test_every_unit_placed_once(self):
        graphs = {
            "p-1": graph(["a", "b", "c", "d"]),
            "p-2": graph(["b", "c", "e"]),
            "p-3": graph(["c", "f"]),
        }
        result = split_common_chunks(graphs)
        placed = [unit for units in result.entry.values() for unit in units]
        assert sorted(placed) == sorted({u for g in graphs.values() for u in g.runtime})

    def test_parent_flags(self):
        result = split_common_chunks({
            "p-1": graph(["i-base", "b-a", "own"], parents=["i-base", "b-a"]),
            "p-2": graph(["i-base", "b-a"], parents=["i-base"]),
        })
        chunk = result.entry["common_0"]
        assert chunk["i-base"] == EntryUnit("i-base", True)
        assert chunk["b-a"] == EntryUnit("b-a", False)
        assert result.entry["p-1"]["own"] == EntryUnit("own", False)

    def test_single_entry_keeps_everything(self):
        result = split_common_chunks({"p-1": graph(["a", "b"], parents=["b"])})
        assert result.entry == {"p-1": {"a": EntryUnit("a"), "b": EntryUnit("b", True)}}
        assert result.dependencies == {"p-1": []}

    def test_foundation_with_own_units(self):
        result = split_common_chunks(
            {
                "p-root": graph(["r", "s"]),
                "p-index": graph(["s", "c"]),
                "p-other": graph(["s"]),
            },
            parents={"p-index": ["p-root"]},
        )
        assert set(result.entry["p-root"]) == {"r"}
        assert result.dependencies["p-root"] == ["common_0"]
        # common_0 already comes in through p-root
        assert result.dependencies["p-index"] == ["p-root"]
        assert result.dependencies["p-other"] == ["common_0"]

    def test_empty_foundation_is_skipped(self):
        result = split_common_chunks(
            {
                "p-base": graph(["s"]),
                "p-mid": graph(["s", "m"]),
                "p-top": graph(["s", "m", "t"]),
            },
            parents={"p-mid": ["p-base"], "p-top": ["p-mid"]},
        )
        assert result.entry["p-base"] == {}
        assert result.dependencies["p-mid"] == ["common_0", "common_1"]
        assert set(result.entry["p-mid"]) == set()
        assert result.dependencies["p-top"] == ["common_0", "common_1"]

    def test_deterministic(self):
        graphs = {
            "p-1": graph(["a", "b", "c"]),
            "p-2": graph(["c", "b", "d"]),
        }
        assert split_common_chunks(graphs) == split_common_chunks(graphs)

    def test_common_name(self):
        assert get_common_name(3) == "common_3"


class TestUnionEntryPoints:
    def test_project_entries(self, make_project):
        project = make_project({
            **LAYERED,
            "src/entries/p-root.js": "import 'core-js';\nimport 'b-button';\n",
            "src/entries/p-index.js": "import './p-root';\nimport 'b-input';\n",
            "src/entries/p-other.js": "import 'b-input';\nimport 'b-button';\n",
        })
        result = project.get_build_config().get_union_entry_points()

        assert set(result.entry["common_0"]) == {"b-button", "b-spinner", "i-base", "b-icon"}
        assert set(result.entry["common_1"]) == {"core-js", "b-input", "b-label"}
        assert result.entry["common_0"]["i-base"].is_parent is True
        assert result.entry["common_0"]["b-button"].is_parent is False
        assert result.dependencies == {
            "p-index": ["common_0", "common_1"],
            "p-other": ["common_0", "common_1"],
            "p-root": ["common_0", "common_1"],
        }
