"""Tests for the block graph: loading, inheritance, mixins and discovery."""

import json
import os

import pytest

from block_graph.blocks import Block, strip_qualifier
from block_graph.errors import BlockNotFoundError
from block_graph.models import BlockType, Location

from fixtures.projects import LAYERED, decl, write_tree


@pytest.fixture
def graph(layered):
    return layered.blocks


class TestGet:
    def test_declaration_fields(self, graph, tmp_path):
        block = graph.get("b-button")
        assert block.name == "b-button"
        assert block.type is BlockType.BLOCK
        assert block.parent == "i-base"
        assert block.dependencies == ("b-spinner",)
        assert block.libs == ("lodash",)
        assert block.manifest == tmp_path / "src" / "components" / "form" / "b-button" / "index.js"

    def test_assets(self, graph, tmp_path):
        folder = tmp_path / "src" / "components" / "form" / "b-button"
        block = graph.get("b-button")
        assert block.logic == folder / "b-button.ts"
        assert block.tpl == folder / "b-button.ss"
        assert block.etpl is None
        assert block.styles == [folder / "b-button.styl", folder / "b-button_theme.styl"]

    def test_block_without_assets(self, graph):
        block = graph.get("b-label")
        assert block.logic is None
        assert block.styles == []

    def test_dependency_layer_assets(self, graph, tmp_path):
        folder = tmp_path / "node_modules" / "base-lib" / "src" / "components" / "b-bar"
        block = graph.get("b-bar")
        assert block.logic == folder / "b-bar.js"
        assert block.tpl == folder / "b-bar.ss"

    def test_loaded_once(self, graph):
        assert graph.get("b-button") is graph.get("b-button")

    def test_reloaded_after_change(self, graph, tmp_path):
        manifest = tmp_path / "src" / "components" / "b-label" / "index.js"
        before = graph.get("b-label")

        manifest.write_text(decl("b-label", deps=["b-icon"]))
        stat = manifest.stat()
        os.utime(manifest, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

        after = graph.get("b-label")
        assert after is not before
        assert after.dependencies == ("b-icon",)

    def test_missing(self, graph):
        with pytest.raises(BlockNotFoundError) as exc:
            graph.get("b-ghost")
        assert exc.value.name == "b-ghost"

    def test_load_asset_location(self, graph, tmp_path):
        path = tmp_path / "src" / "components" / "b-foo" / "b-foo.styl"
        with pytest.raises(ValueError, match="no manifest"):
            graph.load(Location(path, 1))

    def test_unattached_block(self):
        from block_graph.declaration import validate

        block = Block(validate({"name": "b-a", "parent": "b-b"}), manifest=None)
        with pytest.raises(RuntimeError):
            block.get_parent()


class TestInheritance:
    def test_parent(self, graph):
        assert graph.get("b-input").get_parent().name == "b-button"
        assert graph.get("i-base").get_parent() is None

    def test_own_dependencies(self, graph):
        assert list(graph.get("b-input").get_dependencies(only_own=True)) == ["b-icon", "b-label"]

    def test_ancestor_dependencies_first(self, graph):
        deps = graph.get("b-input").get_dependencies()
        assert list(deps) == ["b-icon", "b-spinner", "b-label"]
        assert all(isinstance(b, Block) for b in deps.values())

    def test_libs(self, graph):
        assert graph.get("b-input").get_libs() == ["core-js", "lodash"]
        assert graph.get("b-input").get_libs(only_own=True) == []

    def test_memoized(self, graph):
        block = graph.get("b-input")
        assert block.get_dependencies() is block.get_dependencies()
        assert block.get_dependencies(only_own=True) is not block.get_dependencies()

    def test_missing_dependency(self, make_project):
        files = dict(LAYERED)
        files["src/components/b-broken/index.js"] = decl("b-broken", deps=["b-ghost"])
        block = make_project(files).blocks.get("b-broken")
        with pytest.raises(BlockNotFoundError) as exc:
            block.get_dependencies()
        assert exc.value.name == "b-ghost"
        assert exc.value.referrer == "b-broken"

    def test_cyclic_extends_terminates(self, make_project):
        graph = make_project({
            "src/components/b-x/index.js": decl("b-x", parent="b-y", deps=["b-z"]),
            "src/components/b-y/index.js": decl("b-y", parent="b-x"),
            "src/components/b-z/index.js": decl("b-z"),
        }).blocks
        assert list(graph.get("b-x").get_dependencies()) == ["b-z"]


class TestMixins:
    FILES = {
        ".pzlrrc": json.dumps({"dependencies": ["lib-a", "lib-b"]}),
        "src/components/b-foo/index.js": decl("b-foo", mixin=True, deps=["b-a"]),
        "node_modules/lib-a/src/components/b-foo/index.js": decl("b-foo", mixin=True, deps=["b-b"], libs=["x"]),
        "node_modules/lib-b/src/components/b-foo/index.js": decl("b-foo", parent="i-base", deps=["b-c", "b-a"]),
        "src/components/b-a/index.js": decl("b-a"),
        "src/components/b-b/index.js": decl("b-b"),
        "src/components/b-c/index.js": decl("b-c"),
        "src/components/i-base/index.js": decl("i-base"),
    }

    def test_folded_down_the_override_chain(self, make_project):
        block = make_project(self.FILES).blocks.get("b-foo")
        assert block.mixin is True
        assert block.parent == "i-base"
        assert block.dependencies == ("b-a", "b-b", "b-c")
        assert block.libs == ("x",)

    def test_stops_at_first_regular_declaration(self, make_project):
        files = dict(self.FILES)
        files["node_modules/lib-a/src/components/b-foo/index.js"] = decl("b-foo", parent="b-b")
        block = make_project(files).blocks.get("b-foo")
        assert block.parent == "b-b"
        assert block.dependencies == ("b-a",)

    def test_all_layers_mixins(self, make_project):
        files = dict(self.FILES)
        files["node_modules/lib-b/src/components/b-foo/index.js"] = decl("b-foo", mixin=True, deps=["b-c"])
        block = make_project(files).blocks.get("b-foo")
        assert block.parent is None
        assert block.dependencies == ("b-a", "b-b", "b-c")

    def test_reloaded_when_lower_layer_changes(self, make_project, tmp_path):
        graph = make_project(self.FILES).blocks
        before = graph.get("b-foo")

        lower = tmp_path / "node_modules" / "lib-b" / "src" / "components" / "b-foo" / "index.js"
        lower.write_text(decl("b-foo", parent="b-b", deps=["b-c"]))
        stat = lower.stat()
        os.utime(lower, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))

        after = graph.get("b-foo")
        assert after is not before
        assert after.parent == "b-b"
        assert graph.get("b-foo") is after

    def test_top_manifest_unchanged_is_reused(self, make_project):
        graph = make_project(self.FILES).blocks
        assert graph.get("b-foo") is graph.get("b-foo")


class TestGetAll:
    def test_named(self, graph):
        blocks = graph.get_all(["b-input", "b-bar"])
        assert set(blocks) == {"b-input", "b-bar"}

    def test_named_missing(self, graph):
        with pytest.raises(BlockNotFoundError):
            graph.get_all(["b-input", "b-ghost"])

    def test_discovery_with_shadowing(self, graph, tmp_path):
        blocks = graph.get_all(use_lock=False)
        assert set(blocks) == {
            "i-base", "b-icon", "b-button", "b-spinner", "b-input", "b-label", "b-foo", "v-virt", "b-bar",
        }
        assert blocks["b-foo"].manifest == tmp_path / "src" / "components" / "b-foo" / "index.js"
        assert blocks["b-foo"].dependencies == ("b-label",)
        assert blocks["v-virt"].manifest.name == "v-virt.index.js"

    def test_discovery_ignores_non_components(self, make_project):
        graph = make_project({
            "src/components/b-ok/index.js": decl("b-ok"),
            "src/components/helpers/index.js": "export default {};\n",
            "src/components/x-nope/index.js": decl("b-ok"),
        }).blocks
        assert set(graph.get_all(use_lock=False)) == {"b-ok"}

    def test_full_map_writes_lock(self, graph, tmp_path):
        graph.get_all()
        assert (tmp_path / "components-lock.json").exists()

    def test_generation_advances(self, graph):
        before = graph.generation
        graph.get_all(use_lock=False)
        assert graph.generation == before + 1

    def test_views_against_cache(self, graph):
        cache = graph.get_all(use_lock=False)
        deps = cache["b-input"].get_dependencies(cache=cache)
        assert deps["b-spinner"] is cache["b-spinner"]

    def test_cache_is_authoritative(self, graph):
        cache = graph.get_all(use_lock=False)
        del cache["b-spinner"]
        with pytest.raises(BlockNotFoundError):
            cache["b-input"].get_dependencies(cache=cache)

    def test_clear(self, graph):
        block = graph.get("b-icon")
        graph.clear()
        assert graph.get("b-icon") is not block
        assert len(graph.files) == 1
        assert len(graph.parser) == 1


    def test_cache_from_path(self, graph, tmp_path):
        blocks = graph.get_all()
        cache = graph.cache_from_path(tmp_path / "components-lock.json")
        assert set(cache) == set(blocks)
        assert cache["b-button"].manifest == blocks["b-button"].manifest
        assert cache["b-button"].styles == blocks["b-button"].styles
        assert list(cache["b-input"].get_dependencies(cache=cache)) == ["b-icon", "b-spinner", "b-label"]

    def test_cache_from_missing_path(self, graph, tmp_path):
        assert graph.cache_from_path(tmp_path / "nope-lock.json") is None


class TestQualifiedReferences:
    @pytest.fixture
    def graph(self, make_project):
        files = dict(LAYERED)
        files["src/components/b-q/index.js"] = decl("b-q", parent="@i-base", deps=["@b-icon", "base-lib/b-foo"])
        return make_project(files).blocks

    @pytest.mark.parametrize("ref, expected", [
        ("b-foo", "b-foo"),
        ("@b-foo", "b-foo"),
        ("base-lib/b-foo", "base-lib/b-foo"),
    ])
    def test_strip_qualifier(self, ref, expected):
        assert strip_qualifier(ref) == expected

    def test_get(self, graph, tmp_path):
        assert graph.get("@b-icon") is graph.get("b-icon")
        pinned = graph.get("base-lib/b-foo")
        assert pinned.manifest == tmp_path / "node_modules" / "base-lib" / "src" / "components" / "b-foo" / "index.js"
        assert pinned.dependencies == ("b-icon",)

    def test_same_result_with_and_without_cache(self, graph):
        cache = graph.get_all(use_lock=False)
        direct = graph.get("b-q").get_dependencies(only_own=True)
        cached = cache["b-q"].get_dependencies(only_own=True, cache=cache)

        assert list(direct) == list(cached) == ["b-icon", "b-foo"]
        assert [b.manifest for b in direct.values()] == [b.manifest for b in cached.values()]
        assert cached["b-icon"] is cache["b-icon"]
        # the map holds the project's b-foo, the reference is pinned to base-lib
        assert cached["b-foo"].manifest != cache["b-foo"].manifest

    def test_parent(self, graph):
        cache = graph.get_all(use_lock=False)
        assert graph.get("b-q").get_parent().name == "i-base"
        assert cache["b-q"].get_parent(cache=cache) is cache["i-base"]

    def test_missing_qualified(self, graph):
        cache = graph.get_all(use_lock=False)
        with pytest.raises(BlockNotFoundError):
            graph.lookup("@b-ghost", cache=cache)
        with pytest.raises(BlockNotFoundError):
            graph.lookup("base-lib/b-ghost", cache=cache)
