"""Tests for the in-memory host runtime."""
import pytest

from reloadtrack.core.names import EntityName
from reloadtrack.core.protocols import EntityDirectory, HostRuntime, Loader
from reloadtrack.hosts.memory import InMemoryRuntime


def n(text: str) -> EntityName:
    return EntityName.parse(text)


@pytest.fixture
def runtime() -> InMemoryRuntime:
    return InMemoryRuntime()


class TestCapabilities:
    def test_implements_both_protocols(self, runtime):
        assert isinstance(runtime, Loader)
        assert isinstance(runtime, EntityDirectory)
        assert isinstance(runtime, HostRuntime)


class TestUnits:
    def test_load_runs_script(self, runtime):
        runtime.write("a.py", lambda rt: rt.define_class("A"))
        runtime.load("a.py")
        assert runtime.defined(n("A"))
        assert runtime.load_log == ["a.py"]

    def test_unknown_unit(self, runtime):
        with pytest.raises(FileNotFoundError):
            runtime.load("missing.py")

    def test_clock(self, runtime):
        runtime.write("a.py", lambda rt: None)
        assert runtime.mtime("a.py") == 1.0
        runtime.touch("a.py")
        assert runtime.mtime("a.py") == 2.0
        runtime.delete("a.py")
        assert runtime.mtime("a.py") is None


class TestResolution:
    def test_nested_resolution(self, runtime):
        outer = runtime.define_module("Outer")
        inner = runtime.define_class("Outer::Inner")
        assert runtime.resolve(n("Outer::Inner")) is inner
        assert runtime.namespace_parent(inner) is outer

    def test_children_stop_resolving_with_their_namespace(self, runtime):
        runtime.define_module("Outer")
        runtime.define_class("Outer::Inner")
        runtime.undefine(n("Outer"))
        assert runtime.resolve(n("Outer::Inner")) is None
        runtime.define_module("Outer")
        assert runtime.resolve(n("Outer::Inner")) is None

    def test_missing_namespace(self, runtime):
        with pytest.raises(NameError):
            runtime.define_class("Nowhere::Inner")

    def test_missing_superclass(self, runtime):
        with pytest.raises(NameError):
            runtime.define_class("B", superclass="A")

    def test_undefine_unknown_name_is_ignored(self, runtime):
        runtime.undefine(n("Nope"))
        assert runtime.undefine_log == []


class TestHeap:
    def test_orphans_stay_live_until_collected(self, runtime):
        old = runtime.define_class("A")
        new = runtime.define_class("A")
        runtime.anonymous_class("A")

        live = runtime.all_live_entities()
        assert any(entity is old for entity in live)
        assert len(live) == 3

        assert runtime.collect() == 1
        live = runtime.all_live_entities()
        assert not any(entity is old for entity in live)
        assert any(entity is new for entity in live)


class TestReflection:
    def test_ancestors_cover_superclasses_and_mixins(self, runtime):
        mixin = runtime.define_module("Mixin")
        base = runtime.define_class("Base")
        child = runtime.define_class("Child", superclass="Base", mixins=["Mixin"])
        grandchild = runtime.define_class("GrandChild", superclass="Child")

        assert runtime.superclasses_of(grandchild) == [child]
        assert runtime.ancestors_of(grandchild) == [child, mixin, base]
        assert runtime.superclasses_of(mixin) == []

    def test_meta_ancestors(self, runtime):
        helper = runtime.define_module("Helper")
        ext = runtime.define_module("Ext", mixins=["Helper"])
        target = runtime.define_class("Target", extends=["Ext"])
        assert runtime.meta_ancestors_of(target) == [ext, helper]

    def test_kinds(self, runtime):
        assert runtime.is_class(runtime.define_class("A"))
        module = runtime.define_module("M")
        assert runtime.is_namespace(module) and not runtime.is_class(module)
        assert not runtime.is_namespace(runtime.define_value("V"))
        assert runtime.name_of(runtime.anonymous_class()) is None
