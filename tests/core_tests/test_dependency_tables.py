"""Tests for the explicit dependency table, the cascade guard and the entity snapshot."""
import pytest

from reloadtrack.core.dependency import CascadeGuard, EntityRegistrySnapshot, ExplicitDependencyTable
from reloadtrack.core.errors import CascadeScopeError
from reloadtrack.core.names import EntityName


def n(text: str) -> EntityName:
    return EntityName.parse(text)


class TestExplicitDependencyTable:
    def test_consume_deduplicates_in_insertion_order(self):
        table = ExplicitDependencyTable()
        table.add("B", "A")
        table.add("C", "A")
        table.add("B", "A")
        assert table.consume_dependents_of("A") == [n("B"), n("C")]

    def test_consume_removes_entry(self):
        table = ExplicitDependencyTable()
        table.add("B", "A")
        assert "A" in table
        table.consume_dependents_of("A")
        assert "A" not in table
        assert table.consume_dependents_of("A") == []
        assert len(table) == 0

    def test_peek_does_not_consume(self):
        table = ExplicitDependencyTable()
        table.add("B", "A")
        assert table.dependents_of("A") == [n("B")]
        assert table.dependents_of("A") == [n("B")]

    def test_unknown_name_has_no_dependents(self):
        assert ExplicitDependencyTable().consume_dependents_of("Nope") == []


class TestCascadeGuard:
    def test_guard_twice_is_not_an_error(self):
        guard = CascadeGuard()
        assert guard.guard("A")
        assert not guard.guard("A")
        assert guard.is_guarded("A")
        guard.unguard("A")
        assert not guard.is_guarded("A")

    def test_guarding_releases_on_error(self):
        guard = CascadeGuard()
        with pytest.raises(RuntimeError):
            with guard.guarding("A") as entered:
                assert entered
                raise RuntimeError("boom")
        assert len(guard) == 0

    def test_nested_guarding_keeps_outer_guard(self):
        guard = CascadeGuard()
        with guard.guarding("A"):
            with guard.guarding("A") as entered:
                assert not entered
            assert guard.is_guarded("A")
        assert guard.active() == []


class TestEntityRegistrySnapshot:
    @pytest.fixture
    def counting_runtime(self, runtime, monkeypatch):
        runtime.define_class("A")
        runtime.define_class("B", superclass="A")
        runtime.anonymous_class("A")
        calls = []
        original = runtime.all_live_entities

        def counted():
            calls.append(1)
            return original()

        monkeypatch.setattr(runtime, "all_live_entities", counted)
        return runtime, calls

    def test_outside_cascade_is_an_error(self, runtime):
        snapshot = EntityRegistrySnapshot(runtime, runtime)
        with pytest.raises(CascadeScopeError):
            snapshot.entities()

    def test_lazy_and_scanned_once(self, counting_runtime):
        runtime, calls = counting_runtime
        snapshot = EntityRegistrySnapshot(runtime, runtime)
        with snapshot.cascade():
            assert not snapshot.is_populated
            assert calls == []
            names = [runtime.name_of(handle) for handle in snapshot.entities()]
            snapshot.entities()
            with snapshot.cascade():
                snapshot.entities()
        assert names == [n("A"), n("B")]
        assert len(calls) == 1
        assert not snapshot.is_populated
        assert not snapshot.is_active

    def test_cleared_on_error(self, counting_runtime):
        runtime, calls = counting_runtime
        snapshot = EntityRegistrySnapshot(runtime, runtime)
        with pytest.raises(RuntimeError):
            with snapshot.cascade():
                snapshot.entities()
                raise RuntimeError("boom")
        assert not snapshot.is_populated
        with snapshot.cascade():
            snapshot.entities()
        assert len(calls) == 2

    def test_discard(self, runtime):
        runtime.define_class("A")
        runtime.define_class("B")
        snapshot = EntityRegistrySnapshot(runtime, runtime)
        with snapshot.cascade():
            snapshot.entities()
            snapshot.discard("A")
            assert [runtime.name_of(handle) for handle in snapshot.entities()] == [n("B")]
