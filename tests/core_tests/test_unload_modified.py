"""Tests for the top-level unload triggers and tracker status."""
import pytest

from reloadtrack.core.config import TrackerSettings
from reloadtrack.core.names import EntityName
from reloadtrack.core.tracker import DependencyTracker


def n(text: str) -> EntityName:
    return EntityName.parse(text)


class TestUnloadModifiedFiles:
    def test_nothing_modified_is_noop(self, runtime, tracker, class_chain):
        assert tracker.unload_modified_files() == []
        assert runtime.undefine_log == []
        assert len(tracker.files) == 3

    def test_empty_tracker_is_noop(self, tracker):
        assert tracker.unload_modified_files() == []

    def test_touched_file_is_unloaded_and_reloadable(self, runtime, tracker, nested_unit):
        tracker.load_file(nested_unit)
        runtime.touch(nested_unit)

        assert tracker.unload_modified_files() == [nested_unit]
        assert not runtime.defined(n("A"))

        assert tracker.load_file(nested_unit) == {n("A"), n("A::Inner")}
        assert tracker.unload_modified_files() == []

    def test_modified_base_cascades_to_subclass_files(self, runtime, tracker, class_chain):
        runtime.touch("a.py")
        assert tracker.unload_modified_files() == ["a.py", "b.py", "c.py"]
        assert len(tracker.files) == 0

    def test_modified_leaf_leaves_bases_loaded(self, runtime, tracker, class_chain):
        runtime.touch("c.py")
        assert tracker.unload_modified_files() == ["c.py"]
        assert runtime.defined(n("A"))
        assert runtime.defined(n("B"))

    def test_partially_unloaded_files_go_in_the_same_call(self, runtime, tracker, unit_writer):
        tracker.load_file(unit_writer("base.py", ("Base", None)))
        tracker.load_file(unit_writer("child.py", ("Child", "Base"), ("Other", None)))
        tracker.load_file(unit_writer("other_user.py", ("OtherUser", "Other")))

        runtime.touch("base.py")

        assert tracker.unload_modified_files() == ["base.py", "child.py", "other_user.py"]
        assert not runtime.defined(n("Other"))
        assert tracker.unload_modified_files() == []

    def test_deleted_source_is_unloaded(self, runtime, tracker, class_chain):
        runtime.delete("b.py")
        assert tracker.unload_modified_files() == ["b.py", "c.py"]
        assert runtime.defined(n("A"))

    def test_reload_after_unload_reattributes_names(self, runtime, tracker, class_chain):
        runtime.touch("a.py")
        tracker.unload_modified_files()
        for path in class_chain:
            tracker.load_file(path)
        assert tracker.files.get("b.py").entities == {n("B")}
        assert tracker.files.owner_of("C") == "c.py"


class TestExplicitlyUnloadable:
    def test_declared_entities_are_removed(self, runtime, tracker, class_chain):
        tracker.declare_explicitly_unloadable("B", "Missing")
        tracker.declare_explicitly_unloadable("B")
        assert tracker.explicitly_unloadable == [n("B"), n("Missing")]

        assert tracker.remove_explicitly_unloadable_entities() == [n("B")]
        assert runtime.defined(n("A"))
        assert not runtime.defined(n("C"))

    def test_inline_namespace_removed_with_its_enclosing_namespace(self, runtime, tracker):
        runtime.define_class("Outer")
        runtime.define_class("Outer::Inner")
        tracker.adopt_loaded_entities("legacy/outer.py", ["Outer"])
        tracker.declare_explicitly_unloadable("Outer::Inner")

        assert tracker.remove_explicitly_unloadable_entities() == [n("Outer::Inner")]
        assert not runtime.defined(n("Outer"))

    def test_allow_list_from_settings(self, runtime):
        runtime.define_class("Cache")
        settings = TrackerSettings(explicitly_unloadable=["Cache"])
        tracker = DependencyTracker(runtime, settings=settings, mtime_of=runtime.mtime)
        assert tracker.remove_explicitly_unloadable_entities() == [n("Cache")]
        assert not runtime.defined(n("Cache"))
        assert tracker.remove_explicitly_unloadable_entities() == []


class TestStatus:
    def test_status_summary(self, runtime, tracker, class_chain):
        tracker.add_explicit_dependency("A", "C")
        tracker.declare_explicitly_unloadable("B")
        tracker.files.mark_stale("c.py")

        status = tracker.get_status()

        assert status == {
            "loaded_files": 3,
            "tracked_entities": 3,
            "stale_files": ["c.py"],
            "explicit_dependencies": 1,
            "explicitly_unloadable": ["B"],
            "currently_loading": None,
            "cascade_in_progress": False,
        }

    def test_status_during_cascade(self, runtime, tracker, class_chain):
        seen = []
        tracker.on_before_remove(lambda name, handle: seen.append(tracker.get_status()["cascade_in_progress"]))
        tracker.remove_entity("C")
        assert seen == [True]


class TestTrackerConstruction:
    def test_directory_required_when_runtime_lacks_one(self, runtime):
        class LoaderOnly:
            def load(self, path):
                pass

        with pytest.raises(TypeError):
            DependencyTracker(LoaderOnly())

    def test_separate_directory(self, runtime):
        tracker = DependencyTracker(runtime, directory=runtime, mtime_of=runtime.mtime)
        assert tracker.directory is runtime

    def test_trackers_are_independent(self, runtime, unit_writer):
        first = DependencyTracker(runtime, mtime_of=runtime.mtime)
        second = DependencyTracker(runtime, mtime_of=runtime.mtime)
        first.load_file(unit_writer("a.py", ("A", None)))
        assert "a.py" in first.files
        assert "a.py" not in second.files
