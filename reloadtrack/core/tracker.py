"""
Load tracking and the public tracker facade.

Typical use in a long-running process:
```python
tracker = DependencyTracker(runtime, settings=TrackerSettings.from_env())
tracker.load_file("app/models/user.py")
...
tracker.unload_modified_files()  # before handling the next request
tracker.load_file("app/models/user.py")
```

Load and unload operations are serialized by one re-entrant lock per
tracker, so a unit may load other units while it is being loaded.
"""
import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set

from reloadtrack.core.config import TrackerSettings
from reloadtrack.core.dependency import (
    CascadeGuard, DependencyGraphWalker, EntityRegistrySnapshot, ExplicitDependencyTable
)
from reloadtrack.core.hooks import ReactionHooks, RemovalCallback
from reloadtrack.core.loaded_file import LoadedFileTable, MtimeFunc, file_mtime
from reloadtrack.core.names import EntityName, NameLike, as_name
from reloadtrack.core.protocols import EntityDirectory, Loader
from reloadtrack.core.tracer import CascadeTracer


class LoadTracker:
    """
    Wraps unit loads so that the entities they define get attributed to them.

    While a unit loads, its path is the "currently loading" context. Loads
    nest: the previous context is restored on every exit path.
    """
    _logger = logging.getLogger("LoadTracker")

    def __init__(
        self,
        loader: Loader,
        directory: EntityDirectory,
        files: LoadedFileTable,
        settings: TrackerSettings,
        mtime_of: MtimeFunc,
    ) -> None:
        self.loader = loader
        self.directory = directory
        self.files = files
        self.settings = settings
        self.mtime_of = mtime_of
        self._currently_loading: Optional[str] = None
        self._loaded_once: Set[str] = set()

    @property
    def currently_loading(self) -> Optional[str]:
        return self._currently_loading

    @contextmanager
    def now_loading(self, path: str) -> Iterator[None]:
        """Make `path` the loading context; a failing load marks it stale."""
        previous, self._currently_loading = self._currently_loading, path
        try:
            yield
        except Exception as e:
            self._logger.error(f"Loading {path} failed: {str(e)}")
            self.files.mark_stale(path)
            raise
        finally:
            self._currently_loading = previous

    def is_load_once(self, path: str) -> bool:
        normalized = os.path.normpath(path)
        return any(normalized.startswith(os.path.normpath(prefix)) for prefix in self.settings.load_once_paths)

    def was_loaded_once(self, path: str) -> bool:
        return path in self._loaded_once

    def live_names(self) -> Set[EntityName]:
        """Names of live entities that are currently bound in the host."""
        names = set()
        for handle in self.loader.all_live_entities():
            name = self.directory.name_of(handle)
            if name is not None:
                names.add(name)
        # orphaned handles may outlive their binding
        return {name for name in names if self.loader.defined(name)}

    def load_file(self, path: str) -> Set[EntityName]:
        """
        Load `path` through the host and associate the entities it introduced.

        Returns:
            The names newly associated with `path`
        """
        self._logger.info(f"Loading {path}")
        before = self.live_names()
        with self.now_loading(path):
            try:
                self.loader.load(path)
            except Exception:
                self._undefine_partial_load(path, before)
                raise

        if self.is_load_once(path):
            self._loaded_once.add(path)
            self._logger.debug(f"{path} is load-once, not tracking its entities")
            return set()

        new_names = (self.live_names() - before) - self.files.loaded_entities()
        self.files.add_entities(path, new_names)
        self.files.mark_loaded(path, self.mtime_of(path))
        self._logger.info(f"Loaded {path} defining {len(new_names)} new entities")
        return new_names

    def _undefine_partial_load(self, path: str, before: Set[EntityName]) -> None:
        """Undefine what a failed load managed to define, so the fixed unit can claim it again."""
        partial = (self.live_names() - before) - self.files.loaded_entities()
        # nested names first
        for name in sorted(partial, key=lambda name: (-name.depth, str(name))):
            if self.loader.defined(name):
                self.loader.undefine(name)
        if partial:
            self._logger.warning(f"Undefined {len(partial)} entities left behind by the failed load of {path}")

    def required_dependency(self, path: str) -> None:
        """Record that the unit currently loading requires `path`."""
        if self._currently_loading is None or self.is_load_once(path):
            return
        self.files.relate_files(self._currently_loading, path)


class DependencyTracker:
    """
    Coordinates loading, dependency bookkeeping and cascading unloads for one
    host runtime. Every piece of mutable state belongs to the instance, so
    independent trackers never interfere with each other.
    """
    _logger = logging.getLogger("DependencyTracker")

    def __init__(
        self,
        runtime: Loader,
        directory: Optional[EntityDirectory] = None,
        settings: Optional[TrackerSettings] = None,
        mtime_of: Optional[MtimeFunc] = None,
    ) -> None:
        if directory is None:
            if not isinstance(runtime, EntityDirectory):
                raise TypeError(f"{type(runtime).__name__} is not an EntityDirectory, pass one explicitly")
            directory = runtime
        self.settings = settings or TrackerSettings()
        self.loader = runtime
        self.directory = directory
        self.mtime_of = mtime_of or file_mtime

        self.files = LoadedFileTable()
        self.explicit = ExplicitDependencyTable()
        self.guard = CascadeGuard()
        self.snapshot = EntityRegistrySnapshot(self.loader, self.directory)
        self.hooks = ReactionHooks()
        self.walker = DependencyGraphWalker(
            self.loader, self.directory, self.files, self.explicit, self.guard, self.snapshot, self.hooks
        )
        self.load_tracker = LoadTracker(self.loader, self.directory, self.files, self.settings, self.mtime_of)
        self._explicitly_unloadable: List[EntityName] = []
        self._lock = threading.RLock()

        if settings is not None:
            settings.apply_log_level()
        if self.settings.trace_cascades:
            CascadeTracer.set_log_level(logging.DEBUG)
        self.declare_explicitly_unloadable(*self.settings.explicitly_unloadable)

    @property
    def currently_loading(self) -> Optional[str]:
        return self.load_tracker.currently_loading

    def load_file(self, path: str) -> Set[EntityName]:
        with self._lock:
            return self.load_tracker.load_file(path)

    def require_file(self, path: str) -> Set[EntityName]:
        """
        Require-style load: ties the unit currently loading to `path`, then
        loads `path` unless it is already loaded and unchanged.
        """
        with self._lock:
            if self.load_tracker.is_load_once(path):
                if self.load_tracker.was_loaded_once(path):
                    return set()
                return self.load_tracker.load_file(path)
            loaded = self.files.get(path)
            fresh = loaded is not None and loaded.is_fresh(self.mtime_of)
            self.load_tracker.required_dependency(path)
            if fresh:
                self._logger.debug(f"{path} is already loaded and unchanged")
                return set()
            return self.load_tracker.load_file(path)

    def unload_modified_files(self) -> List[str]:
        """
        Unload every tracked file that is stale or whose source changed,
        cascading to everything depending on their entities. Files the
        cascade left partially unloaded become stale and are unloaded in the
        same call.

        Returns:
            Sorted paths whose records were dropped, including files emptied
            or unloaded along the way
        """
        with self._lock:
            modified = [loaded.path for loaded in self.files.modified_files(self.mtime_of)]
            if not modified:
                return []
            before = set(self.files.paths())
            while modified:
                self._logger.info(f"Unloading {len(modified)} modified files")
                for path in modified:
                    self.walker.unload_file(path)
                modified = [loaded.path for loaded in self.files.modified_files(self.mtime_of)]
            return sorted(before - set(self.files.paths()))

    def remove_entity(self, name: NameLike) -> bool:
        with self._lock:
            return self.walker.remove_entity(name)

    def add_explicit_dependency(self, parent: NameLike, child: NameLike) -> None:
        """Removing `parent` will also remove `child`."""
        with self._lock:
            self.explicit.add(depender=child, dependee=parent)

    def declare_explicitly_unloadable(self, *names: NameLike) -> None:
        with self._lock:
            for raw in names:
                name = as_name(raw)
                if name not in self._explicitly_unloadable:
                    self._explicitly_unloadable.append(name)

    @property
    def explicitly_unloadable(self) -> List[EntityName]:
        return list(self._explicitly_unloadable)

    def remove_explicitly_unloadable_entities(self) -> List[EntityName]:
        """Force removal of the allow-listed entities; returns those actually undefined."""
        with self._lock:
            removed = [name for name in list(self._explicitly_unloadable) if self.walker.remove_entity(name)]
            self._logger.info(f"Forced removal of {len(removed)} explicitly unloadable entities")
            return removed

    def adopt_loaded_entities(self, path: str, names: Iterable[NameLike]) -> Set[EntityName]:
        """
        Associate entities that were loaded before the tracker was attached.
        Names already owned by a tracked file are left with their owner.
        """
        with self._lock:
            adopted = {as_name(raw) for raw in names}
            adopted = {name for name in adopted if self.files.owner_of(name) is None}
            self.files.add_entities(path, adopted)
            self.files.mark_loaded(path, self.mtime_of(path))
            self._logger.info(f"Adopted {len(adopted)} preloaded entities for {path}")
            return adopted

    def on_before_remove(self, callback: RemovalCallback) -> RemovalCallback:
        return self.hooks.before_remove(callback)

    def on_after_remove(self, callback: RemovalCallback) -> RemovalCallback:
        return self.hooks.after_remove(callback)

    def get_status(self) -> Dict[str, Any]:
        """Summary of the tracked state."""
        with self._lock:
            stale = [path for path in self.files.paths() if self.files.for_path(path).stale]
            return {
                "loaded_files": len(self.files),
                "tracked_entities": len(self.files.loaded_entities()),
                "stale_files": sorted(stale),
                "explicit_dependencies": len(self.explicit),
                "explicitly_unloadable": [str(name) for name in self._explicitly_unloadable],
                "currently_loading": self.currently_loading,
                "cascade_in_progress": len(self.guard) > 0,
            }
