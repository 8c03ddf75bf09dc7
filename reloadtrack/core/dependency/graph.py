"""
Cascading removal over the entity dependency graph.

Removing an entity removes everything that depends on it first:
- subclasses whose nearest named superclass is the entity, or classes that
  include it when it is a mixin,
- classes whose metaclass hierarchy (or extended singleton) contains it,
- entities that explicitly declared a dependency on it,
- tracked entities nested directly inside it,
- files that required the file it came from, once that file is emptied.

Structural edges are never stored. They are recomputed from a cascade-scoped
snapshot of live entities. A guard set makes the walk terminate on cyclic
relations and keeps every name from being processed twice per cascade.
"""
import logging
from typing import List, Optional, Set

from reloadtrack.core.dependency.explicit import ExplicitDependencyTable
from reloadtrack.core.dependency.guard import CascadeGuard
from reloadtrack.core.dependency.snapshot import EntityRegistrySnapshot
from reloadtrack.core.hooks import ReactionHooks
from reloadtrack.core.loaded_file import LoadedFile, LoadedFileTable
from reloadtrack.core.names import EntityName, NameLike, as_name
from reloadtrack.core.protocols import EntityDirectory, EntityHandle, Loader
from reloadtrack.core.tracer import cascade_tracer


class DependencyGraphWalker:
    """Finds the dependents of an entity and removes them before the entity itself."""
    _logger = logging.getLogger("DependencyGraphWalker")

    def __init__(
        self,
        loader: Loader,
        directory: EntityDirectory,
        files: LoadedFileTable,
        explicit: ExplicitDependencyTable,
        guard: CascadeGuard,
        snapshot: EntityRegistrySnapshot,
        hooks: ReactionHooks,
    ) -> None:
        self.loader = loader
        self.directory = directory
        self.files = files
        self.explicit = explicit
        self.guard = guard
        self.snapshot = snapshot
        self.hooks = hooks
        self._files_being_unloaded: Set[str] = set()

    @cascade_tracer
    def remove_entity(self, name: NameLike) -> bool:
        """
        Remove `name` and, recursively, everything depending on it.

        Removing a name that does not resolve, or one that is already being
        removed further up the cascade, is a silent no-op.

        Returns:
            True if the entity resolved when the call started and no longer
            does, whether undefined directly or with its enclosing namespace
        """
        name = as_name(name)
        with self.snapshot.cascade():
            with self.guard.guarding(name) as entered:
                if not entered:
                    self._logger.debug(f"{name} is already being removed, skipping")
                    return False
                return self._remove_guarded(name)

    def _remove_guarded(self, name: EntityName) -> bool:
        handle = self.loader.resolve(name) if self.loader.defined(name) else None
        was_tracked = self.files.is_loaded_entity(name)
        if handle is None:
            self._logger.debug(f"{name} does not resolve, nothing to undefine")
        else:
            if self.directory.is_namespace(handle):
                self._remove_connected(name, handle)
            self.hooks.notify_before(name, handle)

        purged = self.files.unload_files_defining(name)
        if purged is not None:
            self._unload_dependent_files(purged)

        if handle is not None and not was_tracked and self.directory.is_namespace(handle):
            self._remove_enclosing_tracked_namespace(name, handle)

        if self.loader.defined(name):
            self.loader.undefine(name)
            self._logger.info(f"Undefined {name}")
        # removing an enclosing namespace may already have taken the entity with it
        removed = handle is not None and not self._resolves_to(name, handle)

        self._clear_tracks(name, handle)
        return removed

    def _remove_connected(self, name: EntityName, handle: EntityHandle) -> None:
        dependents: List[EntityName] = []
        dependents.extend(self.structural_dependents(handle))
        dependents.extend(self.explicit.consume_dependents_of(name))
        dependents.extend(self.nested_dependents(name))
        if dependents:
            self._logger.debug(f"{name} has {len(dependents)} dependents: {', '.join(map(str, dependents))}")
        for dependent in dependents:
            self.remove_entity(dependent)

    def structural_dependents(self, handle: EntityHandle) -> List[EntityName]:
        """Names of live, tracked entities that inherit from or are extended by `handle`."""
        result = []
        for other in self.snapshot.entities():
            if self.directory.same(other, handle):
                continue
            if not (self.inherits_from(other, handle) or self.extended_by(other, handle)):
                continue
            other_name = self.directory.name_of(other)
            if other_name is None or not self._resolves_to(other_name, other):
                continue
            if not self.in_tracked_namespace(other):
                continue
            result.append(other_name)
        return result

    def inherits_from(self, other: EntityHandle, handle: EntityHandle) -> bool:
        """
        Subclass relation for classes, inclusion relation for mixins.

        A class only claims subclasses for which it is one of the nearest
        named superclasses; deeper descendants are reached through the chain.
        """
        if self.directory.is_class(handle):
            return any(self.directory.same(nearest, handle) for nearest in self.nearest_named_superclasses(other))
        return any(self.directory.same(ancestor, handle) for ancestor in self.directory.ancestors_of(other))

    def extended_by(self, other: EntityHandle, handle: EntityHandle) -> bool:
        """Metaclass or singleton relation."""
        return any(self.directory.same(ancestor, handle) for ancestor in self.directory.meta_ancestors_of(other))

    def nearest_named_superclasses(self, handle: EntityHandle) -> List[EntityHandle]:
        """Immediate superclasses, looking through anonymous ones to their own bases."""
        result: List[EntityHandle] = []
        pending = list(self.directory.superclasses_of(handle))
        while pending:
            superclass = pending.pop(0)
            if self.directory.name_of(superclass) is None:
                pending.extend(self.directory.superclasses_of(superclass))
            elif not any(self.directory.same(superclass, seen) for seen in result):
                result.append(superclass)
        return result

    def in_tracked_namespace(self, handle: Optional[EntityHandle]) -> bool:
        """Whether `handle` or one of its enclosing namespaces was loaded through a tracked file."""
        while handle is not None:
            handle_name = self.directory.name_of(handle)
            if handle_name is not None and self.files.is_loaded_entity(handle_name):
                return True
            handle = self.directory.namespace_parent(handle)
        return False

    def nested_dependents(self, name: EntityName) -> List[EntityName]:
        """Tracked entities exactly one namespace segment below `name`."""
        return sorted(
            (other for other in self.files.loaded_entities() if other.is_direct_child_of(name)),
            key=str,
        )

    def _resolves_to(self, name: EntityName, handle: EntityHandle) -> bool:
        if not self.loader.defined(name):
            return False
        resolved = self.loader.resolve(name)
        return resolved is not None and self.directory.same(resolved, handle)

    def _remove_enclosing_tracked_namespace(self, name: EntityName, handle: EntityHandle) -> None:
        # Namespaces defined inline (class A: class Inner) may never be tracked
        # on their own; reloading the tracked enclosing namespace recreates them.
        parent = self.directory.namespace_parent(handle)
        while parent is not None:
            parent_name = self.directory.name_of(parent)
            if parent_name is not None and self.files.is_loaded_entity(parent_name):
                self._logger.debug(f"{name} is untracked, removing its enclosing namespace {parent_name}")
                self.remove_entity(parent_name)
                return
            parent = self.directory.namespace_parent(parent)

    def _clear_tracks(self, name: EntityName, handle: Optional[EntityHandle]) -> None:
        self.snapshot.discard(name)
        self.files.const_unloaded(name)
        if handle is not None:
            self.hooks.notify_after(name, handle)

    def unload_file(self, path: str) -> bool:
        """
        Remove every entity `path` defined, drop its record, then unload the
        files that required it.

        Returns:
            False if the file was not tracked or is already being unloaded
        """
        if path in self._files_being_unloaded or path not in self.files:
            return False
        self._files_being_unloaded.add(path)
        try:
            loaded = self.files.get(path)
            self._logger.info(f"Unloading {path}")
            for name in sorted(loaded.entities, key=str):
                self.remove_entity(name)
            discarded = self.files.discard(path) or loaded
            self._unload_dependent_files(discarded)
            return True
        finally:
            self._files_being_unloaded.discard(path)

    def _unload_dependent_files(self, loaded: LoadedFile) -> None:
        for dependent_path in sorted(loaded.dependent_paths):
            if self.unload_file(dependent_path):
                self._logger.debug(f"Unloaded {dependent_path} because it required {loaded.path}")
