"""
Capability boundaries between the tracking core and the host runtime.

The core never executes a unit or deletes a definition on its own; it decides
when and which names to hand to the host. Handles returned by the host are
opaque to the core and are only ever inspected through an EntityDirectory.
"""
from typing import Any, Iterable, Optional, Protocol, Sequence, runtime_checkable

from reloadtrack.core.names import EntityName

EntityHandle = Any


@runtime_checkable
class Loader(Protocol):
    """Executes units and manipulates the host's symbol space."""

    def load(self, path: str) -> None: ...

    def defined(self, name: EntityName) -> bool: ...

    def resolve(self, name: EntityName) -> Optional[EntityHandle]: ...

    def undefine(self, name: EntityName) -> None: ...

    def all_live_entities(self) -> Iterable[EntityHandle]: ...


@runtime_checkable
class EntityDirectory(Protocol):
    """Reflection over entity handles."""

    def name_of(self, handle: EntityHandle) -> Optional[EntityName]:
        """Name of the handle, or None for anonymous entities."""
        ...

    def namespace_parent(self, handle: EntityHandle) -> Optional[EntityHandle]:
        """Nearest enclosing namespace, None at the root."""
        ...

    def superclasses_of(self, handle: EntityHandle) -> Sequence[EntityHandle]:
        """Immediate superclasses (possibly anonymous), empty for non-classes and roots."""
        ...

    def ancestors_of(self, handle: EntityHandle) -> Sequence[EntityHandle]:
        """Strict ancestors: superclasses and included mixins."""
        ...

    def meta_ancestors_of(self, handle: EntityHandle) -> Sequence[EntityHandle]:
        """Metaclass hierarchy or modules extended into the singleton."""
        ...

    def is_namespace(self, handle: EntityHandle) -> bool: ...

    def is_class(self, handle: EntityHandle) -> bool: ...

    def same(self, left: EntityHandle, right: EntityHandle) -> bool: ...


@runtime_checkable
class HostRuntime(Loader, EntityDirectory, Protocol):
    """A host implementing both capabilities, which is the usual case."""
