"""
Cascade-scoped enumeration of live entities.

Looking for structural dependents means scanning every named entity the host
knows about. The scan is done at most once per cascade and thrown away when
the outermost cascade finishes, so a later cascade never sees stale handles.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from reloadtrack.core.errors import CascadeScopeError
from reloadtrack.core.names import NameLike, as_name
from reloadtrack.core.protocols import EntityDirectory, EntityHandle, Loader


class EntityRegistrySnapshot:
    """Lazily populated list of named live entities, valid only inside a cascade."""
    _logger = logging.getLogger("EntityRegistrySnapshot")

    def __init__(self, loader: Loader, directory: EntityDirectory) -> None:
        self._loader = loader
        self._directory = directory
        self._depth = 0
        self._handles: Optional[List[EntityHandle]] = None

    @property
    def is_active(self) -> bool:
        return self._depth > 0

    @property
    def is_populated(self) -> bool:
        return self._handles is not None

    @contextmanager
    def cascade(self) -> Iterator["EntityRegistrySnapshot"]:
        """Delimit a cascade. Nested scopes share the outermost one's snapshot."""
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            if self._depth == 0 and self._handles is not None:
                self._logger.debug(f"Dropping snapshot of {len(self._handles)} entities")
                self._handles = None

    def entities(self) -> List[EntityHandle]:
        """The named live entities, scanned on first use within the cascade."""
        if not self.is_active:
            raise CascadeScopeError("The entity snapshot is only available inside a cascade")
        if self._handles is None:
            self._handles = [
                handle for handle in self._loader.all_live_entities()
                if self._directory.name_of(handle) is not None
            ]
            self._logger.debug(f"Captured snapshot of {len(self._handles)} live entities")
        return list(self._handles)

    def discard(self, name: NameLike) -> None:
        """Forget handles carrying `name`; no-op when nothing was scanned yet."""
        if self._handles is None:
            return
        name = as_name(name)
        self._handles = [handle for handle in self._handles if self._directory.name_of(handle) != name]
