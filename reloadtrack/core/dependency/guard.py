"""Re-entrancy guard for cascading removals."""
from contextlib import contextmanager
from typing import Iterator, List, Set

from reloadtrack.core.names import EntityName, NameLike, as_name


class CascadeGuard:
    """
    Set of entity names currently being removed.

    Entering a name that is already guarded is not an error; it simply tells
    the caller that somebody further up the cascade owns that removal.
    """

    def __init__(self) -> None:
        self._active: Set[EntityName] = set()

    def is_guarded(self, name: NameLike) -> bool:
        return as_name(name) in self._active

    def guard(self, name: NameLike) -> bool:
        name = as_name(name)
        if name in self._active:
            return False
        self._active.add(name)
        return True

    def unguard(self, name: NameLike) -> None:
        self._active.discard(as_name(name))

    @contextmanager
    def guarding(self, name: NameLike) -> Iterator[bool]:
        """Guard `name` for the duration of the block; yields False if it already was."""
        entered = self.guard(name)
        try:
            yield entered
        finally:
            if entered:
                self.unguard(name)

    def active(self) -> List[EntityName]:
        return sorted(self._active, key=str)

    def __len__(self) -> int:
        return len(self._active)
