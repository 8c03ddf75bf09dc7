"""Declared, non-structural dependencies between entities."""
import logging
from typing import Dict, List

from reloadtrack.core.names import EntityName, NameLike, as_name


class ExplicitDependencyTable:
    """
    Maps a depended-upon entity to the entities that declared a dependency on it.

    Entries are consumed by the cascade: once an entity is removed its
    dependents are handed out exactly once and the entry disappears.
    """
    _logger = logging.getLogger("ExplicitDependencyTable")

    def __init__(self) -> None:
        self._dependents: Dict[EntityName, List[EntityName]] = {}

    def add(self, depender: NameLike, dependee: NameLike) -> None:
        """Record that `depender` must go away whenever `dependee` does."""
        depender, dependee = as_name(depender), as_name(dependee)
        self._dependents.setdefault(dependee, []).append(depender)
        self._logger.debug(f"{depender} explicitly depends on {dependee}")

    def dependents_of(self, name: NameLike) -> List[EntityName]:
        return _unique(self._dependents.get(as_name(name), []))

    def consume_dependents_of(self, name: NameLike) -> List[EntityName]:
        """Remove and return the deduplicated dependents of `name`."""
        dependents = self._dependents.pop(as_name(name), None)
        if not dependents:
            return []
        return _unique(dependents)

    def clear(self) -> None:
        self._dependents.clear()

    def __len__(self) -> int:
        return len(self._dependents)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, (str, EntityName)) and as_name(name) in self._dependents


def _unique(names: List[EntityName]) -> List[EntityName]:
    seen = set()
    result = []
    for name in names:
        if name not in seen:
            seen.add(name)
            result.append(name)
    return result
