"""
Bookkeeping of loaded units and the entities each of them defines.

A LoadedFile exists from the first load attempt of its path until every entity
it defined has been unloaded (or until it is discarded as stale). Ownership is
exclusive: an entity name is listed by at most one live LoadedFile.
"""
import logging
import os
from typing import Callable, Dict, Iterable, List, Optional, Set

from pydantic import BaseModel, Field

from reloadtrack.core.errors import InvariantViolation
from reloadtrack.core.names import EntityName, NameLike, as_name

MtimeFunc = Callable[[str], Optional[float]]


def file_mtime(path: str) -> Optional[float]:
    """Filesystem modification time, or None when the file is gone."""
    try:
        return os.path.getmtime(path)
    except OSError:
        return None


class LoadedFile(BaseModel):
    """One loadable unit and the entities it defined."""
    path: str = Field(frozen=True)
    entities: Set[EntityName] = Field(default_factory=set)
    stale: bool = False
    mtime: Optional[float] = None  # source timestamp at the last successful load
    load_count: int = 0
    dependent_paths: Set[str] = Field(default_factory=set)  # files that required this one

    def is_fresh(self, mtime_of: MtimeFunc) -> bool:
        """Loaded successfully at least once and unchanged since."""
        return self.load_count > 0 and not self.needs_unload(mtime_of)

    def changed(self, mtime_of: MtimeFunc) -> bool:
        """Whether the backing source moved on since the last successful load."""
        return mtime_of(self.path) != self.mtime

    def needs_unload(self, mtime_of: MtimeFunc) -> bool:
        return self.stale or self.changed(mtime_of)

    def __str__(self) -> str:
        flag = ", stale" if self.stale else ""
        return f"LoadedFile({self.path}, entities={len(self.entities)}{flag})"


class LoadedFileTable:
    """
    Maps file paths to LoadedFile records and entity names to their owning path.

    The table is pure in-memory state; it never talks to the host runtime.
    """
    _logger = logging.getLogger("LoadedFileTable")

    def __init__(self) -> None:
        self._files: Dict[str, LoadedFile] = {}
        self._owners: Dict[EntityName, str] = {}

    def for_path(self, path: str) -> LoadedFile:
        """Return the record for `path`, creating it on first use."""
        loaded = self._files.get(path)
        if loaded is None:
            loaded = LoadedFile(path=path)
            self._files[path] = loaded
            self._logger.debug(f"Tracking new file {path}")
        return loaded

    def get(self, path: str) -> Optional[LoadedFile]:
        return self._files.get(path)

    def paths(self) -> List[str]:
        return list(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __len__(self) -> int:
        return len(self._files)

    def add_entities(self, path: str, names: Iterable[NameLike]) -> None:
        """
        Record that `path` defines `names`.

        Precondition: no name is already owned by a different file. Breaking
        it means the host reported one definition twice, which is not
        recoverable, so it raises InvariantViolation.
        """
        loaded = self.for_path(path)
        for raw in names:
            name = as_name(raw)
            owner = self._owners.get(name)
            if owner is not None and owner != path:
                self._logger.error(f"{name} is already defined by {owner}, refusing to assign it to {path}")
                raise InvariantViolation(f"Entity {name} is already owned by {owner}, cannot assign it to {path}")
            self._owners[name] = path
            loaded.entities.add(name)
        self._logger.debug(f"{path} now defines {len(loaded.entities)} entities")

    def mark_stale(self, path: str) -> None:
        self.for_path(path).stale = True
        self._logger.info(f"Marked {path} as stale")

    def mark_loaded(self, path: str, mtime: Optional[float]) -> None:
        """Record a successful load: the file is fresh as of `mtime`."""
        loaded = self.for_path(path)
        loaded.stale = False
        loaded.mtime = mtime
        loaded.load_count += 1

    def unload_files_defining(self, name: NameLike) -> Optional[LoadedFile]:
        """
        Drop `name` from the file that defines it.

        A record that keeps other entities no longer reflects its source and
        is marked stale. Returns the record when this emptied it and it was
        purged from the table, so callers can cascade to files that depended
        on it.
        """
        name = as_name(name)
        path = self._owners.pop(name, None)
        if path is None:
            return None
        loaded = self._files.get(path)
        if loaded is None:
            return None
        loaded.entities.discard(name)
        if loaded.entities:
            if not loaded.stale:
                self.mark_stale(path)
            return None
        del self._files[path]
        self._logger.info(f"Purged {path}: its last entity {name} was unloaded")
        return loaded

    def const_unloaded(self, name: NameLike) -> None:
        """Forget whatever ownership of `name` is still recorded."""
        name = as_name(name)
        path = self._owners.pop(name, None)
        if path is not None and path in self._files:
            self._files[path].entities.discard(name)

    def loaded_entities(self) -> Set[EntityName]:
        return set(self._owners)

    def is_loaded_entity(self, name: NameLike) -> bool:
        return as_name(name) in self._owners

    def owner_of(self, name: NameLike) -> Optional[str]:
        return self._owners.get(as_name(name))

    def relate_files(self, base_path: str, required_path: str) -> None:
        """Record that `base_path` required `required_path` while loading."""
        if base_path == required_path:
            return
        self.for_path(required_path).dependent_paths.add(base_path)
        self._logger.debug(f"{base_path} depends on {required_path}")

    def modified_files(self, mtime_of: MtimeFunc) -> List[LoadedFile]:
        return [loaded for loaded in self._files.values() if loaded.needs_unload(mtime_of)]

    def discard(self, path: str) -> Optional[LoadedFile]:
        """Drop the record for `path` together with the ownership it holds."""
        loaded = self._files.pop(path, None)
        if loaded is None:
            return None
        for name in loaded.entities:
            if self._owners.get(name) == path:
                del self._owners[name]
        self._logger.debug(f"Discarded {path}")
        return loaded
