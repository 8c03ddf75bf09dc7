"""Registration points for subsystems that must react to entity removal."""
import logging
from typing import Any, Callable, List

from reloadtrack.core.names import EntityName

RemovalCallback = Callable[[EntityName, Any], None]


class ReactionHooks:
    """
    Ordered callbacks fired around each removal.

    `before_remove` callbacks run after the dependents of an entity are gone
    but before the entity itself is undefined, which is the moment to drop
    cached references to it. `after_remove` callbacks run once bookkeeping
    for the entity is done.
    """
    _logger = logging.getLogger("ReactionHooks")

    def __init__(self) -> None:
        self._before: List[RemovalCallback] = []
        self._after: List[RemovalCallback] = []

    def before_remove(self, callback: RemovalCallback) -> RemovalCallback:
        self._before.append(callback)
        return callback

    def after_remove(self, callback: RemovalCallback) -> RemovalCallback:
        self._after.append(callback)
        return callback

    def unregister(self, callback: RemovalCallback) -> None:
        for callbacks in (self._before, self._after):
            while callback in callbacks:
                callbacks.remove(callback)

    def notify_before(self, name: EntityName, handle: Any) -> None:
        self._notify(self._before, name, handle)

    def notify_after(self, name: EntityName, handle: Any) -> None:
        self._notify(self._after, name, handle)

    def _notify(self, callbacks: List[RemovalCallback], name: EntityName, handle: Any) -> None:
        for callback in list(callbacks):
            try:
                callback(name, handle)
            except Exception as e:
                self._logger.error(f"Removal hook {getattr(callback, '__name__', callback)} failed for {name}: {str(e)}")
                raise

    def __len__(self) -> int:
        return len(self._before) + len(self._after)
