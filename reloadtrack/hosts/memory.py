"""
In-memory host runtime.

A small, fully scriptable symbol space for exercising the tracker without
touching the import system. Units are Python callables registered under a
path; loading a unit calls it with the runtime so it can define entities:

```python
runtime = InMemoryRuntime()
runtime.write("models/a.py", lambda rt: (rt.define_class("A"), rt.define_class("A::Inner")))
tracker = DependencyTracker(runtime, mtime_of=runtime.mtime)
tracker.load_file("models/a.py")
```

Like a garbage-collected heap, undefined entities stay visible to
`all_live_entities()` until `collect()` runs, while name resolution only
follows currently bound names.
"""
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from reloadtrack.core.names import EntityName, NameLike, as_name

UnitScript = Callable[["InMemoryRuntime"], None]

CLASS = "class"
MODULE = "module"
VALUE = "value"


@dataclass(eq=False)
class RuntimeEntity:
    """A definition living in the in-memory runtime. Compared by identity."""
    name: Optional[EntityName]
    kind: str
    namespace: Optional["RuntimeEntity"] = None
    superclass: Optional["RuntimeEntity"] = None
    mixins: List["RuntimeEntity"] = field(default_factory=list)
    extends: List["RuntimeEntity"] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"RuntimeEntity({self.name or '<anonymous>'}, {self.kind})"


class InMemoryRuntime:
    """Implements both the Loader and the EntityDirectory capabilities."""
    _logger = logging.getLogger("InMemoryRuntime")

    def __init__(self) -> None:
        self._units: Dict[str, UnitScript] = {}
        self._clock: Dict[str, float] = {}
        self._bindings: Dict[EntityName, RuntimeEntity] = {}
        self._heap: List[RuntimeEntity] = []
        self.load_log: List[str] = []
        self.undefine_log: List[EntityName] = []

    # Units

    def write(self, path: str, script: UnitScript) -> None:
        """Register or replace the unit at `path`, bumping its modification clock."""
        self._units[path] = script
        self.touch(path)

    def touch(self, path: str) -> None:
        self._clock[path] = self._clock.get(path, 0.0) + 1.0

    def delete(self, path: str) -> None:
        self._units.pop(path, None)
        self._clock.pop(path, None)

    def mtime(self, path: str) -> Optional[float]:
        return self._clock.get(path)

    def load(self, path: str) -> None:
        script = self._units.get(path)
        if script is None:
            raise FileNotFoundError(f"No unit registered at {path}")
        self.load_log.append(path)
        script(self)

    # Definitions

    def define_class(
        self,
        name: NameLike,
        superclass: Optional[NameLike] = None,
        mixins: Sequence[NameLike] = (),
        extends: Sequence[NameLike] = (),
    ) -> RuntimeEntity:
        return self._bind(as_name(name), CLASS, superclass, mixins, extends)

    def define_module(
        self,
        name: NameLike,
        mixins: Sequence[NameLike] = (),
        extends: Sequence[NameLike] = (),
    ) -> RuntimeEntity:
        return self._bind(as_name(name), MODULE, None, mixins, extends)

    def define_value(self, name: NameLike) -> RuntimeEntity:
        return self._bind(as_name(name), VALUE, None, (), ())

    def anonymous_class(self, superclass: Optional[NameLike] = None) -> RuntimeEntity:
        entity = RuntimeEntity(name=None, kind=CLASS, superclass=self._lookup(superclass))
        self._heap.append(entity)
        return entity

    def _bind(
        self,
        name: EntityName,
        kind: str,
        superclass: Optional[NameLike],
        mixins: Sequence[NameLike],
        extends: Sequence[NameLike],
    ) -> RuntimeEntity:
        namespace = None
        if name.parent is not None:
            namespace = self.resolve(name.parent)
            if namespace is None:
                raise NameError(f"Namespace {name.parent} is not defined")
        entity = RuntimeEntity(
            name=name,
            kind=kind,
            namespace=namespace,
            superclass=self._lookup(superclass),
            mixins=[self._require(mixin) for mixin in mixins],
            extends=[self._require(module) for module in extends],
        )
        self._bindings[name] = entity
        self._heap.append(entity)
        return entity

    def _lookup(self, reference: Optional[object]) -> Optional[RuntimeEntity]:
        if reference is None or isinstance(reference, RuntimeEntity):
            return reference
        return self._require(reference)

    def _require(self, reference: object) -> RuntimeEntity:
        if isinstance(reference, RuntimeEntity):
            return reference
        entity = self.resolve(as_name(reference))
        if entity is None:
            raise NameError(f"{reference} is not defined")
        return entity

    def collect(self) -> int:
        """Drop unreachable entities from the heap; returns how many went away."""
        before = len(self._heap)
        self._heap = [entity for entity in self._heap if entity.name is None or self._reachable(entity)]
        return before - len(self._heap)

    def _reachable(self, entity: RuntimeEntity) -> bool:
        return self.resolve(entity.name) is entity

    # Loader

    def defined(self, name: EntityName) -> bool:
        return self.resolve(name) is not None

    def resolve(self, name: EntityName) -> Optional[RuntimeEntity]:
        """Follow bindings segment by segment, so children of an undefined namespace stop resolving."""
        name = as_name(name)
        namespace = None
        for depth in range(1, name.depth + 1):
            entity = self._bindings.get(EntityName(segments=name.segments[:depth]))
            if entity is None or entity.namespace is not namespace:
                return None
            namespace = entity
        return namespace

    def undefine(self, name: EntityName) -> None:
        name = as_name(name)
        if self._bindings.pop(name, None) is not None:
            self.undefine_log.append(name)
            self._logger.debug(f"Undefined {name}")

    def all_live_entities(self) -> Iterable[RuntimeEntity]:
        return list(self._heap)

    # EntityDirectory

    def name_of(self, handle: RuntimeEntity) -> Optional[EntityName]:
        return handle.name

    def namespace_parent(self, handle: RuntimeEntity) -> Optional[RuntimeEntity]:
        return handle.namespace

    def superclasses_of(self, handle: RuntimeEntity) -> Sequence[RuntimeEntity]:
        if handle.kind != CLASS or handle.superclass is None:
            return []
        return [handle.superclass]

    def ancestors_of(self, handle: RuntimeEntity) -> Sequence[RuntimeEntity]:
        result: List[RuntimeEntity] = []
        current: Optional[RuntimeEntity] = handle
        while current is not None:
            if current is not handle:
                _extend_unique(result, [current])
            for mixin in current.mixins:
                _extend_unique(result, [mixin] + list(self.ancestors_of(mixin)))
            current = current.superclass
        return result

    def meta_ancestors_of(self, handle: RuntimeEntity) -> Sequence[RuntimeEntity]:
        result: List[RuntimeEntity] = []
        for module in handle.extends:
            _extend_unique(result, [module] + list(self.ancestors_of(module)))
        return result

    def is_namespace(self, handle: RuntimeEntity) -> bool:
        return handle.kind in (CLASS, MODULE)

    def is_class(self, handle: RuntimeEntity) -> bool:
        return handle.kind == CLASS

    def same(self, left: RuntimeEntity, right: RuntimeEntity) -> bool:
        return left is right


def _extend_unique(target: List[RuntimeEntity], items: Iterable[RuntimeEntity]) -> None:
    for item in items:
        if not any(existing is item for existing in target):
            target.append(item)
