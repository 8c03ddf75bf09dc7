"""
Python host runtime.

Treats `.py` files below a source root as loadable units of one package.
Loading a file executes it into a fresh module registered in `sys.modules`;
entities are those modules and the classes they define, nested classes
included. Classes created inside functions (`<locals>` in their qualified
name) are anonymous.

Units are executed from source on every load, never from cached bytecode,
so a reload always sees the file as it is on disk.
"""
import importlib.util
import logging
import os
import sys
from types import ModuleType
from typing import Any, Iterator, List, Optional, Sequence

from reloadtrack.core.loaded_file import file_mtime
from reloadtrack.core.names import EntityName, NameLike, as_name


class PythonRuntime:
    """Loader and EntityDirectory over the interpreter's own modules and classes."""
    _logger = logging.getLogger("PythonRuntime")

    def __init__(self, source_root: str, package: str) -> None:
        if not package:
            raise ValueError("A package name is required to namespace loaded units")
        self.source_root = os.path.abspath(source_root)
        self.package = package
        self._ensure_package()

    def _ensure_package(self) -> None:
        if self.package in sys.modules:
            return
        module = ModuleType(self.package)
        module.__path__ = [self.source_root]
        sys.modules[self.package] = module
        self._logger.debug(f"Registered package {self.package} for {self.source_root}")

    def module_name_for(self, path: str) -> str:
        relative = os.path.relpath(os.path.abspath(path), self.source_root)
        stem, extension = os.path.splitext(relative)
        if relative.startswith(os.pardir) or extension != ".py":
            raise ValueError(f"{path} is not a Python file below {self.source_root}")
        parts = stem.split(os.sep)
        if parts[-1] == "__init__":
            parts = parts[:-1]
        return ".".join([self.package] + parts)

    def owns_module(self, module_name: str) -> bool:
        return module_name == self.package or module_name.startswith(self.package + ".")

    def mtime(self, path: str) -> Optional[float]:
        return file_mtime(path)

    # Loader

    def load(self, path: str) -> None:
        module_name = self.module_name_for(path)
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None:
            raise ImportError(f"Cannot build a module spec for {path}")
        module = importlib.util.module_from_spec(spec)
        with open(path, "rb") as source_file:
            code = compile(source_file.read(), path, "exec")

        sys.modules[module_name] = module
        try:
            exec(code, module.__dict__)
        except BaseException:
            if sys.modules.get(module_name) is module:
                del sys.modules[module_name]
            raise

        parent_name, _, attribute = module_name.rpartition(".")
        parent = sys.modules.get(parent_name)
        if parent is not None:
            setattr(parent, attribute, module)
        self._logger.debug(f"Executed {path} as {module_name}")

    def defined(self, name: EntityName) -> bool:
        return self.resolve(name) is not None

    def resolve(self, name: NameLike) -> Optional[Any]:
        """The module or class bound under `name`; aliases of entities defined elsewhere do not count."""
        name = as_name(name)
        segments = name.segments
        for split in range(len(segments), 0, -1):
            target: Any = sys.modules.get(".".join(segments[:split]))
            if target is None:
                continue
            for attribute in segments[split:]:
                target = getattr(target, attribute, None)
                if not isinstance(target, (type, ModuleType)):
                    return None
            if split < len(segments) and self.name_of(target) != name:
                return None
            return target
        return None

    def undefine(self, name: EntityName) -> None:
        name = as_name(name)
        target = self.resolve(name)
        if target is None:
            return
        if isinstance(target, ModuleType) and sys.modules.get(name.dotted) is target:
            del sys.modules[name.dotted]
        if name.parent is not None:
            parent = self.resolve(name.parent)
            if parent is not None and getattr(parent, name.basename, None) is target:
                delattr(parent, name.basename)
        self._logger.debug(f"Undefined {name.dotted}")

    def all_live_entities(self) -> List[Any]:
        entities: List[Any] = []
        for module_name, module in list(sys.modules.items()):
            if module is None or not self.owns_module(module_name):
                continue
            entities.append(module)
            entities.extend(self._classes_in(module, "", module_name))
        return entities

    def _classes_in(self, namespace: Any, qualname: str, module_name: str) -> Iterator[type]:
        for attribute, value in list(vars(namespace).items()):
            if not isinstance(value, type) or value.__module__ != module_name:
                continue
            expected = f"{qualname}.{attribute}" if qualname else attribute
            if value.__qualname__ != expected:
                continue
            yield value
            yield from self._classes_in(value, expected, module_name)

    # EntityDirectory

    def name_of(self, handle: Any) -> Optional[EntityName]:
        if isinstance(handle, ModuleType):
            return EntityName.parse(handle.__name__, ".")
        if isinstance(handle, type):
            qualname = getattr(handle, "__qualname__", "")
            module_name = getattr(handle, "__module__", None)
            if not module_name or not qualname or "<" in qualname:
                return None
            return EntityName.from_segments(*module_name.split("."), *qualname.split("."))
        return None

    def namespace_parent(self, handle: Any) -> Optional[Any]:
        name = self.name_of(handle)
        if name is None:
            if isinstance(handle, type):
                return sys.modules.get(handle.__module__)
            return None
        if name.parent is None:
            return None
        return self.resolve(name.parent)

    def superclasses_of(self, handle: Any) -> Sequence[Any]:
        if not isinstance(handle, type):
            return []
        return [base for base in handle.__bases__ if base is not object]

    def ancestors_of(self, handle: Any) -> Sequence[Any]:
        if not isinstance(handle, type):
            return []
        return list(handle.__mro__[1:])

    def meta_ancestors_of(self, handle: Any) -> Sequence[Any]:
        if not isinstance(handle, type):
            return []
        return list(type(handle).__mro__)

    def is_namespace(self, handle: Any) -> bool:
        return isinstance(handle, (type, ModuleType))

    def is_class(self, handle: Any) -> bool:
        return isinstance(handle, type)

    def same(self, left: Any, right: Any) -> bool:
        return left is right
