"""
Common fixtures for core tests.
Provides an in-memory runtime, a tracker bound to it and a few ready-made units.
"""
from typing import Callable, List

import pytest

from reloadtrack.core.tracker import DependencyTracker
from reloadtrack.hosts.memory import InMemoryRuntime


@pytest.fixture
def runtime() -> InMemoryRuntime:
    return InMemoryRuntime()


@pytest.fixture
def tracker(runtime: InMemoryRuntime) -> DependencyTracker:
    return DependencyTracker(runtime, mtime_of=runtime.mtime)


@pytest.fixture
def removal_log(tracker: DependencyTracker) -> List[str]:
    """Names seen by the before-remove hook, in order."""
    seen: List[str] = []

    @tracker.on_before_remove
    def record(name, handle):
        seen.append(str(name))

    return seen


@pytest.fixture
def nested_unit(runtime: InMemoryRuntime) -> str:
    """models/a.py defines A and A::Inner."""
    def define(rt: InMemoryRuntime) -> None:
        rt.define_class("A")
        rt.define_class("A::Inner")

    runtime.write("models/a.py", define)
    return "models/a.py"


@pytest.fixture
def class_chain(runtime: InMemoryRuntime, tracker: DependencyTracker) -> List[str]:
    """A in a.py, B < A in b.py, C < B in c.py, all loaded."""
    units = {
        "a.py": lambda rt: rt.define_class("A"),
        "b.py": lambda rt: rt.define_class("B", superclass="A"),
        "c.py": lambda rt: rt.define_class("C", superclass="B"),
    }
    for path, script in units.items():
        runtime.write(path, script)
        tracker.load_file(path)
    return list(units)


@pytest.fixture
def unit_writer(runtime: InMemoryRuntime) -> Callable[..., str]:
    """Register a unit that defines classes given as (name, superclass) pairs."""
    def write(path: str, *classes) -> str:
        def define(rt: InMemoryRuntime) -> None:
            for name, superclass in classes:
                rt.define_class(name, superclass=superclass)

        runtime.write(path, define)
        return path

    return write
