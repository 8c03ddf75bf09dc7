"""
Example demonstrating source reloading with the Python runtime.
Writes a tiny package to a temporary directory, loads it, edits the base
module on disk and reloads only what changed.
"""
import logging
import os
import tempfile
import textwrap

from reloadtrack.core.config import TrackerSettings
from reloadtrack.core.tracker import DependencyTracker
from reloadtrack.hosts.python import PythonRuntime

# Setup logging
logging.basicConfig(level=logging.INFO)

PACKAGE = "reload_demo_app"


def write(root: str, name: str, source: str) -> str:
    path = os.path.join(root, name)
    with open(path, "w") as f:
        f.write(textwrap.dedent(source))
    return path


def describe(tracker: DependencyTracker) -> None:
    for path in sorted(tracker.files.paths()):
        loaded = tracker.files.get(path)
        names = ", ".join(sorted(name.dotted for name in loaded.entities))
        print(f"  {os.path.basename(path)} (loaded {loaded.load_count}x): {names}")


with tempfile.TemporaryDirectory() as root:
    base = write(root, "base.py", """
        class Greeter:
            greeting = "hello"
    """)
    polite = write(root, "polite.py", f"""
        from {PACKAGE}.base import Greeter

        class PoliteGreeter(Greeter):
            def greet(self, name):
                return f"{{self.greeting}}, dear {{name}}"
    """)

    runtime = PythonRuntime(root, PACKAGE)
    tracker = DependencyTracker(runtime, settings=TrackerSettings.from_env())

    print("=== Initial load ===")
    tracker.load_file(base)
    tracker.load_file(polite)
    describe(tracker)
    module = runtime.resolve(f"{PACKAGE}.polite")
    print(module.PoliteGreeter().greet("reader"))

    print("\n=== Editing base.py ===")
    write(root, "base.py", """
        class Greeter:
            greeting = "good evening"
    """)
    stat = os.stat(base)
    os.utime(base, (stat.st_atime + 1, stat.st_mtime + 1))

    print(f"Unloaded: {[os.path.basename(path) for path in tracker.unload_modified_files()]}")
    describe(tracker)

    print("\n=== Reloading ===")
    tracker.load_file(base)
    tracker.load_file(polite)
    describe(tracker)
    module = runtime.resolve(f"{PACKAGE}.polite")
    print(module.PoliteGreeter().greet("reader"))
