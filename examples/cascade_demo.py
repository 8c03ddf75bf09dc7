"""
Example demonstrating cascading removal on the in-memory runtime.
This example shows how to:
1. Register units that define classes, nested classes and mixins
2. Load them through a tracker
3. Remove one entity and watch its dependents go with it
"""
import logging

from reloadtrack.core.config import TrackerSettings
from reloadtrack.core.tracer import CascadeTracer
from reloadtrack.core.tracker import DependencyTracker
from reloadtrack.hosts.memory import InMemoryRuntime

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

runtime = InMemoryRuntime()
tracker = DependencyTracker(runtime, settings=TrackerSettings(trace_cascades=True), mtime_of=runtime.mtime)


def define_models(rt: InMemoryRuntime) -> None:
    rt.define_class("Model")
    rt.define_class("Model::Meta")


def define_auditing(rt: InMemoryRuntime) -> None:
    rt.define_module("Auditing")


def define_user(rt: InMemoryRuntime) -> None:
    tracker.require_file("app/models/model.py")
    rt.define_class("User", superclass="Model", mixins=["Auditing"])


def define_admin(rt: InMemoryRuntime) -> None:
    rt.define_class("Admin", superclass="User")


runtime.write("app/models/model.py", define_models)
runtime.write("app/concerns/auditing.py", define_auditing)
runtime.write("app/models/user.py", define_user)
runtime.write("app/models/admin.py", define_admin)


@tracker.on_before_remove
def drop_cached_references(name, handle):
    print(f"  dropping caches for {name}")


print("=== Loading units ===")
tracker.load_file("app/concerns/auditing.py")
tracker.load_file("app/models/user.py")
tracker.load_file("app/models/admin.py")
for path in sorted(tracker.files.paths()):
    loaded = tracker.files.get(path)
    print(f"{path}: {', '.join(sorted(map(str, loaded.entities)))}")

print("\n=== Explicit dependency: Report goes away with User ===")
runtime.define_class("Report")
tracker.adopt_loaded_entities("app/reports/report.py", ["Report"])
tracker.add_explicit_dependency("User", "Report")

print("\n=== Touching the auditing mixin ===")
runtime.touch("app/concerns/auditing.py")
dropped = tracker.unload_modified_files()
print(f"Dropped files: {dropped}")

for name in ("Model", "Model::Meta", "Auditing", "User", "Admin", "Report"):
    print(f"{name:12} defined: {runtime.defined(name)}")

print("\n=== Cascade trace ===")
print(CascadeTracer.get_logs())

print("=== Final status ===")
for key, value in tracker.get_status().items():
    print(f"{key}: {value}")
