# conftest.py
import logging

import pytest

from reloadtrack.core.tracer import CascadeTracer


# Custom test markers
def pytest_configure(config):
    """Configure custom markers."""
    markers = [
        "slow: marks tests as slow",
        "filesystem: marks tests that write units to disk",
        "integration: marks integration tests",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


@pytest.fixture(autouse=True)
def reset_cascade_tracer():
    """Start every test with an empty trace log at the default level."""
    CascadeTracer.set_log_level(logging.INFO)
    CascadeTracer.clear_logs()
    yield
    CascadeTracer.set_log_level(logging.INFO)
    CascadeTracer.clear_logs()
