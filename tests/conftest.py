"""Shared fixtures."""

import os
import time

import pytest


@pytest.fixture
def india_local_time():
    """Run the test with the host's local zone pinned to UTC+05:30."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "IST-5:30"
    time.tzset()
    yield
    if previous is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = previous
    time.tzset()
