"""
Shared pytest configuration for the twfg test suite.

The thread-cleanup check guards the concurrency tests: every thread a test
starts must be joined before the test finishes.
"""

import os
import sys
import threading

import pytest

pytest_plugins = ["pytester"]

# Add parent directory to path so we can import twfg without installing it
_twfg_path = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _twfg_path not in sys.path:
    sys.path.insert(0, _twfg_path)


@pytest.fixture(autouse=True)
def _check_thread_cleanup(request):
    """Fail a test that leaves any thread it started still running."""
    initial_threads = set(threading.enumerate())

    yield

    main_thread = threading.main_thread()
    alive_threads = [
        t for t in set(threading.enumerate()) - initial_threads if t is not main_thread and t.is_alive()
    ]
    if alive_threads:
        thread_info = ", ".join(
            f"{t.name} ({'daemon' if t.daemon else 'NON-DAEMON'}, ident={t.ident})" for t in alive_threads
        )
        pytest.fail(
            f"Test {request.node.nodeid} left {len(alive_threads)} thread(s) running: {thread_info}. "
            f"All threads must be joined before test completion."
        )
