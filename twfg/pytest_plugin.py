"""Pytest plugin with wait-for graph fixtures.

Registered via the ``pytest11`` entry point, so installing twfg is enough::

    def test_no_lock_cycle(twfg_builder):
        twfg_builder.add_task_wait_for("worker-1", "lock-a")
        assert_no_deadlock(twfg_builder.build())

    pytest --twfg-debug     # log snapshots and analyses at DEBUG level
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pytest

from twfg.detector import DeadlockDetector
from twfg.graph import Graph, GraphBuilder

if TYPE_CHECKING:
    from twfg.common import DeadlockAnalysisResult

_LOGGER_NAME = "twfg"


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("twfg", "Task wait-for graph deadlock detection")
    group.addoption(
        "--twfg-debug",
        action="store_true",
        default=False,
        help="Log every graph snapshot and deadlock analysis at DEBUG level.",
    )


def pytest_configure(config: pytest.Config) -> None:
    if config.getoption("--twfg-debug", default=False):
        logging.getLogger(_LOGGER_NAME).setLevel(logging.DEBUG)


def format_deadlock_report(result: DeadlockAnalysisResult[Any]) -> str:
    """Render every cycle of *result* on its own line."""
    lines = [f"{len(result)} deadlock cycle(s) found:"]
    lines.extend(f"  {cycle}" for cycle in result)
    return "\n".join(lines)


def assert_no_deadlock(graph: Graph[Any], detector: DeadlockDetector[Any] | None = None) -> None:
    """Fail with a readable report if *graph* contains a deadlock."""
    result = (detector or DeadlockDetector()).analyze(graph)
    if result.has_deadlock():
        raise AssertionError(format_deadlock_report(result))


@pytest.fixture
def twfg_builder() -> GraphBuilder[Any]:
    """A fresh, empty :class:`~twfg.graph.GraphBuilder`."""
    return GraphBuilder()


@pytest.fixture
def twfg_detector() -> DeadlockDetector[Any]:
    return DeadlockDetector()
