"""
twfg: Deadlock detection on task wait-for graphs.

Building a graph (thread-safe)::

    from twfg import GraphBuilder

    builder = GraphBuilder()
    builder.add_task_wait_for("t1", "t2")
    builder.add_task_wait_for("t2", "t1")
    graph = builder.build()

Analysis::

    from twfg import DeadlockDetector

    result = DeadlockDetector().analyze(graph)
    for cycle in result:
        print(cycle)

Pytest fixtures (``twfg_builder``, ``twfg_detector``) are registered by
:mod:`twfg.pytest_plugin` when the package is installed.
"""

import logging

from twfg._preconditions import InvalidArgument, InvalidArgumentError
from twfg.common import DeadlockAnalysisResult, DeadlockCycle, format_cycle
from twfg.detector import DeadlockDetector
from twfg.graph import Graph, GraphBuilder, Task

__version__ = "0.1.0"

__all__ = [
    "DeadlockAnalysisResult",
    "DeadlockCycle",
    "DeadlockDetector",
    "Graph",
    "GraphBuilder",
    "InvalidArgument",
    "InvalidArgumentError",
    "Task",
    "format_cycle",
]

logging.getLogger(__name__).addHandler(logging.NullHandler())
