"""
Deadlock detection on task wait-for graphs.

Provides two entry points on :class:`DeadlockDetector`:

1. **Full analysis** (:meth:`~DeadlockDetector.analyze`): enumerates the
   distinct cycles of a :class:`~twfg.graph.Graph` and, for each cycle,
   every task outside it that directly or transitively waits for one of its
   members.

2. **Fast check** (:meth:`~DeadlockDetector.has_deadlock_on`): answers only
   whether a single task is part of a cycle or leads into one, without
   building any cycle.

The detector holds no state, so one instance may be shared by any number
of threads analyzing the same or different graphs.
"""

from __future__ import annotations

import logging
from collections.abc import Hashable, Iterator
from typing import Generic, TypeVar

from twfg._preconditions import check_argument_not_none
from twfg.common import DeadlockAnalysisResult, DeadlockCycle
from twfg.graph import Graph, Task

T = TypeVar("T", bound=Hashable)

logger = logging.getLogger(__name__)


class DeadlockDetector(Generic[T]):
    """Looks for circular wait-for dependencies between tasks."""

    def analyze(self, graph: Graph[T]) -> DeadlockAnalysisResult[T]:
        check_argument_not_none(graph, "graph must not be None")
        # ordered set; rotations of one cycle compare equal and collapse
        cycle_collector: dict[DeadlockCycle[T], None] = {}
        for start in graph.tasks:
            for cycle_tasks in _find_cycles_from(start):
                cycle_collector.setdefault(DeadlockCycle(cycle_tasks), None)

        cycles = [_with_also_deadlocked_tasks(cycle, graph) for cycle in cycle_collector]
        logger.debug("Analyzed %d task(s): %d deadlock cycle(s) found", len(graph), len(cycles))
        return DeadlockAnalysisResult(cycles)

    def has_deadlock_on(self, task: Task[T]) -> bool:
        """Return True if *task* is part of a cycle or waits (transitively) for one.

        Depth-first from *task*; a deadlock is reported as soon as an edge
        leads back onto the current traversal path.  Tasks that were fully
        explored without hitting the path are never entered again.
        """
        check_argument_not_none(task, "task must not be None")
        visited: set[Task[T]] = {task}
        on_path: set[Task[T]] = {task}
        path: list[Task[T]] = [task]
        stack: list[Iterator[Task[T]]] = [iter(task.waits_for)]

        while stack:
            for waited_for in stack[-1]:
                if waited_for in on_path:
                    return True
                if waited_for not in visited:
                    visited.add(waited_for)
                    on_path.add(waited_for)
                    path.append(waited_for)
                    stack.append(iter(waited_for.waits_for))
                    break
            else:
                stack.pop()
                on_path.discard(path.pop())
        return False


# ---------------------------------------------------------------------------
# Cycle discovery
# ---------------------------------------------------------------------------


def _find_cycles_from(start: Task[T]) -> Iterator[tuple[T, ...]]:
    """Yield the id path of every cycle found by a DFS from *start* back to it.

    The visited set is per start task: each task is entered at most once, so
    not every cycle through *start* is necessarily produced.  Cycles missed
    here are found from one of their other members, and rotations found from
    several members are merged by :class:`DeadlockCycle` equality.
    """
    visited: set[Task[T]] = {start}
    path: list[Task[T]] = [start]
    stack: list[Iterator[Task[T]]] = [iter(start.waits_for)]

    while stack:
        for waited_for in stack[-1]:
            if waited_for == start:
                # a self-edge gives the one-task cycle (start,)
                yield tuple(task.id for task in path)
            elif waited_for not in visited:
                visited.add(waited_for)
                path.append(waited_for)
                stack.append(iter(waited_for.waits_for))
                break
        else:
            stack.pop()
            path.pop()


# ---------------------------------------------------------------------------
# Also-deadlocked closure
# ---------------------------------------------------------------------------


def _with_also_deadlocked_tasks(cycle: DeadlockCycle[T], graph: Graph[T]) -> DeadlockCycle[T]:
    """Return *cycle* enriched with every task blocked by it.

    Scans all edges until a full pass adds nothing.  Each pass either
    records a new ``(task, dependency)`` pair or ends the loop, and there
    are finitely many edges, so the iteration terminates.
    """
    cycle_members = set(cycle.cycle_tasks)
    deadlocked: set[T] = set(cycle_members)
    also_deadlocked: dict[T, set[T]] = {}

    passes = 0
    changed = True
    while changed:
        changed = False
        passes += 1
        for task, waited_for in graph.edges():
            if task.id in cycle_members or waited_for.id not in deadlocked:
                continue
            dependencies = also_deadlocked.setdefault(task.id, set())
            if waited_for.id not in dependencies:
                dependencies.add(waited_for.id)
                deadlocked.add(task.id)
                changed = True

    logger.debug(
        "Cycle %r: %d also deadlocked task(s) after %d pass(es)",
        cycle.cycle_tasks,
        len(also_deadlocked),
        passes,
    )
    return DeadlockCycle(cycle.cycle_tasks, also_deadlocked)
