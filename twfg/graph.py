"""
Task wait-for graph: nodes, immutable snapshots and the thread-safe builder.

A :class:`Task` is a vertex identified by an opaque, hashable id.  Its
outgoing edges are the tasks it waits for.  Hosts never create tasks
directly; they feed ids into a :class:`GraphBuilder` and take
:class:`Graph` snapshots from it::

    builder = GraphBuilder()
    builder.add_task_wait_for("t1", "t2").add_task_wait_for("t2", "t1")
    graph = builder.build()

A snapshot is a deep copy: it shares no node objects with the builder or
with other snapshots, so it can be read from any thread while the builder
keeps changing.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Hashable, Iterable, Iterator
from typing import Generic, TypeVar

from twfg._preconditions import (
    InvalidArgumentError,
    check_argument,
    check_argument_not_none,
    check_task_id,
)

T = TypeVar("T", bound=Hashable)

logger = logging.getLogger(__name__)


class Task(Generic[T]):
    """A node of the wait-for graph.

    Equality and hashing use the id only.  When ids are mutually comparable
    tasks sort by id, which is what gives :class:`Graph` its stable order.
    """

    def __init__(self, task_id: T) -> None:
        check_task_id(task_id)
        self._id = task_id
        # insertion-ordered set of successors
        self._waits_for: dict[Task[T], None] = {}

    @property
    def id(self) -> T:
        return self._id

    @property
    def waits_for(self) -> tuple[Task[T], ...]:
        """The tasks this task waits for, in the order the edges were added."""
        return tuple(self._waits_for)

    def waits_for_ids(self) -> tuple[T, ...]:
        return tuple(task.id for task in self._waits_for)

    # -- builder-only mutation ---------------------------------------------

    def _add_wait_for(self, task: Task[T]) -> None:
        self._waits_for[task] = None

    def _remove_wait_for(self, task: Task[T]) -> bool:
        if task in self._waits_for:
            del self._waits_for[task]
            return True
        return False

    # -- value semantics ---------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Task):
            return NotImplemented
        return self._id == other._id

    def __hash__(self) -> int:
        return hash(self._id)

    def __lt__(self, other: Task[T]) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self._id < other._id  # type: ignore[operator]

    def __repr__(self) -> str:
        return f"Task({self._id!r})"


def _sorted_if_possible(tasks: Iterable[Task[T]]) -> list[Task[T]]:
    """Sort *tasks* by id, keeping the given order when ids are not orderable."""
    tasks = list(tasks)
    try:
        return sorted(tasks)
    except TypeError:
        return tasks


class Graph(Generic[T]):
    """An immutable, self-contained snapshot of a wait-for graph.

    Every edge of every task points to a task of the same graph.  Instances
    are only created by :meth:`GraphBuilder.build` and are never mutated
    afterwards, so concurrent reads need no synchronization.
    """

    def __init__(self, tasks: Iterable[Task[T]]) -> None:
        self._tasks: tuple[Task[T], ...] = tuple(_sorted_if_possible(tasks))
        self._by_id: dict[T, Task[T]] = {task.id: task for task in self._tasks}

    @property
    def tasks(self) -> tuple[Task[T], ...]:
        return self._tasks

    @property
    def task_ids(self) -> tuple[T, ...]:
        return tuple(self._by_id)

    def get_task(self, task_id: T) -> Task[T]:
        check_task_id(task_id)
        task = self._by_id.get(task_id)
        if task is None:
            raise InvalidArgumentError(f"task_id {task_id!r} is not part of the graph")
        return task

    def edges(self) -> Iterator[tuple[Task[T], Task[T]]]:
        """Yield ``(waiting, waited_for)`` pairs for every wait-for edge."""
        for task in self._tasks:
            for waited_for in task.waits_for:
                yield task, waited_for

    def _adjacency(self) -> dict[T, frozenset[T]]:
        return {task.id: frozenset(task.waits_for_ids()) for task in self._tasks}

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._by_id

    def __iter__(self) -> Iterator[Task[T]]:
        return iter(self._tasks)

    def __len__(self) -> int:
        return len(self._tasks)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, Graph):
            return NotImplemented
        return self._adjacency() == other._adjacency()

    def __hash__(self) -> int:
        return hash(frozenset(self._by_id))

    def __repr__(self) -> str:
        return f"Graph(tasks={list(self._tasks)!r})"


class GraphBuilder(Generic[T]):
    """Thread-safe accumulator of tasks and wait-for edges.

    Several threads may populate the same builder.  Every method holds one
    internal lock for its whole duration, including the deep copy done by
    :meth:`build`, so each snapshot reflects a single point in time.
    Mutators return the builder itself to allow chaining.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        # task id -> node, in insertion order
        self._tasks: dict[T, Task[T]] = {}

    def add_task(self, task_id: T) -> GraphBuilder[T]:
        """Add a task without edges, if not yet present."""
        check_task_id(task_id)
        with self._lock:
            self._get_or_add(task_id)
        return self

    def add_tasks(self, task_ids: Iterable[T]) -> GraphBuilder[T]:
        check_argument_not_none(task_ids, "task_ids must not be None")
        task_ids = list(task_ids)
        for task_id in task_ids:
            check_task_id(task_id)
        with self._lock:
            for task_id in task_ids:
                self._get_or_add(task_id)
        return self

    def add_task_wait_for(self, task_id: T, waiting_on_task_id: T) -> GraphBuilder[T]:
        """Record that *task_id* waits for *waiting_on_task_id*.

        Both tasks are created if absent.  Adding an existing edge is a no-op;
        a task may wait for itself.
        """
        check_task_id(task_id)
        check_task_id(waiting_on_task_id)
        with self._lock:
            task = self._get_or_add(task_id)
            waiting_on_task = self._get_or_add(waiting_on_task_id)
            task._add_wait_for(waiting_on_task)
        return self

    def has_task(self, task_id: T) -> bool:
        check_task_id(task_id)
        with self._lock:
            return task_id in self._tasks

    def remove_task(self, task_id: T) -> GraphBuilder[T]:
        """Remove a task together with all edges pointing to it."""
        check_task_id(task_id)
        with self._lock:
            check_argument(task_id in self._tasks, f"task_id {task_id!r} is unknown and can't be removed")
            self._remove(task_id)
        return self

    def remove_tasks(self, task_ids: Iterable[T]) -> GraphBuilder[T]:
        """Remove several tasks; nothing is removed if any id is unknown."""
        check_argument_not_none(task_ids, "task_ids must not be None")
        task_ids = list(dict.fromkeys(task_ids))
        for task_id in task_ids:
            check_task_id(task_id)
        with self._lock:
            for task_id in task_ids:
                if task_id not in self._tasks:
                    raise InvalidArgumentError(
                        f"task_id {task_id!r} is unknown and can't be removed. "
                        f"None of the given tasks {task_ids!r} were removed"
                    )
            for task_id in task_ids:
                self._remove(task_id)
        return self

    def remove_task_wait_for_dependency(self, task_id: T, waiting_on_task_id: T) -> GraphBuilder[T]:
        """Remove the single edge *task_id* -> *waiting_on_task_id*, keeping both tasks."""
        check_task_id(task_id)
        check_task_id(waiting_on_task_id)
        with self._lock:
            task = self._tasks.get(task_id)
            check_argument_not_none(task, f"task_id {task_id!r} is unknown")
            waiting_on_task = self._tasks.get(waiting_on_task_id)
            check_argument_not_none(waiting_on_task, f"task_id {waiting_on_task_id!r} is unknown")
            if not task._remove_wait_for(waiting_on_task):  # type: ignore[union-attr,arg-type]
                raise InvalidArgumentError(f"{task_id!r} is existing but was not waiting on {waiting_on_task_id!r}")
        return self

    def build(self) -> Graph[T]:
        """Create an independent snapshot of the current graph.

        Later changes to the builder never show up in a snapshot.  Can be
        called any number of times.
        """
        with self._lock:
            copies = _copy_tasks(self._tasks.values())
        logger.debug("Built wait-for graph snapshot with %d task(s)", len(copies))
        return Graph(copies)

    # -- internal ----------------------------------------------------------

    def _get_or_add(self, task_id: T) -> Task[T]:
        """Must be called with ``self._lock`` held."""
        task = self._tasks.get(task_id)
        if task is None:
            task = Task(task_id)
            self._tasks[task_id] = task
        return task

    def _remove(self, task_id: T) -> None:
        """Must be called with ``self._lock`` held."""
        to_remove = self._tasks.pop(task_id)
        for other in self._tasks.values():
            other._remove_wait_for(to_remove)


def _copy_tasks(originals: Iterable[Task[T]]) -> list[Task[T]]:
    """Deep-copy a closed set of tasks, including cyclic edges.

    The memo is keyed by object identity, so each original node is copied
    exactly once no matter how many edges point to it.  All nodes are
    created first and wired second, which keeps cycles and long chains
    free of recursion.
    """
    originals = list(originals)
    memo: dict[int, Task[T]] = {id(original): Task(original.id) for original in originals}
    for original in originals:
        copied = memo[id(original)]
        for waited_for in original.waits_for:
            copied._add_wait_for(memo[id(waited_for)])
    return list(memo.values())
