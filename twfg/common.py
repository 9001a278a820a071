"""Result types returned by :class:`~twfg.detector.DeadlockDetector`."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Generic, TypeVar

from twfg._preconditions import check_argument, check_argument_not_none

T = TypeVar("T", bound=Hashable)


def format_cycle(cycle_tasks: Sequence[object]) -> str:
    """Human-readable description of a deadlock cycle."""
    return " -> ".join(str(task) for task in cycle_tasks)


def _is_rotation(cycle: tuple[object, ...], other: tuple[object, ...]) -> bool:
    """True if *other* lists the same cyclic order as *cycle*, starting anywhere."""
    if len(cycle) != len(other) or set(cycle) != set(other):
        return False
    # a member may repeat, so every start position is a candidate
    return any(
        other[offset:] + other[:offset] == cycle for offset, task in enumerate(other) if task == cycle[0]
    )


@dataclass(frozen=True, eq=False)
class DeadlockCycle(Generic[T]):
    """One cycle in a wait-for graph plus the tasks blocked by it.

    Immutable and safe to share between threads.

    Attributes:
        cycle_tasks: The tasks forming the cycle, in wait-for order.  The last
            task waits for the first one; a task waiting for itself is the
            one-element cycle ``(task,)``.
        also_deadlocked_tasks: Tasks outside the cycle which directly or
            indirectly wait for a cycle member, each mapped to the deadlocked
            tasks it directly waits for.
        all_deadlocked_tasks: Cycle members and also-deadlocked tasks together.
    """

    cycle_tasks: tuple[T, ...]
    also_deadlocked_tasks: Mapping[T, frozenset[T]] | None = None
    all_deadlocked_tasks: frozenset[T] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        check_argument(
            self.cycle_tasks is not None and len(self.cycle_tasks) > 0,
            f"There are no cycle tasks: {self.cycle_tasks!r}",
        )
        also = {task: frozenset(waits_for) for task, waits_for in (self.also_deadlocked_tasks or {}).items()}
        object.__setattr__(self, "cycle_tasks", tuple(self.cycle_tasks))
        object.__setattr__(self, "also_deadlocked_tasks", MappingProxyType(also))
        object.__setattr__(self, "all_deadlocked_tasks", frozenset(self.cycle_tasks).union(also))

    def is_deadlocked(self, task_id: T) -> bool:
        """Return True if *task_id* is deadlocked because of this cycle."""
        check_argument_not_none(task_id, "task_id must not be None")
        return task_id in self.all_deadlocked_tasks

    def are_all_deadlocked(self, task_ids: Iterable[T]) -> bool:
        check_argument_not_none(task_ids, "task_ids must not be None")
        return all(self.is_deadlocked(task_id) for task_id in task_ids)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, DeadlockCycle):
            return NotImplemented
        return dict(self.also_deadlocked_tasks) == dict(other.also_deadlocked_tasks) and _is_rotation(
            self.cycle_tasks, other.cycle_tasks
        )

    def __hash__(self) -> int:
        # Rotations share the member set.
        return hash(frozenset(self.cycle_tasks))

    def __str__(self) -> str:
        result = f"DeadlockCycle: {format_cycle(self.cycle_tasks)}"
        if self.also_deadlocked_tasks:
            pairs = [
                f"{task}->{waits_for}"
                for task, dependencies in self.also_deadlocked_tasks.items()
                for waits_for in dependencies
            ]
            result += (
                ". The following tasks are also deadlocked, because they are direct or indirect"
                " dependent on at least one of the tasks in the deadlock cycle: " + " ".join(pairs) + "."
            )
        return result


class DeadlockAnalysisResult(Generic[T]):
    """The distinct deadlock cycles found in one graph.

    Immutable.  Cycles equal under :class:`DeadlockCycle` equality are kept
    once, in discovery order.  A result is truthy when it holds a deadlock.
    """

    def __init__(self, deadlock_cycles: Iterable[DeadlockCycle[T]] = ()) -> None:
        check_argument_not_none(deadlock_cycles, "deadlock_cycles must not be None")
        self._cycles: tuple[DeadlockCycle[T], ...] = tuple(dict.fromkeys(deadlock_cycles))

    @property
    def deadlock_cycles(self) -> tuple[DeadlockCycle[T], ...]:
        return self._cycles

    def has_deadlock(self) -> bool:
        return bool(self._cycles)

    @property
    def all_deadlocked_tasks(self) -> frozenset[T]:
        """Every task deadlocked by at least one cycle."""
        return frozenset().union(*(cycle.all_deadlocked_tasks for cycle in self._cycles))

    def is_deadlocked(self, task_id: T) -> bool:
        check_argument_not_none(task_id, "task_id must not be None")
        return any(cycle.is_deadlocked(task_id) for cycle in self._cycles)

    def __iter__(self) -> Iterator[DeadlockCycle[T]]:
        return iter(self._cycles)

    def __len__(self) -> int:
        return len(self._cycles)

    def __bool__(self) -> bool:
        return self.has_deadlock()

    def __contains__(self, cycle: object) -> bool:
        return cycle in self._cycles

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, DeadlockAnalysisResult):
            return NotImplemented
        return set(self._cycles) == set(other._cycles)

    def __hash__(self) -> int:
        return hash(frozenset(self._cycles))

    def __repr__(self) -> str:
        return f"DeadlockAnalysisResult({list(self._cycles)!r})"

    def __str__(self) -> str:
        if not self._cycles:
            return "DeadlockAnalysisResult: no deadlock"
        return "DeadlockAnalysisResult:\n" + "\n".join(f"  {cycle}" for cycle in self._cycles)
