"""Argument checks shared by the builder, the detector and the result types.

This file is a leaf module with no other ``twfg`` imports, so every other
module can use it without circular-import chains.
"""

from __future__ import annotations

from typing import Any


class InvalidArgumentError(ValueError):
    """Raised when a caller violates a precondition of the public API.

    Examples: a ``None`` or blank task id, a ``None`` collection, removing a
    task that was never added, or removing a wait-for dependency that does
    not exist.  The builder is left unchanged whenever this is raised.
    """


# Short name for callers that catch the error by its domain name.
InvalidArgument = InvalidArgumentError


def check_argument(condition: bool, message: str) -> None:
    if not condition:
        raise InvalidArgumentError(message)


def check_argument_not_none(obj: Any, message: str) -> None:
    if obj is None:
        raise InvalidArgumentError(message)


def check_task_id(task_id: Any) -> None:
    """Reject ``None`` and blank string task ids."""
    check_argument_not_none(task_id, "task_id must not be None")
    if isinstance(task_id, str) and not task_id.strip():
        raise InvalidArgumentError(f"task_id must not be blank: {task_id!r}")
