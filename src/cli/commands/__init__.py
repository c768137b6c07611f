"""CLI command modules."""

from .adjustment import adjustment
from .goal import goal
from .memory import memory
from .task import task

__all__ = [
    "memory",
    "goal",
    "task",
    "adjustment",
]
