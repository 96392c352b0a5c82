"""
OS simulator package.

Provides tick-driven CPU scheduling and memory allocation simulators plus a
command-line interface for experimenting with them.
"""

from .allocator import Allocator
from .errors import InvalidArgumentError
from .models import BlockKind, MemoryBlock, Process, ProcessState
from .scheduler import Scheduler

__all__ = [
    "Allocator",
    "BlockKind",
    "InvalidArgumentError",
    "MemoryBlock",
    "Process",
    "ProcessState",
    "Scheduler",
    "cli",
]
