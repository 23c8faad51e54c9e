"""
FIFO trampoline for Driver steps.

Resumptions never call back into a computation directly. They submit a
step to the current thread's trampoline and ask it to drain. When a drain
is already running further up the stack the step is only queued, so
synchronous completions, nested Drivers and long yield chains all execute
in one flat loop instead of growing the native stack.

A top-level entry point that starts while a drain is running (``run`` from
inside a generator body, ``run_sync`` anywhere) swaps in a fresh trampoline
so its own steps are not stuck behind the step that called it.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

Task = Callable[[], None]


class Scheduler(Protocol):
    """Queue of pending Driver steps.

    - submit(): add a step to the pool
    - drain(): run pending steps until none are left
    """

    def submit(self, task: Task) -> None:
        ...

    def drain(self) -> None:
        ...


class FIFOTrampoline:
    """First-In-First-Out trampoline.

    Steps run in the order they were submitted. ``drain`` is re-entrant:
    a nested call returns immediately and leaves the work to the outer loop.
    """

    def __init__(self) -> None:
        self._queue: deque[Task] = deque()
        self._draining = False

    @property
    def draining(self) -> bool:
        return self._draining

    def submit(self, task: Task) -> None:
        """Add step to queue."""
        self._queue.append(task)

    def drain(self) -> None:
        """Run queued steps until the queue is empty."""
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                task = self._queue.popleft()
                task()
        finally:
            self._draining = False

    def __len__(self) -> int:
        """Number of pending steps."""
        return len(self._queue)


_local = threading.local()


def current_trampoline() -> FIFOTrampoline:
    """Return the calling thread's trampoline, creating it on first use."""
    trampoline = getattr(_local, "trampoline", None)
    if trampoline is None:
        trampoline = FIFOTrampoline()
        _local.trampoline = trampoline
    return trampoline


@contextmanager
def fresh_trampoline() -> Iterator[FIFOTrampoline]:
    """Install a new, idle trampoline for the calling thread until exit.

    Steps scheduled inside the block drain immediately even when an outer
    drain is running further up the stack; the outer trampoline is restored
    afterwards.
    """
    previous = getattr(_local, "trampoline", None)
    trampoline = FIFOTrampoline()
    _local.trampoline = trampoline
    try:
        yield trampoline
    finally:
        _local.trampoline = previous


__all__ = ["FIFOTrampoline", "Scheduler", "Task", "current_trampoline", "fresh_trampoline"]
