"""
Tool contract and the bounded log-tail buffer.
"""

import threading
from abc import ABC, abstractmethod
from collections import deque
from typing import Deque, Generic, List, Optional, Sequence, TypeVar

from ..models import BuildContext, CancellationToken, ExitCode, VariableSet

T = TypeVar("T")


class LogTail(Generic[T]):
    """
    Fixed-capacity buffer that evicts its oldest entries.

    Tools keep the last lines of their output here; the pipeline logs them
    when the tool fails.
    """

    def __init__(self, limit: int = 5):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._lock = threading.Lock()
        self._items: Deque[T] = deque(maxlen=limit)

    @property
    def limit(self) -> int:
        return self._items.maxlen

    @limit.setter
    def limit(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"limit must be >= 1, got {value}")
        with self._lock:
            # deque keeps the rightmost (newest) items when rebuilt smaller
            self._items = deque(self._items, maxlen=value)

    def append(self, item: T) -> None:
        with self._lock:
            self._items.append(item)

    def items(self) -> List[T]:
        """Snapshot of the buffer, oldest first."""
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class Tool(ABC):
    """
    A build step.

    Tools run one at a time in priority order. A tool reports failure by
    returning a non-zero exit code; an exception counts as a failure too.
    """

    # Tools running tests are skipped when tests are disabled.
    is_test_runner: bool = False

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def execute(
        self,
        context: BuildContext,
        variables: VariableSet,
        args: Sequence[str],
        cancel_token: CancellationToken,
    ) -> ExitCode:
        """Run the step against the resolved variables."""

    def __repr__(self) -> str:
        return f"<{self.name}>"


class ReportsLogTail:
    """Mixin for tools exposing a log tail for failure diagnostics."""

    log_tail: LogTail[str]


def get_log_tail(tool: Tool) -> Optional[LogTail[str]]:
    tail = getattr(tool, "log_tail", None) if isinstance(tool, ReportsLogTail) else None
    return tail if isinstance(tail, LogTail) else None
