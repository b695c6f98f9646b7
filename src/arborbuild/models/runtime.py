"""
Runtime data models.

This module contains the state threaded through a single orchestration run:
the key/value run context that replaces process environment mutation, the
cancellation token used for deadlines, the build context handed to providers
and tools, and the bootstrap options parsed once per run.
"""

import asyncio
import os
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple


class RunContext:
    """
    Explicit key/value context for one run.

    Seeded from a snapshot of the process environment, updated by file
    sources and bootstrap overrides, and turned back into an environment
    mapping for child processes. Lookups ignore case. Access is guarded by a
    lock since providers may issue parallel helper calls.
    """

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._lock = threading.Lock()
        self._values: Dict[str, Tuple[str, str]] = {}
        for key, value in (values or {}).items():
            self._values.setdefault(key.casefold(), (key, value))

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "RunContext":
        return cls(dict(os.environ if environ is None else environ))

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            entry = self._values.get(key.casefold())
        return entry[1] if entry else default

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key.casefold()] = (key, value)

    def set_default(self, key: str, value: str) -> bool:
        """Set a value only if the key is absent. Returns True when set."""
        with self._lock:
            folded = key.casefold()
            if folded in self._values:
                return False
            self._values[folded] = (key, value)
            return True

    def update(self, values: Mapping[str, str]) -> None:
        with self._lock:
            for key, value in values.items():
                self._values[key.casefold()] = (key, value)

    def items(self) -> List[Tuple[str, str]]:
        with self._lock:
            return list(self._values.values())

    def to_environment(self) -> Dict[str, str]:
        return dict(self.items())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return key.casefold() in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


class CancellationToken:
    """
    Cooperative cancellation with an optional deadline.

    A token is cancelled when `cancel()` was called, its deadline passed, or
    its parent token is cancelled. Deadlines use the monotonic clock.
    """

    def __init__(self, deadline: Optional[float] = None,
                 parent: Optional["CancellationToken"] = None):
        self._deadline = deadline
        self._parent = parent
        self._cancelled = threading.Event()

    @classmethod
    def none(cls) -> "CancellationToken":
        """A token that only fires when cancelled explicitly."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: float,
                     parent: Optional["CancellationToken"] = None) -> "CancellationToken":
        return cls(deadline=time.monotonic() + seconds, parent=parent)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def deadline_expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def is_cancelled(self) -> bool:
        if self._cancelled.is_set() or self.deadline_expired:
            return True
        return self._parent is not None and self._parent.is_cancelled

    def remaining(self) -> Optional[float]:
        """Seconds left before the nearest deadline, None when unbounded."""
        own = None if self._deadline is None else max(0.0, self._deadline - time.monotonic())
        inherited = self._parent.remaining() if self._parent is not None else None
        if own is None:
            return inherited
        if inherited is None:
            return own
        return min(own, inherited)

    async def sleep(self, seconds: float, tick: float = 0.05) -> bool:
        """
        Sleep up to `seconds`, waking early on cancellation.

        Returns:
            True if the full delay elapsed, False if cancelled first
        """
        end = time.monotonic() + seconds
        while True:
            if self.is_cancelled:
                return False
            left = end - time.monotonic()
            if left <= 0:
                return True
            await asyncio.sleep(min(tick, left))


@dataclass
class BuildContext:
    """
    Everything a provider or tool may need besides the variable set.
    """

    # Root of the source tree being built.
    source_root: Path
    # Key/value context of the run.
    run_context: RunContext = field(default_factory=RunContext)
    # Pass-through arguments of the build application.
    args: List[str] = field(default_factory=list)


# --- Bootstrap options ---

DOWNLOAD_ONLY_ARG = "--download-only"
ARBOR_BUILD_EXE_ARG = "-arborBuildExe="
BUILD_DIRECTORY_ARG = "-buildDirectory="
DEBUG_BRANCH_NAME = "refs/heads/develop/12.34.56"


def find_prefixed_argument(args: Iterable[str], prefix: str) -> Optional[str]:
    """Return the value of the first `prefix<value>` argument, matched case-insensitively."""
    folded = prefix.casefold()
    for arg in args:
        if arg.casefold().startswith(folded):
            value = arg[len(prefix):].strip().strip('"')
            return value or None
    return None


@dataclass(frozen=True)
class BootstrapOptions:
    """
    Options of one bootstrap run.

    All arguments, recognized or not, are kept in `args` and passed through to
    the relaunched build process.
    """

    args: Tuple[str, ...] = ()
    base_dir: Optional[Path] = None
    pre_release_enabled: Optional[bool] = None
    branch_name: Optional[str] = None
    download_only: bool = False
    arbor_build_exe_path: Optional[Path] = None

    @classmethod
    def parse(cls, args: Iterable[str]) -> "BootstrapOptions":
        arguments = tuple(args)
        download_only = any(arg.casefold() == DOWNLOAD_ONLY_ARG.casefold() for arg in arguments)
        exe_path = find_prefixed_argument(arguments, ARBOR_BUILD_EXE_ARG)
        base_dir = find_prefixed_argument(arguments, BUILD_DIRECTORY_ARG)

        return cls(
            args=arguments,
            base_dir=Path(base_dir) if base_dir else None,
            download_only=download_only,
            arbor_build_exe_path=Path(exe_path) if exe_path else None,
        )

    @classmethod
    def debug_override(cls, args: Iterable[str], base_dir: Path) -> "BootstrapOptions":
        """Deterministic options for debugging a bootstrap run against a fixed directory."""
        parsed = cls.parse(args)
        return cls(
            args=parsed.args,
            base_dir=base_dir,
            pre_release_enabled=True,
            branch_name=DEBUG_BRANCH_NAME,
            download_only=parsed.download_only,
            arbor_build_exe_path=parsed.arbor_build_exe_path,
        )


@dataclass(frozen=True)
class ProcessInvocation:
    """
    One external process call as handed to the process supervisor.

    A stream is redirected only when the caller supplied a callback for it.
    """

    executable_path: Path
    args: Tuple[str, ...] = ()
    env: Optional[Mapping[str, str]] = None
    redirect_stdout: bool = False
    redirect_stderr: bool = False
    cwd: Optional[Path] = None

    @property
    def command_line(self) -> str:
        return " ".join([str(self.executable_path), *self.args])
