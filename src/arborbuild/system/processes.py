"""
Process tree termination behind a platform capability interface.

The supervisor and the launcher never branch on the host platform; they ask
`get_process_tree_killer()` for a killer. On hosts psutil cannot enumerate
processes on, the returned killer is a documented no-op.
"""

import logging
import os
import signal
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

import psutil

logger = logging.getLogger(__name__)


@dataclass
class KillOutcome:
    """
    Result of one tree-kill attempt.
    """

    # False when the host has no tree-kill facility and nothing was attempted.
    supported: bool = True
    # PIDs a kill signal was delivered to.
    killed: List[int] = field(default_factory=list)
    # PIDs still alive after the wait.
    survivors: List[int] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.supported and not self.survivors


def _is_process_alive(process: psutil.Process) -> bool:
    """Check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def get_process_create_time(pid: int) -> Optional[float]:
    """Return the creation time of a process, None if it cannot be read."""
    try:
        return psutil.Process(pid).create_time()
    except (psutil.NoSuchProcess, psutil.AccessDenied, ValueError):
        return None


def is_process_running(pid: int, create_time: Optional[float] = None) -> bool:
    """
    Check whether a live, non-zombie process with this pid exists.

    When `create_time` is given, a process reusing the pid does not count.
    """
    if pid is None or pid <= 0:
        return False
    try:
        process = psutil.Process(pid)
        if create_time is not None and abs(process.create_time() - create_time) > 0.01:
            return False
        return _is_process_alive(process)
    except (psutil.NoSuchProcess, psutil.AccessDenied, ValueError):
        return False


class ProcessTreeKiller(ABC):
    """Forcefully terminates a process and its descendants."""

    supported: bool = True

    @abstractmethod
    def kill_tree(self, pid: int) -> KillOutcome:
        """Kill `pid` and every descendant."""

    @abstractmethod
    def kill_descendants(self, pid: int) -> KillOutcome:
        """Kill every descendant of `pid`, leaving `pid` itself alive."""


class NoOpProcessTreeKiller(ProcessTreeKiller):
    """
    Fallback for hosts without process-tree enumeration.

    Nothing is killed; the outcome reports `supported=False` so callers can
    log that the tree may outlive the run.
    """

    supported = False

    def kill_tree(self, pid: int) -> KillOutcome:
        logger.warning(f"Process tree kill is not supported on {sys.platform}, PID {pid} left running")
        return KillOutcome(supported=False)

    def kill_descendants(self, pid: int) -> KillOutcome:
        logger.warning(f"Process tree kill is not supported on {sys.platform}, children of PID {pid} left running")
        return KillOutcome(supported=False)


class PsutilProcessTreeKiller(ProcessTreeKiller):
    """
    Tree kill built on psutil's recursive child enumeration.

    Descendants are collected before anything is killed so that children
    re-parented by the death of their parent are still reached. Children go
    first, deepest last in enumeration order, then the root.
    """

    def __init__(self, wait_timeout: float = 3.0):
        self.wait_timeout = wait_timeout

    def kill_tree(self, pid: int) -> KillOutcome:
        if pid <= 0:
            logger.warning(f"Invalid PID {pid}, skipping tree kill")
            return KillOutcome()

        try:
            root = psutil.Process(pid)
        except psutil.NoSuchProcess:
            logger.info(f"Process {pid} already terminated")
            return KillOutcome()
        except psutil.AccessDenied:
            logger.warning(f"Access denied to process {pid}, attempting force kill")
            return self._force_kill(pid)

        children = self._get_children(root)
        logger.info(f"Killing process {pid} and {len(children)} descendants")
        outcome = self._kill_all(children + [root])
        self._kill_process_group(pid)
        return outcome

    def kill_descendants(self, pid: int) -> KillOutcome:
        try:
            root = psutil.Process(pid)
        except (psutil.NoSuchProcess, psutil.AccessDenied) as e:
            logger.warning(f"Cannot enumerate children of {pid}: {e}")
            return KillOutcome()

        children = self._get_children(root)
        if not children:
            logger.debug(f"No descendants of {pid} to kill")
            return KillOutcome()
        logger.info(f"Killing {len(children)} descendants of process {pid}")
        return self._kill_all(children)

    def _get_children(self, parent: psutil.Process) -> List[psutil.Process]:
        """Get all live descendants, tolerating processes exiting mid-enumeration."""
        try:
            return [child for child in parent.children(recursive=True) if _is_process_alive(child)]
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            return []

    def _kill_all(self, processes: List[psutil.Process]) -> KillOutcome:
        outcome = KillOutcome()
        signalled = []
        for process in processes:
            try:
                if not _is_process_alive(process):
                    continue
                process.kill()
                signalled.append(process)
                outcome.killed.append(process.pid)
                logger.debug(f"Sent kill to PID {process.pid}")
            except psutil.NoSuchProcess:
                continue
            except psutil.AccessDenied:
                logger.warning(f"Access denied killing PID {process.pid}")
                outcome.survivors.append(process.pid)

        if signalled:
            _, still_alive = psutil.wait_procs(signalled, timeout=self.wait_timeout)
            outcome.survivors.extend(p.pid for p in still_alive if _is_process_alive(p))

        if outcome.survivors:
            logger.error(f"Failed to kill processes: {outcome.survivors}")
        return outcome

    def _kill_process_group(self, pid: int) -> None:
        """Kill the process group led by `pid`, catching grandchildren that escaped enumeration."""
        if not hasattr(os, "killpg"):
            return
        try:
            if os.getpgid(pid) != pid:
                return
        except (ProcessLookupError, PermissionError):
            pass
        try:
            os.killpg(pid, signal.SIGKILL)
            logger.debug(f"Sent SIGKILL to process group {pid}")
        except ProcessLookupError:
            pass
        except PermissionError:
            logger.debug(f"No permission to kill process group {pid}")

    def _force_kill(self, pid: int) -> KillOutcome:
        try:
            os.kill(pid, signal.SIGKILL if hasattr(signal, "SIGKILL") else signal.SIGTERM)
            logger.warning(f"Force killed process PID {pid}")
            return KillOutcome(killed=[pid])
        except ProcessLookupError:
            return KillOutcome()
        except OSError as e:
            logger.error(f"Failed to force kill PID {pid}: {e}")
            return KillOutcome(survivors=[pid])


def _psutil_supports_host() -> bool:
    return any(
        getattr(psutil, flag, False)
        for flag in ("LINUX", "WINDOWS", "MACOS", "FREEBSD", "OPENBSD", "NETBSD", "SUNOS", "AIX")
    )


def get_process_tree_killer(wait_timeout: float = 3.0) -> ProcessTreeKiller:
    """Return the tree killer for this host."""
    if _psutil_supports_host():
        return PsutilProcessTreeKiller(wait_timeout=wait_timeout)
    return NoOpProcessTreeKiller()
