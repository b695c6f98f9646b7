"""
Supervised execution of one external process.

The supervisor spawns a process, streams its output line by line to optional
callbacks, waits for it while observing a cancellation token, and kills the
whole process tree when the token fires. Apart from the pre-flight check of
the executable, every failure is reported as `ExitCode.FAILURE` with a log
message naming what went wrong; nothing else is raised.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Sequence, Union

from ..models import CancellationToken, ExitCode, ProcessInvocation, SupervisorConfig
from ..validation import ConfigurationError, ProcessSupervisionError
from .processes import (
    KillOutcome,
    ProcessTreeKiller,
    get_process_create_time,
    get_process_tree_killer,
    is_process_running,
)

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]


class ProcessFailureKind(Enum):
    """Why a supervised process ended in failure."""
    SPAWN_FAILURE = "spawn failure"
    TIMEOUT = "timeout"
    ABNORMAL_EXIT = "abnormal exit"
    RACE_DETECTED = "still running after reported exit"
    EXIT_CODE_UNAVAILABLE = "exit code unavailable"


@dataclass
class ProcessOutcome:
    """
    Detailed result of one supervised run.

    `exit_code` is what callers act on; the other fields exist for
    diagnostics and tests.
    """

    exit_code: ExitCode
    pid: Optional[int] = None
    # Exit status as reported by the OS, if it was read.
    return_code: Optional[int] = None
    failure: Optional[ProcessFailureKind] = None
    error: Optional[ProcessSupervisionError] = None
    kill: Optional[KillOutcome] = None

    @property
    def succeeded(self) -> bool:
        return self.exit_code.is_success


class ProcessSupervisor:
    """
    Runs external processes to completion under a cancellation token.

    Completion is signalled through a future set once by a watcher task when
    the process exits. The supervising loop waits on that future with a short
    tick so an external cancellation is observed within one poll interval.
    """

    # Per-line buffer limit for captured streams.
    READ_LIMIT = 1024 * 1024
    # Upper bound for draining output after the process exited.
    DRAIN_TIMEOUT = 2.0

    def __init__(
        self,
        poll_interval: float = 0.05,
        quick_call_timeout: float = 5.0,
        kill_wait_timeout: float = 3.0,
        killer: Optional[ProcessTreeKiller] = None,
    ):
        self.poll_interval = poll_interval
        self.quick_call_timeout = quick_call_timeout
        self.kill_wait_timeout = kill_wait_timeout
        self.killer = killer or get_process_tree_killer(wait_timeout=kill_wait_timeout)

    @classmethod
    def from_config(cls, config: SupervisorConfig,
                    killer: Optional[ProcessTreeKiller] = None) -> "ProcessSupervisor":
        return cls(
            poll_interval=config.poll_interval_seconds,
            quick_call_timeout=config.quick_call_timeout_seconds,
            kill_wait_timeout=config.kill_wait_timeout_seconds,
            killer=killer,
        )

    def quick_call_token(self, parent: Optional[CancellationToken] = None) -> CancellationToken:
        """Token for short auxiliary calls such as version-control queries."""
        return CancellationToken.with_timeout(self.quick_call_timeout, parent=parent)

    async def run(
        self,
        executable_path: Union[str, Path],
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
        cancel_token: Optional[CancellationToken] = None,
        stdout_callback: Optional[OutputCallback] = None,
        stderr_callback: Optional[OutputCallback] = None,
        cwd: Optional[Union[str, Path]] = None,
    ) -> ExitCode:
        """
        Run a process to completion.

        Args:
            executable_path: Path of the executable file
            args: Arguments passed to the executable
            env: Complete environment of the child; None inherits ours
            cancel_token: Token whose firing kills the process tree
            stdout_callback: Receives each stdout line; None leaves stdout unredirected
            stderr_callback: Receives each stderr line; None leaves stderr unredirected
            cwd: Working directory of the child

        Returns:
            ExitCode.SUCCESS or ExitCode.FAILURE

        Raises:
            ConfigurationError: If the executable does not exist
        """
        invocation = ProcessInvocation(
            executable_path=Path(executable_path),
            args=tuple(str(arg) for arg in args),
            env=env,
            redirect_stdout=stdout_callback is not None,
            redirect_stderr=stderr_callback is not None,
            cwd=Path(cwd) if cwd is not None else None,
        )
        outcome = await self.execute(invocation, cancel_token, stdout_callback, stderr_callback)
        return outcome.exit_code

    async def execute(
        self,
        invocation: ProcessInvocation,
        cancel_token: Optional[CancellationToken] = None,
        stdout_callback: Optional[OutputCallback] = None,
        stderr_callback: Optional[OutputCallback] = None,
    ) -> ProcessOutcome:
        """
        Run a process described by `invocation` and report the detailed outcome.

        Raises:
            ConfigurationError: If the executable does not exist
        """
        executable = invocation.executable_path
        if not executable.is_file():
            raise ConfigurationError(f"The executable file '{executable}' does not exist")

        token = cancel_token or CancellationToken.none()
        if token.is_cancelled:
            return self._failure(
                ProcessFailureKind.TIMEOUT,
                f"Cancellation requested before '{executable}' was started",
                pid=None,
            )

        logger.debug(f"Executing process: {invocation.command_line}")

        try:
            process = await asyncio.create_subprocess_exec(
                str(executable),
                *invocation.args,
                stdout=asyncio.subprocess.PIPE if invocation.redirect_stdout else None,
                stderr=asyncio.subprocess.PIPE if invocation.redirect_stderr else None,
                env=dict(invocation.env) if invocation.env is not None else None,
                cwd=str(invocation.cwd) if invocation.cwd is not None else None,
                start_new_session=os.name == "posix",
                limit=self.READ_LIMIT,
            )
        except (OSError, ValueError) as e:
            return self._failure(
                ProcessFailureKind.SPAWN_FAILURE,
                f"Could not start process '{executable}': {type(e).__name__}: {e}",
                pid=None,
            )

        pid = getattr(process, "pid", None)
        create_time = get_process_create_time(pid) if pid else None
        logger.debug(f"Process '{executable.name}' started with PID {pid}")

        loop = asyncio.get_running_loop()
        completion: asyncio.Future = loop.create_future()
        watcher = asyncio.create_task(self._watch_exit(process, completion))
        readers: List[asyncio.Task] = []
        if stdout_callback is not None and process.stdout is not None:
            readers.append(asyncio.create_task(self._pump(process.stdout, stdout_callback, "stdout")))
        if stderr_callback is not None and process.stderr is not None:
            readers.append(asyncio.create_task(self._pump(process.stderr, stderr_callback, "stderr")))

        try:
            while not completion.done():
                if token.is_cancelled:
                    return await self._cancel(process, pid, executable, completion)
                await asyncio.wait({completion}, timeout=self.poll_interval)

            await self._drain(readers)
            return self._completed(completion, pid, create_time, executable)
        finally:
            if process.returncode is None and pid is not None:
                logger.warning(f"Supervision of PID {pid} ended while it was running, killing its tree")
                self._kill_detached(process, pid)
            for task in [watcher, *readers]:
                if not task.done():
                    task.cancel()

    # --- Internal helpers ---

    def _kill_detached(self, process: asyncio.subprocess.Process, pid: int) -> None:
        """Kill the tree of `pid` on the executor without waiting for it."""
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self.killer.kill_tree, pid)

        def finished(done: asyncio.Future) -> None:
            if done.cancelled():
                return
            error = done.exception()
            if error is not None:
                logger.error(f"Killing process tree of PID {pid} failed: {type(error).__name__}: {error}")
                return
            if not done.result().supported and process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass

        future.add_done_callback(finished)

    async def _watch_exit(self, process: asyncio.subprocess.Process, completion: asyncio.Future) -> None:
        """Set the completion future exactly once when the process exits."""
        try:
            return_code = await process.wait()
        except Exception as e:
            if not completion.done():
                completion.set_exception(e)
            return
        if not completion.done():
            completion.set_result(return_code)

    async def _pump(self, stream: asyncio.StreamReader, callback: OutputCallback, name: str) -> None:
        """
        Deliver each decoded line of `stream` to `callback`.

        A line longer than READ_LIMIT is delivered as several chunks.
        """
        split = False
        while True:
            try:
                line = await stream.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                line = e.partial
            except asyncio.LimitOverrunError as e:
                line = await stream.readexactly(e.consumed)
                split = True
            else:
                if split and line in (b"\n", b"\r\n"):
                    # Terminator of a line already delivered in chunks.
                    split = False
                    continue
                split = False
            if not line:
                break
            text = line.decode("utf-8", errors="replace").rstrip("\r\n")
            try:
                callback(text)
            except Exception as e:
                logger.warning(f"Output callback for {name} raised {type(e).__name__}: {e}")

    async def _drain(self, readers: List[asyncio.Task]) -> None:
        """Give readers a bounded time to deliver output still buffered in the pipes."""
        if not readers:
            return
        _, pending = await asyncio.wait(readers, timeout=self.DRAIN_TIMEOUT)
        if pending:
            logger.debug(f"{len(pending)} output readers still open after process exit, detaching")

    async def _cancel(
        self,
        process: asyncio.subprocess.Process,
        pid: Optional[int],
        executable: Path,
        completion: asyncio.Future,
    ) -> ProcessOutcome:
        """Kill the process tree after the token fired."""
        if pid is None:
            return self._failure(
                ProcessFailureKind.TIMEOUT,
                f"Cancellation requested for '{executable}' but its process id was never captured, "
                f"skipping termination",
                pid=None,
            )

        logger.warning(f"Cancellation requested, killing process tree of '{executable}' (PID {pid})")
        loop = asyncio.get_running_loop()
        kill = await loop.run_in_executor(None, self.killer.kill_tree, pid)

        if not kill.supported and process.returncode is None:
            # Descendants are out of reach on this host, the direct child is not.
            try:
                process.kill()
            except ProcessLookupError:
                pass

        await asyncio.wait({completion}, timeout=self.kill_wait_timeout)
        if kill.succeeded:
            logger.info(f"Killed process tree of PID {pid} ({len(kill.killed)} processes)")
        elif kill.supported:
            logger.error(f"Process tree of PID {pid} not fully killed, survivors: {kill.survivors}")

        outcome = self._failure(
            ProcessFailureKind.TIMEOUT,
            f"Process '{executable}' (PID {pid}) was cancelled before completion",
            pid=pid,
        )
        outcome.kill = kill
        if completion.done() and not completion.cancelled() and completion.exception() is None:
            outcome.return_code = completion.result()
        return outcome

    def _completed(
        self,
        completion: asyncio.Future,
        pid: Optional[int],
        create_time: Optional[float],
        executable: Path,
    ) -> ProcessOutcome:
        """Evaluate a process that reported its exit."""
        try:
            return_code = completion.result()
        except Exception as e:
            return self._failure(
                ProcessFailureKind.EXIT_CODE_UNAVAILABLE,
                f"Could not read exit code of '{executable}' (PID {pid}): {e}",
                pid=pid,
            )

        if pid is not None and is_process_running(pid, create_time):
            return self._failure(
                ProcessFailureKind.RACE_DETECTED,
                f"Process '{executable}' (PID {pid}) reported exit code {return_code} but is still running",
                pid=pid,
                return_code=return_code,
            )

        if return_code is None:
            return self._failure(
                ProcessFailureKind.EXIT_CODE_UNAVAILABLE,
                f"Process '{executable}' (PID {pid}) exited without an exit code",
                pid=pid,
            )

        if return_code != 0:
            return self._failure(
                ProcessFailureKind.ABNORMAL_EXIT,
                f"Process '{executable}' (PID {pid}) exited with code {return_code}",
                pid=pid,
                return_code=return_code,
            )

        logger.debug(f"Process '{executable.name}' (PID {pid}) exited successfully")
        return ProcessOutcome(exit_code=ExitCode.SUCCESS, pid=pid, return_code=0)

    def _failure(
        self,
        kind: ProcessFailureKind,
        message: str,
        pid: Optional[int],
        return_code: Optional[int] = None,
    ) -> ProcessOutcome:
        logger.error(f"[{kind.value}] {message}")
        return ProcessOutcome(
            exit_code=ExitCode.FAILURE,
            pid=pid,
            return_code=return_code,
            failure=kind,
            error=ProcessSupervisionError(message),
        )
