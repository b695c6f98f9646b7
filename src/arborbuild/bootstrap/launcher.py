"""
Bootstrap launcher.

Resolves the base directory, acquires the build tool distributable and runs
it under an overall deadline:

    INIT -> RESOLVE_BASE_DIRECTORY -> ACQUIRE_BUILD_TOOL
         -> DONE                         (download only)
         -> INVOKE_BUILD_TOOL -> DONE
                              -> TIMEOUT -> PROCESS_TREE_KILL -> FAILED

Configuration and acquisition errors are fatal; every path ends with a
bounded, cancellable exit delay and returns SUCCESS or FAILURE.
"""

import asyncio
import logging
import os
from enum import Enum
from pathlib import Path
from typing import List, Optional

from ..models import (
    BUILD_DIRECTORY_ARG,
    BootstrapConfig,
    BootstrapOptions,
    CancellationToken,
    ExitCode,
    RunContext,
    parse_bool,
)
from ..system import ProcessSupervisor, ProcessTreeKiller, find_vcs_root
from ..validation import BootstrapAcquisitionError, ConfigurationError
from ..variables import WellKnownVariables
from .acquisition import DirectoryFeedInstaller, DistributableInstaller, acquire_build_tool
from .entry_point import EntryPoint, entry_point_for_path, locate_entry_point

logger = logging.getLogger(__name__)

BUILD_DIRECTORY_NAME = "build"
OUTPUT_PREFIX = "[arbor-build] "


class BootstrapState(Enum):
    INIT = "init"
    RESOLVE_BASE_DIRECTORY = "resolve base directory"
    ACQUIRE_BUILD_TOOL = "acquire build tool"
    INVOKE_BUILD_TOOL = "invoke build tool"
    TIMEOUT = "timeout"
    PROCESS_TREE_KILL = "process tree kill"
    DONE = "done"
    FAILED = "failed"


def read_int(run_context: RunContext, key: str, default: int, min_value: int = 0) -> int:
    """Integer from the run context; missing, invalid or too small values yield the default."""
    value = run_context.get(key)
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        logger.warning(f"Ignoring invalid integer '{value}' for {key}")
        return default
    return parsed if parsed >= min_value else default


class BootstrapLauncher:
    """
    Top-level orchestrator of one bootstrap run.
    """

    def __init__(
        self,
        options: BootstrapOptions,
        run_context: RunContext,
        config: BootstrapConfig,
        supervisor: ProcessSupervisor,
        installer: Optional[DistributableInstaller] = None,
        killer: Optional[ProcessTreeKiller] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.options = options
        self.run_context = run_context
        self.config = config
        self.supervisor = supervisor
        self.installer = installer or self._default_installer()
        self.killer = killer or supervisor.killer
        self.cancel_token = cancel_token or CancellationToken.none()
        self.state = BootstrapState.INIT
        self.history: List[BootstrapState] = [BootstrapState.INIT]

    def _transition(self, state: BootstrapState) -> None:
        logger.debug(f"Bootstrap state {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _default_installer(self) -> DistributableInstaller:
        source = self.run_context.get(WellKnownVariables.PACKAGE_SOURCE)
        feed_dir = Path(source) if source and source.strip() else self.config.package_source
        return DirectoryFeedInstaller(self.config.package_name, feed_dir=feed_dir,
                                      cache_dir=self.config.cache_dir)

    async def start(self) -> ExitCode:
        """
        Run the bootstrap state machine.

        Returns:
            ExitCode.SUCCESS or ExitCode.FAILURE
        """
        self._apply_option_overrides()
        try:
            exit_code = await self._run()
        except (ConfigurationError, BootstrapAcquisitionError) as e:
            logger.error(f"Bootstrap failed in state '{self.state.value}': {e}")
            exit_code = ExitCode.FAILURE

        if exit_code.is_success:
            self._transition(BootstrapState.DONE)
        elif self.state is not BootstrapState.FAILED:
            self._transition(BootstrapState.FAILED)

        await self._exit_delay()
        return exit_code

    async def _run(self) -> ExitCode:
        self._transition(BootstrapState.RESOLVE_BASE_DIRECTORY)
        base_dir = self.resolve_base_directory()

        self._transition(BootstrapState.ACQUIRE_BUILD_TOOL)
        entry_point = await self.acquire()
        if self.options.download_only:
            logger.info("Download only requested, not starting the build tool")
            return ExitCode.SUCCESS

        self._transition(BootstrapState.INVOKE_BUILD_TOOL)
        return await self.invoke(entry_point, base_dir)

    def _apply_option_overrides(self) -> None:
        """Push options that change build behavior into the child's context."""
        if self.options.branch_name:
            self.run_context.set(WellKnownVariables.BRANCH_NAME, self.options.branch_name)
        if self.options.pre_release_enabled is not None:
            self.run_context.set(WellKnownVariables.ALLOW_PRERELEASE,
                                 "true" if self.options.pre_release_enabled else "false")
        if self.options.branch_name and self.options.pre_release_enabled:
            # Debug override: later values must win during resolution.
            self.run_context.set(WellKnownVariables.VARIABLE_OVERRIDE_ENABLED, "true")

    def resolve_base_directory(self) -> Path:
        """
        Explicit existing base directory, else the version-control root of the cwd.

        Raises:
            ConfigurationError: If neither is available
        """
        base_dir = self.options.base_dir
        if base_dir is not None and base_dir.is_dir():
            logger.info(f"Using base directory '{base_dir}' from start options")
            return base_dir.resolve()
        if base_dir is not None:
            logger.warning(f"Base directory '{base_dir}' does not exist, looking for the source root")

        found = find_vcs_root(Path(os.getcwd()))
        if found is None:
            raise ConfigurationError("Could not get source root path")
        logger.info(f"Using source root '{found}' as base directory")
        return found

    async def acquire(self) -> EntryPoint:
        """
        Resolve the build tool entry point, installing the distributable if needed.

        Raises:
            BootstrapAcquisitionError: If no version can be resolved
            ConfigurationError: If the distributable has no single entry point
        """
        if self.options.arbor_build_exe_path is not None:
            exe_path = self.options.arbor_build_exe_path
            logger.info(f"Using build tool '{exe_path}' from start options, skipping acquisition")
            return entry_point_for_path(exe_path)

        requested = self.run_context.get(WellKnownVariables.PACKAGE_VERSION)
        allow_prerelease = self.options.pre_release_enabled
        if allow_prerelease is None:
            allow_prerelease = parse_bool(self.run_context.get(WellKnownVariables.ALLOW_PRERELEASE)) is True

        package_directory = await acquire_build_tool(self.installer, requested, allow_prerelease)
        logger.info(f"Build tool available at {package_directory}")
        if self.options.download_only:
            return EntryPoint(executable=package_directory)
        return locate_entry_point(package_directory)

    def build_timeout_seconds(self) -> int:
        return read_int(self.run_context, WellKnownVariables.BUILD_TOOL_TIMEOUT_IN_SECONDS,
                        self.config.build_timeout_seconds, min_value=1)

    def kill_spawned_processes_enabled(self) -> bool:
        return parse_bool(self.run_context.get(WellKnownVariables.KILL_SPAWNED_PROCESS)) is not False

    async def invoke(self, entry_point: EntryPoint, base_dir: Path) -> ExitCode:
        """Run the build tool under the overall deadline."""
        build_dir = base_dir / BUILD_DIRECTORY_NAME
        build_dir.mkdir(parents=True, exist_ok=True)

        self.run_context.set_default(WellKnownVariables.SOURCE_ROOT, str(base_dir))
        arguments = [*entry_point.args, f"{BUILD_DIRECTORY_ARG}{build_dir}"]
        arguments.extend(arg for arg in self.options.args
                         if not arg.casefold().startswith(BUILD_DIRECTORY_ARG.casefold()))

        timeout = self.build_timeout_seconds()
        logger.info(f"Using build timeout {timeout} seconds")
        deadline = CancellationToken.with_timeout(timeout, parent=self.cancel_token)

        exit_code = await self.supervisor.run(
            entry_point.executable,
            arguments,
            env=self.run_context.to_environment(),
            cancel_token=deadline,
            stdout_callback=lambda line: logger.info(f"{OUTPUT_PREFIX}{line}"),
            stderr_callback=lambda line: logger.error(f"{OUTPUT_PREFIX}{line}"),
            cwd=build_dir,
        )

        if deadline.deadline_expired and not exit_code.is_success:
            self._transition(BootstrapState.TIMEOUT)
            logger.error(f"The build timed out after {timeout} seconds")
            await self._kill_spawned_processes()
            self._transition(BootstrapState.FAILED)
            return ExitCode.FAILURE

        if exit_code.is_success:
            logger.info("The build tool finished successfully")
        else:
            logger.error("The build tool failed")
        return exit_code

    async def _kill_spawned_processes(self) -> None:
        if not self.kill_spawned_processes_enabled():
            logger.info(f"Not killing spawned processes, disabled by {WellKnownVariables.KILL_SPAWNED_PROCESS}")
            return
        self._transition(BootstrapState.PROCESS_TREE_KILL)
        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(None, self.killer.kill_descendants, os.getpid())
        if not outcome.supported:
            logger.warning("Killing spawned processes is not supported on this host")
        elif outcome.survivors:
            logger.error(f"Processes still running after timeout kill: {outcome.survivors}")
        else:
            logger.info(f"Killed {len(outcome.killed)} spawned processes")

    async def _exit_delay(self) -> None:
        delay_ms = read_int(self.run_context, WellKnownVariables.BOOTSTRAPPER_EXIT_DELAY_IN_MILLISECONDS,
                            self.config.exit_delay_ms)
        delay_ms = min(delay_ms, self.config.max_exit_delay_ms)
        if delay_ms <= 0:
            return
        logger.debug(f"Delaying bootstrapper exit by {delay_ms} ms")
        await self.cancel_token.sleep(delay_ms / 1000)
