"""
Built-in tools registered by the default registry.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from ..models import BuildContext, CancellationToken, ExitCode, VariableSet
from ..system import ProcessSupervisor, ProcessTreeKiller, get_process_tree_killer
from ..variables import WellKnownVariables, all_well_known_variables
from ..formatting import display_as_table
from .tools import LogTail, ReportsLogTail, Tool

logger = logging.getLogger(__name__)

HELP_ARG = "--help"


class HelpTool(Tool):
    """
    Prints the well-known variables when `--help` is passed.

    Returns failure in that case so no other tool runs.
    """

    async def execute(self, context: BuildContext, variables: VariableSet,
                      args: Sequence[str], cancel_token: CancellationToken) -> ExitCode:
        if not any(arg.casefold() == HELP_ARG for arg in args):
            return ExitCode.SUCCESS

        table = display_as_table(
            {"Name": entry.name, "Default": entry.default, "Description": entry.description}
            for entry in all_well_known_variables()
        )
        logger.info(f"Available variables\n\n{table}")
        logger.debug("Help invoked, skipping other tools")
        return ExitCode.FAILURE


class ScriptTool(Tool, ReportsLogTail):
    """
    Runs the post-build scripts listed in `Arbor.Build.PostScripts`.

    Paths are relative to the source root. Missing scripts are skipped; the
    first failing script fails the tool.
    """

    def __init__(self, supervisor: ProcessSupervisor, tail_size: int = 5):
        self.supervisor = supervisor
        self.log_tail: LogTail[str] = LogTail(tail_size)

    async def execute(self, context: BuildContext, variables: VariableSet,
                      args: Sequence[str], cancel_token: CancellationToken) -> ExitCode:
        scripts = variables.get_values(WellKnownVariables.POST_SCRIPTS)
        logger.debug(f"Found {len(scripts)} post scripts: {scripts}")

        environment = context.run_context.to_environment()
        for script in scripts:
            path = (Path(context.source_root) / script).resolve()
            if not path.is_file():
                logger.warning(f"The post script '{path}' does not exist, skipping")
                continue

            exit_code = await self.supervisor.run(
                path,
                env=environment,
                cancel_token=cancel_token,
                stdout_callback=self._log_line,
                stderr_callback=self._log_error_line,
                cwd=context.source_root,
            )
            if not exit_code.is_success:
                logger.error(f"Could not execute post script {path}")
                return ExitCode.FAILURE

        return ExitCode.SUCCESS

    def _log_line(self, line: str) -> None:
        self.log_tail.append(line)
        logger.info(line)

    def _log_error_line(self, line: str) -> None:
        self.log_tail.append(line)
        logger.error(line)


class ProcessCleanupTool(Tool):
    """
    Kills processes the build left behind.

    Registered as run-always with the last priority, so it runs even after a
    failed build. Never fails the build.
    """

    def __init__(self, killer: Optional[ProcessTreeKiller] = None):
        self.killer = killer or get_process_tree_killer()

    async def execute(self, context: BuildContext, variables: VariableSet,
                      args: Sequence[str], cancel_token: CancellationToken) -> ExitCode:
        if not variables.get_bool(WellKnownVariables.CLEANUP_PROCESSES_AFTER_BUILD_ENABLED, default=True):
            logger.debug("Process cleanup is disabled")
            return ExitCode.SUCCESS

        loop = asyncio.get_running_loop()
        outcome = await loop.run_in_executor(None, self.killer.kill_descendants, os.getpid())
        if outcome.killed:
            logger.info(f"Cleaned up {len(outcome.killed)} leftover processes")
        if outcome.survivors:
            logger.warning(f"Could not clean up processes: {outcome.survivors}")
        return ExitCode.SUCCESS
