"""
The relaunched build application.

Changes into the build directory, resolves variables with the registered
providers and runs the registered tools in priority order.
"""

import logging
import os
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .config import get_config
from .formatting import display_as_table, format_variables_table
from .models import (
    BUILD_DIRECTORY_ARG,
    AppConfig,
    BuildContext,
    CancellationToken,
    ExitCode,
    PipelineResult,
    RunContext,
    VariableSet,
    find_prefixed_argument,
)
from .pipeline import ComponentRegistry, ToolPipeline, default_registry
from .system import ProcessSupervisor, find_vcs_root
from .validation import ConfigurationError, ProviderError
from .variables import VariableResolver, WellKnownVariables, all_well_known_variables, seed_variables

logger = logging.getLogger(__name__)

RegistryFactory = Callable[[ProcessSupervisor], ComponentRegistry]


class BuildApplication:
    """
    One run of the build: resolve variables, then run the tool pipeline.
    """

    def __init__(
        self,
        args: Sequence[str],
        run_context: Optional[RunContext] = None,
        config: Optional[AppConfig] = None,
        registry_factory: RegistryFactory = default_registry,
        supervisor: Optional[ProcessSupervisor] = None,
        cancel_token: Optional[CancellationToken] = None,
    ):
        self.args: List[str] = list(args)
        self.run_context = run_context or RunContext.from_environment()
        self.config = config or get_config()
        self.supervisor = supervisor or ProcessSupervisor.from_config(self.config.supervisor)
        self.registry_factory = registry_factory
        self.cancel_token = cancel_token or CancellationToken.none()
        # Set once the pipeline ran.
        self.result: Optional[PipelineResult] = None

    async def run(self) -> ExitCode:
        """
        Run the build.

        Returns:
            ExitCode.SUCCESS when every tool succeeded, otherwise ExitCode.FAILURE
        """
        try:
            exit_code = await self._run()
        except (ConfigurationError, ProviderError) as e:
            logger.error(f"Build failed: {e}")
            exit_code = ExitCode.FAILURE

        await self._exit_delay()
        return ExitCode.SUCCESS if exit_code.is_success else ExitCode.FAILURE

    async def _run(self) -> ExitCode:
        self._change_build_directory()
        context = BuildContext(source_root=self.resolve_source_root(),
                               run_context=self.run_context, args=self.args)
        logger.info(f"Using source root {context.source_root}")

        registration = self.registry_factory(self.supervisor).build()

        seed = seed_variables(context, self.config.build.variable_file_name)
        variables = await VariableResolver(context).resolve(registration.providers, seed)
        self._show_variables(variables)

        result = await ToolPipeline(context).run_all(
            registration.invocations, variables, self.args, self.cancel_token
        )
        self.result = result
        if result.exit_code.is_success:
            logger.info("Build succeeded")
        else:
            logger.error(f"Build failed with {len(result.failed)} failed tools")
        return result.exit_code

    def _change_build_directory(self) -> None:
        build_directory = find_prefixed_argument(self.args, BUILD_DIRECTORY_ARG)
        if build_directory is None:
            return
        path = Path(build_directory)
        if not path.is_dir():
            raise ConfigurationError(f"The build directory '{path}' does not exist")
        os.chdir(path)
        logger.debug(f"Changed working directory to {path}")

    def resolve_source_root(self) -> Path:
        """The `SourceRoot` from the context, else the repository root, else the cwd."""
        source_root = self.run_context.get(WellKnownVariables.SOURCE_ROOT)
        if source_root and source_root.strip():
            return Path(source_root)
        cwd = Path(os.getcwd())
        return find_vcs_root(cwd) or cwd

    def _show_variables(self, variables: VariableSet) -> None:
        if variables.get_bool(WellKnownVariables.SHOW_AVAILABLE_VARIABLES_ENABLED, default=True):
            table = display_as_table(
                {"Name": entry.name, "Default": entry.default, "Description": entry.description}
                for entry in all_well_known_variables()
            )
            logger.info(f"Available well-known variables\n\n{table}")

        if variables.get_bool(WellKnownVariables.SHOW_DEFINED_VARIABLES_ENABLED, default=False):
            logger.info(f"Defined variables\n\n{format_variables_table(variables)}")

    async def _exit_delay(self) -> None:
        value = self.run_context.get(WellKnownVariables.BUILD_APPLICATION_EXIT_DELAY_IN_MILLISECONDS)
        delay_ms = self.config.build.exit_delay_ms
        if value is not None:
            try:
                delay_ms = max(0, int(value.strip()))
            except ValueError:
                logger.warning(f"Ignoring invalid exit delay '{value}'")
        if delay_ms > 0:
            await self.cancel_token.sleep(delay_ms / 1000)
