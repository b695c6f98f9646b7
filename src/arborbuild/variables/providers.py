"""
Variable providers.

A provider contributes a batch of variables given the variables resolved so
far. Providers run in ascending `order`; the resolver merges each batch
before calling the next provider.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from ..models import BuildContext, Variable, VariableSet, is_blank, parse_bool
from ..system import ProcessSupervisor, find_executable
from ..validation import ProviderError
from .well_known import WellKnownVariables

logger = logging.getLogger(__name__)

FIRST_ORDER = -(2**31)


class VariableProvider(ABC):
    """Contributes variables to a resolution pass."""

    order: int = 0

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def provide(self, variables: VariableSet, context: BuildContext) -> List[Variable]:
        """
        Return the variables this provider contributes.

        Args:
            variables: Variables resolved so far (read it, do not mutate it)
            context: Build context of the run

        Raises:
            Any exception aborts resolution as a ProviderError.
        """

    def __repr__(self) -> str:
        return f"<{self.name} order={self.order}>"


class StaticVariableProvider(VariableProvider):
    """Provides a fixed batch of variables."""

    def __init__(self, variables: List[Variable], order: int = 0, name: Optional[str] = None):
        self._variables = list(variables)
        self.order = order
        self._name = name

    @property
    def name(self) -> str:
        return self._name or super().name

    async def provide(self, variables: VariableSet, context: BuildContext) -> List[Variable]:
        return list(self._variables)


class SourceRootVariableProvider(VariableProvider):
    """Provides the source root; runs before every other provider."""

    order = FIRST_ORDER

    async def provide(self, variables: VariableSet, context: BuildContext) -> List[Variable]:
        return [Variable(WellKnownVariables.SOURCE_ROOT, str(context.source_root))]


class SourcePathVariableProvider(VariableProvider):
    """
    Provides the standard directories below the source root.

    The temp directory is created; artifacts and external tools directories
    are only named.
    """

    order = -2

    async def provide(self, variables: VariableSet, context: BuildContext) -> List[Variable]:
        root = Path(variables.get_value(WellKnownVariables.SOURCE_ROOT) or context.source_root)

        temp_dir = root / "temp"
        temp_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Using temp directory {temp_dir}")

        return [
            Variable(WellKnownVariables.TEMP_DIRECTORY, str(temp_dir)),
            Variable(WellKnownVariables.ARTIFACTS, str(root / "Artifacts")),
            Variable(WellKnownVariables.EXTERNAL_TOOLS, str(root / "tools" / "external")),
        ]


class BranchNameVariableProvider(VariableProvider):
    """
    Provides the branch name.

    Known values win: the branch variable itself, then the CI branch reference
    in the run context. Otherwise git is asked under the quick-call timeout.
    """

    order = -1

    def __init__(self, supervisor: ProcessSupervisor):
        self.supervisor = supervisor

    async def provide(self, variables: VariableSet, context: BuildContext) -> List[Variable]:
        if not is_blank(variables.get_value(WellKnownVariables.BRANCH_NAME)):
            return []

        ci_branch = context.run_context.get(WellKnownVariables.GITHUB_BRANCH_NAME)
        if not is_blank(ci_branch):
            logger.info(f"Using branch name '{ci_branch}' from {WellKnownVariables.GITHUB_BRANCH_NAME}")
            return [Variable(WellKnownVariables.BRANCH_NAME, ci_branch.strip())]

        required = parse_bool(variables.get_value(WellKnownVariables.BRANCH_NAME_REQUIRED)) is True
        branch = await self._branch_from_git(context)
        if branch is None:
            if required:
                raise ProviderError(self.name, "Could not determine the branch name from git")
            logger.warning("Could not determine the branch name, continuing without it")
            return []

        logger.info(f"Using branch name '{branch}' from git")
        return [Variable(WellKnownVariables.BRANCH_NAME, branch)]

    async def _branch_from_git(self, context: BuildContext) -> Optional[str]:
        environment = context.run_context.to_environment()
        git = find_executable("git", environment)
        if git is None:
            logger.warning("git is not installed")
            return None

        lines: List[str] = []
        exit_code = await self.supervisor.run(
            git,
            ["rev-parse", "--abbrev-ref", "HEAD"],
            env=environment,
            cancel_token=self.supervisor.quick_call_token(),
            stdout_callback=lines.append,
            stderr_callback=lambda line: logger.debug(f"git: {line}"),
            cwd=context.source_root,
        )
        if not exit_code.is_success:
            return None

        branch = next((line.strip() for line in lines if line.strip()), None)
        if branch is None or branch == "HEAD":
            # Detached head carries no branch name.
            return None
        return branch
