"""
Unit tests for the built-in variable providers.
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from arborbuild.models import ExitCode, Variable, VariableSet
from arborbuild.validation import ProviderError
from arborbuild.variables import (
    BranchNameVariableProvider,
    SourcePathVariableProvider,
    SourceRootVariableProvider,
    WellKnownVariables,
)


@pytest.mark.unit
class TestBuiltinProviders:
    """Test cases for the built-in variable providers."""

    @pytest.mark.asyncio
    async def test_source_root_provider(self, build_context, temp_dir):
        batch = await SourceRootVariableProvider().provide(VariableSet(), build_context)

        assert batch == [Variable(WellKnownVariables.SOURCE_ROOT, str(temp_dir))]

    @pytest.mark.asyncio
    async def test_source_path_provider_creates_temp(self, build_context, temp_dir):
        batch = await SourcePathVariableProvider().provide(VariableSet(), build_context)
        values = {v.key: v.value for v in batch}

        assert (temp_dir / "temp").is_dir()
        assert values[WellKnownVariables.TEMP_DIRECTORY] == str(temp_dir / "temp")
        assert values[WellKnownVariables.ARTIFACTS] == str(temp_dir / "Artifacts")

    @pytest.mark.asyncio
    async def test_branch_name_from_ci_reference(self, build_context):
        """The CI branch reference wins over git."""
        supervisor = Mock()
        supervisor.run = AsyncMock()
        build_context.run_context.set(WellKnownVariables.GITHUB_BRANCH_NAME, "refs/heads/feature/x")

        batch = await BranchNameVariableProvider(supervisor).provide(VariableSet(), build_context)

        assert batch == [Variable(WellKnownVariables.BRANCH_NAME, "refs/heads/feature/x")]
        supervisor.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_branch_name_already_known(self, build_context):
        supervisor = Mock()
        supervisor.run = AsyncMock()
        known = VariableSet([Variable(WellKnownVariables.BRANCH_NAME, "main")])

        assert await BranchNameVariableProvider(supervisor).provide(known, build_context) == []
        supervisor.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_branch_name_from_git(self, build_context):
        async def fake_run(executable, args, stdout_callback=None, **kwargs):
            stdout_callback("develop")
            return ExitCode.SUCCESS

        supervisor = Mock()
        supervisor.run = AsyncMock(side_effect=fake_run)
        with patch("arborbuild.variables.providers.find_executable", return_value="/usr/bin/git"):
            batch = await BranchNameVariableProvider(supervisor).provide(VariableSet(), build_context)

        assert batch == [Variable(WellKnownVariables.BRANCH_NAME, "develop")]

    @pytest.mark.asyncio
    async def test_detached_head_is_optional_by_default(self, build_context):
        """A detached head yields no branch and no error unless the branch is required."""
        async def fake_run(executable, args, stdout_callback=None, **kwargs):
            stdout_callback("HEAD")
            return ExitCode.SUCCESS

        supervisor = Mock()
        supervisor.run = AsyncMock(side_effect=fake_run)
        provider = BranchNameVariableProvider(supervisor)
        with patch("arborbuild.variables.providers.find_executable", return_value="/usr/bin/git"):
            assert await provider.provide(VariableSet(), build_context) == []

            required = VariableSet([Variable(WellKnownVariables.BRANCH_NAME_REQUIRED, "true")])
            with pytest.raises(ProviderError):
                await provider.provide(required, build_context)
