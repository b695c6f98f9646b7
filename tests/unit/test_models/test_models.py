"""
Unit tests for the data models.

Tests exit codes, variables and variable sets, the run context,
cancellation tokens and bootstrap option parsing.
"""

import asyncio
from pathlib import Path

import pytest

from arborbuild.models import (
    BootstrapOptions,
    CancellationToken,
    ExitCode,
    RunContext,
    Variable,
    VariableSet,
    is_sensitive_key,
    parse_bool,
)
from arborbuild.models.runtime import DEBUG_BRANCH_NAME


@pytest.mark.unit
class TestExitCode:
    """Test cases for ExitCode."""

    def test_string_form(self):
        assert str(ExitCode.SUCCESS) == "[0, Success]"
        assert str(ExitCode.FAILURE) == "[1, Failure]"
        assert str(ExitCode(3)) == "[3, Failure]"

    def test_from_code_returns_canonical_instances(self):
        assert ExitCode.from_code(0) is ExitCode.SUCCESS
        assert ExitCode.from_code(1) is ExitCode.FAILURE
        assert ExitCode.from_code(7).code == 7
        assert int(ExitCode.from_code(7)) == 7


@pytest.mark.unit
class TestVariables:
    """Test cases for Variable and VariableSet."""

    def test_variable_string_masks_secrets(self):
        assert str(Variable("Plain", "value")) == "Plain: 'value'"
        assert str(Variable("Plain", "")) == "Plain: <empty>"
        assert str(Variable("Deploy.Api-Key", "secret")) == "Deploy.Api-Key: *****"

    @pytest.mark.parametrize("key", ["DB_PASSWORD", "github.token", "Azure.ClientSecret", "JWT"])
    def test_sensitive_keys(self, key):
        assert is_sensitive_key(key)

    def test_empty_key_is_rejected(self):
        with pytest.raises(ValueError):
            Variable("  ", "value")

    def test_lookup_ignores_case_and_keeps_first_spelling(self):
        variables = VariableSet()

        assert variables.add(Variable("Arbor.Build.Key", "1"))
        assert not variables.add(Variable("ARBOR.BUILD.KEY", "2"))
        assert variables["arbor.build.key"].key == "Arbor.Build.Key"
        assert variables.get_value("ARBOR.build.KEY") == "1"
        assert len(variables) == 1

    def test_freeze_sorts_and_prevents_mutation(self):
        frozen = VariableSet([Variable("b", "2"), Variable("A", "1")]).freeze()

        assert frozen.keys() == ["A", "b"]
        with pytest.raises(TypeError):
            frozen.add(Variable("c", "3"))
        with pytest.raises(TypeError):
            frozen.replace(Variable("A", "x"))

        copy = frozen.copy()
        copy.add(Variable("c", "3"))
        assert "c" in copy and "c" not in frozen

    def test_typed_accessors(self):
        variables = VariableSet.from_mapping({
            "Flag": "TRUE",
            "Bad": "yes",
            "Number": "42",
            "Small": "0",
            "List": " a, ,b ,c",
        })

        assert variables.get_bool("flag") is True
        assert variables.get_optional_bool("bad") is None
        assert variables.get_bool("missing", default=True) is True
        assert variables.get_int("number", 1) == 42
        assert variables.get_int("small", 5, min_value=1) == 5
        assert variables.get_int("bad", 9) == 9
        assert variables.get_values("list") == ["a", "b", "c"]

    @pytest.mark.parametrize("text,expected", [("true", True), (" False ", False), ("1", None), (None, None)])
    def test_parse_bool(self, text, expected):
        assert parse_bool(text) is expected


@pytest.mark.unit
class TestRunContext:
    """Test cases for RunContext."""

    def test_case_insensitive_access(self):
        context = RunContext({"Path": "/bin"})

        assert context.get("PATH") == "/bin"
        assert "path" in context
        context.set("PATH", "/usr/bin")
        assert context.get("path") == "/usr/bin"
        assert len(context) == 1

    def test_set_default_keeps_existing(self):
        context = RunContext({"Key": "old"})

        assert not context.set_default("key", "new")
        assert context.set_default("Other", "value")
        assert context.get("Key") == "old"

    def test_from_environment_copies(self):
        environ = {"A": "1"}
        context = RunContext.from_environment(environ)
        context.set("B", "2")

        assert "B" not in environ
        assert context.to_environment() == {"A": "1", "B": "2"}


@pytest.mark.unit
class TestCancellationToken:
    """Test cases for CancellationToken."""

    def test_explicit_cancel(self):
        token = CancellationToken.none()

        assert not token.is_cancelled
        assert token.remaining() is None
        token.cancel()
        assert token.is_cancelled

    def test_parent_cancellation_propagates(self):
        parent = CancellationToken.none()
        child = CancellationToken.with_timeout(60, parent=parent)

        parent.cancel()

        assert child.is_cancelled
        assert not child.deadline_expired

    def test_deadline_expires(self):
        token = CancellationToken.with_timeout(0)

        assert token.deadline_expired
        assert token.is_cancelled

    @pytest.mark.asyncio
    async def test_sleep_wakes_on_cancel(self):
        token = CancellationToken.none()
        asyncio.get_running_loop().call_later(0.05, token.cancel)

        completed = await asyncio.wait_for(token.sleep(10), timeout=5)

        assert completed is False

    @pytest.mark.asyncio
    async def test_sleep_completes(self):
        assert await CancellationToken.none().sleep(0.01) is True


@pytest.mark.unit
class TestBootstrapOptions:
    """Test cases for BootstrapOptions parsing."""

    def test_parse_recognizes_options_case_insensitively(self):
        args = ["--DOWNLOAD-ONLY", "-ArborBuildExe=/opt/arbor-build", "-builddirectory=/src", "Extra=1"]

        options = BootstrapOptions.parse(args)

        assert options.download_only
        assert options.arbor_build_exe_path == Path("/opt/arbor-build")
        assert options.base_dir == Path("/src")
        assert options.args == tuple(args)

    def test_parse_defaults(self):
        options = BootstrapOptions.parse([])

        assert not options.download_only
        assert options.arbor_build_exe_path is None
        assert options.base_dir is None
        assert options.pre_release_enabled is None

    def test_debug_override(self, temp_dir):
        options = BootstrapOptions.debug_override(["--download-only"], temp_dir)

        assert options.base_dir == temp_dir
        assert options.pre_release_enabled is True
        assert options.branch_name == DEBUG_BRANCH_NAME
        assert options.download_only
