"""
Unit tests for the command-line entry points.
"""

from unittest.mock import AsyncMock, patch

import pytest

from arborbuild.cli.main import bootstrap_cli, main_cli
from arborbuild.models import ExitCode


@pytest.fixture
def config_file(temp_dir):
    import toml

    path = temp_dir / "config.toml"
    with open(path, "w") as f:
        toml.dump({"build": {"exit_delay_ms": 0}, "logging": {"level": "INFO"}}, f)
    return path


@pytest.mark.unit
class TestMainCli:
    """Test cases for main_cli."""

    def test_help_variables_exits_zero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main_cli(["--help-variables"])

        assert exc_info.value.code == 0
        assert "Arbor.Build.Build.Tests.Enabled" in capsys.readouterr().out

    def test_passes_unknown_arguments_through(self, config_file):
        with patch("arborbuild.cli.main.BuildApplication") as application_class:
            application_class.return_value.run = AsyncMock(return_value=ExitCode.FAILURE)
            with pytest.raises(SystemExit) as exc_info:
                main_cli(["--config", str(config_file), "-buildDirectory=/src", "--help", "Release"])

        assert exc_info.value.code == 1
        assert application_class.call_args.args[0] == ["-buildDirectory=/src", "--help", "Release"]

    def test_invalid_config_exits_one(self, temp_dir):
        bad = temp_dir / "bad.toml"
        bad.write_text("[bootstrap]\nbuild_timeout_seconds = -1\n")

        with pytest.raises(SystemExit) as exc_info:
            main_cli(["--config", str(bad)])

        assert exc_info.value.code == 1


@pytest.mark.unit
class TestBootstrapCli:
    """Test cases for bootstrap_cli."""

    def test_parses_options(self, config_file):
        with patch("arborbuild.cli.main.BootstrapLauncher") as launcher_class:
            launcher_class.return_value.start = AsyncMock(return_value=ExitCode.SUCCESS)
            with pytest.raises(SystemExit) as exc_info:
                bootstrap_cli(["--config", str(config_file), "--download-only", "Extra"])

        assert exc_info.value.code == 0
        options = launcher_class.call_args.args[0]
        assert options.download_only
        assert options.args == ("--download-only", "Extra")

    def test_debug_override(self, config_file, temp_dir):
        with patch("arborbuild.cli.main.BootstrapLauncher") as launcher_class:
            launcher_class.return_value.start = AsyncMock(return_value=ExitCode.FAILURE)
            with pytest.raises(SystemExit) as exc_info:
                bootstrap_cli(["--config", str(config_file), "--debug-override", str(temp_dir)])

        assert exc_info.value.code == 1
        options = launcher_class.call_args.args[0]
        assert options.base_dir == temp_dir
        assert options.pre_release_enabled is True
