"""
Pytest configuration and shared fixtures for the arbor-build test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the arbor-build project.
"""

import os
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import List, Optional
from unittest.mock import Mock

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "e2e: mark test as an end-to-end test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path).resolve()
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def run_context():
    """An isolated run context holding only a PATH."""
    from arborbuild.models import RunContext

    return RunContext({"PATH": os.environ.get("PATH", "")})


@pytest.fixture
def build_context(temp_dir, run_context):
    """A build context rooted at the temporary directory."""
    from arborbuild.models import BuildContext

    return BuildContext(source_root=temp_dir, run_context=run_context)


@pytest.fixture
def script_factory(temp_dir):
    """Write executable shell scripts into the temporary directory."""

    def create(name: str, body: str, directory: Optional[Path] = None) -> Path:
        target = (directory or temp_dir) / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(f"#!/bin/sh\n{body}\n")
        target.chmod(target.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return target

    return create


@pytest.fixture
def quiet_supervisor():
    """A supervisor with a short poll interval and kill wait."""
    from arborbuild.system import ProcessSupervisor

    return ProcessSupervisor(poll_interval=0.02, quick_call_timeout=2.0, kill_wait_timeout=2.0)


@pytest.fixture
def mock_killer():
    """A tree killer that records calls and kills nothing."""
    from arborbuild.system import KillOutcome, ProcessTreeKiller

    killer = Mock(spec=ProcessTreeKiller)
    killer.supported = True
    killer.kill_tree.return_value = KillOutcome()
    killer.kill_descendants.return_value = KillOutcome()
    return killer


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    @staticmethod
    def make_tool(name: str, exit_code=None, raises: Optional[Exception] = None,
                  calls: Optional[List[str]] = None, is_test_runner: bool = False):
        """Create a tool returning `exit_code` (or raising) that records its runs in `calls`."""
        from arborbuild.models import ExitCode
        from arborbuild.pipeline import Tool

        result = exit_code or ExitCode.SUCCESS

        class RecordingTool(Tool):
            async def execute(self, context, variables, args, cancel_token):
                if calls is not None:
                    calls.append(name)
                if raises is not None:
                    raise raises
                return result

            @property
            def name(self) -> str:
                return name

        tool = RecordingTool()
        tool.is_test_runner = is_test_runner
        return tool

    @staticmethod
    def write_distributable(feed_dir: Path, package_name: str, version: str, files: dict) -> Path:
        """Write a `<package>.<version>.zip` archive holding `files` (name -> text)."""
        import zipfile

        feed_dir.mkdir(parents=True, exist_ok=True)
        archive = feed_dir / f"{package_name}.{version}.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            for name, text in files.items():
                zf.writestr(name, text)
        return archive


@pytest.fixture
def test_utils():
    """Provide test utility functions."""
    return TestUtils


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield  # Run the test

    from arborbuild.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(original_config_path)
