"""
Location of the build tool entry point inside an extracted distributable.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from ..validation import ConfigurationError

logger = logging.getLogger(__name__)

PREFERRED_NAMES = ("arbor-build", "arbor-build.exe", "arborbuild.pyz")
CANDIDATE_PATTERNS = ("arbor-build*", "arborbuild*")
EXCLUDED_NAMES = ("nuget.exe",)
PYTHON_SUFFIXES = (".pyz", ".py")
NATIVE_SUFFIXES = ("", ".exe", ".sh")
TOOLS_SUBDIRECTORY = "tools"


@dataclass(frozen=True)
class EntryPoint:
    """The program to run and the arguments that select the build tool."""

    executable: Path
    args: List[str] = field(default_factory=list)


def tool_directory(package_directory: Path) -> Path:
    """Distributables may keep the entry point in a `tools` subdirectory."""
    tools = package_directory / TOOLS_SUBDIRECTORY
    return tools if tools.is_dir() else package_directory


def _candidates(directory: Path) -> List[Path]:
    found = {}
    for pattern in CANDIDATE_PATTERNS:
        for path in directory.glob(pattern):
            if path.is_file() and path.name.casefold() not in EXCLUDED_NAMES:
                found[path.name] = path
    return [found[name] for name in sorted(found)]


def locate_entry_point(package_directory: Path) -> EntryPoint:
    """
    Find the single entry point of the build tool.

    Preferred names are taken as is. Otherwise exactly one candidate must
    exist; Python archives and scripts run under the current interpreter.

    Raises:
        ConfigurationError: If there are zero or several candidates, or the
            single candidate cannot be run
    """
    directory = tool_directory(package_directory)

    for name in PREFERRED_NAMES:
        preferred = directory / name
        if preferred.is_file():
            logger.debug(f"Using preferred entry point {preferred}")
            return entry_point_for_path(preferred)

    candidates = _candidates(directory)
    if len(candidates) != 1:
        found = (
            f"Found {len(candidates)} such files: {', '.join(c.name for c in candidates)}"
            if candidates else "Found no such files"
        )
        message = f"Expected directory {directory} to contain exactly one executable file. {found}"
        logger.error(message)
        raise ConfigurationError(message)

    candidate = candidates[0]
    suffix = candidate.suffix.lower()
    if suffix in PYTHON_SUFFIXES:
        return EntryPoint(executable=Path(sys.executable), args=[str(candidate)])
    if suffix in NATIVE_SUFFIXES:
        return EntryPoint(executable=candidate)
    raise ConfigurationError(f"Entry point candidate {candidate} has an unsupported file type '{suffix}'")


def entry_point_for_path(path: Path) -> EntryPoint:
    """Entry point for an explicitly given executable path."""
    if path.suffix.lower() in PYTHON_SUFFIXES:
        return EntryPoint(executable=Path(sys.executable), args=[str(path)])
    return EntryPoint(executable=path)
