"""
Lookup helpers for executables and source roots.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

VCS_MARKERS = (".git",)


def find_executable(name: str, env: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """
    Find an executable on the PATH of `env` (or of this process).

    Returns:
        Absolute path of the executable, or None if it is not installed
    """
    search_path = None
    if env is not None:
        search_path = next((value for key, value in env.items() if key.upper() == "PATH"), None)
    found = shutil.which(name, path=search_path)
    if found is None:
        logger.debug(f"Executable '{name}' not found on PATH")
        return None
    return Path(found).resolve()


def find_vcs_root(start: Optional[Path] = None) -> Optional[Path]:
    """
    Walk up from `start` to the first directory holding a version-control marker.

    Args:
        start: Directory to start from, defaults to the current working directory

    Returns:
        The repository root, or None when `start` is not inside a repository
    """
    current = Path(start or os.getcwd()).resolve()
    for directory in (current, *current.parents):
        if any((directory / marker).exists() for marker in VCS_MARKERS):
            logger.debug(f"Found version control root {directory}")
            return directory
    logger.debug(f"No version control root above {current}")
    return None
