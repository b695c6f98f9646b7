"""
Bootstrap launcher: acquire the build tool and relaunch it under a deadline.
"""

from .acquisition import (
    DirectoryFeedInstaller,
    DistributableInstaller,
    PackageRequest,
    VersionSelector,
    acquire_build_tool,
    parse_version,
)
from .entry_point import EntryPoint, entry_point_for_path, locate_entry_point
from .launcher import BootstrapLauncher, BootstrapState

__all__ = [
    # Acquisition
    "DirectoryFeedInstaller",
    "DistributableInstaller",
    "PackageRequest",
    "VersionSelector",
    "acquire_build_tool",
    "parse_version",
    # Entry point
    "EntryPoint",
    "entry_point_for_path",
    "locate_entry_point",
    # Launcher
    "BootstrapLauncher",
    "BootstrapState",
]
