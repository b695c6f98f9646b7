"""
Registry of well-known variables.

Each entry names a variable the engine or its built-in tools read, with a
description and the default used when it is unset. The registry documents
behavior for `--help-variables` and error hints; it does not drive it.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class WellKnownVariable:
    name: str
    description: str
    default: Optional[str] = None


class WellKnownVariables:
    """Names of the well-known variables."""

    SOURCE_ROOT = "SourceRoot"
    VARIABLE_OVERRIDE_ENABLED = "Arbor.Build.Build.VariableOverrideEnabled"
    VARIABLE_FILE_SOURCE_ENABLED = "Arbor.Build.Build.VariableFileSource.Enabled"
    TESTS_ENABLED = "Arbor.Build.Build.Tests.Enabled"
    BUILD_TOOL_TIMEOUT_IN_SECONDS = "Arbor.Build.Build.TimeoutInSeconds"
    BOOTSTRAPPER_EXIT_DELAY_IN_MILLISECONDS = "Arbor.Build.Bootstrapper.ExitDelayInMilliseconds"
    BUILD_APPLICATION_EXIT_DELAY_IN_MILLISECONDS = "Arbor.Build.Build.ExitDelayInMilliseconds"
    ALLOW_PRERELEASE = "Arbor.Build.Build.Bootstrapper.AllowPrerelease"
    PACKAGE_VERSION = "Arbor.Build.NuGetPackageVersion"
    PACKAGE_SOURCE = "Arbor.Build.NuGetPackage.Source"
    DIRECTORY_CLONE_ENABLED = "Arbor.Build.Vcs.DirectoryCloneEnabled"
    BRANCH_NAME = "Arbor.Build.Vcs.Branch.Name"
    BRANCH_NAME_REQUIRED = "Arbor.Build.Vcs.Branch.Required"
    GITHUB_BRANCH_NAME = "GITHUB_REF"
    SHOW_AVAILABLE_VARIABLES_ENABLED = "Arbor.Build.ShowAvailableVariablesEnabled"
    SHOW_DEFINED_VARIABLES_ENABLED = "Arbor.Build.ShowDefinedVariablesEnabled"
    LOG_LEVEL = "Arbor.Build.Log.Level"
    TEMP_DIRECTORY = "Arbor.Build.Build.TempDirectory"
    ARTIFACTS = "Arbor.Build.Artifacts"
    EXTERNAL_TOOLS = "Arbor.Build.Tools.External"
    CLEANUP_PROCESSES_AFTER_BUILD_ENABLED = "Arbor.Build.Build.Cleanup.KillProcessesAfterBuild.Enabled"
    KILL_SPAWNED_PROCESS = "KillSpawnedProcess"
    POST_SCRIPTS = "Arbor.Build.PostScripts"


_REGISTRY: List[WellKnownVariable] = [
    WellKnownVariable(WellKnownVariables.SOURCE_ROOT,
                      "Root directory of the source tree being built"),
    WellKnownVariable(WellKnownVariables.VARIABLE_OVERRIDE_ENABLED,
                      "Let later variable providers overwrite values set by earlier ones", "false"),
    WellKnownVariable(WellKnownVariables.VARIABLE_FILE_SOURCE_ENABLED,
                      "Read variables from the JSON variable files at the source root", "true"),
    WellKnownVariable(WellKnownVariables.TESTS_ENABLED,
                      "Run tools that execute tests", "true"),
    WellKnownVariable(WellKnownVariables.BUILD_TOOL_TIMEOUT_IN_SECONDS,
                      "Deadline for the relaunched build process in seconds", "900"),
    WellKnownVariable(WellKnownVariables.BOOTSTRAPPER_EXIT_DELAY_IN_MILLISECONDS,
                      "Pause before the bootstrapper exits so logs can flush", "0"),
    WellKnownVariable(WellKnownVariables.BUILD_APPLICATION_EXIT_DELAY_IN_MILLISECONDS,
                      "Pause before the build application exits so logs can flush", "50"),
    WellKnownVariable(WellKnownVariables.ALLOW_PRERELEASE,
                      "Allow prerelease versions of the build tool distributable", "false"),
    WellKnownVariable(WellKnownVariables.PACKAGE_VERSION,
                      "Exact version of the build tool distributable to acquire"),
    WellKnownVariable(WellKnownVariables.PACKAGE_SOURCE,
                      "Directory feed containing the build tool distributable archives"),
    WellKnownVariable(WellKnownVariables.DIRECTORY_CLONE_ENABLED,
                      "Build from a clone of the source directory", "false"),
    WellKnownVariable(WellKnownVariables.BRANCH_NAME,
                      "Name of the branch being built"),
    WellKnownVariable(WellKnownVariables.BRANCH_NAME_REQUIRED,
                      "Fail variable resolution when the branch name cannot be determined", "false"),
    WellKnownVariable(WellKnownVariables.GITHUB_BRANCH_NAME,
                      "Branch reference provided by GitHub Actions"),
    WellKnownVariable(WellKnownVariables.SHOW_AVAILABLE_VARIABLES_ENABLED,
                      "Log the table of well-known variables at startup", "true"),
    WellKnownVariable(WellKnownVariables.SHOW_DEFINED_VARIABLES_ENABLED,
                      "Log every resolved variable at startup", "false"),
    WellKnownVariable(WellKnownVariables.LOG_LEVEL,
                      "Log level of the build application", "INFO"),
    WellKnownVariable(WellKnownVariables.TEMP_DIRECTORY,
                      "Temporary directory of the build"),
    WellKnownVariable(WellKnownVariables.ARTIFACTS,
                      "Directory receiving build artifacts"),
    WellKnownVariable(WellKnownVariables.EXTERNAL_TOOLS,
                      "Directory holding external tools"),
    WellKnownVariable(WellKnownVariables.CLEANUP_PROCESSES_AFTER_BUILD_ENABLED,
                      "Kill processes left behind by the build when it finishes", "true"),
    WellKnownVariable(WellKnownVariables.KILL_SPAWNED_PROCESS,
                      "Kill processes spawned by the bootstrapper when the build times out", "true"),
    WellKnownVariable(WellKnownVariables.POST_SCRIPTS,
                      "Comma separated scripts, relative to the source root, run after the build"),
]

_BY_NAME: Dict[str, WellKnownVariable] = {entry.name.casefold(): entry for entry in _REGISTRY}


def all_well_known_variables() -> List[WellKnownVariable]:
    """Return the registry sorted by name."""
    return sorted(_REGISTRY, key=lambda entry: entry.name.casefold())


def find_well_known(name: str) -> Optional[WellKnownVariable]:
    return _BY_NAME.get(name.casefold())
