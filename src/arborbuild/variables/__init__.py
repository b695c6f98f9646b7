"""
Variable resolution engine.

Variables are seeded from the run context and the JSON variable files at the
source root, extended by ordered providers, completed with compatibility
aliases and frozen into a key-sorted snapshot for the tool pipeline.
"""

from .compatibility import add_compatibility_variables, compatibility_name
from .file_source import (
    DEFAULT_VARIABLE_FILE_NAME,
    load_variable_files,
    read_variable_file,
    variable_file_paths,
)
from .providers import (
    FIRST_ORDER,
    BranchNameVariableProvider,
    SourcePathVariableProvider,
    SourceRootVariableProvider,
    StaticVariableProvider,
    VariableProvider,
)
from .resolution import VariableResolver, seed_variables, sort_providers
from .well_known import (
    WellKnownVariable,
    WellKnownVariables,
    all_well_known_variables,
    find_well_known,
)

__all__ = [
    # Compatibility
    "add_compatibility_variables",
    "compatibility_name",
    # File source
    "DEFAULT_VARIABLE_FILE_NAME",
    "load_variable_files",
    "read_variable_file",
    "variable_file_paths",
    # Providers
    "FIRST_ORDER",
    "BranchNameVariableProvider",
    "SourcePathVariableProvider",
    "SourceRootVariableProvider",
    "StaticVariableProvider",
    "VariableProvider",
    # Resolution
    "VariableResolver",
    "seed_variables",
    "sort_providers",
    # Registry
    "WellKnownVariable",
    "WellKnownVariables",
    "all_well_known_variables",
    "find_well_known",
]
