"""
Data models for the orchestration engine.

Configuration Models:
- Supervisor, bootstrap, build and logging settings loaded from `config.toml`

Runtime Models:
- Run context (explicit key/value environment), cancellation tokens
- Build context handed to providers and tools, bootstrap options
- Process invocations

Variable Models:
- Variables, case-insensitive variable sets and required-variable lookups

Result Models:
- Exit codes, tool invocations, tool results and pipeline results
"""

# Configuration models
from .config import AppConfig, BootstrapConfig, BuildConfig, LoggingConfig, SupervisorConfig

# Runtime models
from .runtime import (
    ARBOR_BUILD_EXE_ARG,
    BUILD_DIRECTORY_ARG,
    DOWNLOAD_ONLY_ARG,
    BootstrapOptions,
    BuildContext,
    CancellationToken,
    ProcessInvocation,
    RunContext,
    find_prefixed_argument,
)

# Variable models
from .variables import (
    RequiredVariable,
    Variable,
    VariableSet,
    display_value,
    is_blank,
    is_sensitive_key,
    parse_bool,
)

# Result models
from .exit_code import ExitCode
from .results import (
    DEFAULT_PRIORITY,
    LOWEST_PRIORITY,
    PipelineResult,
    ToolInvocation,
    ToolOutcome,
    ToolResult,
)

__all__ = [
    # Configuration
    "AppConfig",
    "BootstrapConfig",
    "BuildConfig",
    "LoggingConfig",
    "SupervisorConfig",
    # Runtime
    "ARBOR_BUILD_EXE_ARG",
    "BUILD_DIRECTORY_ARG",
    "DOWNLOAD_ONLY_ARG",
    "BootstrapOptions",
    "BuildContext",
    "CancellationToken",
    "ProcessInvocation",
    "RunContext",
    "find_prefixed_argument",
    # Variables
    "RequiredVariable",
    "Variable",
    "VariableSet",
    "display_value",
    "is_blank",
    "is_sensitive_key",
    "parse_bool",
    # Results
    "DEFAULT_PRIORITY",
    "LOWEST_PRIORITY",
    "ExitCode",
    "PipelineResult",
    "ToolInvocation",
    "ToolOutcome",
    "ToolResult",
]
