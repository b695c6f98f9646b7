"""
Error taxonomy, error handling and validation for the arborbuild package.
"""

from .exceptions import (
    ArborBuildError,
    BootstrapAcquisitionError,
    ConfigurationError,
    ErrorSeverity,
    ProcessSupervisionError,
    ProviderError,
    ToolExecutionError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
    handle_file_error,
)

from .validators import (
    validate_log_level,
    validate_non_empty_string,
    validate_optional_directory,
    validate_positive_float,
    validate_positive_integer,
)

__all__ = [
    # Error taxonomy
    "ArborBuildError",
    "BootstrapAcquisitionError",
    "ConfigurationError",
    "ProcessSupervisionError",
    "ProviderError",
    "ToolExecutionError",
    "ValidationError",
    # Error handling
    "ErrorSeverity",
    "handle_error",
    "handle_config_error",
    "handle_file_error",
    "handle_cli_error",
    # Validators
    "validate_log_level",
    "validate_non_empty_string",
    "validate_optional_directory",
    "validate_positive_float",
    "validate_positive_integer",
]
