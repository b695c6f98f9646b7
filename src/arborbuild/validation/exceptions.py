"""
Error taxonomy and consistent error handling.

This module defines the exception types raised across the orchestration
engine together with the helpers used to log them consistently before they
are propagated or turned into a failed exit code.
"""

import logging
import sys
from enum import Enum
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for error handling."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    Exception raised when a configuration value fails validation.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class ArborBuildError(Exception):
    """Base class for all orchestration errors."""


class ConfigurationError(ArborBuildError):
    """
    Raised for missing or ambiguous configuration.

    Covers a missing executable, zero or several entry point candidates,
    a missing required variable and an unusable base directory. Always fatal
    for the run.
    """


class ProviderError(ArborBuildError):
    """Raised when a variable provider fails; aborts variable resolution."""

    def __init__(self, provider_name: str, message: Optional[str] = None):
        super().__init__(message or f"Variable provider '{provider_name}' failed")
        self.provider_name = provider_name


class ToolExecutionError(ArborBuildError):
    """Raised by a tool that cannot complete; scoped to that tool's result."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class ProcessSupervisionError(ArborBuildError):
    """Describes a spawn failure, timeout kill or exit race of a child process."""


class BootstrapAcquisitionError(ArborBuildError):
    """Raised when the build tool distributable cannot be resolved."""

    def __init__(self, message: str, version: Optional[str] = None):
        super().__init__(message)
        self.version = version


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Handle errors with consistent logging and optional re-raising.

    Args:
        error: The exception that occurred
        context: Context description of where the error occurred
        severity: Severity level for logging
        reraise: Whether to re-raise the exception after logging
        logger: Logger instance to use (defaults to module logger)
    """
    effective_logger = logger or globals()['logger']

    error_msg = f"Error in {context}: {error}"

    if isinstance(severity, str):
        severity_str = severity.lower()
    else:
        severity_str = severity.value

    if severity_str == "debug":
        effective_logger.debug(error_msg, exc_info=True)
    elif severity_str == "info":
        effective_logger.info(error_msg)
    elif severity_str == "warning":
        effective_logger.warning(error_msg)
    elif severity_str == "critical":
        effective_logger.critical(error_msg, exc_info=True)
    else:
        effective_logger.error(error_msg)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    """Handle configuration-related errors."""
    handle_error(error, f"config {context}", **kwargs)


def handle_file_error(error: Exception, context: str, **kwargs) -> None:
    """Handle file-related errors."""
    handle_error(error, f"file {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """Log a CLI level error and exit the process with ``exit_code``."""
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)
    sys.exit(exit_code)
