"""
Configuration validation utilities.

Each `[section]` of `config.toml` is validated into its dataclass. Missing
keys take the dataclass defaults; present keys must be valid.
"""

import logging
from typing import Any, Dict

from ..models.config import (
    AppConfig,
    BootstrapConfig,
    BuildConfig,
    LoggingConfig,
    SupervisorConfig,
)
from ..validation import (
    ValidationError,
    validate_log_level,
    validate_non_empty_string,
    validate_optional_directory,
    validate_positive_float,
    validate_positive_integer,
)

logger = logging.getLogger(__name__)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValidationError(
            f"[{name}] must be a table, got {type(section).__name__}",
            field_name=name,
            value=section,
        )
    return section


def validate_supervisor_config(data: Dict[str, Any]) -> SupervisorConfig:
    """
    Validate the `[supervisor]` section.

    Raises:
        ValidationError: If validation fails
    """
    defaults = SupervisorConfig()
    return SupervisorConfig(
        poll_interval_seconds=validate_positive_float(
            data.get("poll_interval_seconds", defaults.poll_interval_seconds),
            min_value=0.001,
            max_value=5.0,
            field_name="supervisor.poll_interval_seconds",
        ),
        quick_call_timeout_seconds=validate_positive_float(
            data.get("quick_call_timeout_seconds", defaults.quick_call_timeout_seconds),
            min_value=0.1,
            field_name="supervisor.quick_call_timeout_seconds",
        ),
        kill_wait_timeout_seconds=validate_positive_float(
            data.get("kill_wait_timeout_seconds", defaults.kill_wait_timeout_seconds),
            min_value=0.0,
            max_value=60.0,
            field_name="supervisor.kill_wait_timeout_seconds",
        ),
    )


def validate_bootstrap_config(data: Dict[str, Any]) -> BootstrapConfig:
    """
    Validate the `[bootstrap]` section.

    Raises:
        ValidationError: If validation fails
    """
    defaults = BootstrapConfig()
    max_exit_delay_ms = validate_positive_integer(
        data.get("max_exit_delay_ms", defaults.max_exit_delay_ms),
        min_value=0,
        field_name="bootstrap.max_exit_delay_ms",
    )
    return BootstrapConfig(
        package_name=validate_non_empty_string(
            data.get("package_name", defaults.package_name),
            field_name="bootstrap.package_name",
        ),
        build_timeout_seconds=validate_positive_integer(
            data.get("build_timeout_seconds", defaults.build_timeout_seconds),
            min_value=1,
            field_name="bootstrap.build_timeout_seconds",
        ),
        exit_delay_ms=validate_positive_integer(
            data.get("exit_delay_ms", defaults.exit_delay_ms),
            min_value=0,
            max_value=max_exit_delay_ms,
            field_name="bootstrap.exit_delay_ms",
        ),
        max_exit_delay_ms=max_exit_delay_ms,
        package_source=validate_optional_directory(
            data.get("package_source"), field_name="bootstrap.package_source"
        ),
        cache_dir=validate_optional_directory(
            data.get("cache_dir"), field_name="bootstrap.cache_dir"
        ),
    )


def validate_build_config(data: Dict[str, Any]) -> BuildConfig:
    """Validate the `[build]` section."""
    defaults = BuildConfig()
    return BuildConfig(
        exit_delay_ms=validate_positive_integer(
            data.get("exit_delay_ms", defaults.exit_delay_ms),
            min_value=0,
            max_value=60_000,
            field_name="build.exit_delay_ms",
        ),
        variable_file_name=validate_non_empty_string(
            data.get("variable_file_name", defaults.variable_file_name),
            field_name="build.variable_file_name",
        ),
    )


def validate_app_config(data: Dict[str, Any]) -> AppConfig:
    """
    Validate the complete configuration mapping.

    Args:
        data: Parsed TOML data, possibly empty

    Returns:
        Validated AppConfig instance

    Raises:
        ValidationError: If any section fails validation
    """
    logging_section = _section(data, "logging")
    app_config = AppConfig(
        supervisor=validate_supervisor_config(_section(data, "supervisor")),
        bootstrap=validate_bootstrap_config(_section(data, "bootstrap")),
        build=validate_build_config(_section(data, "build")),
        logging=LoggingConfig(
            level=validate_log_level(logging_section.get("level", "INFO"), field_name="logging.level")
        ),
    )
    logger.debug(f"Validated configuration: {app_config}")
    return app_config
