"""
Value validators used when loading configuration.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ValidationError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate that a value is an integer within the given bounds.

    Args:
        value: Value to validate
        min_value: Minimum allowed value (inclusive)
        max_value: Maximum allowed value (inclusive), None for no limit
        field_name: Name of the field being validated

    Returns:
        Validated integer value

    Raises:
        ValidationError: If validation fails
    """
    if isinstance(value, bool):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    try:
        int_value = int(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid integer, got {value}",
            field_name=field_name,
            value=value
        )
    if int_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and int_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {int_value}",
            field_name=field_name,
            value=value
        )
    return int_value


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """
    Validate that a value is a number within the given bounds.

    Raises:
        ValidationError: If validation fails
    """
    try:
        float_value = float(value)
    except (ValueError, TypeError):
        raise ValidationError(
            f"{field_name} must be a valid number, got {value}",
            field_name=field_name,
            value=value
        )
    if float_value < min_value:
        raise ValidationError(
            f"{field_name} must be >= {min_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    if max_value is not None and float_value > max_value:
        raise ValidationError(
            f"{field_name} must be <= {max_value}, got {float_value}",
            field_name=field_name,
            value=value
        )
    return float_value


def validate_optional_directory(value: Any, field_name: str = "path") -> Optional[Path]:
    """
    Validate an optional directory setting.

    Empty strings mean "not configured" and yield None. A configured path must
    not point at an existing regular file.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, (str, Path)):
        raise ValidationError(
            f"{field_name} must be a path string, got {type(value).__name__}",
            field_name=field_name,
            value=value
        )
    path = Path(value).expanduser()
    if path.exists() and not path.is_dir():
        raise ValidationError(
            f"{field_name} is not a directory: {path}",
            field_name=field_name,
            value=value
        )
    return path


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Validate that a value is a non-empty string."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            field_name=field_name,
            value=value
        )
    return value.strip()


def validate_log_level(value: Union[str, Any], field_name: str = "level") -> str:
    """Validate a logging level name and return it upper-cased."""
    if not isinstance(value, str) or value.upper() not in _LOG_LEVELS:
        raise ValidationError(
            f"{field_name} must be one of {list(_LOG_LEVELS)}, got {value}",
            field_name=field_name,
            value=value
        )
    return value.upper()
