"""
File-based variable source.

Two JSON files at the source root hold flat key/value pairs: the base file,
meant to be committed, and a `.user` file for local overrides. Both are
applied to the run context before any provider runs.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

from ..models import RunContext, parse_bool
from ..validation import ConfigurationError, ErrorSeverity, handle_file_error
from .well_known import WellKnownVariables

logger = logging.getLogger(__name__)

DEFAULT_VARIABLE_FILE_NAME = "arborbuild_environmentvariables.json"
USER_FILE_SUFFIX = ".user"


def variable_file_paths(source_root: Path, file_name: str = DEFAULT_VARIABLE_FILE_NAME) -> List[Path]:
    """Return the base and user file paths, in application order."""
    return [source_root / file_name, source_root / f"{file_name}{USER_FILE_SUFFIX}"]


def read_variable_file(path: Path) -> Dict[str, str]:
    """
    Read one flat JSON variable file.

    Scalars are converted to strings; null becomes an empty string.

    Raises:
        ConfigurationError: If the file cannot be read or is not a JSON
            object of scalars with non-blank names
    """
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        handle_file_error(e, f"parsing variable file {path}", severity=ErrorSeverity.ERROR,
                          reraise=False, logger=logger)
        raise ConfigurationError(f"Variable file '{path}' is not valid JSON: {e}") from e
    except OSError as e:
        handle_file_error(e, f"reading variable file {path}", severity=ErrorSeverity.ERROR,
                          reraise=False, logger=logger)
        raise ConfigurationError(f"Variable file '{path}' could not be read: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Variable file '{path}' must contain a JSON object")

    values: Dict[str, str] = {}
    for key, value in data.items():
        if not key.strip():
            raise ConfigurationError(f"Variable file '{path}' contains a blank variable name")
        if isinstance(value, (dict, list)):
            raise ConfigurationError(
                f"Variable '{key}' in '{path}' must be a scalar value, got {type(value).__name__}"
            )
        if value is None:
            values[key] = ""
        elif isinstance(value, bool):
            values[key] = "true" if value else "false"
        else:
            values[key] = str(value)
    return values


def load_variable_files(
    source_root: Path,
    run_context: RunContext,
    file_name: str = DEFAULT_VARIABLE_FILE_NAME,
) -> Dict[str, str]:
    """
    Apply the variable files at `source_root` to the run context.

    The user file is applied after the base file and wins on conflicts.
    Disabled when the context sets the file source flag to false.

    Returns:
        All values that were applied
    """
    enabled: Optional[bool] = parse_bool(run_context.get(WellKnownVariables.VARIABLE_FILE_SOURCE_ENABLED))
    if enabled is False:
        logger.info("Variable file source is disabled")
        return {}

    applied: Dict[str, str] = {}
    for path in variable_file_paths(source_root, file_name):
        if not path.is_file():
            logger.debug(f"No variable file at {path}")
            continue
        values = read_variable_file(path)
        run_context.update(values)
        applied.update(values)
        logger.info(f"Applied {len(values)} variables from {path}")
    return applied
