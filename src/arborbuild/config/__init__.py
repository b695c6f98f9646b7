"""
Configuration management for the arborbuild package.

Loads `config.toml` once, validates it into an `AppConfig`, and keeps it as
a process-wide singleton.
"""

from .manager import (
    clear_config_cache,
    get_config,
    get_config_path,
    is_config_loaded,
    set_config_path,
)

from .loader import load_main_config, load_toml_file
from .validators import (
    validate_app_config,
    validate_bootstrap_config,
    validate_build_config,
    validate_supervisor_config,
)

__all__ = [
    # Main interface
    "get_config",
    "get_config_path",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "validate_app_config",
    "validate_bootstrap_config",
    "validate_build_config",
    "validate_supervisor_config",
]
