"""
Configuration data models.

This module contains the configuration structures loaded from `config.toml`.
Values here are defaults; variables resolved at run time take precedence.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class SupervisorConfig:
    """
    Settings for the external process supervisor, `[supervisor]` section.
    """

    # Interval of the supervising loop that observes cancellation (seconds).
    poll_interval_seconds: float = 0.05
    # Deadline applied to quick auxiliary calls such as version-control queries.
    quick_call_timeout_seconds: float = 5.0
    # How long a tree kill waits for the killed processes to disappear.
    kill_wait_timeout_seconds: float = 3.0


@dataclass
class BootstrapConfig:
    """
    Settings for the bootstrap launcher, `[bootstrap]` section.
    """

    # Name of the distributable package the launcher acquires.
    package_name: str = "arbor-build"
    # Overall deadline for the relaunched build process.
    build_timeout_seconds: int = 900
    # Pause after completion so log sinks can flush.
    exit_delay_ms: int = 0
    # Upper bound for any configured exit delay.
    max_exit_delay_ms: int = 10_000
    # Directory feed holding `<package>.<version>.zip` archives. None disables acquisition.
    package_source: Optional[Path] = None
    # Extraction cache; None means `~/.cache/arborbuild/packages`.
    cache_dir: Optional[Path] = None


@dataclass
class BuildConfig:
    """
    Settings for the relaunched build application, `[build]` section.
    """

    exit_delay_ms: int = 50
    # Base name of the JSON variable files at the source root.
    variable_file_name: str = "arborbuild_environmentvariables.json"


@dataclass
class LoggingConfig:
    """`[logging]` section."""

    level: str = "INFO"


@dataclass
class AppConfig:
    """
    The complete, validated application configuration.
    """

    supervisor: SupervisorConfig = field(default_factory=SupervisorConfig)
    bootstrap: BootstrapConfig = field(default_factory=BootstrapConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
