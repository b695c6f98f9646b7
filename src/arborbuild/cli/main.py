"""
Command-line interface for arbor-build.

Two entry points:
- `arbor-build-bootstrap` acquires the build tool and relaunches it under a
  deadline
- `arbor-build` is the relaunched build application
"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import List, Optional

from ..application import BuildApplication
from ..bootstrap import BootstrapLauncher
from ..config import get_config, set_config_path
from ..formatting import display_as_table
from ..models import AppConfig, BootstrapOptions, CancellationToken, ExitCode, RunContext
from ..system import ProcessSupervisor
from ..validation import ValidationError, handle_cli_error, validate_log_level
from ..variables import WellKnownVariables, all_well_known_variables

# --- Logging Setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)-5.5s] %(name)s:%(filename)s:%(lineno)d\t %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


def _load_config(config_path: Optional[Path]) -> AppConfig:
    if config_path is not None:
        set_config_path(config_path)
    try:
        return get_config()
    except (FileNotFoundError, ValidationError, ValueError) as e:
        handle_cli_error(
            error=e,
            context="configuration loading",
            exit_code=1,
            logger=logger,
        )


def _apply_log_level(config: AppConfig, run_context: RunContext, override: Optional[str]) -> None:
    """Command line beats `Arbor.Build.Log.Level`, which beats the config file."""
    level = override or run_context.get(WellKnownVariables.LOG_LEVEL) or config.logging.level
    try:
        level = validate_log_level(level, field_name="log level")
    except ValidationError as e:
        logger.warning(f"{e}, keeping {config.logging.level}")
        level = config.logging.level
    logging.getLogger().setLevel(level)


def _install_signal_handlers(token: CancellationToken) -> None:
    """Cancel the run on SIGINT/SIGTERM so children are cleaned up before exit."""
    loop = asyncio.get_running_loop()

    def request_shutdown(signum: int) -> None:
        if token.is_cancelled:
            logger.warning("Shutdown already in progress. Please be patient.")
            return
        logger.info(f"Signal {signal.strsignal(signum)} received. Cancelling the run...")
        token.cancel()

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, request_shutdown, signum)
        except (NotImplementedError, RuntimeError):
            # Not supported by the event loop on this platform.
            logger.debug(f"Could not install handler for {signal.strsignal(signum)}")


def _exit(exit_code: ExitCode) -> None:
    logger.info(f"Exiting with {exit_code}")
    sys.exit(0 if exit_code.is_success else 1)


def _build_parser(prog: str, description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=prog, description=description, allow_abbrev=False, add_help=False)
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a config.toml overriding the bundled configuration.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        help="Logging level, overrides Arbor.Build.Log.Level and the config file.",
    )
    return parser


def main_cli(argv: Optional[List[str]] = None) -> None:
    """
    Entry point of the relaunched build application.

    Unrecognized arguments, including `-buildDirectory=<path>` and `--help`,
    are passed through to the build.
    """
    parser = _build_parser("arbor-build", "Resolve build variables and run the build tools.")
    parser.add_argument(
        "--help-variables",
        action="store_true",
        help="List the well-known variables and exit.",
    )
    args, passthrough = parser.parse_known_args(argv)

    if args.help_variables:
        print(display_as_table(
            {"Name": entry.name, "Default": entry.default, "Description": entry.description}
            for entry in all_well_known_variables()
        ))
        sys.exit(0)

    app_config = _load_config(args.config)
    run_context = RunContext.from_environment()
    _apply_log_level(app_config, run_context, args.log_level)

    async def run() -> ExitCode:
        token = CancellationToken()
        _install_signal_handlers(token)
        application = BuildApplication(passthrough, run_context=run_context,
                                       config=app_config, cancel_token=token)
        return await application.run()

    logger.info(f"Starting arbor-build in {os.getcwd()}")
    _exit(asyncio.run(run()))


def bootstrap_cli(argv: Optional[List[str]] = None) -> None:
    """
    Entry point of the bootstrapper.

    Recognizes `--download-only`, `-arborBuildExe=<path>` and
    `-buildDirectory=<path>`; every other argument is forwarded to the build
    tool.
    """
    parser = _build_parser("arbor-build-bootstrap", "Acquire and run the arbor-build build tool.")
    parser.add_argument(
        "--debug-override",
        type=Path,
        metavar="DIR",
        help="Run with deterministic debug options against DIR.",
    )
    args, passthrough = parser.parse_known_args(argv)

    app_config = _load_config(args.config)
    run_context = RunContext.from_environment()
    _apply_log_level(app_config, run_context, args.log_level)

    if args.debug_override is not None:
        options = BootstrapOptions.debug_override(passthrough, args.debug_override)
        logger.info(f"Using debug options with base directory {args.debug_override}")
    else:
        options = BootstrapOptions.parse(passthrough)

    async def run() -> ExitCode:
        token = CancellationToken()
        _install_signal_handlers(token)
        launcher = BootstrapLauncher(
            options,
            run_context,
            app_config.bootstrap,
            ProcessSupervisor.from_config(app_config.supervisor),
            cancel_token=token,
        )
        return await launcher.start()

    _exit(asyncio.run(run()))


if __name__ == "__main__":
    main_cli()
