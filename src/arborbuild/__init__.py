"""
arbor-build: a build orchestration engine.

A bootstrapper acquires a versioned distributable of the build tool and
relaunches it under a deadline. The relaunched build application resolves
a case-insensitive set of build variables from the environment, JSON files
and ordered providers, then runs registered tools in priority order.
"""

__version__ = "0.1.0"

from .application import BuildApplication
from .bootstrap import BootstrapLauncher
from .models import ExitCode, RunContext, Variable, VariableSet

__all__ = [
    "__version__",
    "BootstrapLauncher",
    "BuildApplication",
    "ExitCode",
    "RunContext",
    "Variable",
    "VariableSet",
]
