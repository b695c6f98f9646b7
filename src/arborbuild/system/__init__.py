"""
System interaction: supervised external processes and process tree control.

- `ProcessSupervisor` spawns one external process, streams its output and
  enforces cancellation with a tree kill
- `ProcessTreeKiller` hides the host's forceful-kill and process enumeration
  facilities; hosts without them get a no-op implementation
- Executable and repository root lookup
"""

from .commands import find_executable, find_vcs_root

from .processes import (
    KillOutcome,
    NoOpProcessTreeKiller,
    ProcessTreeKiller,
    PsutilProcessTreeKiller,
    get_process_create_time,
    get_process_tree_killer,
    is_process_running,
)

from .supervisor import (
    OutputCallback,
    ProcessFailureKind,
    ProcessOutcome,
    ProcessSupervisor,
)

__all__ = [
    # Commands
    "find_executable",
    "find_vcs_root",
    # Process tree control
    "KillOutcome",
    "NoOpProcessTreeKiller",
    "ProcessTreeKiller",
    "PsutilProcessTreeKiller",
    "get_process_create_time",
    "get_process_tree_killer",
    "is_process_running",
    # Supervision
    "OutputCallback",
    "ProcessFailureKind",
    "ProcessOutcome",
    "ProcessSupervisor",
]
