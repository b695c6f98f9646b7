"""
Result data models for the tool pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from .exit_code import ExitCode

if TYPE_CHECKING:
    from ..pipeline.tools import Tool

# Priority given to tools registered without one; they run last.
DEFAULT_PRIORITY = 2**31 - 1
LOWEST_PRIORITY = -(2**31)


class ToolOutcome(Enum):
    """Terminal state of one tool in one pipeline run."""
    NOT_RUN = "Not run"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ToolInvocation:
    """
    A tool bound to its declared priority and run-always flag.
    """

    tool: "Tool"
    priority: int = DEFAULT_PRIORITY
    # Run even after an earlier tool failed (cleanup and reporting steps).
    run_always: bool = False
    # Registration position, the tie-break for equal priorities.
    index: int = 0

    @property
    def name(self) -> str:
        return self.tool.name


@dataclass
class ToolResult:
    """
    Outcome of one invocation in one pipeline run.
    """

    invocation: ToolInvocation
    outcome: ToolOutcome = ToolOutcome.NOT_RUN
    message: str = ""
    # Wall clock duration in seconds, None when the tool did not run.
    duration: Optional[float] = None

    @property
    def name(self) -> str:
        return self.invocation.name

    @property
    def execution_time(self) -> str:
        if self.duration is None:
            return "N/A"
        return f"{int(self.duration * 1000)} ms"


@dataclass
class PipelineResult:
    """Exit code of a pipeline run plus one result per discovered tool."""

    exit_code: ExitCode
    results: List[ToolResult] = field(default_factory=list)

    @property
    def failed(self) -> List[ToolResult]:
        return [result for result in self.results if result.outcome is ToolOutcome.FAILED]
