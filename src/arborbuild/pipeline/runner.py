"""
Priority-ordered tool pipeline.

Tools run strictly one after another in ascending priority; registration
order breaks ties. Once a tool fails, later tools run only if they are
registered as run-always. Every discovered tool gets exactly one result.
"""

import asyncio
import logging
import time
from typing import Iterable, List, Optional, Sequence

from ..formatting import display_as_table
from ..models import (
    BuildContext,
    CancellationToken,
    ExitCode,
    PipelineResult,
    ToolInvocation,
    ToolOutcome,
    ToolResult,
    VariableSet,
)
from ..validation import ToolExecutionError
from ..variables import WellKnownVariables
from .tools import get_log_tail

logger = logging.getLogger(__name__)

BANNER_WIDTH = 80


def sort_invocations(invocations: Iterable[ToolInvocation]) -> List[ToolInvocation]:
    return sorted(invocations, key=lambda invocation: (invocation.priority, invocation.index))


def format_banner(text: str, width: int = BANNER_WIDTH) -> str:
    """Box `text` for the log."""
    inner = max(width - 4, len(text))
    border = "+" + "-" * (inner + 2) + "+"
    return f"\n{border}\n| {text.ljust(inner)} |\n{border}"


def format_results_table(results: Iterable[ToolResult]) -> str:
    return display_as_table(
        {
            "Tool": result.name,
            "Result": str(result.outcome),
            "Execution time": result.execution_time,
            "Message": result.message,
        }
        for result in results
    )


class ToolPipeline:
    """
    Runs tool invocations against a resolved variable set.
    """

    def __init__(self, context: BuildContext):
        self.context = context

    async def run_all(
        self,
        invocations: Iterable[ToolInvocation],
        variables: VariableSet,
        args: Sequence[str] = (),
        cancel_token: Optional[CancellationToken] = None,
    ) -> PipelineResult:
        """
        Run every invocation in priority order.

        Returns:
            ExitCode.SUCCESS if no tool failed, otherwise the last non-zero
            exit code, together with one result per invocation
        """
        token = cancel_token or CancellationToken.none()
        ordered = sort_invocations(invocations)
        tests_enabled = variables.get_bool(WellKnownVariables.TESTS_ENABLED, default=True)

        results: List[ToolResult] = []
        failed = False
        exit_code = ExitCode.SUCCESS

        logger.info(f"Running {len(ordered)} tools")
        for invocation in ordered:
            result = ToolResult(invocation=invocation)
            results.append(result)

            if failed and not invocation.run_always:
                result.message = "Not run, a previous tool failed"
                logger.info(f"Skipping tool {invocation.name}, a previous tool failed")
                continue

            if invocation.tool.is_test_runner and not tests_enabled:
                result.message = "Not run, tests are disabled"
                logger.info(f"Skipping test tool {invocation.name}, tests are disabled")
                continue

            tool_exit_code = await self._run_tool(invocation, result, variables, args, token)
            if not tool_exit_code.is_success:
                failed = True
                exit_code = tool_exit_code

        self._report(results)
        return PipelineResult(exit_code=exit_code, results=results)

    async def _run_tool(
        self,
        invocation: ToolInvocation,
        result: ToolResult,
        variables: VariableSet,
        args: Sequence[str],
        token: CancellationToken,
    ) -> ExitCode:
        """Run one tool and fill in its result."""
        logger.info(format_banner(f"Running tool {invocation.name}"))
        start = time.monotonic()
        try:
            tool_exit_code = await invocation.tool.execute(self.context, variables, args, token)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            result.duration = time.monotonic() - start
            result.outcome = ToolOutcome.FAILED
            result.message = f"threw {type(e).__name__}"
            logger.error(f"Tool {invocation.name} threw {type(e).__name__}: {e}",
                         exc_info=not isinstance(e, ToolExecutionError))
            return ExitCode.FAILURE

        result.duration = time.monotonic() - start
        if tool_exit_code is None or not tool_exit_code.is_success:
            code = tool_exit_code.code if tool_exit_code is not None else ExitCode.FAILURE.code
            result.outcome = ToolOutcome.FAILED
            result.message = f"failed with exit code {code}"
            logger.error(f"Tool {invocation.name} failed with exit code {code}")
            return ExitCode.from_code(code)

        result.outcome = ToolOutcome.SUCCEEDED
        logger.info(f"Tool {invocation.name} succeeded in {result.execution_time}")
        return ExitCode.SUCCESS

    def _report(self, results: List[ToolResult]) -> None:
        if results:
            logger.info(f"Tool results\n\n{format_results_table(results)}")

        for result in results:
            if result.outcome is not ToolOutcome.FAILED:
                continue
            tail = get_log_tail(result.invocation.tool)
            if tail is None or len(tail) == 0:
                continue
            lines = "\n".join(tail.items())
            logger.error(f"Last {len(tail)} log lines of failed tool {result.name}:\n{lines}")
