"""
Priority-ordered tool pipeline.

Tools are registered explicitly, run sequentially in ascending priority
against the resolved variables, and reported in a results table. Tools that
keep a log tail have it logged when they fail.
"""

from .builtin import HelpTool, ProcessCleanupTool, ScriptTool
from .registry import (
    SCRIPT_TOOL_PRIORITY,
    ComponentRegistry,
    Registration,
    default_registry,
)
from .runner import ToolPipeline, format_banner, format_results_table, sort_invocations
from .tools import LogTail, ReportsLogTail, Tool, get_log_tail

__all__ = [
    # Built-in tools
    "HelpTool",
    "ProcessCleanupTool",
    "ScriptTool",
    # Registration
    "SCRIPT_TOOL_PRIORITY",
    "ComponentRegistry",
    "Registration",
    "default_registry",
    # Running
    "ToolPipeline",
    "format_banner",
    "format_results_table",
    "sort_invocations",
    # Tool contract
    "LogTail",
    "ReportsLogTail",
    "Tool",
    "get_log_tail",
]
