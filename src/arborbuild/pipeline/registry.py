"""
Explicit registration of variable providers and tools.

Components are listed once at startup through `ComponentRegistry`; there is
no runtime type scanning. `default_registry()` holds the built-in set.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import DEFAULT_PRIORITY, LOWEST_PRIORITY, ToolInvocation
from ..system import ProcessSupervisor, ProcessTreeKiller
from ..variables import (
    BranchNameVariableProvider,
    SourcePathVariableProvider,
    SourceRootVariableProvider,
    VariableProvider,
)
from .builtin import HelpTool, ProcessCleanupTool, ScriptTool
from .tools import Tool

logger = logging.getLogger(__name__)

SCRIPT_TOOL_PRIORITY = 840


@dataclass(frozen=True)
class Registration:
    """The registered providers and tool invocations of a run."""

    providers: List[VariableProvider] = field(default_factory=list)
    invocations: List[ToolInvocation] = field(default_factory=list)


class ComponentRegistry:
    """
    Builder collecting providers and tools.

    Tools keep their registration position as the tie-break between equal
    priorities.
    """

    def __init__(self):
        self._providers: List[VariableProvider] = []
        self._invocations: List[ToolInvocation] = []

    def add_provider(self, provider: VariableProvider) -> "ComponentRegistry":
        self._providers.append(provider)
        return self

    def add_tool(self, tool: Tool, priority: int = DEFAULT_PRIORITY,
                 run_always: bool = False) -> "ComponentRegistry":
        self._invocations.append(
            ToolInvocation(tool=tool, priority=priority, run_always=run_always, index=len(self._invocations))
        )
        return self

    def build(self) -> Registration:
        logger.debug(f"Registered {len(self._providers)} providers and {len(self._invocations)} tools")
        return Registration(providers=list(self._providers), invocations=list(self._invocations))


def default_registry(
    supervisor: ProcessSupervisor,
    killer: Optional[ProcessTreeKiller] = None,
) -> ComponentRegistry:
    """Return a registry holding the built-in providers and tools."""
    return (
        ComponentRegistry()
        .add_provider(SourceRootVariableProvider())
        .add_provider(SourcePathVariableProvider())
        .add_provider(BranchNameVariableProvider(supervisor))
        .add_tool(HelpTool(), priority=LOWEST_PRIORITY)
        .add_tool(ScriptTool(supervisor), priority=SCRIPT_TOOL_PRIORITY)
        .add_tool(ProcessCleanupTool(killer or supervisor.killer), priority=DEFAULT_PRIORITY, run_always=True)
    )
