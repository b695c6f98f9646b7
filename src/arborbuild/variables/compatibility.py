"""
Compatibility aliases between the dotted and underscore naming conventions.

Variables were historically consumed both as `Arbor.Build.Foo.Bar` and as
`Arbor_Build_Foo_Bar` (the spelling shells and CI systems accept). For every
dotted variable the underscore alias is added when it is not defined yet. An
existing alias is never overwritten.
"""

import logging
from typing import List

from ..formatting import display_as_table
from ..models import Variable, VariableSet, display_value, is_blank
from .well_known import WellKnownVariables

logger = logging.getLogger(__name__)

CANONICAL_PREFIX = "Arbor.Build"
REPLACEMENTS = {".": "_"}
BRANCH_ALIASES = ("branch", "branchName")


def compatibility_name(key: str) -> str:
    name = key
    for old, new in REPLACEMENTS.items():
        name = name.replace(old, new)
    return name


def add_compatibility_variables(variables: VariableSet) -> List[Variable]:
    """
    Add underscore aliases and branch aliases to a mutable variable set.

    Returns:
        The variables that were added
    """
    added: List[Variable] = []
    already_defined = []

    for variable in list(variables):
        if not variable.key.casefold().startswith(CANONICAL_PREFIX.casefold()):
            continue
        alias = compatibility_name(variable.key)
        if alias.casefold() == variable.key.casefold():
            continue
        if alias in variables:
            already_defined.append({
                "Name": variable.key,
                "Compatibility name": alias,
                "Value": display_value(variable.key, variable.value),
            })
            continue
        alias_variable = Variable(alias, variable.value)
        variables.add(alias_variable)
        added.append(alias_variable)

    if already_defined:
        logger.debug(f"Compatibility variables already defined\n\n{display_as_table(already_defined)}")

    branch_name = variables.get_value(WellKnownVariables.BRANCH_NAME)
    if not is_blank(branch_name):
        for alias in BRANCH_ALIASES:
            if alias in variables:
                continue
            logger.debug(f"Variable '{alias}' was not defined, using value from "
                         f"'{WellKnownVariables.BRANCH_NAME}' ('{branch_name}')")
            alias_variable = Variable(alias, branch_name)
            variables.add(alias_variable)
            added.append(alias_variable)

    if added:
        logger.debug(f"Added {len(added)} compatibility variables")
    return added
