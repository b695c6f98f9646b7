"""
Variable resolution.

Merges the output of ordered providers into one consistent variable set.
The set is mutable during the single resolution pass and returned as a
frozen, key-sorted snapshot; a failing provider aborts the pass so no
partial set ever reaches the tool pipeline.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from ..models import BuildContext, Variable, VariableSet, display_value, is_blank
from ..validation import ProviderError
from .compatibility import add_compatibility_variables
from .file_source import DEFAULT_VARIABLE_FILE_NAME, load_variable_files
from .providers import VariableProvider
from .well_known import WellKnownVariables

logger = logging.getLogger(__name__)


def seed_variables(
    context: BuildContext,
    file_name: str = DEFAULT_VARIABLE_FILE_NAME,
) -> VariableSet:
    """
    Build the seed set: variable files applied to the run context, then the
    whole context as variables.
    """
    load_variable_files(Path(context.source_root), context.run_context, file_name)
    seed = VariableSet(Variable(key, value) for key, value in context.run_context.items())
    logger.debug(f"Seeded {len(seed)} variables from the run context")
    return seed


def sort_providers(providers: Iterable[VariableProvider]) -> List[VariableProvider]:
    """Ascending by order; `sorted` is stable so registration order breaks ties."""
    return sorted(providers, key=lambda provider: provider.order)


class VariableResolver:
    """
    Runs providers in order and merges their batches.

    Merge rules for a variable whose key already exists:
    - blank existing value is replaced by a non-blank new value
    - both blank: skipped with a warning
    - equal values, ignoring case: skipped
    - different values: replaced only when overriding is enabled
    """

    def __init__(self, context: BuildContext):
        self.context = context

    async def resolve(
        self,
        providers: Iterable[VariableProvider],
        seed: Optional[VariableSet] = None,
    ) -> VariableSet:
        """
        Resolve variables.

        Args:
            providers: Providers in any order
            seed: Initial variables, copied before use

        Returns:
            Frozen, key-sorted variable set

        Raises:
            ProviderError: If any provider fails
        """
        variables = seed.copy() if seed is not None else VariableSet()

        for provider in sort_providers(providers):
            logger.debug(f"Running variable provider {provider.name} (order {provider.order})")
            try:
                batch = await provider.provide(variables.freeze(), self.context)
            except ProviderError as e:
                logger.error(f"Variable provider {provider.name} failed: {e}")
                raise
            except Exception as e:
                logger.error(f"Variable provider {provider.name} failed: {type(e).__name__}: {e}", exc_info=True)
                raise ProviderError(provider.name, f"Variable provider '{provider.name}' failed: {e}") from e

            self.merge(variables, batch or [], provider.name)

        add_compatibility_variables(variables)
        resolved = variables.freeze()
        logger.info(f"Resolved {len(resolved)} variables")
        return resolved

    def merge(self, variables: VariableSet, batch: Iterable[Variable], source: str = "provider") -> None:
        """Merge one provider batch into `variables` in place."""
        override_enabled = variables.get_bool(WellKnownVariables.VARIABLE_OVERRIDE_ENABLED, default=False)

        for variable in batch:
            existing = variables.get(variable.key)
            if existing is None:
                variables.add(variable)
                continue

            if is_blank(existing.value):
                if is_blank(variable.value):
                    logger.warning(f"Variable '{variable.key}' from {source} is blank and already defined blank, skipping")
                else:
                    variables.replace(Variable(existing.key, variable.value))
                continue

            if (variable.value or "").casefold() == existing.value.casefold():
                continue

            shown_existing = display_value(existing.key, existing.value)
            shown_new = display_value(variable.key, variable.value)
            if override_enabled and not is_blank(variable.value):
                logger.info(f"Overriding variable '{existing.key}' value '{shown_existing}' "
                            f"with '{shown_new}' from {source}")
                variables.replace(Variable(existing.key, variable.value))
            else:
                logger.warning(f"Variable '{existing.key}' is already defined with value '{shown_existing}', "
                               f"skipping '{shown_new}' from {source}")
