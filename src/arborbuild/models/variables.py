"""
Variable data models.

A `Variable` is a named string value contributing to the build configuration.
A `VariableSet` is the case-insensitive bag of variables assembled during one
resolution pass; it is frozen into a key-sorted, read-only snapshot before it
is handed to the tool pipeline.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from ..validation import ConfigurationError

# Normalized key fragments whose values are never printed.
SENSITIVE_KEY_FRAGMENTS = (
    "password",
    "apikey",
    "username",
    "pw",
    "token",
    "jwt",
    "connectionstring",
    "clientsecret",
)

MASKED_VALUE = "*****"


def is_sensitive_key(key: str) -> bool:
    """Check whether a key names a secret, ignoring case and `-`, `_`, `.` separators."""
    normalized = key.lower().replace("-", "").replace("_", "").replace(".", "")
    return any(fragment in normalized for fragment in SENSITIVE_KEY_FRAGMENTS)


def display_value(key: str, value: Optional[str]) -> Optional[str]:
    """Return the value as it may be shown in logs."""
    if value and is_sensitive_key(key):
        return MASKED_VALUE
    return value


def parse_bool(value: Optional[str]) -> Optional[bool]:
    """Parse "true"/"false" case-insensitively. Anything else yields None."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized == "true":
        return True
    if normalized == "false":
        return False
    return None


def is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass(frozen=True)
class Variable:
    """A single build variable."""

    key: str
    value: Optional[str] = None

    def __post_init__(self):
        if not self.key or not self.key.strip():
            raise ValueError("Variable key must be a non-empty string")

    @property
    def display_value(self) -> Optional[str]:
        return display_value(self.key, self.value)

    def __str__(self) -> str:
        if not self.value:
            return f"{self.key}: <empty>"
        if is_sensitive_key(self.key):
            return f"{self.key}: {MASKED_VALUE}"
        return f"{self.key}: '{self.value}'"


@dataclass(frozen=True)
class RequiredVariable:
    """
    Outcome of looking up a variable that must be present.

    Lookups return this instead of raising so callers decide whether a missing
    variable is fatal. `unwrap()` converts a miss into a `ConfigurationError`.
    """

    key: str
    variable: Optional[Variable] = None

    @property
    def ok(self) -> bool:
        return self.variable is not None and not is_blank(self.variable.value)

    @property
    def value(self) -> Optional[str]:
        return self.variable.value if self.variable else None

    @property
    def error(self) -> Optional[str]:
        if self.ok:
            return None
        if self.variable is None:
            return f"The key '{self.key}' was not found in the variable collection"
        return f"The key '{self.key}' has an empty value in the variable collection"

    def unwrap(self) -> str:
        """
        Return the value or raise.

        Raises:
            ConfigurationError: If the variable is missing or blank
        """
        if self.ok:
            return self.variable.value

        # Imported here, the registry depends on nothing but is part of the variables package.
        from ..variables.well_known import find_well_known

        message = self.error
        well_known = find_well_known(self.key)
        if well_known is not None:
            message = f"{message} (well-known variable '{well_known.name}': {well_known.description})"
        raise ConfigurationError(message)


class VariableSet:
    """
    Case-insensitive, insertion-ordered collection of variables.

    Keys are unique ignoring case; the first spelling added is the one kept.
    """

    def __init__(self, variables: Iterable[Variable] = (), frozen: bool = False):
        self._items: Dict[str, Variable] = {}
        for variable in variables:
            self._items.setdefault(variable.key.casefold(), variable)
        self._frozen = frozen

    @classmethod
    def from_mapping(cls, values: Dict[str, Optional[str]]) -> "VariableSet":
        return cls(Variable(key, value) for key, value in values.items())

    # --- Mutation ---

    def _check_mutable(self) -> None:
        if self._frozen:
            raise TypeError("Resolved variable set is read-only")

    def add(self, variable: Variable) -> bool:
        """Add a variable if its key is absent. Returns True when added."""
        self._check_mutable()
        folded = variable.key.casefold()
        if folded in self._items:
            return False
        self._items[folded] = variable
        return True

    def replace(self, variable: Variable) -> None:
        """Insert or overwrite, keeping the position of an existing key."""
        self._check_mutable()
        self._items[variable.key.casefold()] = variable

    def remove(self, key: str) -> Optional[Variable]:
        self._check_mutable()
        return self._items.pop(key.casefold(), None)

    def freeze(self) -> "VariableSet":
        """Return a key-sorted, read-only snapshot."""
        ordered = sorted(self._items.values(), key=lambda v: v.key.casefold())
        return VariableSet(ordered, frozen=True)

    def copy(self) -> "VariableSet":
        """Return a mutable copy."""
        return VariableSet(self._items.values())

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # --- Lookup ---

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._items

    def __getitem__(self, key: str) -> Variable:
        return self._items[key.casefold()]

    def __iter__(self) -> Iterator[Variable]:
        return iter(list(self._items.values()))

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        state = "frozen" if self._frozen else "mutable"
        return f"<VariableSet {state} count={len(self)}>"

    def keys(self) -> List[str]:
        return [variable.key for variable in self._items.values()]

    def get(self, key: str) -> Optional[Variable]:
        return self._items.get(key.casefold())

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        variable = self.get(key)
        if variable is None or variable.value is None:
            return default
        return variable.value

    def get_values(self, key: str, separator: str = ",") -> List[str]:
        """Split a delimited value into its trimmed, non-empty parts."""
        value = self.get_value(key)
        if not value:
            return []
        return [part.strip() for part in value.split(separator) if part.strip()]

    def get_optional_bool(self, key: str) -> Optional[bool]:
        return parse_bool(self.get_value(key))

    def get_bool(self, key: str, default: bool = False) -> bool:
        parsed = self.get_optional_bool(key)
        return default if parsed is None else parsed

    def get_int(self, key: str, default: int, min_value: Optional[int] = None) -> int:
        """Parse an integer value; unparsable or too small values yield the default."""
        value = self.get_value(key)
        if value is None:
            return default
        try:
            parsed = int(value.strip())
        except ValueError:
            return default
        if min_value is not None and parsed < min_value:
            return default
        return parsed

    def require(self, key: str) -> RequiredVariable:
        return RequiredVariable(key=key, variable=self.get(key))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {variable.key: variable.value for variable in self._items.values()}
