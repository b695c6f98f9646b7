"""
Plain-text tables for log output.
"""

from typing import Dict, Iterable, List, Mapping, Optional

from .models import Variable, display_value

NO_VALUE = "-"


def display_as_table(rows: Iterable[Mapping[str, Optional[str]]], pad_char: str = ".") -> str:
    """
    Render dictionaries as an aligned text table.

    Columns are the union of all keys in first-seen order. Missing and blank
    cells show as "-". Cells are padded with `pad_char` except in the last
    column.

    Returns:
        The table with a trailing newline, or "" when there are no rows
    """
    materialized = list(rows)
    if not materialized:
        return ""

    columns: List[str] = []
    seen = set()
    for row in materialized:
        for key in row:
            if key.casefold() not in seen:
                seen.add(key.casefold())
                columns.append(key)

    def cell(row: Mapping[str, Optional[str]], column: str) -> str:
        value = row.get(column)
        if value is None or not str(value).strip():
            return NO_VALUE
        return str(value)

    widths: Dict[str, int] = {
        column: max(len(column), len(NO_VALUE), *(len(cell(row, column)) for row in materialized))
        for column in columns
    }

    lines = ["".join(column + " " * (widths[column] - len(column) + 1) for column in columns).rstrip()]
    for row in materialized:
        parts = []
        for index, column in enumerate(columns):
            value = cell(row, column)
            if index < len(columns) - 1:
                value = value + pad_char * (widths[column] - len(value))
            parts.append(value)
        lines.append(" ".join(parts))
    return "\n".join(lines) + "\n"


def format_variables_table(variables: Iterable[Variable]) -> str:
    """Render variables as a Name/Value table with secrets masked."""
    return display_as_table(
        {"Name": variable.key, "Value": display_value(variable.key, variable.value)}
        for variable in variables
    )
