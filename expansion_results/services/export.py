from __future__ import annotations

import json
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, is_dataclass
from typing import Any, Union

from ..models.pivot import PivotTable
from ..models.result_row import ResultRow
from .baseline import baseline as derive_baseline

"""Export adapter: the current view as TSV or pretty JSON.

TSV output is a header line of column labels followed by one line per record,
fields joined with a tab and lines with a newline, without a trailing newline.
Embedded tabs and newlines are written as-is; there is no quoting or escaping.

JSON output is the sorted (not paginated) dataset with 2-space indentation.
"""

__all__ = [
    "Column",
    "render_value",
    "to_tsv",
    "to_json",
    "pivot_to_tsv",
    "row_to_mapping",
]


@dataclass(frozen=True)
class Column:
    key: str  # field lookup key (camelCase field or metric name)
    label: str  # header text

    @staticmethod
    def of(column: Union[Column, str]) -> Column:
        if isinstance(column, Column):
            return column
        return Column(column, column)


def render_value(value: Any) -> str:
    """Text for one field: None is empty, integral floats drop the trailing '.0'."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def row_to_mapping(row: Any) -> Mapping[str, Any]:
    """Flat mapping view of a ResultRow, DTO or plain mapping."""
    if isinstance(row, ResultRow):
        return row.to_dict()
    if isinstance(row, Mapping):
        return row
    to_json_fn = getattr(row, "to_json", None)
    if callable(to_json_fn):
        return to_json_fn()
    if is_dataclass(row) and not isinstance(row, type):
        return {k: getattr(row, k) for k in row.__dataclass_fields__}
    raise TypeError(f"cannot export value of type {type(row).__name__}")


def _lookup(mapping: Mapping[str, Any], key: str) -> Any:
    return mapping.get(key)


def to_tsv(columns: Sequence[Union[Column, str]], rows: Iterable[Any]) -> str:
    cols = [Column.of(c) for c in columns]
    lines = ["\t".join(c.label for c in cols)]
    for row in rows:
        mapping = row_to_mapping(row)
        lines.append("\t".join(render_value(_lookup(mapping, c.key)) for c in cols))
    return "\n".join(lines)


def to_json(rows: Iterable[Any], indent: int = 2) -> str:
    payload = [dict(row_to_mapping(r)) for r in rows]
    return json.dumps(payload, indent=indent, ensure_ascii=False, default=str)


def pivot_to_tsv(table: PivotTable, baseline: bool = True) -> str:
    """Pivot view as TSV: Build Cycle, optional Baseline, then one column per technology."""
    show_baseline = baseline and table.has_baseline
    header = ["Build Cycle"] + (["Baseline"] if show_baseline else [])
    header += [table.label(t) for t in table.technologies]
    lines = ["\t".join(header)]
    for bc in table.build_cycles:
        fields = [str(bc)]
        if show_baseline:
            fields.append(render_value(derive_baseline(table, bc)))
        for t in table.technologies:
            c = table.cell(bc, t)
            fields.append(render_value(c.value if c is not None else None))
        lines.append("\t".join(fields))
    return "\n".join(lines)
