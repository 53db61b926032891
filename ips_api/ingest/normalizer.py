"""Normalization helpers for schema-less stored procedure result sets.

Procedures such as ``ReadNewERM`` decide their own column set per form, so the
columns of a result can only be read off the rows themselves. Result sets are
assumed to be row-homogeneous: every row carries the keys of the first row.
That precondition is trusted, not enforced; :func:`find_heterogeneous_rows`
exists for debug-time checks.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

RawRow = Mapping[str, Any]


def derive_columns(rows: Sequence[RawRow]) -> List[str]:
    """Return the column names of the first row, or an empty list."""
    if not rows:
        return []
    return list(rows[0].keys())


def normalize_rows(rows: Optional[Iterable[RawRow]]) -> Dict[str, Any]:
    """Project a procedure result set onto ``{columns, rows, totalRows}``.

    ``None`` is treated as an empty result set. Rows are passed through as-is,
    in order, without copying.
    """
    row_list = list(rows) if rows is not None else []
    return {
        "columns": derive_columns(row_list),
        "rows": row_list,
        "totalRows": len(row_list),
    }


def find_heterogeneous_rows(rows: Sequence[RawRow], columns: Sequence[str]) -> List[int]:
    """Return indexes of rows whose key set differs from ``columns``."""
    expected = set(columns)
    return [index for index, row in enumerate(rows) if set(row.keys()) != expected]
