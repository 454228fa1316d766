"""
Matrix Shape Normalization Layer

RESPONSIBILITY: Turn any value that claims to be a Matrix or BayColumn into
one that satisfies the grid invariants.
ALLOWED INPUTS: Anything (parsed JSON, database rows already grouped, None)
OUTPUTS: Matrix with every BAYS x LEVELS key present, or BayColumn with
every LEVELS key present

RULES (per coordinate):
=======================
1. A candidate that is not an object becomes None
2. Otherwise its fields are copied, `bay` and `level` are forced to the
   coordinate, and `items` becomes [] when it is not a list
3. A cell whose items list is empty is the same as no cell -> None
4. No other field is dropped (`id`, `area_id`, `locked` pass through)

WHAT THIS LAYER MUST NOT DO:
============================
- Raise on malformed input
- Mutate its input
- Validate item contents (that belongs to the editor)
"""

from __future__ import annotations
from typing import Any, Optional

from ..contracts.base import BAYS, LEVELS, Cell, BayColumn, Matrix


def build_empty_bay() -> BayColumn:
    """A BayColumn with every level set to None."""
    return {level: None for level in LEVELS}


def build_empty_matrix() -> Matrix:
    """A Matrix with every coordinate set to None."""
    return {bay: build_empty_bay() for bay in BAYS}


def normalize_cell(bay: str, level: str, candidate: Any) -> Optional[Cell]:
    """Normalize a single cell for the coordinate (bay, level)."""
    if not isinstance(candidate, dict):
        return None

    items = candidate.get("items")
    if isinstance(items, (list, tuple)):
        items = [dict(item) if isinstance(item, dict) else item for item in items]
    else:
        items = []

    if not items:
        return None

    cell = dict(candidate)
    cell["bay"] = bay
    cell["level"] = level
    cell["items"] = items
    return cell


def normalize_bay(bay: str, levels: Any) -> BayColumn:
    """Normalize the levels of one bay; unknown level keys are discarded."""
    column = build_empty_bay()
    if not isinstance(levels, dict):
        return column
    for level in LEVELS:
        column[level] = normalize_cell(bay, level, levels.get(level))
    return column


def normalize_matrix(candidate: Any) -> Matrix:
    """
    Normalize a full matrix.

    Unrecognized input yields an all-null matrix. Keys outside BAYS are
    discarded.
    """
    if not isinstance(candidate, dict):
        return build_empty_matrix()
    return {bay: normalize_bay(bay, candidate.get(bay)) for bay in BAYS}


def count_occupied(matrix: Matrix) -> int:
    """Number of non-null cells in a normalized matrix."""
    return sum(
        1
        for column in matrix.values()
        for cell in column.values()
        if cell is not None
    )


__all__ = [
    'build_empty_bay', 'build_empty_matrix',
    'normalize_cell', 'normalize_bay', 'normalize_matrix',
    'count_occupied',
]
