"""
Bay Reorder Resolver

Computes a new arrangement of the occupied cells in one bay.

ALGORITHM:
==========
1. Collect the occupied cells of the column, bottom (L01) to top, and index
   them by cell identity
2. Consume the requested identities in order; unknown identities and
   repeats are ignored
3. Append every cell that was not named, in its previous relative order
4. Stack the result from L01 upwards; levels above it become null
5. Moved cells keep every field except `level`, which follows the new slot

No cell is created or destroyed: the occupied set before and after is the
same, whatever identities the caller supplied.
"""

from __future__ import annotations
from typing import Iterable, List, Optional

from timber_backend.contracts.base import LEVELS, BayColumn, Cell, cell_identity


def occupied_cells(column: BayColumn) -> List[Cell]:
    """Non-null cells of a column, bottom to top."""
    return [column[level] for level in LEVELS if column.get(level)]


def stack_cells(bay: str, cells: List[Cell]) -> BayColumn:
    """Place `cells` on L01, L02, ... and null the remaining levels."""
    column: BayColumn = {level: None for level in LEVELS}
    for level, cell in zip(LEVELS, cells):
        placed = dict(cell)
        placed["bay"] = bay
        placed["level"] = level
        column[level] = placed
    return column


def resolve_bay_order(bay: str, column: BayColumn, ordered_identities: Iterable[str]) -> BayColumn:
    """Rearrange the occupied cells of `column` following `ordered_identities`."""
    remaining = {}
    for cell in occupied_cells(column):
        # first occurrence wins if two cells ever share an identity
        remaining.setdefault(cell_identity(cell), cell)
    leftovers = [c for c in occupied_cells(column) if remaining.get(cell_identity(c)) is not c]

    ordered: List[Cell] = []
    for identity in ordered_identities:
        cell = remaining.pop(identity, None)
        if cell is not None:
            ordered.append(cell)

    ordered.extend(remaining.values())
    ordered.extend(leftovers)
    return stack_cells(bay, ordered)


def move_to_top(bay: str, column: BayColumn, level: str) -> BayColumn:
    """Move the cell at `level` above every other occupied cell of the bay."""
    target: Optional[Cell] = column.get(level)
    if target is None:
        return dict(column)
    others = [cell for cell in occupied_cells(column) if cell is not target]
    return stack_cells(bay, others + [target])
