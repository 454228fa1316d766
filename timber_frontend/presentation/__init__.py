"""
Presentation Contracts

Responsibility:
ViewModels for the stock grid screen: the short label shown in a cell and
the stock totals shown in the header. No rendering, no mutation.
"""

from dataclasses import dataclass
from typing import Optional

from timber_backend.contracts.base import BAYS, LEVELS, Cell, Matrix
from timber_backend.contracts.catalog import cubic_meters, linear_meters


@dataclass(frozen=True)
class CellViewModel:
    """ViewModel for one grid cell."""
    bay: str
    level: str
    label: Optional[str]     # None for an empty cell
    item_count: int
    updated_by: Optional[str]
    locked: bool


@dataclass(frozen=True)
class StockTotals:
    """Header totals across the whole matrix."""
    pieces: int
    linear_meters: float
    cubic_meters: float
    occupied_cells: int


def cell_label(cell: Optional[Cell]) -> Optional[str]:
    """
    "size • length • pieces" of the representative (first) item, with
    "+N" when the cell holds N more items.
    """
    if not cell or not cell.get("items"):
        return None
    items = cell["items"]
    first = items[0] if isinstance(items[0], dict) else {}
    label = f"{first.get('size_id')} • {first.get('length_mm')} • {first.get('pieces')}"
    if len(items) > 1:
        label = f"{label} +{len(items) - 1}"
    return label


def cell_view(bay: str, level: str, cell: Optional[Cell]) -> CellViewModel:
    return CellViewModel(
        bay=bay,
        level=level,
        label=cell_label(cell),
        item_count=len(cell["items"]) if cell else 0,
        updated_by=cell.get("updated_by") if cell else None,
        locked=bool(cell.get("locked")) if cell else False,
    )


def matrix_totals(matrix: Matrix) -> StockTotals:
    pieces = 0
    lm = 0.0
    m3 = 0.0
    occupied = 0
    for bay in BAYS:
        column = matrix.get(bay) or {}
        for level in LEVELS:
            cell = column.get(level)
            if not cell:
                continue
            occupied += 1
            for item in cell.get("items", []):
                if not isinstance(item, dict):
                    continue
                count = item.get("pieces")
                if isinstance(count, int) and not isinstance(count, bool):
                    pieces += count
                lm += linear_meters(item)
                m3 += cubic_meters(item)
    return StockTotals(
        pieces=pieces,
        linear_meters=round(lm, 3),
        cubic_meters=round(m3, 6),
        occupied_cells=occupied,
    )


__all__ = ['CellViewModel', 'StockTotals', 'cell_label', 'cell_view', 'matrix_totals']
