"""
Base Contracts and Shared Types

Grid identifiers and the JSON-shaped aliases used across all layers.

BOUNDARY ENFORCEMENT:
=====================
- BAYS and LEVELS are the only valid coordinates
- A Matrix is Dict[bay, Dict[level, Cell | None]]
- Cells are dicts, not classes: fields such as `id`, `area_id` or `locked`
  must survive a round trip untouched
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from .errors import ValidationError


# =============================================================================
# GRID SHAPE
# =============================================================================

BAY_COUNT = 13
LEVEL_COUNT = 10

BAYS: Tuple[str, ...] = tuple(f"B{i:02d}" for i in range(1, BAY_COUNT + 1))
LEVELS: Tuple[str, ...] = tuple(f"L{i:02d}" for i in range(1, LEVEL_COUNT + 1))

_BAY_SET = frozenset(BAYS)
_LEVEL_SET = frozenset(LEVELS)


# =============================================================================
# JSON-SHAPED ALIASES
# =============================================================================

Cell = Dict[str, Any]
BayColumn = Dict[str, Optional[Cell]]
Matrix = Dict[str, BayColumn]


def is_valid_bay(bay: Any) -> bool:
    return isinstance(bay, str) and bay in _BAY_SET


def is_valid_level(level: Any) -> bool:
    return isinstance(level, str) and level in _LEVEL_SET


def require_bay(bay: Any) -> str:
    """Return `bay` unchanged or raise ValidationError."""
    if not is_valid_bay(bay):
        raise ValidationError("Bay is out of range", context=(("bay", str(bay)),))
    return bay


def require_level(level: Any) -> str:
    """Return `level` unchanged or raise ValidationError."""
    if not is_valid_level(level):
        raise ValidationError("Level is out of range", context=(("level", str(level)),))
    return level


# =============================================================================
# CELL IDENTITY
# =============================================================================

CELL_ID_SEPARATOR = "::"


def cell_identity(cell: Cell) -> str:
    """
    Opaque identity of a cell as captured by a UI.

    Derived from bay, level and updated_at, so it changes whenever the cell
    is rewritten or moved.
    """
    return CELL_ID_SEPARATOR.join(
        (str(cell.get("bay")), str(cell.get("level")), str(cell.get("updated_at")))
    )


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with a `Z` suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
