"""
Contracts Module

Shared types for the stock grid. Both the server and the client import from
here; nothing in this package imports from other layers.

DESIGN PRINCIPLES:
==================
1. The grid shape (BAYS x LEVELS) is fixed and defined once
2. Cells travel as plain JSON objects so unknown fields pass through
3. StackItem is an immutable convenience for building cell contents
4. Every failure is a typed MatrixError carrying an HTTP status
"""

from .base import (
    BAYS, LEVELS, BAY_COUNT, LEVEL_COUNT, CELL_ID_SEPARATOR,
    Cell, BayColumn, Matrix,
    is_valid_bay, is_valid_level, require_bay, require_level,
    cell_identity, utc_now_iso,
)
from .items import StackItem, coerce_items
from .errors import (
    MatrixError, ValidationError, GatewayError, TransportError,
    ServerError, DecodeError, StorageError,
)
from .catalog import (
    SIZE_PRESETS, LENGTH_PRESETS_MM, GRADE_PRESETS, TREATMENT_PRESETS,
    SizePreset, find_size_preset, linear_meters, cubic_meters,
)

__all__ = [
    'BAYS', 'LEVELS', 'BAY_COUNT', 'LEVEL_COUNT', 'CELL_ID_SEPARATOR',
    'Cell', 'BayColumn', 'Matrix',
    'is_valid_bay', 'is_valid_level', 'require_bay', 'require_level',
    'cell_identity', 'utc_now_iso',
    'StackItem', 'coerce_items',
    'MatrixError', 'ValidationError', 'GatewayError', 'TransportError',
    'ServerError', 'DecodeError', 'StorageError',
    'SIZE_PRESETS', 'LENGTH_PRESETS_MM', 'GRADE_PRESETS', 'TREATMENT_PRESETS',
    'SizePreset', 'find_size_preset', 'linear_meters', 'cubic_meters',
]
