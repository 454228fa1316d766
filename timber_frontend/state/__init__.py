"""
State Layer

The MatrixStore owns the client's copy of the stock matrix. All edits go
through it; everything else reads copies.
"""

from .reorder import occupied_cells, stack_cells, resolve_bay_order, move_to_top
from .store import MatrixStore, UNKNOWN_USER
from .users import AuthenticatedUser, UserRecord, UserDirectory, DEFAULT_USERS

__all__ = [
    'occupied_cells', 'stack_cells', 'resolve_bay_order', 'move_to_top',
    'MatrixStore', 'UNKNOWN_USER',
    'AuthenticatedUser', 'UserRecord', 'UserDirectory', 'DEFAULT_USERS',
]
