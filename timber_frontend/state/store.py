"""
Matrix Store

Client-held shadow of the authoritative matrix.

STATE MACHINE:
==============
Uninitialized --load_matrix--> Loading --ok--> Ready(error=None)
                                        --fail-> Ready(error=message)
Ready --save_cell / clear_cell / reorder_bay--> Mutating --settle--> Ready

MUTATION PROTOCOL:
==================
1. Validate arguments (ValidationError, nothing else happens)
2. previous = deep copy of the current matrix
3. next = deep copy with the edit applied; committed immediately
4. gateway.replace_bay(bay, next[bay])
5. success -> the returned matrix replaces local state wholesale
6. failure -> previous is restored, `error` is set, the exception re-raised

Steps 1-3 run without yielding to the event loop, so no other operation can
observe a half-applied edit. Mutations are not serialized: two writes to the
same bay race and the last response to arrive is the one adopted.
"""

from __future__ import annotations
from typing import Any, Callable, Iterable, Optional, Sequence, Union
import asyncio
import copy

from timber_backend.contracts.base import (
    BayColumn, Cell, Matrix, require_bay, require_level, utc_now_iso,
)
from timber_backend.contracts.errors import MatrixError, ValidationError
from timber_backend.contracts.items import StackItem, coerce_items
from timber_backend.logging_config import get_logger
from timber_backend.normalization import build_empty_matrix, normalize_matrix

from ..gateway.base import PersistenceGateway
from .reorder import move_to_top as move_cell_to_top, resolve_bay_order
from .users import AuthenticatedUser, UserDirectory

logger = get_logger(__name__)

UNKNOWN_USER = "Unknown user"
LOAD_FAILED = "Failed to load matrix"
SYNC_FAILED = "Failed to sync matrix"


def _message(error: BaseException, fallback: str) -> str:
    if isinstance(error, MatrixError) and error.message:
        return error.message
    return str(error) or fallback


class MatrixStore:
    """
    Optimistic reconciliation engine for the stock matrix.

    One instance per session; pass it to whatever needs the grid. The
    matrix it exposes is always a copy.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        clock: Callable[[], str] = utc_now_iso,
        users: Optional[UserDirectory] = None,
    ):
        self._gateway = gateway
        self._clock = clock
        self._users = users or UserDirectory()

        self._matrix: Matrix = build_empty_matrix()
        self._loading = False
        self._loaded = False
        self._writes_in_flight = 0
        self._error: Optional[str] = None
        self._current_user: Optional[AuthenticatedUser] = None

    # =========================================================================
    # READ-ONLY VIEW
    # =========================================================================

    @property
    def matrix(self) -> Matrix:
        return copy.deepcopy(self._matrix)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def syncing(self) -> bool:
        return self._writes_in_flight > 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def editing_enabled(self) -> bool:
        return self._current_user is not None

    @property
    def current_user(self) -> Optional[AuthenticatedUser]:
        return self._current_user

    def cell(self, bay: str, level: str) -> Optional[Cell]:
        require_bay(bay)
        require_level(level)
        return copy.deepcopy(self._matrix[bay][level])

    def bay_column(self, bay: str) -> BayColumn:
        require_bay(bay)
        return copy.deepcopy(self._matrix[bay])

    # =========================================================================
    # SESSION
    # =========================================================================

    def enable_editing(self, user: AuthenticatedUser) -> None:
        self._current_user = user

    def disable_editing(self) -> None:
        self._current_user = None

    def unlock(self, pin: str) -> AuthenticatedUser:
        """Look up `pin` and enable editing as that user."""
        user = self._users.authenticate(pin)
        if user is None:
            raise ValidationError("Incorrect PIN")
        self.enable_editing(user)
        logger.info("editing enabled", extra={"user": user.display_name})
        return user

    # =========================================================================
    # LOADING
    # =========================================================================

    async def load_matrix(self) -> None:
        """Initial fetch; does nothing once loaded or while loading."""
        if self._loaded or self._loading:
            return
        await self.reload_matrix()

    async def reload_matrix(self) -> None:
        """
        Fetch the full matrix again.

        Failure is recorded in `error` rather than raised; the matrix keeps
        its previous contents.
        """
        self._loading = True
        self._error = None
        try:
            remote = await self._gateway.fetch_full_matrix()
        except Exception as e:
            self._error = _message(e, LOAD_FAILED)
            logger.warning("matrix load failed", extra={"error": self._error})
        else:
            self._matrix = normalize_matrix(remote)
        finally:
            self._loading = False
            self._loaded = True

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def save_cell(
        self,
        bay: str,
        level: str,
        items: Sequence[Union[StackItem, dict]],
        move_to_top: bool = False,
    ) -> None:
        """
        Replace the cell at (bay, level) with `items`.

        With `move_to_top` the saved cell is lifted above every other
        occupied cell of the bay and the bay is re-stacked from L01.
        """
        require_bay(bay)
        require_level(level)
        cell = {
            "bay": bay,
            "level": level,
            "items": coerce_items(items),
            "updated_by": self._actor(),
            "updated_at": self._clock(),
        }

        def apply(matrix: Matrix) -> None:
            matrix[bay][level] = cell
            if move_to_top:
                matrix[bay] = move_cell_to_top(bay, matrix[bay], level)

        await self._mutate("save_cell", bay, apply)

    async def clear_cell(self, bay: str, level: str) -> None:
        """Empty the cell at (bay, level)."""
        require_bay(bay)
        require_level(level)

        def apply(matrix: Matrix) -> None:
            matrix[bay][level] = None

        await self._mutate("clear_cell", bay, apply)

    async def reorder_bay(self, bay: str, ordered_identities: Iterable[str]) -> None:
        """
        Re-stack the occupied cells of `bay`, bottom to top, in the order of
        `ordered_identities`. Cells not named keep their relative order
        above the named ones.
        """
        require_bay(bay)
        if isinstance(ordered_identities, str):
            raise ValidationError("ordered_identities must be a sequence of identities")
        identities = list(ordered_identities)

        def apply(matrix: Matrix) -> None:
            matrix[bay] = resolve_bay_order(bay, matrix[bay], identities)

        await self._mutate("reorder_bay", bay, apply)

    async def _mutate(self, operation: str, bay: str, apply: Callable[[Matrix], Any]) -> None:
        # only `bay` is written, so only `bay` is restored on failure
        previous = copy.deepcopy(self._matrix[bay])
        next_matrix = copy.deepcopy(self._matrix)
        apply(next_matrix)
        self._matrix = next_matrix

        self._writes_in_flight += 1
        self._error = None
        try:
            remote = await self._gateway.replace_bay(bay, copy.deepcopy(next_matrix[bay]))
        except asyncio.CancelledError:
            self._matrix[bay] = previous
            logger.warning("sync cancelled, rolled back", extra={"operation": operation, "bay": bay})
            raise
        except Exception as e:
            self._matrix[bay] = previous
            self._error = _message(e, SYNC_FAILED)
            logger.warning(
                "sync failed, rolled back",
                extra={"operation": operation, "bay": bay, "error": self._error},
            )
            raise
        else:
            self._matrix = normalize_matrix(remote)
            logger.debug("server matrix adopted", extra={"operation": operation, "bay": bay})
        finally:
            self._writes_in_flight -= 1

    def _actor(self) -> str:
        if self._current_user is None:
            return UNKNOWN_USER
        return self._current_user.display_name
