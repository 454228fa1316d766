"""
Test Fixtures

Fixed timestamps, stock items and a scriptable gateway. Everything here is
deterministic - no random generation.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
import asyncio
import copy
import itertools

from timber_backend.contracts import StackItem
from timber_backend.contracts.base import Matrix
from timber_backend.normalization import build_empty_matrix
from timber_backend.storage import InMemoryStorageBackend, MatrixStorageEngine
from timber_frontend.gateway import LocalMatrixGateway, PersistenceGateway


# =============================================================================
# FIXED TIMESTAMPS (deterministic)
# =============================================================================

T0 = datetime(2026, 3, 2, 7, 0, 0, tzinfo=timezone.utc)


def iso(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_clock(start: datetime = T0) -> Callable[[], str]:
    """A clock that advances one second per call."""
    ticks = itertools.count()

    def clock() -> str:
        return iso(start + timedelta(seconds=next(ticks)))

    return clock


# =============================================================================
# STOCK ITEMS
# =============================================================================

def item_45x90(pieces: int = 4, length_mm: int = 12000) -> dict:
    return {
        "size_id": "45x90",
        "width_mm": 90,
        "thickness_mm": 45,
        "length_mm": length_mm,
        "pieces": pieces,
    }


def item_90x300(pieces: int = 2, bundle_id: str = "BN-300") -> dict:
    return StackItem(
        size_id="90x300",
        width_mm=300,
        thickness_mm=90,
        length_mm=6000,
        pieces=pieces,
        grade="LVL13",
        treatment="H1.2",
        bundle_id=bundle_id,
    ).to_dict()


def make_cell(bay: str, level: str, items: List[dict], updated_at: str, **extra) -> dict:
    cell = {
        "bay": bay,
        "level": level,
        "items": items,
        "updated_by": "Seed (Fixture)",
        "updated_at": updated_at,
    }
    cell.update(extra)
    return cell


def stacked_bay_matrix(bay: str = "B01") -> Matrix:
    """Matrix with three distinct cells on L01..L03 of `bay`."""
    matrix = build_empty_matrix()
    matrix[bay]["L01"] = make_cell(bay, "L01", [item_45x90(pieces=1)], iso(T0), bundle="first")
    matrix[bay]["L02"] = make_cell(bay, "L02", [item_45x90(pieces=2)], iso(T0 + timedelta(minutes=1)), bundle="second")
    matrix[bay]["L03"] = make_cell(bay, "L03", [item_90x300(pieces=3)], iso(T0 + timedelta(minutes=2)), bundle="third")
    return matrix


# =============================================================================
# SCRIPTED GATEWAY
# =============================================================================

class ScriptedGateway(PersistenceGateway):
    """
    In-process gateway with scripted failures and optional gates.

    `failures` are raised by the next calls, first in first out.
    `gates` are awaited by the next replace_bay calls before they run.
    """

    def __init__(self, initial: Optional[Matrix] = None):
        self.storage = MatrixStorageEngine(backend=InMemoryStorageBackend(initial))
        self._local = LocalMatrixGateway(self.storage)
        self.failures: List[BaseException] = []
        self.gates: List[asyncio.Event] = []
        self.calls: List[tuple] = []

    def _maybe_fail(self) -> None:
        if self.failures:
            raise self.failures.pop(0)

    async def fetch_full_matrix(self) -> Matrix:
        self.calls.append(("fetch",))
        self._maybe_fail()
        return await self._local.fetch_full_matrix()

    async def replace_bay(self, bay, levels) -> Matrix:
        self.calls.append(("replace_bay", bay, copy.deepcopy(levels)))
        if self.gates:
            gate = self.gates.pop(0)
            await gate.wait()
        self._maybe_fail()
        return await self._local.replace_bay(bay, levels)

    async def replace_matrix(self, matrix) -> Matrix:
        self.calls.append(("replace_matrix",))
        self._maybe_fail()
        return await self._local.replace_matrix(matrix)

    def replace_bay_calls(self) -> List[tuple]:
        return [c for c in self.calls if c[0] == "replace_bay"]
