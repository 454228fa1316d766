from __future__ import annotations
from typing import Any

from timber_backend.contracts.base import Matrix


class PersistenceGateway:
    """
    Abstract gateway interface.

    Implementations talk to the matrix store over HTTP or in-process and
    keep the same full-replacement semantics.
    """

    async def fetch_full_matrix(self) -> Matrix:
        """Return the complete, normalized, authoritative matrix."""
        raise NotImplementedError

    async def replace_bay(self, bay: str, levels: Any) -> Matrix:
        """
        Replace every level of `bay` and return the resulting matrix.

        Levels missing from `levels` become null for that bay.
        """
        raise NotImplementedError

    async def replace_matrix(self, matrix: Matrix) -> Matrix:
        """Replace every bay and return the resulting matrix."""
        raise NotImplementedError
