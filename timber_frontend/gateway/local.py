from __future__ import annotations
import asyncio
from typing import Any, Callable

from timber_backend.contracts.base import Matrix, require_bay
from timber_backend.contracts.errors import MatrixError, ServerError, ValidationError
from timber_backend.normalization import normalize_matrix
from timber_backend.storage import MatrixStorageEngine

from .base import PersistenceGateway


class LocalMatrixGateway(PersistenceGateway):
    """
    Gateway over a MatrixStorageEngine in the same process.

    Storage failures surface as ServerError the same way the HTTP API would
    report them.
    """

    def __init__(self, storage: MatrixStorageEngine):
        self._storage = storage

    @property
    def storage(self) -> MatrixStorageEngine:
        return self._storage

    async def fetch_full_matrix(self) -> Matrix:
        return await self._call(self._storage.get_matrix)

    async def replace_bay(self, bay: str, levels: Any) -> Matrix:
        require_bay(bay)
        return await self._call(self._storage.replace_bay, bay, levels)

    async def replace_matrix(self, matrix: Matrix) -> Matrix:
        return await self._call(self._storage.replace_matrix, matrix)

    async def _call(self, operation: Callable[..., Matrix], *args: Any) -> Matrix:
        # storage blocks on file and SQLite I/O
        try:
            return normalize_matrix(await asyncio.to_thread(operation, *args))
        except ValidationError:
            raise
        except MatrixError as e:
            raise ServerError(e.message, status_code=e.status_code or 500) from e
        except Exception as e:
            raise ServerError("Internal server error", status_code=500) from e
