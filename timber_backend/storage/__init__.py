"""
Matrix Storage Layer

RESPONSIBILITY: Durable persistence of the stock matrix
ALLOWED INPUTS: Normalized Matrix / BayColumn values
OUTPUTS: The complete, normalized, authoritative Matrix after every call

WHAT THIS LAYER MUST NOT DO:
============================
- Merge a bay write with the cells already stored (writes replace)
- Leave a bay half written when a call fails
- Return a matrix that has not been through the normalizer

BOUNDARY ENFORCEMENT:
=====================
- Backends only see normalized shapes
- The engine serializes every read-modify-write under one lock
- Unexpected backend failures surface as StorageError

BACKENDS:
=========
1. InMemoryStorageBackend  - reference implementation, used in tests
2. JsonFileStorageBackend  - one JSON document, bay -> level -> cell
3. SqliteStorageBackend    - stock_cells + stock_items tables
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Callable, Optional
import copy
import json
import os
import sqlite3
import tempfile
import threading

from ..contracts.base import BAYS, LEVELS, BayColumn, Matrix, require_bay, utc_now_iso
from ..contracts.errors import MatrixError, StorageError, ValidationError
from ..logging_config import get_logger
from ..normalization import (
    build_empty_matrix, normalize_bay, normalize_matrix, count_occupied,
)

logger = get_logger(__name__)


# =============================================================================
# STORAGE INTERFACES (Dependency Inversion)
# =============================================================================

class MatrixStorageBackend:
    """
    Abstract storage backend interface.

    Implementations may use different storage systems (memory, file,
    database) while keeping the same full-replacement semantics.
    """

    def read_matrix(self) -> Matrix:
        """Read the full matrix. May return a partial shape; the engine normalizes."""
        raise NotImplementedError

    def write_bay(self, bay: str, column: BayColumn) -> None:
        """Replace every level of one bay with `column`."""
        raise NotImplementedError

    def write_matrix(self, matrix: Matrix) -> None:
        """Replace every bay."""
        raise NotImplementedError

    def close(self) -> None:
        """Release any held resources."""


# =============================================================================
# IN-MEMORY STORAGE BACKEND (Reference Implementation)
# =============================================================================

class InMemoryStorageBackend(MatrixStorageBackend):
    """
    In-memory implementation of the storage backend.

    Keeps a private deep copy so callers never alias stored state.
    """

    def __init__(self, initial: Optional[Matrix] = None):
        self._matrix: Matrix = normalize_matrix(copy.deepcopy(initial))

    def read_matrix(self) -> Matrix:
        return copy.deepcopy(self._matrix)

    def write_bay(self, bay: str, column: BayColumn) -> None:
        self._matrix[bay] = copy.deepcopy(column)

    def write_matrix(self, matrix: Matrix) -> None:
        self._matrix = copy.deepcopy(matrix)


# =============================================================================
# FILE-BASED STORAGE BACKEND
# =============================================================================

class JsonFileStorageBackend(MatrixStorageBackend):
    """
    Single JSON document storage.

    The document is created as an all-null matrix on first read. Writes go
    to a temporary file in the same directory which then replaces the
    document, so readers never see a partial write.
    """

    def __init__(self, path: str):
        self._path = path
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)

    @property
    def path(self) -> str:
        return self._path

    def read_matrix(self) -> Matrix:
        if not os.path.exists(self._path):
            matrix = build_empty_matrix()
            self._write_document(matrix)
            return matrix
        with open(self._path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def write_bay(self, bay: str, column: BayColumn) -> None:
        matrix = normalize_matrix(self.read_matrix())
        matrix[bay] = column
        self._write_document(matrix)

    def write_matrix(self, matrix: Matrix) -> None:
        self._write_document(matrix)

    def _write_document(self, matrix: Matrix) -> None:
        directory = os.path.dirname(os.path.abspath(self._path))
        fd, tmp_path = tempfile.mkstemp(prefix=".matrix-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(matrix, f, indent=2)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


# =============================================================================
# RELATIONAL STORAGE BACKEND
# =============================================================================

_ITEM_COLUMNS = (
    "size_id", "width_mm", "thickness_mm", "length_mm", "grade",
    "treatment", "pieces", "bundle_id", "notes", "position",
)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS stock_cells (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    area_id TEXT NOT NULL,
    bay_code TEXT NOT NULL,
    level_code TEXT NOT NULL,
    locked INTEGER NOT NULL DEFAULT 0,
    updated_by TEXT,
    updated_at TEXT NOT NULL,
    UNIQUE (area_id, bay_code, level_code)
);
CREATE TABLE IF NOT EXISTS stock_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    cell_id INTEGER NOT NULL REFERENCES stock_cells(id) ON DELETE CASCADE,
    size_id TEXT,
    width_mm NUMERIC,
    thickness_mm NUMERIC,
    length_mm NUMERIC,
    grade TEXT,
    treatment TEXT,
    pieces INTEGER,
    bundle_id TEXT,
    notes TEXT,
    position INTEGER
);
"""


class SqliteStorageBackend(MatrixStorageBackend):
    """
    Two-table relational storage.

    stock_cells is keyed by (area_id, bay_code, level_code); stock_items
    references its cell. Cell and item `id`s are assigned by the database and
    read back with each row; items also carry their `cell_id`. Item fields
    outside the stock_items columns are not persisted. Dimensions use NUMERIC
    affinity so whole millimetres come back as integers.
    """

    def __init__(
        self,
        path: str = ":memory:",
        area_id: str = "default",
        clock: Callable[[], str] = utc_now_iso,
    ):
        self._area_id = area_id
        self._clock = clock
        if path != ":memory:":
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def read_matrix(self) -> Matrix:
        matrix = build_empty_matrix()
        cells = self._conn.execute(
            "SELECT id, area_id, bay_code, level_code, locked, updated_by, updated_at "
            "FROM stock_cells WHERE area_id = ?",
            (self._area_id,),
        ).fetchall()
        if not cells:
            return matrix

        items_by_cell = {}
        rows = self._conn.execute(
            "SELECT stock_items.* FROM stock_items "
            "JOIN stock_cells ON stock_cells.id = stock_items.cell_id "
            "WHERE stock_cells.area_id = ? ORDER BY stock_items.id",
            (self._area_id,),
        ).fetchall()
        for row in rows:
            item = {"id": row["id"], "cell_id": row["cell_id"]}
            item.update((key, row[key]) for key in _ITEM_COLUMNS if row[key] is not None)
            items_by_cell.setdefault(row["cell_id"], []).append(item)

        for row in cells:
            bay, level = row["bay_code"], row["level_code"]
            if bay not in matrix or level not in matrix[bay]:
                continue
            matrix[bay][level] = {
                "id": row["id"],
                "bay": bay,
                "level": level,
                "area_id": row["area_id"],
                "locked": bool(row["locked"]),
                "updated_by": row["updated_by"],
                "updated_at": row["updated_at"],
                "items": items_by_cell.get(row["id"], []),
            }
        return matrix

    def write_bay(self, bay: str, column: BayColumn) -> None:
        with self._conn:
            self._delete_cells("AND bay_code = ?", (bay,))
            self._insert_column(bay, column)

    def write_matrix(self, matrix: Matrix) -> None:
        with self._conn:
            self._delete_cells("", ())
            for bay in BAYS:
                self._insert_column(bay, matrix[bay])

    def close(self) -> None:
        self._conn.close()

    def _delete_cells(self, clause: str, params: tuple) -> None:
        # items go with their cells (ON DELETE CASCADE)
        self._conn.execute(
            f"DELETE FROM stock_cells WHERE area_id = ? {clause}",
            (self._area_id,) + params,
        )

    def _insert_column(self, bay: str, column: BayColumn) -> None:
        for level in LEVELS:
            cell = column.get(level)
            if not cell:
                continue
            cursor = self._conn.execute(
                "INSERT INTO stock_cells (area_id, bay_code, level_code, locked, updated_by, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    self._area_id, bay, level,
                    1 if cell.get("locked") else 0,
                    cell.get("updated_by"),
                    cell.get("updated_at") or self._clock(),
                ),
            )
            cell_id = cursor.lastrowid
            rows = [
                (cell_id,) + tuple(_item_value(item, key) for key in _ITEM_COLUMNS)
                for item in cell.get("items", [])
                if isinstance(item, dict)
            ]
            if rows:
                self._conn.executemany(
                    f"INSERT INTO stock_items (cell_id, {', '.join(_ITEM_COLUMNS)}) "
                    f"VALUES (?, {', '.join('?' for _ in _ITEM_COLUMNS)})",
                    rows,
                )


def _item_value(item: dict, key: str) -> Any:
    value = item.get(key)
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


# =============================================================================
# MATRIX STORAGE ENGINE (Orchestrates storage operations)
# =============================================================================

@dataclass
class MatrixStorageConfig:
    """Configuration for matrix storage."""
    backend_type: str = "memory"  # "memory", "file" or "sqlite"
    storage_path: Optional[str] = None
    area_id: str = "default"


class MatrixStorageEngine:
    """
    Matrix Storage Engine.

    BOUNDARY ENFORCEMENT:
    - Normalizes before every write and after every read
    - Each call is all-or-nothing under a single lock
    - Returns the authoritative matrix after every write
    """

    def __init__(
        self,
        config: Optional[MatrixStorageConfig] = None,
        backend: Optional[MatrixStorageBackend] = None,
    ):
        self._config = config or MatrixStorageConfig()
        self._backend = backend or self._create_backend()
        self._lock = threading.Lock()

    def _create_backend(self) -> MatrixStorageBackend:
        """Create storage backend based on configuration."""
        backend_type = self._config.backend_type
        path = self._config.storage_path
        if backend_type == "file":
            return JsonFileStorageBackend(path or os.path.join("data", "matrix.json"))
        if backend_type == "sqlite":
            return SqliteStorageBackend(path or ":memory:", area_id=self._config.area_id)
        if backend_type != "memory":
            raise ValueError(f"Unknown storage backend: {backend_type}")
        return InMemoryStorageBackend()

    @property
    def backend(self) -> MatrixStorageBackend:
        """Access to the underlying storage backend."""
        return self._backend

    def get_matrix(self) -> Matrix:
        """Read the full, normalized matrix."""
        with self._lock:
            return self._guarded("read", self._read)

    def replace_bay(self, bay: Any, levels: Any) -> Matrix:
        """
        Replace every level of `bay` with `levels`.

        Levels missing from `levels` become null. Returns the full matrix
        as stored after the write.
        """
        require_bay(bay)
        column = normalize_bay(bay, levels)

        def write() -> Matrix:
            self._backend.write_bay(bay, column)
            return self._read()

        with self._lock:
            matrix = self._guarded("write_bay", write)
        logger.info(
            "bay replaced",
            extra={"bay": bay, "occupied": sum(1 for c in column.values() if c)},
        )
        return matrix

    def replace_matrix(self, payload: Any) -> Matrix:
        """Replace every bay at once with a normalized copy of `payload`."""
        if not isinstance(payload, dict):
            raise ValidationError("Matrix payload must be an object")
        matrix = normalize_matrix(payload)

        def write() -> Matrix:
            self._backend.write_matrix(matrix)
            return self._read()

        with self._lock:
            stored = self._guarded("write_matrix", write)
        logger.info("matrix replaced", extra={"occupied": count_occupied(stored)})
        return stored

    def close(self) -> None:
        self._backend.close()

    def _read(self) -> Matrix:
        return normalize_matrix(self._backend.read_matrix())

    def _guarded(self, action: str, operation: Callable[[], Matrix]) -> Matrix:
        try:
            return operation()
        except MatrixError:
            raise
        except (OSError, ValueError, sqlite3.Error) as e:
            raise StorageError(
                f"Storage {action} failed: {e}",
                context=(("action", action),),
            ) from e


__all__ = [
    'MatrixStorageBackend', 'InMemoryStorageBackend', 'JsonFileStorageBackend',
    'SqliteStorageBackend', 'MatrixStorageConfig', 'MatrixStorageEngine',
]
