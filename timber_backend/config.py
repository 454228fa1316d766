"""
Server Configuration

Environment-driven settings for the matrix API, read once at startup.

ENVIRONMENT:
============
TIMBER_STORAGE_BACKEND   memory | file | sqlite       (default: file)
TIMBER_STORAGE_PATH      path of the JSON document or SQLite database
TIMBER_STORAGE_AREA      area id for the relational layout (default: default)
TIMBER_ALLOW_ORIGIN      CORS origin (default: *)
TIMBER_SERVER_HOST       bind address (default: 0.0.0.0)
TIMBER_SERVER_PORT       port (default: 4000)
TIMBER_LOG_LEVEL         logging level name (default: INFO)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Optional
import os

from .storage import MatrixStorageConfig


_DEFAULT_PATHS = {
    "file": os.path.join("data", "matrix.json"),
    "sqlite": os.path.join("data", "matrix.sqlite3"),
}


@dataclass
class ServerConfig:
    """Unified configuration for the API server."""
    storage: MatrixStorageConfig = field(default_factory=lambda: MatrixStorageConfig(backend_type="file"))
    allow_origin: str = "*"
    host: str = "0.0.0.0"
    port: int = 4000
    log_level: str = "INFO"
    max_body_bytes: int = 1_000_000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'ServerConfig':
        env = os.environ if environ is None else environ

        backend_type = env.get("TIMBER_STORAGE_BACKEND", "file")
        storage = MatrixStorageConfig(
            backend_type=backend_type,
            storage_path=env.get("TIMBER_STORAGE_PATH") or _DEFAULT_PATHS.get(backend_type),
            area_id=env.get("TIMBER_STORAGE_AREA", "default"),
        )

        try:
            port = int(env.get("TIMBER_SERVER_PORT", "4000"))
        except ValueError:
            port = 4000

        return cls(
            storage=storage,
            allow_origin=env.get("TIMBER_ALLOW_ORIGIN", "*"),
            host=env.get("TIMBER_SERVER_HOST", "0.0.0.0"),
            port=port,
            log_level=env.get("TIMBER_LOG_LEVEL", "INFO"),
        )
