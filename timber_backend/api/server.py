"""
Timber Stock Grid: Matrix API Server
====================================

HTTP surface of the matrix store. Every successful response body is the
complete, normalized 13x10 matrix.

Endpoints:
- GET   /healthz -> {"status": "ok"}
- GET   /matrix  -> full matrix
- PATCH /matrix  -> replace one bay   body {"bay": "B01", "levels": {...}}
- PUT   /matrix  -> replace every bay body {bay: {level: cell|null}}

Errors are always {"error": "<message>"}.

Usage:
    uvicorn timber_backend.api.server:app --port 4000
"""
import json
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..config import ServerConfig
from ..contracts.base import is_valid_bay
from ..contracts.errors import MatrixError, StorageError, ValidationError
from ..logging_config import get_logger
from ..storage import MatrixStorageEngine

logger = get_logger(__name__)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class BayReplaceRequest(BaseModel):
    """Body of PATCH /matrix."""
    bay: str
    levels: Optional[Dict[str, Any]] = None


class PayloadTooLarge(MatrixError):
    default_status = 413


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app(
    config: Optional[ServerConfig] = None,
    storage: Optional[MatrixStorageEngine] = None,
) -> FastAPI:
    """
    Build the API application.

    When `storage` is given it is used as-is; otherwise one is created from
    `config.storage` on startup and closed on shutdown.
    """
    config = config or ServerConfig.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.storage is None
        if owned:
            logger.info(
                "initializing matrix storage",
                extra={
                    "backend_type": config.storage.backend_type,
                    "storage_path": config.storage.storage_path,
                },
            )
            app.state.storage = MatrixStorageEngine(config.storage)
        yield
        if owned:
            logger.info("closing matrix storage")
            app.state.storage.close()
            app.state.storage = None

    app = FastAPI(
        title="Timber Stock Grid API",
        version="0.3.0",
        description="Bay/level stock matrix for the timber floor",
        lifespan=lifespan,
    )
    app.state.storage = storage
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.allow_origin],
        allow_methods=["GET", "PUT", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    _register_error_handlers(app)
    _register_routes(app)
    return app


# =============================================================================
# ERROR HANDLERS
# =============================================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(MatrixError)
    async def matrix_error_handler(request: Request, exc: MatrixError):
        if isinstance(exc, StorageError) or (exc.status_code or 500) >= 500:
            logger.error(
                "matrix API error",
                exc_info=exc,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "context": dict(exc.context),
                },
            )
            return _error(500, "Internal server error")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, "Not found")
        if exc.status_code == 405:
            response = _error(405, "Method not allowed")
            allow = (exc.headers or {}).get("Allow")
            if allow:
                response.headers["Allow"] = allow
            return response
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(
            "unexpected matrix API failure",
            extra={"method": request.method, "path": request.url.path},
        )
        return _error(500, "Internal server error")


async def _read_json(request: Request) -> Any:
    """Parse the request body; empty bodies parse to None."""
    limit = request.app.state.config.max_body_bytes
    raw = await request.body()
    if len(raw) > limit:
        raise PayloadTooLarge("Payload too large")
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Invalid JSON")


_MISSING_BAY = (None, "", 0, False)


def _storage(request: Request) -> MatrixStorageEngine:
    return request.app.state.storage


# =============================================================================
# ENDPOINTS
# =============================================================================

def _register_routes(app: FastAPI) -> None:

    @app.get("/healthz")
    async def health_check():
        """System status."""
        return {"status": "ok"}

    @app.get("/matrix")
    async def get_matrix(request: Request):
        """Full, normalized matrix."""
        return await run_in_threadpool(_storage(request).get_matrix)

    @app.patch("/matrix")
    async def replace_bay(request: Request):
        """
        Replace every level of one bay.

        Levels absent from `levels` become null for that bay.
        """
        payload = await _read_json(request)
        if not isinstance(payload, dict) or payload.get("bay") in _MISSING_BAY:
            raise ValidationError("Invalid bay payload")
        # any present bay outside BAYS, whatever its JSON type
        if not is_valid_bay(payload["bay"]):
            raise ValidationError("Bay is out of range")
        try:
            body = BayReplaceRequest.model_validate(payload)
        except PydanticValidationError:
            raise ValidationError("Invalid bay payload")

        return await run_in_threadpool(_storage(request).replace_bay, body.bay, body.levels)

    @app.put("/matrix")
    async def replace_matrix(request: Request):
        """Replace every bay atomically."""
        payload = await _read_json(request)
        if not isinstance(payload, dict):
            raise ValidationError("Matrix payload must be an object")
        return await run_in_threadpool(_storage(request).replace_matrix, payload)


app = create_app()
