"""
HTTP Matrix Gateway

Talks to the matrix API with httpx.

WIRE CONTRACT:
==============
GET   /matrix                              -> matrix
PATCH /matrix  {"bay": ..., "levels": ...} -> matrix
PUT   /matrix  matrix                      -> matrix
non-2xx                                    -> {"error": "..."}
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional
import json
import os

import httpx

from timber_backend.contracts.base import Matrix, require_bay
from timber_backend.contracts.errors import DecodeError, ServerError, TransportError
from timber_backend.logging_config import get_logger
from timber_backend.normalization import normalize_matrix

from .base import PersistenceGateway

logger = get_logger(__name__)


@dataclass(frozen=True)
class GatewayConfig:
    """Where the matrix API lives and how long to wait for it."""
    base_url: str = "http://localhost:4000"
    timeout: float = 10.0
    user_agent: str = "TimberStockGrid/0.3"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'GatewayConfig':
        env = os.environ if environ is None else environ
        try:
            timeout = float(env.get("TIMBER_MATRIX_API_TIMEOUT", "10"))
        except ValueError:
            timeout = 10.0
        return cls(
            base_url=env.get("TIMBER_MATRIX_API_URL", "http://localhost:4000"),
            timeout=timeout,
        )


class HttpMatrixGateway(PersistenceGateway):
    """
    Gateway over the HTTP API.

    Pass `client` to reuse a connection pool (or a mock transport); otherwise
    a short-lived AsyncClient is opened per call.
    """

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._config = config or GatewayConfig.from_env()
        self._client = client

    @property
    def config(self) -> GatewayConfig:
        return self._config

    async def fetch_full_matrix(self) -> Matrix:
        return await self._request("GET", "/matrix")

    async def replace_bay(self, bay: str, levels: Any) -> Matrix:
        require_bay(bay)
        return await self._request("PATCH", "/matrix", {"bay": bay, "levels": levels})

    async def replace_matrix(self, matrix: Matrix) -> Matrix:
        return await self._request("PUT", "/matrix", matrix)

    async def _request(self, method: str, path: str, body: Any = None) -> Matrix:
        url = f"{self._config.base_url.rstrip('/')}{path}"
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self._config.user_agent,
        }
        content = json.dumps(body) if body is not None else None

        try:
            if self._client is not None:
                response = await self._client.request(method, url, content=content, headers=headers)
            else:
                async with httpx.AsyncClient(timeout=self._config.timeout) as client:
                    response = await client.request(method, url, content=content, headers=headers)
        except httpx.TimeoutException as e:
            raise TransportError(f"Request to {path} timed out") from e
        except httpx.TransportError as e:
            raise TransportError(f"Could not reach matrix API: {e}") from e

        data, decoded = _decode(response)

        if not response.is_success:
            message = None
            if decoded and isinstance(data, dict) and isinstance(data.get("error"), str):
                message = data["error"]
            message = message or response.reason_phrase or "Request failed"
            logger.debug(
                "matrix API rejected request",
                extra={"method": method, "status": response.status_code, "error": message},
            )
            raise ServerError(message, status_code=response.status_code)

        if not decoded or not isinstance(data, dict):
            raise DecodeError("Matrix API returned a malformed response", status_code=response.status_code)

        return normalize_matrix(data)


def _decode(response: httpx.Response):
    """Return (data, ok); empty bodies decode to None."""
    text = response.text
    if not text:
        return None, True
    try:
        return json.loads(text), True
    except ValueError:
        return None, False
