"""
Typed Error Hierarchy

Every failure the grid can produce is one of these classes. Callers catch by
type, not by message text.

    MatrixError (base)
    |
    +-- ValidationError      caller supplied an invalid argument
    |
    +-- GatewayError         a remote call to the matrix API failed
    |   +-- TransportError   network failure or timeout
    |   +-- ServerError      API reachable, non-success status
    |   +-- DecodeError      response body was not a JSON object
    |
    +-- StorageError         storage backend failure on the server

ERROR STATES:
=============
Each error carries a machine-readable `code`, a human `message` suitable for
display, an optional HTTP `status_code`, and key/value `context`.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional, Tuple


class ErrorCode(Enum):
    """Explicit error codes. No silent fallbacks."""
    INVALID_ARGUMENT = "invalid_argument"
    TRANSPORT_FAILURE = "transport_failure"
    SERVER_FAILURE = "server_failure"
    MALFORMED_RESPONSE = "malformed_response"
    STORAGE_FAILURE = "storage_failure"


class MatrixError(Exception):
    """Base class for all stock grid errors."""

    code: ErrorCode = ErrorCode.SERVER_FAILURE
    default_status: Optional[int] = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        context: Tuple[Tuple[str, str], ...] = (),
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        self.context = context

    def to_dict(self) -> dict:
        """Wire form of the error."""
        return {"error": self.message}


class ValidationError(MatrixError):
    """Structurally invalid argument; never reaches the gateway."""
    code = ErrorCode.INVALID_ARGUMENT
    default_status = 400


class GatewayError(MatrixError):
    """A call to the persistence gateway failed."""


class TransportError(GatewayError):
    """The gateway could not be reached."""
    code = ErrorCode.TRANSPORT_FAILURE
    default_status = None


class ServerError(GatewayError):
    """The gateway answered with a non-success status."""
    code = ErrorCode.SERVER_FAILURE


class DecodeError(GatewayError):
    """The gateway answered with a body that is not a JSON object."""
    code = ErrorCode.MALFORMED_RESPONSE
    default_status = 502


class StorageError(MatrixError):
    """Backend storage failed while reading or writing the matrix."""
    code = ErrorCode.STORAGE_FAILURE
