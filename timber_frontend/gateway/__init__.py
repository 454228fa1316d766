"""
Persistence Gateway

Boundary between the client store and the authoritative matrix store.

GUARANTEES:
===========
1. Every returned matrix has been through the normalizer
2. An invalid bay is rejected before any I/O happens
3. Failures are typed: TransportError, ServerError, DecodeError
4. Each call is all-or-nothing; rollback is the caller's job
"""

from .base import PersistenceGateway
from .http import GatewayConfig, HttpMatrixGateway
from .local import LocalMatrixGateway

__all__ = [
    'PersistenceGateway', 'GatewayConfig', 'HttpMatrixGateway', 'LocalMatrixGateway',
]
