"""
Timber Stock Grid Backend

Server side of the timber stock grid: the 13x10 matrix of bays and levels,
the shape normalizer shared with the client, the storage backends that
persist the matrix, and the HTTP API that exposes it.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - Grid identifiers, StackItem, cell identity, typed errors
   - No dependencies on any other layer

2. NORMALIZATION (normalization/)
   - Arbitrary input -> structurally complete Matrix / BayColumn
   - Pure functions, never raise

3. STORAGE (storage/)
   - Memory, JSON document and SQLite backends
   - All-or-nothing bay and matrix replacement

4. API (api/)
   - FastAPI application implementing the matrix wire contract

CONSTRAINTS ENFORCED:
=====================
- Storage only ever persists normalized shapes
- Every response body is a complete 13x10 matrix
- Errors are typed and carry an HTTP status
"""

__version__ = "0.3.0"
