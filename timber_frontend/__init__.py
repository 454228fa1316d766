"""
Timber Stock Grid Client

Client-side state for the stock grid. The matrix lives in a MatrixStore
that applies edits locally first, pushes the affected bay through a
PersistenceGateway, and then adopts whatever the server says is true.

PRINCIPLES:
1. The server is authoritative; local state is an optimistic shadow
2. Every write is bay-scoped and either commits or rolls back
3. Readers get copies; only the store mutates the matrix
"""
