"""
Domain layer - Pure business logic with no external dependencies.

This layer contains:
- Domain models (participant references, connections, listings)
- Domain services (connection lifecycle, projections)
- Repository interfaces (ports)
- Domain exceptions

IMPORTANT: This layer must NOT depend on the application layer or on storage
adapters. The shared logger is the only infrastructure it uses.
Only the lifecycle service may change the status of a connection.
"""
