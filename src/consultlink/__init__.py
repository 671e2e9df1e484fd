"""
ConsultLink - Connection lifecycle service for consultants and clients.

Uses Hexagonal Architecture: the domain layer owns the connection state
machine, infrastructure provides SQL storage, adapters expose a CLI.
"""

__version__ = "1.0.0"
