"""Cassandra session lifecycle and schema creation."""

from src.core.database.async_cassandra import (
    init_async_cassandra,
    shutdown_async_cassandra,
)


__all__ = [
    "init_async_cassandra",
    "shutdown_async_cassandra",
]
