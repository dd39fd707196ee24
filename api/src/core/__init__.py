"""Service infrastructure: log context, structlog setup, Cassandra and Redis."""
