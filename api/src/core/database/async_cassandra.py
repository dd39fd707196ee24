"""Cassandra session for progress rows and the video catalog.

Uses cassandra-asyncio-driver so services can ``await session.aexecute()``
without blocking the event loop. The keyspace and tables are created at
startup; statements live next to the models that own them.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from src.config.settings import Settings, get_settings
from src.progress.models import PROGRESS_TABLES_CQL
from src.video.models import VIDEOS_TABLES_CQL


logger = structlog.get_logger(__name__)

# Created in order; progress rows reference catalog video ids
SCHEMA_GROUPS: dict[str, list[str]] = {
    "videos": VIDEOS_TABLES_CQL,
    "progress": PROGRESS_TABLES_CQL,
}


def build_cluster(settings: Settings) -> Cluster:
    """Create a cluster object from settings without connecting."""
    auth_provider = None
    if settings.cassandra_username and settings.cassandra_password:
        auth_provider = PlainTextAuthProvider(
            username=settings.cassandra_username,
            password=settings.cassandra_password,
        )

    return Cluster(
        contact_points=settings.cassandra_hosts,
        port=settings.cassandra_port,
        auth_provider=auth_provider,
        protocol_version=settings.cassandra_protocol_version,
        load_balancing_policy=TokenAwarePolicy(
            DCAwareRoundRobinPolicy(local_dc=settings.cassandra_datacenter)
        ),
        connect_timeout=settings.cassandra_connect_timeout,
    )


def keyspace_cql(keyspace: str, replication: dict[str, str | int]) -> str:
    """Render CREATE KEYSPACE for a replication map."""
    options = ", ".join(
        f"'{key}': {value}" if isinstance(value, int) else f"'{key}': '{value}'"
        for key, value in replication.items()
    )
    return (
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {{{options}}} AND durable_writes = true"
    )


class AsyncCassandraConnection:
    """Process-wide cluster and session holder."""

    _cluster: Cluster | None = None
    _session = None  # cassandra_asyncio Session

    @classmethod
    def connect(cls):
        """Connect once and return the session.

        Raises:
            ConnectionError: If no contact point answers
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()
        cls._cluster = build_cluster(settings)

        try:
            cls._session = cls._cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cls._cluster = None
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        cls._session.default_timeout = settings.cassandra_request_timeout
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return cls._session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")


async def create_schema(session, settings: Settings) -> None:
    """Create the keyspace and every table group if missing."""
    keyspace = settings.cassandra_keyspace
    await session.aexecute(keyspace_cql(keyspace, settings.cassandra_replication))
    session.set_keyspace(keyspace)

    for group, statements in SCHEMA_GROUPS.items():
        for statement in statements:
            await session.aexecute(statement.format(keyspace=keyspace))
        logger.debug("cassandra_tables_ready", group=group, keyspace=keyspace)


async def init_async_cassandra():
    """Connect and make sure the schema exists.

    Returns:
        Session with aexecute() support
    """
    settings = get_settings()
    session = AsyncCassandraConnection.connect()
    await create_schema(session, settings)
    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
