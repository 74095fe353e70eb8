"""Cassandra session lifecycle and schema bootstrap.

The session comes from cassandra-asyncio-driver, so repositories await
`session.aexecute()`. Enrollment counters, enrollment rows and progress
high-water marks are written with lightweight transactions; all tables
share one keyspace.
"""

import structlog
from cassandra.auth import PlainTextAuthProvider
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra_asyncio.cluster import Cluster

from academy_core.catalog.models import CATALOG_TABLES_CQL
from academy_core.config import Settings, get_settings
from academy_core.enrollments.models import ENROLLMENT_TABLES_CQL
from academy_core.progress.models import PROGRESS_TABLES_CQL


logger = structlog.get_logger(__name__)

SCHEMA = (
    ("catalog", CATALOG_TABLES_CQL),
    ("enrollments", ENROLLMENT_TABLES_CQL),
    ("progress", PROGRESS_TABLES_CQL),
)


def _build_cluster(settings: Settings) -> Cluster:
    credentials = None
    if settings.cassandra_username and settings.cassandra_password:
        credentials = PlainTextAuthProvider(
            username=settings.cassandra_username,
            password=settings.cassandra_password,
        )
    return Cluster(
        contact_points=settings.cassandra_hosts,
        port=settings.cassandra_port,
        auth_provider=credentials,
        protocol_version=settings.cassandra_protocol_version,
        load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy()),
        connect_timeout=settings.cassandra_connect_timeout,
    )


class AsyncCassandraConnection:
    """Process-wide cluster and session.

    `connect()` blocks while the driver discovers the ring; it runs once at
    startup.
    """

    _cluster: Cluster | None = None
    _session = None

    @classmethod
    def connect(cls):
        """Return the session, connecting on first use.

        Raises:
            ConnectionError: No contact point could be reached
        """
        if cls._session is not None:
            return cls._session

        settings = get_settings()
        cls._cluster = _build_cluster(settings)
        try:
            session = cls._cluster.connect()
        except Exception as e:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            raise ConnectionError(f"Cassandra unreachable: {e}") from e

        session.default_timeout = settings.cassandra_request_timeout
        cls._session = session
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            port=settings.cassandra_port,
        )
        return session

    @classmethod
    def disconnect(cls) -> None:
        if cls._session is not None:
            cls._session.shutdown()
            cls._session = None
        if cls._cluster is not None:
            cls._cluster.shutdown()
            cls._cluster = None
            logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def _replication(settings: Settings) -> str:
    if settings.is_production:
        return "{'class': 'NetworkTopologyStrategy', 'datacenter1': 3}"
    return "{'class': 'SimpleStrategy', 'replication_factor': 1}"


async def ensure_schema(session, settings: Settings) -> None:
    """Create the keyspace and every table group if missing."""
    keyspace = settings.cassandra_keyspace
    await session.aexecute(
        f"CREATE KEYSPACE IF NOT EXISTS {keyspace} "
        f"WITH replication = {_replication(settings)} AND durable_writes = true"
    )
    for group, statements in SCHEMA:
        for template in statements:
            await session.aexecute(template.format(keyspace=keyspace))
        logger.debug("cassandra_tables_ready", keyspace=keyspace, group=group)


async def init_async_cassandra():
    """Connect, bootstrap the schema and bind the session to the keyspace."""
    settings = get_settings()
    session = AsyncCassandraConnection.connect()
    await ensure_schema(session, settings)
    session.set_keyspace(settings.cassandra_keyspace)
    logger.info("cassandra_initialized", keyspace=settings.cassandra_keyspace)
    return session


async def shutdown_async_cassandra() -> None:
    AsyncCassandraConnection.disconnect()
