# src/neogm/orm/engine.py
import asyncio
import logging
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional, Tuple, cast

from neo4j import AsyncGraphDatabase, AsyncDriver, AsyncManagedTransaction, AsyncSession, READ_ACCESS, WRITE_ACCESS
from neo4j.exceptions import AuthError, DriverError, Neo4jError, ServiceUnavailable, SessionExpired

from neogm.config import Neo4jSettings
from neogm.core.raw import RawRecord
from neogm.exceptions import GraphConnectionError, OGMError, QueryError


logger = logging.getLogger(__name__)


@contextmanager
def translate_driver_errors(uri: str) -> Iterator[None]:
    """
    Re-raise driver exceptions as neogm errors.

    Connection-level failures become GraphConnectionError; anything the server
    rejected becomes QueryError with the server's message and code intact.
    """
    try:
        yield
    except OGMError:
        raise
    except AuthError as e:
        logger.warning("Authentication against %s rejected: %s", uri, e)
        raise GraphConnectionError(f"Authentication failed for {uri}: {e}") from e
    except (ServiceUnavailable, SessionExpired) as e:
        logger.warning("Neo4j at %s unavailable: %s", uri, e)
        raise GraphConnectionError(f"Neo4j at {uri} is unavailable: {e}") from e
    except Neo4jError as e:
        logger.warning("Query rejected by Neo4j [%s]: %s", e.code, e.message)
        raise QueryError(e.message or str(e), code=e.code) from e
    except DriverError as e:
        logger.warning("Driver failure talking to %s: %s", uri, e)
        raise GraphConnectionError(f"Driver failure talking to {uri}: {e}") from e


async def _collect_records(
    tx: AsyncManagedTransaction,
    query: str,
    params: Dict[str, Any]
) -> List[RawRecord]:
    result = await tx.run(query, params)
    return [RawRecord.from_driver(record) async for record in result]


class GraphSession:
    """
    One session, scoped to a single top-level operation.

    Every ``read``/``write`` runs in its own managed transaction and returns
    the fully collected rows as RawRecords.
    """

    def __init__(self, session: AsyncSession, uri: str):
        self._session = session
        self._uri = uri

    async def read(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[RawRecord]:
        """Run ``query`` in a read transaction."""
        logger.debug("Query -> Neo4j (read): %s | params: %s", query, sorted(params or {}))
        with translate_driver_errors(self._uri):
            return await self._session.execute_read(_collect_records, query, params or {})

    async def write(self, query: str, params: Optional[Dict[str, Any]] = None) -> List[RawRecord]:
        """Run ``query`` in a write transaction."""
        logger.debug("Query -> Neo4j (write): %s | params: %s", query, sorted(params or {}))
        with translate_driver_errors(self._uri):
            return await self._session.execute_write(_collect_records, query, params or {})


class GraphEngine:
    """
    Represents the core interface to a Neo4j database, analogous to SQLAlchemy's Engine.

    It holds the configuration for connecting to the database and manages the
    underlying Neo4j AsyncDriver. An engine instance is typically created once per
    database configuration and shared by every repository.
    """
    def __init__(
        self,
        uri: str,
        auth: Tuple[str, str],
        database: str = "neo4j",
        driver_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initializes the GraphEngine. Does not establish a connection yet.
        Call `await engine.connect()` to establish the connection.

        Args:
            uri: The URI for the Neo4j instance (e.g., "bolt://localhost:7687").
            auth: A tuple of (username, password).
            database: The default Neo4j database name for sessions created by this engine.
            driver_config: Additional configuration options for the Neo4j driver.
        """
        self.uri: str = uri
        self.auth: Tuple[str, str] = auth
        self.default_database: str = database

        _driver_defaults = {
            "max_connection_lifetime": 3600,  # seconds
            "keep_alive": True,
            "user_agent": "neogm/0.3.0"
        }
        self.driver_config: Dict[str, Any] = {**_driver_defaults, **(driver_config or {})}

        self._driver: Optional[AsyncDriver] = None
        self._is_connected: bool = False
        self._connection_lock = asyncio.Lock()

    async def connect(self) -> None:
        """
        Establishes and verifies the connection to the Neo4j database using the
        engine's configuration. This method is idempotent.

        Raises:
            GraphConnectionError: If the driver cannot be created or verified.
        """
        async with self._connection_lock:
            if self._is_connected and self._driver:
                return

            logger.info("Connecting to %s (default session DB: '%s')", self.uri, self.default_database)
            try:
                self._driver = AsyncGraphDatabase.driver(
                    self.uri,
                    auth=self.auth,
                    **self.driver_config
                )
                await self._driver.verify_connectivity()
                self._is_connected = True
                logger.info("Connected to %s", self.uri)
            except Exception as e:
                self._driver = None
                self._is_connected = False
                logger.warning("Connection to %s failed: %s", self.uri, e)
                raise GraphConnectionError(f"Failed to connect to Neo4j at {self.uri}: {e}") from e

    async def close(self) -> None:
        """Closes the Neo4j driver connection if it's open."""
        async with self._connection_lock:
            if self._driver is None:
                return
            if not self._is_connected:
                logger.info("Driver for %s exists but was not fully connected. Attempting close.", self.uri)
            await self._driver.close()
            self._driver = None
            self._is_connected = False
            logger.info("Connection to %s closed", self.uri)

    def get_session(self, database: Optional[str] = None, access_mode: str = WRITE_ACCESS) -> AsyncSession:
        """
        Returns an asynchronous Neo4j session from the engine's driver.

        Args:
            database: The name of the database to use for this session.
                      If None, uses the engine's `default_database`.
            access_mode: neo4j.READ_ACCESS or neo4j.WRITE_ACCESS.

        Raises:
            GraphConnectionError: If the engine is not connected.
        """
        driver = self.driver
        db_to_use = database or self.default_database
        return cast(AsyncSession, driver.session(database=db_to_use, default_access_mode=access_mode))

    @asynccontextmanager
    async def session(
        self,
        database: Optional[str] = None,
        read_only: bool = False
    ) -> AsyncIterator[GraphSession]:
        """
        Open a session for one operation and close it on every exit path.

        Example:
            ```python
            async with engine.session(read_only=True) as session:
                records = await session.read("MATCH (n:User) RETURN n")
            ```
        """
        access_mode = READ_ACCESS if read_only else WRITE_ACCESS
        with translate_driver_errors(self.uri):
            raw_session = self.get_session(database=database, access_mode=access_mode)
        try:
            yield GraphSession(raw_session, self.uri)
        finally:
            await raw_session.close()

    @property
    def driver(self) -> AsyncDriver:
        """
        Provides direct access to the underlying Neo4j AsyncDriver.
        Use with caution. Prefer using `engine.session()`.

        Raises:
            GraphConnectionError: If the engine is not connected.
        """
        if not self._driver or not self._is_connected:
            raise GraphConnectionError(
                f"GraphEngine for {self.uri} is not connected. Call `await engine.connect()` first."
            )
        return self._driver

    @property
    def connected(self) -> bool:
        """Returns True if the engine is currently connected, False otherwise."""
        return self._is_connected

    async def __aenter__(self) -> "GraphEngine":
        """Allows the engine to be used as an async context manager for connect/close."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Ensures the engine's connection is closed when exiting the context."""
        await self.close()

    def __repr__(self) -> str:
        state = "connected" if self._is_connected else "disconnected"
        return f"GraphEngine(uri={self.uri!r}, database={self.default_database!r}, {state})"


def create_graph_engine(
    uri: str,
    auth: Tuple[str, str],
    database: str = "neo4j",
    **driver_config: Any
) -> GraphEngine:
    """
    Creates and returns a GraphEngine instance.

    The engine must be explicitly connected using `await engine.connect()`
    or by using it as an async context manager (`async with engine:`).

    Args:
        uri: The URI for the Neo4j instance (e.g., "bolt://localhost:7687").
        auth: A tuple of (username, password).
        database: The default Neo4j database name for sessions.
        **driver_config: Additional configuration options for the Neo4j driver
                         (e.g., user_agent, keep_alive, max_connection_pool_size).
    """
    logger.debug("Creating GraphEngine for URI: %s, default DB: %s", uri, database)
    return GraphEngine(uri=uri, auth=auth, database=database, driver_config=driver_config)


def create_graph_engine_from_settings(
    settings: Optional[Neo4jSettings] = None,
    **driver_config: Any
) -> GraphEngine:
    """
    Creates a GraphEngine from ``NEO4J_*`` environment variables / ``.env``.

    Args:
        settings: Explicit settings; read from the environment when omitted.
        **driver_config: Extra driver options, overriding the settings' user agent.
    """
    settings = settings or Neo4jSettings()
    config = {"user_agent": settings.user_agent, **driver_config}
    return create_graph_engine(settings.uri, settings.auth, settings.database, **config)
