"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Using the repository pattern means most code never touches this module
directly - it goes through VideoRepository which handles the translation
between domain models and database rows.
"""

import logging
import re
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.videos import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_path: str):
    """
    Load private key from file for key-pair authentication.

    Snowflake requires the private key as DER bytes, not a file path.
    """
    from cryptography.hazmat.backends import default_backend
    from cryptography.hazmat.primitives import serialization

    with open(key_path, 'rb') as key_file:
        private_key = serialization.load_pem_private_key(
            key_file.read(),
            password=None,  # No password on the key
            backend=default_backend()
        )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If private_key_path is set, uses key-pair auth
    - Otherwise, uses password auth

    Usage:
        with get_snowflake_connection(config) as conn:
            cursor = conn.cursor()
            # do work
            conn.commit()
    """
    try:
        import snowflake.connector
    except ImportError:
        raise ImportError(
            "snowflake-connector-python is required. "
            "Install with: pip install snowflake-connector-python"
        )

    connect_params = {
        'account': config.account,
        'user': config.user,
        'database': config.database,
        'schema': config.schema,
        'warehouse': config.warehouse,
        'role': config.role,
        'client_session_keep_alive': True,
    }

    if config.private_key_path:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params['private_key'] = _load_private_key(config.private_key_path)
    elif config.password:
        logger.info("Using password authentication for Snowflake")
        connect_params['password'] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or private_key_path must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

_COLUMNS = (
    'video_id', 'user_id', 'title', 'description',
    'thumbnail_url', 'video_url', 'created_at', 'updated_at',
)


class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support
    VideoRepository without a real database. Queries are recognised by
    their leading keyword and WHERE column; parameters are applied
    positionally in the order VideoRepository passes them.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> 'MockSnowflakeCursor':
        """Execute a query against mock storage."""
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100], "params": params}
        )

        query_upper = re.sub(r'\s+', ' ', query.upper()).strip()
        params = params or ()
        self._results = []
        self._rowcount = 0

        if query_upper.startswith('INSERT INTO VIDEOS'):
            self._handle_insert(params)
        elif query_upper.startswith('SELECT'):
            self._handle_select(query_upper, params)
        elif query_upper.startswith('UPDATE VIDEOS'):
            self._handle_update(params)
        elif query_upper.startswith('DELETE FROM VIDEOS'):
            self._handle_delete(params)

        return self

    def _handle_insert(self, params: tuple) -> None:
        row = dict(zip(_COLUMNS, params))
        self._storage['videos'][row['video_id']] = row
        self._rowcount = 1

    def _handle_select(self, query: str, params: tuple) -> None:
        videos = self._storage['videos']

        if 'WHERE VIDEO_ID' in query:
            row = videos.get(str(params[0]))
            self._results = [self._as_tuple(row)] if row else []

        elif 'WHERE USER_ID' in query:
            rows = [r for r in videos.values() if r['user_id'] == str(params[0])]
            rows.sort(key=lambda r: r['created_at'], reverse=True)
            self._results = [self._as_tuple(r) for r in rows]

    def _handle_update(self, params: tuple) -> None:
        title, description, thumbnail_url, video_url, updated_at, video_id = params
        row = self._storage['videos'].get(str(video_id))
        if row is None:
            return

        row.update(
            title=title,
            description=description,
            thumbnail_url=thumbnail_url,
            video_url=video_url,
            updated_at=updated_at,
        )
        self._rowcount = 1

    def _handle_delete(self, params: tuple) -> None:
        if self._storage['videos'].pop(str(params[0]), None) is not None:
            self._rowcount = 1

    @staticmethod
    def _as_tuple(row: dict) -> tuple:
        return tuple(row[column] for column in _COLUMNS)

    def fetchone(self):
        """Fetch one row from results."""
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        """Fetch all rows from results."""
        return self._results

    def close(self) -> None:
        """Close cursor (no-op for mock)."""
        pass

    @property
    def rowcount(self) -> int:
        """Return number of rows affected."""
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores data in memory using a simple dictionary structure.
    This enables testing the full API without a real database.

    Not suitable for production, but perfect for:
    - Local development
    - Unit tests
    - CI/CD environments
    """

    def __init__(self) -> None:
        # In-memory storage: {table_name: {id: row_dict}}
        self._storage: dict[str, dict[str, dict]] = {
            'videos': {},
        }

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        """Create a mock cursor."""
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        """Commit transaction (no-op for mock, always auto-commits)."""
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        """Rollback transaction (no-op for mock)."""
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        """Close connection (no-op for mock)."""
        logger.debug("Mock connection close")

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Factory function that returns either a real or mock connection
    depending on mock_mode flag.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, return mock connection for testing

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_mode:
        conn = MockSnowflakeConnection()
        try:
            yield conn
        finally:
            conn.close()
    else:
        if config is None:
            raise ValueError("config is required when not in mock mode")

        with get_snowflake_connection(config) as conn:
            yield conn
