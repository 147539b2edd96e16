"""
MySQL Database Utility Module
Connection pooling, transactions and the statement helpers shared by the
discovery queries.
"""
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from mysql.connector import pooling, Error

from config.constants import LOGGER_NAME, T_ASSET_ELEMENT
from core.errors import AssetNotFoundError, DatabaseError, log_error
from database.config import build_db_config

logger = logging.getLogger(LOGGER_NAME)


def _query_to_df(query, conn, params=None):
    """Execute query and return DataFrame using cursor (avoids pandas SQLAlchemy warning)."""
    rows = fetch_all(conn, query, params)
    return pd.DataFrame(rows) if rows else pd.DataFrame()


class DatabaseConnection:
    """MySQL Database Connection Manager with Connection Pooling"""

    def __init__(self, config: Dict = None):
        self.config = config if config is not None else build_db_config()
        self._pool = None

    def get_pool(self):
        """Get or create connection pool"""
        if self._pool is None:
            try:
                self._pool = pooling.MySQLConnectionPool(**self.config)
            except Error as e:
                log_error(e, "create connection pool")
                raise DatabaseError(f"Failed to create connection pool: {e}") from e
        return self._pool

    def get_connection(self):
        """Get a connection from the pool"""
        try:
            return self.get_pool().get_connection()
        except Error as e:
            log_error(e, "get connection")
            raise DatabaseError(f"Failed to get connection: {e}") from e

    @contextmanager
    def connection(self):
        """Borrow a pooled connection for the duration of a block."""
        conn = self.get_connection()
        try:
            yield conn
        finally:
            conn.close()

    def test_connection(self) -> Tuple[bool, str]:
        """Test database connection"""
        try:
            with self.connection() as conn:
                fetch_one(conn, "SELECT 1 AS ok")
            return True, "Connection successful"
        except DatabaseError as e:
            return False, str(e)


@contextmanager
def transaction(conn):
    """
    Run a block of statements atomically.

    Opens an explicit transaction, commits on success and rolls back on any
    exception. When the caller already has a transaction open on ``conn``
    the block joins it and leaves commit/rollback to the caller.
    """
    if conn.in_transaction:
        yield conn
        return

    try:
        conn.start_transaction()
    except Error as e:
        log_error(e, "start transaction")
        raise DatabaseError(f"Could not start transaction: {e}") from e

    try:
        yield conn
    except BaseException:
        try:
            conn.rollback()
        except Error as e:
            # The block's own exception is the one to report
            log_error(e, "rollback")
        raise

    try:
        conn.commit()
    except Error as e:
        log_error(e, "commit")
        raise DatabaseError(f"Commit failed: {e}") from e


# ============================================
# STATEMENT HELPERS
# ============================================

def fetch_all(conn, query: str, params: Sequence = None) -> List[Dict[str, Any]]:
    """Run a SELECT and return every row as a dict"""
    cursor = None
    try:
        cursor = conn.cursor(dictionary=True)
        cursor.execute(query, params or ())
        return cursor.fetchall()
    except Error as e:
        log_error(e, query.strip().splitlines()[0])
        raise DatabaseError(str(e)) from e
    finally:
        if cursor is not None:
            cursor.close()


def fetch_one(conn, query: str, params: Sequence = None) -> Optional[Dict[str, Any]]:
    """Run a SELECT and return the first row, or None"""
    rows = fetch_all(conn, query, params)
    return rows[0] if rows else None


def execute(conn, query: str, params: Sequence = None) -> Tuple[Optional[int], int]:
    """Run a write statement; returns (lastrowid, rowcount)"""
    cursor = None
    try:
        cursor = conn.cursor()
        cursor.execute(query, params or ())
        return cursor.lastrowid, cursor.rowcount
    except Error as e:
        log_error(e, query.strip().splitlines()[0])
        raise DatabaseError(str(e)) from e
    finally:
        if cursor is not None:
            cursor.close()


def execute_many(conn, query: str, seq_params: Iterable[Sequence]) -> int:
    """Run one write statement per parameter tuple; returns affected rows"""
    seq_params = list(seq_params)
    if not seq_params:
        return 0

    cursor = None
    try:
        cursor = conn.cursor()
        cursor.executemany(query, seq_params)
        return cursor.rowcount
    except Error as e:
        log_error(e, query.strip().splitlines()[0])
        raise DatabaseError(str(e)) from e
    finally:
        if cursor is not None:
            cursor.close()


# ============================================
# ASSET FUNCTIONS
# ============================================

def get_asset_id(conn, asset_name: str) -> int:
    """
    Resolve an asset name to its id.

    Raises:
        AssetNotFoundError: no asset has that name
        DatabaseError: the lookup itself failed
    """
    row = fetch_one(
        conn,
        f"SELECT id_asset_element FROM {T_ASSET_ELEMENT} WHERE name = %s",
        (asset_name,)
    )
    if row is None:
        logger.error(f"element {asset_name} not found")
        raise AssetNotFoundError(asset_name)
    return int(row["id_asset_element"])
