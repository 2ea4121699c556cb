"""partsdesk database module.

Owns the PostgreSQL connection pool and the low-level helpers every
repository builds on: connection checkout/release, the transaction context
manager and dict-row cursors.
"""
import os
import logging
import threading
from contextlib import contextmanager
from decimal import Decimal

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor


logger = logging.getLogger('partsdesk.database')

DATABASE_URL = os.environ.get('DATABASE_URL')

if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is required. Set it to your PostgreSQL connection string.")

POOL_MIN_CONN = int(os.environ.get('DB_POOL_MIN_CONN', '2'))
POOL_MAX_CONN = int(os.environ.get('DB_POOL_MAX_CONN', '8'))
# Seconds allowed for opening a new server connection
POOL_CONNECT_TIMEOUT = int(os.environ.get('DB_POOL_TIMEOUT', '10'))

_connection_pool = None
_pool_lock = threading.Lock()


def _get_pool():
    """Connection pool, created on first use."""
    global _connection_pool
    if _connection_pool is None:
        with _pool_lock:
            if _connection_pool is None:
                _connection_pool = pool.ThreadedConnectionPool(
                    minconn=POOL_MIN_CONN,
                    maxconn=POOL_MAX_CONN,
                    dsn=DATABASE_URL,
                    connect_timeout=POOL_CONNECT_TIMEOUT,
                )
                logger.info(f'Connection pool created: min={POOL_MIN_CONN}, max={POOL_MAX_CONN}')
    return _connection_pool


def get_db():
    """Checkout an autocommit connection.

    A connection the server already closed is dropped and replaced once.
    psycopg2 raises PoolError when all POOL_MAX_CONN connections are out.
    """
    db_pool = _get_pool()
    conn = db_pool.getconn()
    if conn.closed:
        db_pool.putconn(conn, close=True)
        conn = db_pool.getconn()
    conn.autocommit = True
    return conn


def release_db(conn):
    """Return a connection to the pool; broken ones are closed."""
    if not conn or _connection_pool is None:
        return
    if conn.closed:
        _connection_pool.putconn(conn, close=True)
        return
    try:
        conn.autocommit = False
    except psycopg2.Error as e:
        logger.warning(f'Closing unusable connection: {e}')
        _connection_pool.putconn(conn, close=True)
        return
    _connection_pool.putconn(conn)


@contextmanager
def transaction():
    """Context manager for atomic database transactions.

    Yields a dict cursor bound to one pooled connection. Commits on success;
    on any exception rolls back before the connection goes back to the pool,
    then re-raises.

    Usage:
        with transaction() as cursor:
            cursor.execute('UPDATE client_order_items ...')
            audit.record_event({...}, cursor=cursor)
    """
    conn = get_db()
    try:
        conn.autocommit = False
        cursor = get_cursor(conn)
        yield cursor
        conn.commit()
        logger.debug('Transaction committed successfully')
    except Exception as e:
        conn.rollback()
        logger.warning(f'Transaction rolled back: {e}')
        raise
    finally:
        release_db(conn)


def ping_db():
    """True when a SELECT 1 round trip succeeds."""
    try:
        conn = get_db()
    except psycopg2.Error as e:
        logger.warning(f'Database ping failed: {e}')
        return False
    try:
        with conn.cursor() as cur:
            cur.execute('SELECT 1')
        return True
    except psycopg2.Error as e:
        logger.warning(f'Database ping failed: {e}')
        return False
    finally:
        release_db(conn)


def get_cursor(conn):
    """Get cursor with dict row factory."""
    return conn.cursor(cursor_factory=RealDictCursor)


def init_db():
    """Create tables and seed rows unless the schema already exists.

    The presence of the `tabs` table is taken as "already initialized".
    """
    conn = get_db()
    cursor = get_cursor(conn)
    try:
        cursor.execute("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = 'tabs'
            )
        """)
        if cursor.fetchone()['exists']:
            logger.info('Database schema already initialized, skipping init_db()')
            return

        from migrations.init_schema import create_schema
        conn.autocommit = False
        create_schema(cursor)
        conn.commit()
        logger.info('Database schema initialized successfully')
    except Exception:
        conn.rollback()
        raise
    finally:
        release_db(conn)


def dict_from_row(row):
    """Convert a database row to a JSON-friendly dict.

    Dates/datetimes become ISO strings, NUMERIC columns become floats.
    """
    if row is None:
        return None
    result = dict(row)
    for key, value in result.items():
        if isinstance(value, Decimal):
            result[key] = float(value)
        elif hasattr(value, 'isoformat'):
            result[key] = value.isoformat()
    return result
