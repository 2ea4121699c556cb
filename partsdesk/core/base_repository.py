"""Base Repository: eliminates connection boilerplate across all repos.

Provides query_one(), query_all(), execute(), execute_many() that handle
get_db()/get_cursor()/release_db() and try/finally automatically.

Every helper also accepts `cursor=`. When a caller already holds a
transaction (see database.transaction()), passing its cursor runs the
statement on that same connection: no commit, no release, no second
connection waiting on the first one's row locks.

Usage:
    class TabRepository(BaseRepository):
        def get(self, tab_id, cursor=None):
            return self.query_one('SELECT * FROM tabs WHERE id = %s', (tab_id,), cursor=cursor)

        def create(self, name, path):
            return self.execute(
                'INSERT INTO tabs (name, path) VALUES (%s, %s) RETURNING id',
                (name, path), returning=True
            )
"""

from database import get_db, get_cursor, release_db, dict_from_row


class BaseRepository:

    def query_one(self, sql, params=None, cursor=None):
        """Execute a SELECT and return a single row as dict, or None."""
        if cursor is not None:
            cursor.execute(sql, params or ())
            row = cursor.fetchone()
            return dict_from_row(row) if row else None
        conn = get_db()
        try:
            cur = get_cursor(conn)
            cur.execute(sql, params or ())
            row = cur.fetchone()
            return dict_from_row(row) if row else None
        finally:
            release_db(conn)

    def query_all(self, sql, params=None, cursor=None):
        """Execute a SELECT and return all rows as list of dicts."""
        if cursor is not None:
            cursor.execute(sql, params or ())
            return [dict_from_row(r) for r in cursor.fetchall()]
        conn = get_db()
        try:
            cur = get_cursor(conn)
            cur.execute(sql, params or ())
            return [dict_from_row(r) for r in cur.fetchall()]
        finally:
            release_db(conn)

    def execute(self, sql, params=None, returning=False, cursor=None):
        """Execute an INSERT/UPDATE/DELETE.

        Args:
            sql: SQL statement
            params: Query parameters
            returning: If True, fetchone() and return dict. If False, return rowcount.
            cursor: Cursor of an open transaction; the caller commits.

        Returns:
            dict if returning=True, else int (rowcount)
        """
        if cursor is not None:
            cursor.execute(sql, params or ())
            if returning:
                result = cursor.fetchone()
                return dict_from_row(result) if result else None
            return cursor.rowcount
        conn = get_db()
        try:
            cur = get_cursor(conn)
            cur.execute(sql, params or ())
            if returning:
                result = cur.fetchone()
                conn.commit()
                return dict_from_row(result) if result else None
            conn.commit()
            return cur.rowcount
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)

    def execute_many(self, callback, cursor=None):
        """Execute multiple statements in a single transaction.

        Args:
            callback: Function that receives (cursor) and returns a result.
                      All statements within callback share one connection/transaction.
            cursor: Cursor of an open transaction to reuse instead.

        Returns:
            Whatever callback returns
        """
        if cursor is not None:
            return callback(cursor)
        conn = get_db()
        try:
            conn.autocommit = False
            cur = get_cursor(conn)
            result = callback(cur)
            conn.commit()
            return result
        except Exception:
            conn.rollback()
            raise
        finally:
            release_db(conn)
