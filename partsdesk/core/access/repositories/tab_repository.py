"""Tab repository.

Handles all database operations for tabs: the path-addressed units that
role permissions are granted on.
"""

import logging
import re

from database import dict_from_row
from core.base_repository import BaseRepository
from core.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger('partsdesk.core.access.tab_repository')

_WHITESPACE = re.compile(r'\s+')

TAB_FIELDS = ('name', 'tab_name', 'path', 'icon', 'tooltip', 'sort_order', 'is_active')


def normalize_path(value) -> str | None:
    """Canonical tab path: no whitespace, leading '/', lowercase."""
    if value is None:
        return None
    path = _WHITESPACE.sub('', str(value))
    if not path:
        return None
    if not path.startswith('/'):
        path = '/' + path
    return path.lower()


class TabRepository(BaseRepository):

    def get_all(self) -> list[dict]:
        """All tabs in display order."""
        return self.query_all('SELECT * FROM tabs ORDER BY sort_order ASC, id ASC')

    def get_visible_for_role(self, role_id: int) -> list[dict]:
        """Tabs the role has can_view on."""
        return self.query_all('''
            SELECT t.*
            FROM tabs t
            JOIN role_permissions rp
              ON rp.tab_id = t.id
             AND rp.role_id = %s
             AND rp.can_view = TRUE
            ORDER BY t.sort_order ASC, t.id ASC
        ''', (role_id,))

    def get(self, tab_id: int, cursor=None) -> dict | None:
        return self.query_one('SELECT * FROM tabs WHERE id = %s', (tab_id,), cursor=cursor)

    def get_active_by_path(self, path: str) -> dict | None:
        return self.query_one(
            'SELECT id, tab_name, path FROM tabs WHERE path = %s AND is_active = TRUE',
            (path,)
        )

    def find_conflict(self, field: str, value, exclude_id: int = None) -> dict | None:
        """Existing tab that already uses `value` for the unique `field`."""
        if field not in ('path', 'tab_name'):
            raise ValueError(f'Unsupported unique field: {field}')
        if exclude_id is None:
            return self.query_one(f'SELECT * FROM tabs WHERE {field} = %s', (value,))
        return self.query_one(
            f'SELECT * FROM tabs WHERE {field} = %s AND id <> %s', (value, exclude_id)
        )

    def _check_unique(self, path, tab_name, exclude_id=None):
        if path is not None:
            existing = self.find_conflict('path', path, exclude_id)
            if existing:
                raise ConflictError('A tab with this path already exists', current=existing)
        if tab_name is not None:
            existing = self.find_conflict('tab_name', tab_name, exclude_id)
            if existing:
                raise ConflictError('A tab with this tab_name already exists', current=existing)

    def create(self, name: str, tab_name: str, path: str, icon: str = None,
               tooltip: str = None) -> dict:
        """Create a tab at the end of the sort order. Returns the new row."""
        path = normalize_path(path)
        if not name:
            raise ValidationError('Field "name" is required')
        if not tab_name:
            raise ValidationError('Field "tab_name" is required')
        if not path:
            raise ValidationError('Field "path" is required')

        self._check_unique(path, tab_name)

        def _work(cursor):
            cursor.execute('SELECT COALESCE(MAX(sort_order), 0) AS max_order FROM tabs')
            sort_order = (cursor.fetchone()['max_order'] or 0) + 1
            cursor.execute('''
                INSERT INTO tabs (name, tab_name, path, icon, tooltip, sort_order)
                VALUES (%s, %s, %s, %s, %s, %s)
                RETURNING *
            ''', (name, tab_name, path, icon, tooltip, sort_order))
            return cursor.fetchone()

        row = self.execute_many(_work)
        logger.info(f'Tab created: {tab_name} ({path})')
        return dict_from_row(row)

    def update(self, tab_id: int, **fields) -> dict:
        """Partial update; None/absent fields keep their current value."""
        current = self.get(tab_id)
        if not current:
            raise NotFoundError('Tab not found')

        updates = {k: v for k, v in fields.items() if k in TAB_FIELDS and v is not None}
        if 'path' in fields and fields['path'] is not None:
            updates['path'] = normalize_path(fields['path'])
            if not updates['path']:
                raise ValidationError('Field "path" cannot be empty')

        path = updates.get('path')
        tab_name = updates.get('tab_name')
        self._check_unique(
            path if path is not None and path != current.get('path') else None,
            tab_name if tab_name is not None and tab_name != current.get('tab_name') else None,
            exclude_id=tab_id,
        )

        if not updates:
            return current

        set_clause = ', '.join(f'{k} = %s' for k in updates)
        row = self.execute(
            f'UPDATE tabs SET {set_clause} WHERE id = %s RETURNING *',
            list(updates.values()) + [tab_id], returning=True
        )
        if not row:
            raise NotFoundError('Tab not found')
        return row

    def delete(self, tab_id: int) -> bool:
        """Delete a tab and its role permissions in one transaction."""
        def _work(cursor):
            cursor.execute('SELECT 1 FROM tabs WHERE id = %s', (tab_id,))
            if not cursor.fetchone():
                raise NotFoundError('Tab not found')
            cursor.execute('DELETE FROM role_permissions WHERE tab_id = %s', (tab_id,))
            removed = cursor.rowcount
            cursor.execute('DELETE FROM tabs WHERE id = %s', (tab_id,))
            if cursor.rowcount == 0:
                raise NotFoundError('Tab not found')
            return removed

        removed = self.execute_many(_work)
        logger.info(f'Tab {tab_id} deleted with {removed} role permission(s)')
        return True

    def reorder(self, updates: list[dict]) -> int:
        """Bulk sort_order reassignment: [{id, sort_order}, ...]."""
        ids = [u['id'] for u in updates]
        if not ids:
            return 0

        def _work(cursor):
            cursor.execute('SELECT id FROM tabs WHERE id = ANY(%s)', (ids,))
            found = {row['id'] for row in cursor.fetchall()}
            missing = [i for i in ids if i not in found]
            if missing:
                raise NotFoundError(f'Unknown tab id(s): {", ".join(str(i) for i in missing)}')
            for u in updates:
                cursor.execute(
                    'UPDATE tabs SET sort_order = %s WHERE id = %s',
                    (u['sort_order'], u['id'])
                )
            return len(updates)

        return self.execute_many(_work)
