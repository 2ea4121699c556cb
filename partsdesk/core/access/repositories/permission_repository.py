"""Role permission repository.

A role_permissions row with can_view = TRUE is the only grant; a missing
row or can_view = FALSE is a denial. There is at most one row per
(role_id, tab_id): writes delete-then-insert, never accumulate.
"""

import logging
import re
from typing import Sequence

from core.base_repository import BaseRepository
from core.errors import ConflictError, NotFoundError

logger = logging.getLogger('partsdesk.core.access.permission_repository')

_SLUG_SPACES = re.compile(r'\s+')


def role_slug(name: str) -> str:
    return _SLUG_SPACES.sub('_', name.strip().lower())


class PermissionRepository(BaseRepository):

    # ---- Checks ----

    def has_tab_access(self, role_id: int, keys: Sequence[str]) -> bool:
        """True if the role can view a tab whose tab_name OR path matches any key."""
        keys = list(keys)
        if not keys:
            return False
        row = self.query_one('''
            SELECT 1
              FROM role_permissions rp
              JOIN tabs t ON t.id = rp.tab_id
             WHERE rp.role_id = %s
               AND rp.can_view = TRUE
               AND (t.tab_name = ANY(%s) OR t.path = ANY(%s))
             LIMIT 1
        ''', (role_id, keys, keys))
        return row is not None

    # ---- Reads ----

    def get_grouped(self) -> list[dict]:
        """Non-admin roles with the tab ids they can view: [{role, slug, tab_ids}]."""
        rows = self.query_all('''
            SELECT r.slug, r.name AS role, rp.tab_id
              FROM roles r
              LEFT JOIN role_permissions rp
                ON rp.role_id = r.id AND rp.can_view = TRUE
             WHERE r.slug <> 'admin'
             ORDER BY r.name, rp.tab_id
        ''')
        roles = {}
        for row in rows:
            entry = roles.setdefault(row['slug'], {
                'role': row['role'], 'slug': row['slug'], 'tab_ids': []
            })
            if row['tab_id']:
                entry['tab_ids'].append(row['tab_id'])
        return list(roles.values())

    def get_raw(self, tab_id: int = None) -> list[dict]:
        if tab_id is not None:
            return self.query_all(
                'SELECT id, role_id, tab_id, can_view FROM role_permissions WHERE tab_id = %s ORDER BY id',
                (tab_id,)
            )
        return self.query_all('SELECT id, role_id, tab_id, can_view FROM role_permissions ORDER BY id')

    def get_role_by_slug(self, slug: str, cursor=None) -> dict | None:
        return self.query_one(
            'SELECT id, name, slug FROM roles WHERE LOWER(slug) = %s',
            (slug.strip().lower(),), cursor=cursor
        )

    def get_role_tabs(self, slug: str) -> list[dict]:
        """Active tabs visible to a role; the admin role sees all of them."""
        role = self.get_role_by_slug(slug)
        if not role:
            raise NotFoundError('Role not found')

        if role['slug'].lower() == 'admin':
            return self.query_all('''
                SELECT id AS tab_id, name, tab_name, path, icon, is_active, TRUE AS can_view
                  FROM tabs
                 WHERE is_active = TRUE
                 ORDER BY sort_order, id
            ''')
        return self.query_all('''
            SELECT t.id AS tab_id, t.name, t.tab_name, t.path, t.icon, t.is_active, rp.can_view
              FROM tabs t
              JOIN role_permissions rp ON rp.tab_id = t.id AND rp.role_id = %s
             WHERE t.is_active = TRUE AND rp.can_view = TRUE
             ORDER BY t.sort_order, t.id
        ''', (role['id'],))

    # ---- Writes ----

    def create_role(self, name: str) -> dict:
        slug = role_slug(name)
        existing = self.get_role_by_slug(slug)
        if existing:
            raise ConflictError('Role already exists', current=existing)
        row = self.execute(
            'INSERT INTO roles (name, slug) VALUES (%s, %s) RETURNING id, name, slug',
            (name.strip(), slug), returning=True
        )
        row['tab_ids'] = []
        return row

    def replace_pairs(self, permissions: list[dict]) -> int:
        """Apply [{role_id, tab_id, can_view}] as delete-then-insert per pair."""
        def _work(cursor):
            granted = 0
            for perm in permissions:
                cursor.execute(
                    'DELETE FROM role_permissions WHERE role_id = %s AND tab_id = %s',
                    (perm['role_id'], perm['tab_id'])
                )
                if perm['can_view'] == 1:
                    cursor.execute(
                        'INSERT INTO role_permissions (role_id, tab_id, can_view) VALUES (%s, %s, TRUE)',
                        (perm['role_id'], perm['tab_id'])
                    )
                    granted += 1
            return granted

        return self.execute_many(_work)

    def set_single(self, permission_id: int, can_view: int) -> bool:
        """can_view=1 keeps the grant, can_view=0 deletes the row."""
        if can_view == 1:
            rowcount = self.execute(
                'UPDATE role_permissions SET can_view = TRUE WHERE id = %s', (permission_id,)
            )
        else:
            rowcount = self.execute('DELETE FROM role_permissions WHERE id = %s', (permission_id,))
        return rowcount > 0

    def replace_for_role(self, slug: str, permissions: list[dict]) -> int:
        """Replace every grant of a role. Entries without can_view are skipped."""
        def _work(cursor):
            role = self.get_role_by_slug(slug, cursor=cursor)
            if not role:
                raise NotFoundError('Role not found')
            cursor.execute('DELETE FROM role_permissions WHERE role_id = %s', (role['id'],))
            tab_ids = []
            for perm in permissions:
                try:
                    tab_id = int(perm.get('tab_id'))
                except (TypeError, ValueError):
                    continue
                if not perm.get('can_view') or tab_id in tab_ids:
                    continue
                tab_ids.append(tab_id)
                cursor.execute(
                    'INSERT INTO role_permissions (role_id, tab_id, can_view) VALUES (%s, %s, TRUE)',
                    (role['id'], tab_id)
                )
            return len(tab_ids)

        return self.execute_many(_work)
