"""Activity Repository - Data access layer for the activity_logs table.

One row per audited action, or per changed field for updates.
"""
import json
from typing import Optional, Dict, Any

from core.base_repository import BaseRepository

DELETED_LIMIT = 100


class ActivityRepository(BaseRepository):
    """Repository for entity activity log rows."""

    def insert(
        self,
        entity_type: str,
        entity_id: Optional[int],
        action: str,
        user_id: int = None,
        field_changed: str = None,
        old_value=None,
        new_value=None,
        comment: str = None,
        client_id: int = None,
        payload: Dict[str, Any] = None,
        cursor=None,
    ) -> int:
        """Insert one activity row and return its id.

        Old/new values are stored as text; payload as JSON.
        """
        result = self.execute('''
            INSERT INTO activity_logs
            (user_id, action, entity_type, entity_id, field_changed,
             old_value, new_value, comment, client_id, payload)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
        ''', (
            user_id, action, entity_type, entity_id, field_changed,
            _as_text(old_value), _as_text(new_value), comment, client_id,
            json.dumps(payload, default=str) if payload is not None else None
        ), returning=True, cursor=cursor)
        return result['id']

    def get_deleted(self, entity_type: str = None) -> list[dict]:
        """Latest delete actions, newest first."""
        query = '''
            SELECT a.*, u.name AS user_name
            FROM activity_logs a
            LEFT JOIN users u ON a.user_id = u.id
            WHERE a.action = 'delete'
        '''
        params = []
        if entity_type:
            query += ' AND a.entity_type = %s'
            params.append(entity_type)
        query += ' ORDER BY a.created_at DESC, a.id DESC LIMIT %s'
        params.append(DELETED_LIMIT)
        return self.query_all(query, params)

    def get_for_entity(self, entity_types, entity_id: int) -> list[dict]:
        """History of one record, newest first.

        entity_types lists every name the entity was logged under.
        """
        if isinstance(entity_types, str):
            entity_types = [entity_types]
        return self.query_all('''
            SELECT a.*, u.name AS user_name
            FROM activity_logs a
            LEFT JOIN users u ON a.user_id = u.id
            WHERE a.entity_type = ANY(%s) AND a.entity_id = %s
            ORDER BY a.created_at DESC, a.id DESC
        ''', (list(entity_types), entity_id))


def _as_text(value):
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value, default=str)
    return str(value)
