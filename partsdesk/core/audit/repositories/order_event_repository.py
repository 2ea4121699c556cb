"""Order event repository.

order_events is append-only. Rows reference orders, items and offers by id
without foreign keys, so they survive hard deletes.
"""
import json

from core.base_repository import BaseRepository


class OrderEventRepository(BaseRepository):

    def insert(self, event: dict, cursor=None) -> int:
        payload = event.get('payload')
        result = self.execute('''
            INSERT INTO order_events
            (order_id, order_item_id, offer_id, type, from_status, to_status, payload, created_by)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
        ''', (
            event.get('order_id'), event.get('order_item_id'), event.get('offer_id'),
            event['type'], event.get('from_status'), event.get('to_status'),
            json.dumps(payload, default=str) if payload is not None else None,
            event.get('created_by'),
        ), returning=True, cursor=cursor)
        return result['id']

    def get_for_order(self, order_id: int, item_id: int = None) -> list[dict]:
        """Events of an order (optionally one item), oldest first."""
        query = '''
            SELECT e.*, u.name AS created_by_name
            FROM order_events e
            LEFT JOIN users u ON e.created_by = u.id
            WHERE e.order_id = %s
        '''
        params = [order_id]
        if item_id is not None:
            query += ' AND e.order_item_id = %s'
            params.append(item_id)
        query += ' ORDER BY e.created_at ASC, e.id ASC'
        return self.query_all(query, params)
