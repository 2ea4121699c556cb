"""Offer Repository - Data access layer for client_order_offers.

Reads join part_suppliers for the supplier name and its public code; the
masking in orders.pricing decides which of the two a viewer gets.
"""
from typing import Optional

from core.base_repository import BaseRepository

OFFER_SELECT = '''
    SELECT o.*, ps.name AS supplier_name, ps.public_code AS supplier_public_code
    FROM client_order_offers o
    LEFT JOIN part_suppliers ps ON o.supplier_id = ps.id
'''

OFFER_FIELDS = (
    'supplier_id', 'supplier_part_id', 'supplier_part_number', 'supplier_price',
    'supplier_currency', 'fx_rate', 'logistics_cost', 'logistics_route_id',
    'lead_time_days', 'eta_days_effective', 'markup_pct', 'markup_abs',
    'client_price', 'client_currency', 'status', 'client_visible',
    'client_comment', 'internal_comment',
)


class OfferRepository(BaseRepository):

    def get_for_item(self, item_id: int, client_only: bool = False, cursor=None) -> list[dict]:
        query = f'{OFFER_SELECT} WHERE o.order_item_id = %s'
        if client_only:
            query += ' AND o.client_visible = TRUE'
        return self.query_all(query + ' ORDER BY o.id ASC', (item_id,), cursor=cursor)

    def get(self, offer_id: int, cursor=None) -> Optional[dict]:
        return self.query_one(f'{OFFER_SELECT} WHERE o.id = %s', (offer_id,), cursor=cursor)

    def lock(self, offer_id: int, cursor) -> Optional[dict]:
        return self.query_one(
            'SELECT * FROM client_order_offers WHERE id = %s FOR UPDATE', (offer_id,), cursor=cursor
        )

    def get_scoped(self, offer_id: int, item_id: int, cursor=None) -> Optional[dict]:
        """Offer only if it belongs to `item_id`."""
        return self.query_one(
            'SELECT * FROM client_order_offers WHERE id = %s AND order_item_id = %s',
            (offer_id, item_id), cursor=cursor
        )

    def create(self, item_id: int, fields: dict, created_by: int = None, cursor=None) -> dict:
        values = {k: v for k, v in fields.items() if k in OFFER_FIELDS}
        columns = ['order_item_id', 'created_by_user_id'] + list(values)
        placeholders = ', '.join(['%s'] * len(columns))
        return self.execute(
            f"INSERT INTO client_order_offers ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *",
            [item_id, created_by] + list(values.values()), returning=True, cursor=cursor
        )

    def update(self, offer_id: int, fields: dict, cursor=None) -> Optional[dict]:
        updates = {k: v for k, v in fields.items() if k in OFFER_FIELDS}
        if not updates:
            return self.query_one('SELECT * FROM client_order_offers WHERE id = %s', (offer_id,), cursor=cursor)
        set_clause = ', '.join(f'{k} = %s' for k in updates)
        return self.execute(
            f'UPDATE client_order_offers SET {set_clause}, updated_at = NOW() WHERE id = %s RETURNING *',
            list(updates.values()) + [offer_id], returning=True, cursor=cursor
        )

    def set_client_visible(self, offer_id: int, visible: bool = True, cursor=None) -> bool:
        return self.execute(
            'UPDATE client_order_offers SET client_visible = %s, updated_at = NOW() WHERE id = %s',
            (visible, offer_id), cursor=cursor
        ) > 0

    def delete(self, offer_id: int, cursor=None) -> bool:
        return self.execute('DELETE FROM client_order_offers WHERE id = %s', (offer_id,), cursor=cursor) > 0

    def delete_for_order(self, order_id: int, cursor=None) -> int:
        """Delete every offer on the order's items. Returns the count."""
        return self.execute('''
            DELETE FROM client_order_offers
            WHERE order_item_id IN (SELECT id FROM client_order_items WHERE order_id = %s)
        ''', (order_id,), cursor=cursor)
