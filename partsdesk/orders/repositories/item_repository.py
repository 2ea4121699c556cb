"""Item Repository - Data access layer for client_order_items."""
from typing import Optional

from core.base_repository import BaseRepository

ITEM_SELECT = '''
    SELECT i.*, op.cat_number, op.description_en, op.description_ru, em.model_name
    FROM client_order_items i
    LEFT JOIN original_parts op ON i.original_part_id = op.id
    LEFT JOIN equipment_models em ON i.equipment_model_id = em.id
'''

UPDATABLE_FIELDS = (
    'original_part_id', 'equipment_model_id', 'qty_requested', 'qty_unit', 'comment_client',
    'comment_internal', 'status', 'requested_delivery_date',
)


class ItemRepository(BaseRepository):

    def get_for_order(self, order_id: int, cursor=None) -> list[dict]:
        return self.query_all(
            f'{ITEM_SELECT} WHERE i.order_id = %s ORDER BY i.line_no ASC, i.id ASC',
            (order_id,), cursor=cursor
        )

    def get(self, item_id: int, cursor=None) -> Optional[dict]:
        return self.query_one(f'{ITEM_SELECT} WHERE i.id = %s', (item_id,), cursor=cursor)

    def lock(self, item_id: int, cursor) -> Optional[dict]:
        """Item row with the client_id of its order, locked FOR UPDATE."""
        return self.query_one('''
            SELECT i.*, co.client_id
            FROM client_order_items i
            JOIN client_orders co ON co.id = i.order_id
            WHERE i.id = %s
            FOR UPDATE OF i
        ''', (item_id,), cursor=cursor)

    def next_line_no(self, order_id: int, cursor=None) -> int:
        row = self.query_one(
            'SELECT COALESCE(MAX(line_no), 0) AS max_line FROM client_order_items WHERE order_id = %s',
            (order_id,), cursor=cursor
        )
        return int(row['max_line'] or 0) + 1

    def create(self, order_id: int, line_no: int, fields: dict, cursor=None) -> dict:
        return self.execute('''
            INSERT INTO client_order_items
            (order_id, line_no, original_part_id, equipment_model_id, qty_requested, qty_unit,
             comment_client, comment_internal, status, requested_delivery_date)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, 'open', %s)
            RETURNING *
        ''', (
            order_id, line_no, fields['original_part_id'], fields.get('equipment_model_id'),
            fields['qty_requested'],
            fields.get('qty_unit') or 'pcs', fields.get('comment_client'),
            fields.get('comment_internal'), fields.get('requested_delivery_date'),
        ), returning=True, cursor=cursor)

    def update(self, item_id: int, fields: dict, cursor=None) -> Optional[dict]:
        updates = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if not updates:
            return self.query_one('SELECT * FROM client_order_items WHERE id = %s', (item_id,), cursor=cursor)
        set_clause = ', '.join(f'{k} = %s' for k in updates)
        return self.execute(
            f'UPDATE client_order_items SET {set_clause}, updated_at = NOW() WHERE id = %s RETURNING *',
            list(updates.values()) + [item_id], returning=True, cursor=cursor
        )

    def set_decision(self, item_id: int, offer_id: int, status: str = 'approved', cursor=None) -> dict:
        return self.execute('''
            UPDATE client_order_items
            SET decision_offer_id = %s, status = %s, updated_at = NOW()
            WHERE id = %s
            RETURNING *
        ''', (offer_id, status, item_id), returning=True, cursor=cursor)

    def clear_decision(self, item_id: int, offer_id: int, cursor=None) -> bool:
        """Drop the decision only if it still points at `offer_id`."""
        return self.execute('''
            UPDATE client_order_items
            SET decision_offer_id = NULL, updated_at = NOW()
            WHERE id = %s AND decision_offer_id = %s
        ''', (item_id, offer_id), cursor=cursor) > 0

    def delete(self, item_id: int, cursor=None) -> bool:
        return self.execute('DELETE FROM client_order_items WHERE id = %s', (item_id,), cursor=cursor) > 0
