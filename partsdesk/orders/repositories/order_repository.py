"""Order Repository - Data access layer for client_orders."""
from typing import Optional

from core.base_repository import BaseRepository

ORDER_SELECT = '''
    SELECT co.*, c.company_name AS client_company_name
    FROM client_orders co
    JOIN clients c ON co.client_id = c.id
'''

# Columns a PUT may change; everything else is set at creation
UPDATABLE_FIELDS = (
    'status', 'responsible_user_id', 'currency', 'incoterms', 'payment_terms',
    'client_contact_name', 'client_contact_phone', 'client_contact_email',
    'external_comment', 'internal_comment', 'requested_delivery_date',
)


class OrderRepository(BaseRepository):

    def list(self, client_id: int = None, status: str = None, search: str = None,
             page: int = 1, page_size: int = 20) -> tuple[list[dict], int]:
        """Filtered page of orders, newest first, plus the unpaged total."""
        conditions = []
        params = []
        if client_id:
            conditions.append('co.client_id = %s')
            params.append(client_id)
        if status:
            conditions.append('co.status = %s')
            params.append(status)
        if search:
            conditions.append(
                '(co.order_number ILIKE %s OR c.company_name ILIKE %s OR co.external_comment ILIKE %s)'
            )
            like = f'%{search}%'
            params.extend([like, like, like])

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ''
        rows = self.query_all(
            f'{ORDER_SELECT}{where} ORDER BY co.created_at DESC, co.id DESC LIMIT %s OFFSET %s',
            params + [page_size, (page - 1) * page_size]
        )
        total = self.query_one(
            f'SELECT COUNT(*) AS total FROM client_orders co JOIN clients c ON co.client_id = c.id{where}',
            params
        )
        return rows, (total['total'] if total else 0)

    def get(self, order_id: int, cursor=None) -> Optional[dict]:
        return self.query_one(f'{ORDER_SELECT} WHERE co.id = %s', (order_id,), cursor=cursor)

    def lock(self, order_id: int, cursor) -> Optional[dict]:
        """Plain row, locked until the caller's transaction ends."""
        return self.query_one(
            'SELECT * FROM client_orders WHERE id = %s FOR UPDATE', (order_id,), cursor=cursor
        )

    def create(self, fields: dict, cursor=None) -> dict:
        columns = list(fields)
        placeholders = ', '.join(['%s'] * len(columns))
        return self.execute(
            f"INSERT INTO client_orders ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *",
            [fields[c] for c in columns], returning=True, cursor=cursor
        )

    def update(self, order_id: int, fields: dict, cursor=None) -> Optional[dict]:
        updates = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS}
        if not updates:
            return self.lock(order_id, cursor) if cursor else self.get(order_id)
        set_clause = ', '.join(f'{k} = %s' for k in updates)
        return self.execute(
            f'UPDATE client_orders SET {set_clause}, updated_at = NOW() WHERE id = %s RETURNING *',
            list(updates.values()) + [order_id], returning=True, cursor=cursor
        )

    def delete(self, order_id: int, cursor=None) -> bool:
        """Delete an order; its items go with it (ON DELETE CASCADE)."""
        return self.execute('DELETE FROM client_orders WHERE id = %s', (order_id,), cursor=cursor) > 0
