"""OrderWorkflow: client orders, their items and supplier offers.

All order/item/offer mutations flow through this class. Each one runs in a
single database transaction, and the audit rows it writes (activity logs and
order events) ride on that same cursor.

Input is validated before a transaction opens; a missing entity raises
NotFoundError from inside it, which rolls back whatever was done so far.
Orders, items and offers carry no version column: concurrent writers are
serialized by row locks and the last commit wins.
"""

import logging
import random
from datetime import datetime

from database import transaction as db_transaction
from core.audit.trail import AuditTrail
from core.errors import NotFoundError, ValidationError
from core.utils.api_helpers import to_id, to_int, nz
from .pricing import compute_offer, to_number
from .repositories import (
    OrderRepository, ItemRepository, OfferRepository, LogisticsRouteRepository,
)

logger = logging.getLogger('partsdesk.orders.workflow')

ORDER_ENTITY = 'client_orders'
ITEM_ENTITY = 'client_order_items'
OFFER_ENTITY = 'client_order_offers'

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

ORDER_DIFF_FIELDS = (
    'status', 'responsible_user_id', 'currency', 'incoterms', 'payment_terms',
    'client_contact_name', 'client_contact_phone', 'client_contact_email',
    'external_comment', 'internal_comment', 'requested_delivery_date',
)
ITEM_DIFF_FIELDS = (
    'original_part_id', 'equipment_model_id', 'qty_requested', 'qty_unit', 'comment_client',
    'comment_internal', 'status', 'requested_delivery_date',
)
OFFER_DIFF_FIELDS = (
    'supplier_id', 'supplier_part_id', 'supplier_price', 'supplier_currency', 'fx_rate',
    'logistics_cost', 'logistics_route_id', 'lead_time_days', 'eta_days_effective',
    'markup_pct', 'markup_abs', 'client_price', 'client_currency', 'status', 'client_visible',
)

# Offer columns copied from the request as-is (pricing columns come from compute_offer)
OFFER_PLAIN_FIELDS = {
    'supplier_id': to_id,
    'supplier_part_id': to_id,
    'supplier_part_number': nz,
    'supplier_currency': nz,
    'client_currency': nz,
    'client_comment': nz,
    'internal_comment': nz,
}
PRICING_FIELDS = (
    'fx_rate', 'supplier_price', 'logistics_route_id', 'logistics_cost', 'lead_time_days',
    'eta_days_effective', 'markup_pct', 'markup_abs', 'client_price',
)


def generate_order_number(now: datetime = None) -> str:
    """CO<YYYYMMDD>-<HHMMSS>-<NNN>; NNN is random, uniqueness is the table's job."""
    now = now or datetime.now()
    return f"CO{now.strftime('%Y%m%d')}-{now.strftime('%H%M%S')}-{random.randint(0, 999):03d}"


def _page_args(filters: dict) -> tuple[int, int]:
    page = to_int(filters.get('page')) or 1
    page_size = to_int(filters.get('page_size', filters.get('pageSize'))) or DEFAULT_PAGE_SIZE
    return max(page, 1), min(max(page_size, 1), MAX_PAGE_SIZE)


def _validate_item(data: dict) -> dict:
    """Normalized new-item fields, or ValidationError."""
    if not isinstance(data, dict):
        raise ValidationError('Each item must be an object')
    original_part_id = to_id(data.get('original_part_id'))
    qty = to_number(data.get('qty_requested', data.get('qty')))
    if not original_part_id or qty is None or qty <= 0:
        raise ValidationError('Each item needs original_part_id and qty_requested > 0')
    return {
        'original_part_id': original_part_id,
        'equipment_model_id': to_id(data.get('equipment_model_id')),
        'qty_requested': qty,
        'qty_unit': nz(data.get('qty_unit')) or 'pcs',
        'comment_client': nz(data.get('comment_client')),
        'comment_internal': nz(data.get('comment_internal')),
        'requested_delivery_date': data.get('requested_delivery_date') or None,
    }


class OrderWorkflow:

    def __init__(self, order_repo=None, item_repo=None, offer_repo=None,
                 route_repo=None, audit=None, transaction=None):
        self._orders = order_repo or OrderRepository()
        self._items = item_repo or ItemRepository()
        self._offers = offer_repo or OfferRepository()
        self._routes = route_repo or LogisticsRouteRepository()
        self._audit = audit or AuditTrail()
        self._transaction = transaction or db_transaction

    # ════════════════════════════════════════════
    # Orders
    # ════════════════════════════════════════════

    def list_orders(self, filters: dict) -> dict:
        page, page_size = _page_args(filters)
        rows, total = self._orders.list(
            client_id=to_id(filters.get('client_id')),
            status=nz(filters.get('status')),
            search=nz(filters.get('search')),
            page=page, page_size=page_size,
        )
        return {'data': rows, 'pagination': {'page': page, 'page_size': page_size, 'total': total}}

    def get_order(self, order_id: int) -> dict:
        order = self._orders.get(order_id)
        if not order:
            raise NotFoundError('Order not found')
        return {'order': order, 'items': self._items.get_for_order(order_id)}

    def create_order(self, data: dict, user_id: int = None) -> dict:
        """Create a draft order with its items (line numbers from 1)."""
        client_id = to_id(data.get('client_id'))
        if not client_id:
            raise ValidationError('client_id is required')
        raw_items = data.get('items')
        if not isinstance(raw_items, list) or not raw_items:
            raise ValidationError('At least one item is required')
        items = [_validate_item(i) for i in raw_items]

        order_number = generate_order_number()
        with self._transaction() as cursor:
            order = self._orders.create({
                'order_number': order_number,
                'client_id': client_id,
                'status': 'draft',
                'source': nz(data.get('source')) or 'manual',
                'responsible_user_id': to_id(data.get('responsible_user_id')),
                'currency': nz(data.get('currency')),
                'incoterms': nz(data.get('incoterms')),
                'payment_terms': nz(data.get('payment_terms')),
                'client_contact_name': nz(data.get('client_contact_name')),
                'client_contact_phone': nz(data.get('client_contact_phone')),
                'client_contact_email': nz(data.get('client_contact_email')),
                'external_comment': nz(data.get('external_comment')),
                'internal_comment': nz(data.get('internal_comment')),
                'requested_delivery_date': data.get('requested_delivery_date') or None,
                'created_by_user_id': user_id,
            }, cursor=cursor)
            order_id = order['id']

            for line_no, item in enumerate(items, start=1):
                self._items.create(order_id, line_no, item, cursor=cursor)

            self._audit.log_activity(
                ORDER_ENTITY, order_id, 'create', user_id=user_id, client_id=client_id,
                comment=f'Order {order_number} created (draft)',
                payload={'order_number': order_number, 'client_id': client_id, 'items_count': len(items)},
                cursor=cursor,
            )
            result = {
                'order': self._orders.get(order_id, cursor=cursor),
                'items': self._items.get_for_order(order_id, cursor=cursor),
            }

        logger.info(f'Order {order_number} created with {len(items)} item(s)')
        return result

    def update_order(self, order_id: int, data: dict, user_id: int = None) -> dict:
        """Partial header update. Absent keys keep their stored value."""
        fields = {}
        for name in ORDER_DIFF_FIELDS:
            if name not in data:
                continue
            if name == 'responsible_user_id':
                fields[name] = to_id(data[name])
            elif name == 'requested_delivery_date':
                fields[name] = data[name] or None
            elif name == 'status':
                if nz(data[name]):
                    fields[name] = nz(data[name])
            else:
                fields[name] = nz(data[name])

        with self._transaction() as cursor:
            before = self._orders.lock(order_id, cursor)
            if not before:
                raise NotFoundError('Order not found')
            after = self._orders.update(order_id, fields, cursor=cursor)

            self._audit.log_field_diffs(
                ORDER_ENTITY, order_id, before, after, ORDER_DIFF_FIELDS,
                user_id=user_id, client_id=before['client_id'], cursor=cursor,
            )
            if before.get('status') != after.get('status'):
                self._audit.record_event({
                    'order_id': order_id, 'type': 'status_changed',
                    'from_status': before.get('status'), 'to_status': after.get('status'),
                    'created_by': user_id,
                }, cursor=cursor)
        return after

    def delete_order(self, order_id: int, user_id: int = None) -> bool:
        """Delete an order, its items and the offers on those items."""
        with self._transaction() as cursor:
            before = self._orders.lock(order_id, cursor)
            if not before:
                raise NotFoundError('Order not found')
            removed_offers = self._offers.delete_for_order(order_id, cursor=cursor)
            self._orders.delete(order_id, cursor=cursor)
            self._audit.log_activity(
                ORDER_ENTITY, order_id, 'delete', user_id=user_id,
                client_id=before['client_id'], payload=before,
                comment=f"Order {before.get('order_number')} deleted",
                cursor=cursor,
            )
        logger.info(f'Order {order_id} deleted ({removed_offers} offer(s) removed)')
        return True

    # ════════════════════════════════════════════
    # Items
    # ════════════════════════════════════════════

    def add_item(self, order_id: int, data: dict, user_id: int = None) -> dict:
        item = _validate_item(data)
        with self._transaction() as cursor:
            order = self._orders.lock(order_id, cursor)
            if not order:
                raise NotFoundError('Order not found')
            line_no = self._items.next_line_no(order_id, cursor=cursor)
            created = self._items.create(order_id, line_no, item, cursor=cursor)
            self._audit.log_activity(
                ITEM_ENTITY, created['id'], 'create', user_id=user_id,
                client_id=order['client_id'],
                payload={
                    'order_id': order_id, 'line_no': line_no,
                    'original_part_id': item['original_part_id'],
                    'qty_requested': item['qty_requested'],
                },
                cursor=cursor,
            )
            return self._items.get(created['id'], cursor=cursor)

    def update_item(self, item_id: int, data: dict, user_id: int = None) -> dict:
        """Partial item update. Any status may be written."""
        fields = {}
        if 'qty_requested' in data:
            raw_qty = data['qty_requested']
            if raw_qty is not None:
                qty = to_number(raw_qty)
                if qty is None or qty <= 0:
                    raise ValidationError('qty_requested must be a number > 0')
                fields['qty_requested'] = qty
        if 'original_part_id' in data:
            part_id = to_id(data['original_part_id'])
            if part_id is None:
                raise ValidationError('original_part_id must be a positive integer')
            fields['original_part_id'] = part_id
        if 'equipment_model_id' in data:
            raw_model = data['equipment_model_id']
            model_id = to_id(raw_model)
            if raw_model not in (None, '') and model_id is None:
                raise ValidationError('equipment_model_id must be a positive integer or null')
            fields['equipment_model_id'] = model_id
        for name in ('qty_unit', 'comment_client', 'comment_internal', 'status'):
            if name in data and data[name] is not None:
                fields[name] = nz(data[name])
        if 'requested_delivery_date' in data:
            fields['requested_delivery_date'] = data['requested_delivery_date'] or None

        with self._transaction() as cursor:
            before = self._items.lock(item_id, cursor)
            if not before:
                raise NotFoundError('Item not found')
            after = self._items.update(item_id, fields, cursor=cursor)

            self._audit.log_field_diffs(
                ITEM_ENTITY, item_id, before, after, ITEM_DIFF_FIELDS,
                user_id=user_id, client_id=before.get('client_id'), cursor=cursor,
            )
            if before.get('status') != after.get('status'):
                self._audit.record_event({
                    'order_id': before['order_id'], 'order_item_id': item_id,
                    'type': 'item_status_changed',
                    'from_status': before.get('status'), 'to_status': after.get('status'),
                    'created_by': user_id,
                }, cursor=cursor)
        return after

    def delete_item(self, item_id: int, user_id: int = None) -> bool:
        """Delete one item. Its offers stay (order_item_id becomes NULL)."""
        with self._transaction() as cursor:
            before = self._items.lock(item_id, cursor)
            if not before:
                raise NotFoundError('Item not found')
            self._items.delete(item_id, cursor=cursor)
            self._audit.log_activity(
                ITEM_ENTITY, item_id, 'delete', user_id=user_id,
                client_id=before.get('client_id'), payload=before,
                comment='Deleted by user', cursor=cursor,
            )
        return True

    # ════════════════════════════════════════════
    # Offers
    # ════════════════════════════════════════════

    def list_offers(self, item_id: int, client_only: bool = False) -> list[dict]:
        """Offers of an item, unmasked; callers mask per viewer."""
        if not self._items.get(item_id):
            raise NotFoundError('Item not found')
        return self._offers.get_for_item(item_id, client_only=client_only)

    def _offer_fields(self, data: dict, previous: dict = None, cursor=None) -> dict:
        fields = {}
        for name, coerce in OFFER_PLAIN_FIELDS.items():
            if name in data:
                fields[name] = coerce(data[name])
        if 'status' in data and nz(data['status']):
            fields['status'] = nz(data['status'])
        if 'client_visible' in data:
            fields['client_visible'] = bool(data['client_visible'])

        priced = compute_offer(
            data, previous,
            route_lookup=lambda route_id: self._routes.get_route_terms(route_id, cursor=cursor),
        )
        for name in PRICING_FIELDS:
            fields[name] = priced[name]
        return fields

    def _lock_offer(self, offer_id, cursor):
        """(item, offer) locked in the same order decide() takes them: item first."""
        found = self._offers.get(offer_id, cursor=cursor)
        if not found:
            raise NotFoundError('Offer not found')
        item_id = found.get('order_item_id')
        item = self._items.lock(item_id, cursor) if item_id else None
        offer = self._offers.lock(offer_id, cursor)
        if not offer:
            raise NotFoundError('Offer not found')
        return item, offer

    def create_offer(self, item_id: int, data: dict, user_id: int = None) -> dict:
        with self._transaction() as cursor:
            item = self._items.lock(item_id, cursor)
            if not item:
                raise NotFoundError('Item not found')
            fields = self._offer_fields(data, cursor=cursor)
            fields.setdefault('status', 'draft')
            fields.setdefault('client_visible', False)
            offer = self._offers.create(item_id, fields, created_by=user_id, cursor=cursor)

            self._audit.record_event({
                'order_id': item['order_id'], 'order_item_id': item_id, 'offer_id': offer['id'],
                'type': 'offer_created', 'to_status': offer.get('status'),
                'payload': {'client_price': offer.get('client_price'), 'supplier_id': offer.get('supplier_id')},
                'created_by': user_id,
            }, cursor=cursor)
            self._audit.log_activity(
                OFFER_ENTITY, offer['id'], 'create', user_id=user_id,
                client_id=item.get('client_id'), cursor=cursor,
            )
            return self._offers.get(offer['id'], cursor=cursor)

    def update_offer(self, offer_id: int, data: dict, user_id: int = None) -> dict:
        """Partial update; price fields are recomputed against the stored row."""
        with self._transaction() as cursor:
            item, before = self._lock_offer(offer_id, cursor)
            fields = self._offer_fields(data, previous=before, cursor=cursor)
            after = self._offers.update(offer_id, fields, cursor=cursor)

            self._audit.log_field_diffs(
                OFFER_ENTITY, offer_id, before, after, OFFER_DIFF_FIELDS,
                user_id=user_id, client_id=item.get('client_id') if item else None, cursor=cursor,
            )
            if before.get('status') != after.get('status'):
                self._audit.record_event({
                    'order_id': item['order_id'] if item else None,
                    'order_item_id': before.get('order_item_id'), 'offer_id': offer_id,
                    'type': 'offer_status_changed',
                    'from_status': before.get('status'), 'to_status': after.get('status'),
                    'created_by': user_id,
                }, cursor=cursor)
            return self._offers.get(offer_id, cursor=cursor)

    def delete_offer(self, offer_id: int, user_id: int = None) -> bool:
        """Delete an offer; an item decided on it loses the decision, keeps its status."""
        with self._transaction() as cursor:
            item, before = self._lock_offer(offer_id, cursor)
            item_id = before.get('order_item_id')

            self._offers.delete(offer_id, cursor=cursor)
            if item and item.get('decision_offer_id') == offer_id:
                self._items.clear_decision(item_id, offer_id, cursor=cursor)

            self._audit.record_event({
                'order_id': item['order_id'] if item else None,
                'order_item_id': item_id, 'offer_id': offer_id,
                'type': 'offer_deleted', 'from_status': before.get('status'),
                'created_by': user_id,
            }, cursor=cursor)
            self._audit.log_activity(
                OFFER_ENTITY, offer_id, 'delete', user_id=user_id,
                client_id=item.get('client_id') if item else None, payload=before, cursor=cursor,
            )
        return True

    def decide(self, item_id, offer_id, user_id: int = None) -> dict:
        """Select `offer_id` as the approved offer of `item_id`.

        The offer must belong to the item; otherwise NotFoundError and
        nothing is written. Sibling offers are left untouched.
        """
        item_id = to_id(item_id)
        offer_id = to_id(offer_id)
        if item_id is None:
            raise ValidationError('Invalid item id')
        if offer_id is None:
            raise ValidationError('offer_id is required')

        with self._transaction() as cursor:
            item = self._items.lock(item_id, cursor)
            if not item:
                raise NotFoundError('Item not found')
            offer = self._offers.get_scoped(offer_id, item_id, cursor=cursor)
            if not offer:
                raise NotFoundError('Offer not found for this item')

            updated = self._items.set_decision(item_id, offer_id, 'approved', cursor=cursor)
            self._offers.set_client_visible(offer_id, True, cursor=cursor)

            self._audit.record_event({
                'order_id': item['order_id'], 'order_item_id': item_id, 'offer_id': offer_id,
                'type': 'offer_selected',
                'from_status': item.get('status'), 'to_status': 'approved',
                'payload': {
                    'from_status': item.get('status'), 'to_status': 'approved',
                    'offer_id': offer_id, 'previous_offer_id': item.get('decision_offer_id'),
                },
                'created_by': user_id,
            }, cursor=cursor)
            offers = self._offers.get_for_item(item_id, cursor=cursor)

        logger.info(f'Item {item_id}: offer {offer_id} selected')
        return {'item': updated, 'offers': offers}
