"""Activity and order-event audit trail.

Audit writes are best effort. Lock timeouts and deadlocks while inserting an
audit row are logged and dropped; any other error propagates like a failed
business statement.

Given the cursor of an open transaction, the insert runs on that same
connection inside a SAVEPOINT, so the audit row commits atomically with the
mutation and a dropped audit write leaves the outer transaction usable.
Without a cursor the insert runs on its own pooled connection.
"""
import logging
from typing import Iterable, Optional

from core.errors import classify_store_error, CONTENTION_KINDS
from .repositories import ActivityRepository, OrderEventRepository

logger = logging.getLogger('partsdesk.core.audit.trail')

SAVEPOINT = 'audit_write'


def _same(old, new) -> bool:
    """None and '' compare equal; everything else compares as text."""
    return str('' if old is None else old) == str('' if new is None else new)


class AuditTrail:

    def __init__(self, activity_repo: ActivityRepository = None,
                 event_repo: OrderEventRepository = None):
        self._activity = activity_repo or ActivityRepository()
        self._events = event_repo or OrderEventRepository()

    def record_event(self, event: dict, cursor=None) -> Optional[int]:
        """Append an order event. Returns its id, or None if it was dropped.

        event keys: order_id, order_item_id, offer_id, type, from_status,
        to_status, payload, created_by. Only `type` is required.
        """
        return self._best_effort(
            f"order event {event.get('type')}",
            lambda cur: self._events.insert(event, cursor=cur),
            cursor,
        )

    def log_activity(self, entity_type: str, entity_id, action: str, user_id=None,
                     field_changed=None, old_value=None, new_value=None, comment=None,
                     client_id=None, payload=None, cursor=None) -> Optional[int]:
        return self._best_effort(
            f'activity {action} {entity_type}#{entity_id}',
            lambda cur: self._activity.insert(
                entity_type, entity_id, action,
                user_id=user_id, field_changed=field_changed,
                old_value=old_value, new_value=new_value, comment=comment,
                client_id=client_id, payload=payload, cursor=cur,
            ),
            cursor,
        )

    def log_field_diffs(self, entity_type: str, entity_id, before: dict, after: dict,
                        fields: Iterable[str], user_id=None, client_id=None,
                        cursor=None) -> int:
        """One `update` activity per listed field whose value changed."""
        logged = 0
        for name in fields:
            if name not in before or name not in after:
                continue
            if _same(before[name], after[name]):
                continue
            self.log_activity(
                entity_type, entity_id, 'update', user_id=user_id,
                field_changed=name, old_value=before[name], new_value=after[name],
                client_id=client_id, cursor=cursor,
            )
            logged += 1
        return logged

    def _best_effort(self, label, write, cursor):
        if cursor is None:
            try:
                return write(None)
            except Exception as e:
                if classify_store_error(e) not in CONTENTION_KINDS:
                    raise
                logger.warning(f'Audit write dropped ({label}): {e}')
                return None

        cursor.execute(f'SAVEPOINT {SAVEPOINT}')
        try:
            result = write(cursor)
        except Exception as e:
            if classify_store_error(e) not in CONTENTION_KINDS:
                raise
            cursor.execute(f'ROLLBACK TO SAVEPOINT {SAVEPOINT}')
            logger.warning(f'Audit write dropped ({label}): {e}')
            return None
        cursor.execute(f'RELEASE SAVEPOINT {SAVEPOINT}')
        return result
