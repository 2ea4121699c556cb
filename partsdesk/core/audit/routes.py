"""Activity log routes."""
from flask import jsonify, request
from flask_login import current_user

from . import audit_bp
from .repositories import ActivityRepository
from .trail import AuditTrail
from core.access import entity_tabs
from core.access.decorators import admin_required, current_principal, get_policy
from core.utils.api_helpers import (
    api_login_required, handle_api_errors, get_json_or_error, error_response, to_int, nz,
)

_activity_repo = ActivityRepository()
_audit = AuditTrail(activity_repo=_activity_repo)

MANUAL_ACTIONS = ('create', 'update', 'delete')


@audit_bp.route('/api/activity-logs/deleted', methods=['GET'])
@admin_required
@handle_api_errors
def api_get_deleted():
    """Latest 100 delete actions, optionally for one entity type."""
    return jsonify(_activity_repo.get_deleted(nz(request.args.get('entity_type'))))


@audit_bp.route('/api/activity-logs/<entity>/<entity_id>', methods=['GET'])
@audit_bp.route('/api/history/<entity>/<entity_id>', methods=['GET'])
@api_login_required
@handle_api_errors
def api_get_history(entity, entity_id):
    """History of one record, gated by the tab that governs the entity.

    Under /api/activity-logs the admin prefix guard answers first; /api/history
    is the same read for roles that can view the entity's tab.
    """
    parsed_id = to_int(entity_id)
    if parsed_id is None:
        return error_response('id must be numeric', 400)

    decision = get_policy().authorize_entity(current_principal(), entity)
    if not decision:
        return error_response('Access denied', 403, reason=decision.reason)

    names = [entity_tabs.resolve(entity).canonical_entity]
    if entity.strip() not in names:
        names.append(entity.strip())
    return jsonify(_activity_repo.get_for_entity(names, parsed_id))


@audit_bp.route('/api/activity-logs', methods=['POST'])
@api_login_required
@handle_api_errors
def api_create_activity():
    """Manual activity entry."""
    data, error = get_json_or_error()
    if error:
        return error

    action = str(data.get('action') or '').strip().lower()
    if action not in MANUAL_ACTIONS:
        return error_response(f"invalid action: {data.get('action')}", 400)

    raw_id = data.get('entity_id')
    entity_id = None
    if raw_id not in (None, ''):
        entity_id = to_int(raw_id)
        if entity_id is None:
            return error_response('entity_id must be numeric or null', 400)

    entity_type = nz(data.get('entity_type'))
    if not entity_type:
        return error_response('entity_type is required', 400)

    _audit.log_activity(
        entity_type, entity_id, action,
        user_id=current_user.id,
        field_changed=data.get('field_changed'),
        old_value=data.get('old_value'),
        new_value=data.get('new_value'),
        comment=data.get('comment'),
    )
    return jsonify({'success': True})
