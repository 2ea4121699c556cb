"""Tab and role permission routes."""
from flask import jsonify, request

from . import access_bp
from .decorators import admin_required, current_principal
from .principal import is_admin, REASON_ROLE_UNDETERMINED
from .repositories import TabRepository, PermissionRepository
from core.utils.api_helpers import (
    api_login_required, handle_api_errors, get_json_or_error, error_response, to_id, to_int, nz,
)

_tab_repo = TabRepository()
_perm_repo = PermissionRepository()


# ============== TABS ==============

@access_bp.route('/api/tabs', methods=['GET'])
@api_login_required
@handle_api_errors
def api_get_tabs():
    """Admin: every tab. Others: tabs their role can view."""
    principal = current_principal()
    if is_admin(principal):
        return jsonify(_tab_repo.get_all())
    if principal.role_id is None:
        return error_response('Access denied: role undetermined', 403, reason=REASON_ROLE_UNDETERMINED)
    return jsonify(_tab_repo.get_visible_for_role(principal.role_id))


@access_bp.route('/api/tabs/order', methods=['PUT'])
@admin_required
@handle_api_errors
def api_reorder_tabs():
    """Bulk sort_order update: [{id, sort_order}, ...]."""
    data = request.get_json(silent=True)
    if not isinstance(data, list):
        return error_response('Expected an array of {id, sort_order}', 400)

    updates = []
    for entry in data:
        if not isinstance(entry, dict):
            return error_response('Expected an array of {id, sort_order}', 400)
        tab_id = to_id(entry.get('id'))
        sort_order = to_int(entry.get('sort_order'))
        if tab_id is None or sort_order is None:
            return error_response('Each entry needs a numeric id and sort_order', 400)
        updates.append({'id': tab_id, 'sort_order': sort_order})

    count = _tab_repo.reorder(updates)
    return jsonify({'success': True, 'updated': count})


@access_bp.route('/api/tabs', methods=['POST'])
@admin_required
@handle_api_errors
def api_create_tab():
    data, error = get_json_or_error()
    if error:
        return error
    tab = _tab_repo.create(
        name=nz(data.get('name')),
        tab_name=nz(data.get('tab_name')),
        path=data.get('path'),
        icon=nz(data.get('icon')),
        tooltip=nz(data.get('tooltip')),
    )
    return jsonify(tab), 201


@access_bp.route('/api/tabs/<int:tab_id>', methods=['PUT'])
@admin_required
@handle_api_errors
def api_update_tab(tab_id):
    data, error = get_json_or_error()
    if error:
        return error
    tab = _tab_repo.update(
        tab_id,
        name=nz(data.get('name')),
        tab_name=nz(data.get('tab_name')),
        path=data.get('path'),
        icon=data.get('icon'),
        tooltip=data.get('tooltip'),
        sort_order=to_int(data.get('sort_order')),
        is_active=data.get('is_active') if isinstance(data.get('is_active'), bool) else None,
    )
    return jsonify(tab)


@access_bp.route('/api/tabs/<int:tab_id>', methods=['DELETE'])
@admin_required
@handle_api_errors
def api_delete_tab(tab_id):
    """Delete a tab together with every role permission on it."""
    _tab_repo.delete(tab_id)
    return jsonify({'success': True})


# ============== ROLE PERMISSIONS ==============

@access_bp.route('/api/role-permissions', methods=['GET'])
@admin_required
@handle_api_errors
def api_get_role_permissions():
    """Non-admin roles with their granted tab ids."""
    return jsonify(_perm_repo.get_grouped())


@access_bp.route('/api/role-permissions/raw', methods=['GET'])
@admin_required
@handle_api_errors
def api_get_role_permissions_raw():
    tab_id = to_id(request.args.get('tab_id'))
    return jsonify(_perm_repo.get_raw(tab_id))


@access_bp.route('/api/role-permissions', methods=['PUT'])
@admin_required
@handle_api_errors
def api_set_role_permissions():
    """Bulk [{role_id, tab_id, can_view}] with can_view in {0, 1}."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        data = data.get('permissions')
    if not isinstance(data, list):
        return error_response('Expected an array of {role_id, tab_id, can_view}', 400)

    permissions = []
    for entry in data:
        if not isinstance(entry, dict):
            return error_response('Expected an array of {role_id, tab_id, can_view}', 400)
        role_id = to_id(entry.get('role_id'))
        tab_id = to_id(entry.get('tab_id'))
        can_view = to_int(entry.get('can_view'))
        if role_id is None or tab_id is None or can_view not in (0, 1):
            return error_response('role_id, tab_id and can_view (0 or 1) are required', 400)
        permissions.append({'role_id': role_id, 'tab_id': tab_id, 'can_view': can_view})

    granted = _perm_repo.replace_pairs(permissions)
    return jsonify({'success': True, 'updated': len(permissions), 'granted': granted})


@access_bp.route('/api/role-permissions/<role_slug>/permissions', methods=['GET'])
@admin_required
@handle_api_errors
def api_get_role_tabs(role_slug):
    return jsonify(_perm_repo.get_role_tabs(role_slug))


@access_bp.route('/api/role-permissions', methods=['POST'])
@admin_required
@handle_api_errors
def api_create_role():
    data, error = get_json_or_error()
    if error:
        return error
    name = nz(data.get('role'))
    if not name:
        return error_response('Field "role" is required', 400)
    return jsonify(_perm_repo.create_role(name)), 201


@access_bp.route('/api/role-permissions/<int:permission_id>', methods=['PUT'])
@admin_required
@handle_api_errors
def api_update_role_permission(permission_id):
    data, error = get_json_or_error()
    if error:
        return error
    can_view = to_int(data.get('can_view'))
    if can_view not in (0, 1):
        return error_response('can_view must be 0 or 1', 400)
    if not _perm_repo.set_single(permission_id, can_view):
        return error_response('Permission not found', 404)
    return jsonify({'success': True})


@access_bp.route('/api/role-permissions/by-role/<role_slug>', methods=['PUT'])
@admin_required
@handle_api_errors
def api_replace_role_permissions(role_slug):
    """Replace every grant of one role: {permissions: [{tab_id, can_view}]}."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        data = data.get('permissions')
    if not isinstance(data, list):
        return error_response('Expected an array of {tab_id, can_view}', 400)
    granted = _perm_repo.replace_for_role(role_slug, [p for p in data if isinstance(p, dict)])
    return jsonify({'success': True, 'granted': granted})
