"""Client order routes."""
from flask import jsonify, request
from flask_login import current_user

from . import orders_bp
from .pricing import mask_for_viewer, mask_many
from .workflow import OrderWorkflow
from core.access.decorators import require_tab_access, current_principal
from core.audit.repositories import OrderEventRepository
from core.utils.api_helpers import handle_api_errors, get_json_or_error, error_response, to_id

TAB = '/client-orders'

_workflow = OrderWorkflow()
_event_repo = OrderEventRepository()


def _truthy(value) -> bool:
    return str(value or '').strip().lower() in ('1', 'true', 'yes')


# ============== ORDERS ==============

@orders_bp.route('/api/client-orders', methods=['GET'])
@require_tab_access(TAB)
@handle_api_errors
def api_list_orders():
    """Orders filtered by client_id / status / search, paginated."""
    return jsonify(_workflow.list_orders(request.args))


@orders_bp.route('/api/client-orders/<int:order_id>', methods=['GET'])
@require_tab_access(TAB)
@handle_api_errors
def api_get_order(order_id):
    return jsonify(_workflow.get_order(order_id))


@orders_bp.route('/api/client-orders', methods=['POST'])
@require_tab_access(TAB)
@handle_api_errors
def api_create_order():
    data, error = get_json_or_error()
    if error:
        return error
    return jsonify(_workflow.create_order(data, user_id=current_user.id)), 201


@orders_bp.route('/api/client-orders/<int:order_id>', methods=['PUT'])
@require_tab_access(TAB)
@handle_api_errors
def api_update_order(order_id):
    data, error = get_json_or_error()
    if error:
        return error
    return jsonify(_workflow.update_order(order_id, data, user_id=current_user.id))


@orders_bp.route('/api/client-orders/<int:order_id>', methods=['DELETE'])
@require_tab_access(TAB)
@handle_api_errors
def api_delete_order(order_id):
    _workflow.delete_order(order_id, user_id=current_user.id)
    return jsonify({'success': True})


@orders_bp.route('/api/client-orders/<int:order_id>/events', methods=['GET'])
@require_tab_access(TAB)
@handle_api_errors
def api_get_order_events(order_id):
    """Order event log, oldest first; ?item_id= narrows to one line."""
    return jsonify(_event_repo.get_for_order(order_id, to_id(request.args.get('item_id'))))


# ============== ITEMS ==============

@orders_bp.route('/api/client-orders/<int:order_id>/items', methods=['POST'])
@require_tab_access(TAB)
@handle_api_errors
def api_add_item(order_id):
    data, error = get_json_or_error()
    if error:
        return error
    return jsonify(_workflow.add_item(order_id, data, user_id=current_user.id)), 201


@orders_bp.route('/api/client-orders/items/<int:item_id>', methods=['PUT'])
@require_tab_access(TAB)
@handle_api_errors
def api_update_item(item_id):
    data, error = get_json_or_error()
    if error:
        return error
    return jsonify(_workflow.update_item(item_id, data, user_id=current_user.id))


@orders_bp.route('/api/client-orders/items/<int:item_id>', methods=['DELETE'])
@require_tab_access(TAB)
@handle_api_errors
def api_delete_item(item_id):
    _workflow.delete_item(item_id, user_id=current_user.id)
    return jsonify({'success': True})


# ============== OFFERS ==============

@orders_bp.route('/api/client-orders/items/<int:item_id>/offers', methods=['GET'])
@require_tab_access(TAB)
@handle_api_errors
def api_list_offers(item_id):
    """Offers of an item; supplier identity hidden from non-buyers."""
    offers = _workflow.list_offers(item_id, client_only=_truthy(request.args.get('client_only')))
    return jsonify(mask_many(offers, current_principal()))


@orders_bp.route('/api/client-orders/items/<int:item_id>/offers', methods=['POST'])
@require_tab_access(TAB)
@handle_api_errors
def api_create_offer(item_id):
    data, error = get_json_or_error()
    if error:
        return error
    offer = _workflow.create_offer(item_id, data, user_id=current_user.id)
    return jsonify(mask_for_viewer(offer, current_principal())), 201


@orders_bp.route('/api/client-orders/offers/<int:offer_id>', methods=['PUT'])
@require_tab_access(TAB)
@handle_api_errors
def api_update_offer(offer_id):
    """Partial update with price recomputation."""
    data, error = get_json_or_error()
    if error:
        return error
    offer = _workflow.update_offer(offer_id, data, user_id=current_user.id)
    return jsonify(mask_for_viewer(offer, current_principal()))


@orders_bp.route('/api/client-orders/offers/<int:offer_id>', methods=['DELETE'])
@require_tab_access(TAB)
@handle_api_errors
def api_delete_offer(offer_id):
    _workflow.delete_offer(offer_id, user_id=current_user.id)
    return jsonify({'success': True})


@orders_bp.route('/api/client-orders/items/<item_id>/decision', methods=['POST'])
@require_tab_access(TAB)
@handle_api_errors
def api_decide(item_id):
    """Select the approved offer of an item: {offer_id}."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return error_response('Invalid JSON body', 400)
    result = _workflow.decide(item_id, data.get('offer_id'), user_id=current_user.id)
    principal = current_principal()
    return jsonify({
        'success': True,
        'item': result['item'],
        'offers': mask_many(result['offers'], principal),
    })
