"""Flask guards built on the access policy evaluator.

    @require_tab_access('/client-orders', 'client_orders')
    def api_list_orders(): ...

    @check_tab_access('/client-orders')   # decides on the token's tab ids
    def api_get_order(order_id): ...

    @admin_required
    def api_create_tab(): ...
"""
from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user

from core.access.policy import AccessPolicyEvaluator
from core.access.principal import Principal, ResourceKey, resource_key, is_admin

_policy = None

ACCESS_DENIED = 'Access denied'
ADMIN_REQUIRED = 'Admin access required'


def get_policy() -> AccessPolicyEvaluator:
    """Process-wide evaluator (repositories are stateless)."""
    global _policy
    if _policy is None:
        _policy = AccessPolicyEvaluator()
    return _policy


def set_policy(policy: AccessPolicyEvaluator):
    """Swap the evaluator; tests install one with mocked repositories."""
    global _policy
    _policy = policy


def current_principal() -> Principal | None:
    if not current_user.is_authenticated:
        return None
    return current_user.principal


def _unauthenticated():
    message = g.get('auth_error', 'Authentication required')
    return jsonify({'success': False, 'error': message}), 401


def _forbidden(message, reason):
    return jsonify({'success': False, 'error': message, 'reason': reason}), 403


def require_tab_access(*keys):
    """Allow the request when the caller's role can view any of `keys`.

    Keys are tab names or tab paths; several keys form an AnyOf.
    """
    key: ResourceKey = resource_key(keys[0] if len(keys) == 1 else list(keys))

    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            principal = current_principal()
            if principal is None:
                return _unauthenticated()
            decision = get_policy().authorize(principal, key)
            if not decision:
                return _forbidden(ACCESS_DENIED, decision.reason)
            return f(*args, **kwargs)
        return decorated
    return decorator


def check_tab_access(tab_path):
    """Like require_tab_access, but decides on the tab ids carried in the token."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            principal = current_principal()
            if principal is None:
                return _unauthenticated()
            decision = get_policy().authorize_snapshot(principal, tab_path)
            if not decision:
                return _forbidden(ACCESS_DENIED, decision.reason)
            return f(*args, **kwargs)
        return decorated
    return decorator


def admin_required(f):
    """Decorator requiring an authenticated admin."""
    @wraps(f)
    def decorated(*args, **kwargs):
        principal = current_principal()
        if principal is None:
            return _unauthenticated()
        if not is_admin(principal):
            return _forbidden(ADMIN_REQUIRED, 'admin only')
        return f(*args, **kwargs)
    return decorated


def admin_prefix_guard():
    """before_request hook: admin-only API prefixes answer 403 for everyone else.

    Anonymous requests pass through; the route's own guard answers 401.
    """
    if not request.path.startswith('/api/'):
        return None
    principal = current_principal()
    if principal is None:
        return None
    path = request.path[len('/api'):]
    decision = get_policy().authorize_path_prefix(principal, path)
    if not decision:
        return _forbidden(ADMIN_REQUIRED, decision.reason)
    return None
