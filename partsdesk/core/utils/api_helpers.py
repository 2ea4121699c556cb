"""Shared API utilities: decorators, error helpers, request parsing.

Consolidates patterns used by every blueprint into one module.
"""
import math
import logging
from functools import wraps

from flask import g, jsonify, request
from flask_login import current_user

from core.errors import AppError, StoreErrorKind, classify_store_error

logger = logging.getLogger('partsdesk.api')


# ============== Decorators ==============

def api_login_required(f):
    """Like @login_required but returns JSON 401 instead of redirect."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            message = g.get('auth_error', 'Authentication required')
            return jsonify({'success': False, 'error': message}), 401
        return f(*args, **kwargs)
    return decorated


def handle_api_errors(f):
    """Turn exceptions escaping a route into JSON error responses."""
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except Exception as e:
            return safe_error_response(e)
    return decorated


# ============== Request Validation ==============

def get_json_or_error():
    """Get a JSON object from the request body; arrays and scalars are rejected.

    Returns (data, error_response) tuple. Caller pattern:
        data, error = get_json_or_error()
        if error:
            return error
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return None, error_response('Invalid or missing JSON body', 400)
    return data, None


def to_id(value):
    """Positive integer id, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, float):
            if not value.is_integer():
                return None
            n = int(value)
        else:
            n = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def to_int(value):
    """Any integer, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, float):
            return int(value) if value.is_integer() else None
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def num_or_none(value):
    """Parse a number, accepting ',' as decimal separator.

    Empty input, garbage and non-finite results all become None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    else:
        s = str(value).strip().replace(',', '.')
        if not s:
            return None
        try:
            n = float(s)
        except ValueError:
            return None
    return n if math.isfinite(n) else None


def nz(value):
    """Trimmed string, or None for None/blank."""
    if value is None:
        return None
    s = str(value).strip()
    return s or None


# ============== Error Handling ==============

def error_response(message, status_code=400, **extra):
    """Standard JSON error body."""
    body = {'success': False, 'error': message}
    body.update(extra)
    return jsonify(body), status_code


def safe_error_response(e, status_code=500):
    """Return error response without leaking DB internals.

    - AppError subclasses: their own status and message
    - duplicate key / referenced row: 409
    - ValueError/KeyError: str(e) as 400 (business validation, safe to expose)
    - Everything else: logs full exception, returns generic message
    """
    if isinstance(e, AppError):
        if e.status_code >= 500:
            logger.exception('Internal error in API route')
        return jsonify(e.to_dict()), e.status_code

    kind = classify_store_error(e)
    if kind == StoreErrorKind.DUPLICATE_KEY:
        logger.warning(f'Duplicate key: {e}')
        return error_response('Record already exists', 409)
    if kind == StoreErrorKind.FOREIGN_KEY:
        logger.warning(f'Foreign key violation: {e}')
        return error_response('Record is referenced by other data', 409)

    if isinstance(e, (ValueError, KeyError)):
        return error_response(str(e), 400)

    logger.exception('Unhandled error in API route')
    return error_response('An internal error occurred', status_code)
