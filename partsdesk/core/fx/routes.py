"""FX rate routes."""
from flask import current_app, jsonify, request

from . import fx_bp
from core.services.fx_rates import FxRateUnavailableError, norm_code
from core.utils.api_helpers import api_login_required, handle_api_errors, error_response, num_or_none

FX_SERVICE_KEY = 'fx_service'


def get_fx_service():
    """The FxRateService the app was built with (app.extensions['fx_service'])."""
    return current_app.extensions[FX_SERVICE_KEY]


@fx_bp.route('/api/fx/convert', methods=['GET'])
@api_login_required
@handle_api_errors
def api_convert():
    """?from=USD&to=EUR&amount=10"""
    base = norm_code(request.args.get('from'))
    quote = norm_code(request.args.get('to'))
    if not base or not quote:
        return error_response('from and to must be ISO currency codes', 400)

    raw_amount = request.args.get('amount')
    amount = None
    if raw_amount is not None:
        amount = num_or_none(raw_amount)
        if amount is None:
            return error_response('amount must be a number', 400)

    result = get_fx_service().convert(amount, base, quote)
    return jsonify({
        'rate': result['rate'],
        'converted': result['value'],
        'source': result['source'],
        'fetched_at': result['fetched_at'],
    })


@fx_bp.route('/api/fx/rates', methods=['GET'])
@api_login_required
@handle_api_errors
def api_rates():
    """?base=USD&symbols=EUR,CNY; a failing symbol gets an error entry."""
    base = norm_code(request.args.get('base'))
    if not base:
        return error_response('base must be an ISO currency code', 400)
    symbols = [s for s in (norm_code(p) for p in request.args.get('symbols', '').split(',')) if s]
    if not symbols:
        return error_response('symbols must list at least one currency code', 400)

    fx_service = get_fx_service()
    rates = {}
    for symbol in symbols:
        try:
            rate = fx_service.get_rate(base, symbol)
        except FxRateUnavailableError as e:
            rates[symbol] = {'error': e.message}
            continue
        rates[symbol] = {
            'rate': rate['rate'], 'source': rate['source'], 'fetched_at': rate['fetched_at'],
        }
    return jsonify({'base': base, 'rates': rates})
