"""Offer pricing and supplier masking.

compute_offer() turns caller input (plus the stored offer, on updates) into
the persisted price fields:

    fx              = fx_rate ?? previous.fx_rate ?? 1
    base            = (supplier_price ?? previous.supplier_price ?? 0) * fx
    logistics_cost  = route cost when a route supplies one and the caller
                      sent no logistics_cost, else caller ?? previous ?? 0
    eta_days_effective = lead_time_days + route.eta_days (route with eta)
    computed        = (base + logistics_cost) * (1 + markup_pct / 100) + markup_abs
    client_price    = explicit caller client_price, else computed

Numbers accept ',' as decimal separator. Non-finite values are absent.
"""
import math
from typing import Callable, Optional

from core.access.principal import Principal, is_admin
from core.utils.api_helpers import num_or_none, to_id

# Role slugs that see supplier identity on offers
BUYER_ROLE_SLUGS = frozenset({
    'buyer', 'procurement', 'purchaser', 'purchasing', 'snab',
    'закупщик', 'закупки', 'снабженец', 'снабжение',
})

# Nulled for viewers who may see commercial terms but not the supplier
SUPPLIER_IDENTITY_FIELDS = (
    'supplier_id', 'supplier_name', 'supplier_part_id', 'supplier_part_number', 'internal_comment',
)

RouteLookup = Callable[[int], Optional[dict]]


def to_number(value) -> Optional[float]:
    return num_or_none(value)


def _finite(value) -> Optional[float]:
    if value is None:
        return None
    return value if math.isfinite(value) else None


def _first(*values):
    for v in values:
        if v is not None:
            return v
    return None


def _resolve(raw: dict, previous: dict, key: str, default=None):
    """Caller value, else stored value, else default. Absent keys fall through."""
    return _first(to_number(raw.get(key)), to_number(previous.get(key)), default)


def compute_offer(raw: dict, previous: dict = None,
                  route_lookup: RouteLookup = None) -> dict:
    """Resolve pricing inputs and derive client_price / eta_days_effective.

    `raw` is the request body; `previous` is the stored offer on update.
    `route_lookup(route_id)` returns {cost, eta_days, currency} or None.
    """
    raw = raw or {}
    previous = previous or {}

    fx_rate = _resolve(raw, previous, 'fx_rate', 1.0)
    supplier_price = _resolve(raw, previous, 'supplier_price', 0.0)
    base = _finite(supplier_price * fx_rate)

    # Only a route sent with this request is looked up; stored offers keep
    # the logistics cost and eta they were saved with.
    requested_route = to_id(raw.get('logistics_route_id'))
    route_id = _first(requested_route, to_id(previous.get('logistics_route_id')))
    route = None
    if requested_route is not None and route_lookup is not None:
        route = route_lookup(requested_route)

    caller_logistics = to_number(raw.get('logistics_cost'))
    route_cost = to_number(route.get('cost')) if route else None
    if route_cost is not None and caller_logistics is None:
        logistics_cost = route_cost
    else:
        logistics_cost = _first(caller_logistics, to_number(previous.get('logistics_cost')), 0.0)

    lead_time_days = _resolve(raw, previous, 'lead_time_days', 0.0)
    route_eta = to_number(route.get('eta_days')) if route else None
    if route_eta is not None:
        eta_days_effective = _finite(lead_time_days + route_eta)
    else:
        eta_days_effective = _resolve(raw, previous, 'eta_days_effective')

    markup_pct = _resolve(raw, previous, 'markup_pct', 0.0)
    markup_abs = _resolve(raw, previous, 'markup_abs', 0.0)

    computed = None
    if base is not None:
        computed = _finite((base + logistics_cost) * (1 + markup_pct / 100) + markup_abs)

    explicit = to_number(raw.get('client_price'))
    client_price = explicit if explicit is not None else computed

    return {
        'fx_rate': fx_rate,
        'supplier_price': supplier_price,
        'logistics_route_id': route_id,
        'logistics_cost': logistics_cost,
        'lead_time_days': lead_time_days,
        'eta_days_effective': eta_days_effective,
        'markup_pct': markup_pct,
        'markup_abs': markup_abs,
        'computed_client_price': computed,
        'client_price': client_price,
    }


def is_buyer(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.role_slug in BUYER_ROLE_SLUGS


def mask_for_viewer(offer: dict, principal: Optional[Principal]) -> dict:
    """Copy of `offer` with supplier identity removed for non-buyers.

    Prices, lead times and supplier_public_code stay visible.
    """
    masked = dict(offer)
    if is_admin(principal) or is_buyer(principal):
        return masked
    for name in SUPPLIER_IDENTITY_FIELDS:
        if name in masked or name in ('supplier_id', 'supplier_name'):
            masked[name] = None
    return masked


def mask_many(offers, principal: Optional[Principal]) -> list[dict]:
    return [mask_for_viewer(o, principal) for o in offers]
