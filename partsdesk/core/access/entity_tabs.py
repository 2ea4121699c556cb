"""Entity-to-tab resolution.

Activity logs and other generic endpoints are keyed by entity/table name,
not by tab. This module answers "which tab governs this entity". Entities
missing from the table resolve to tab_path=None and callers must then
require admin.
"""

import re
from dataclasses import dataclass
from typing import Optional


# Historical / alternate names → canonical entity name
ENTITY_ALIASES = {
    'tnved_code': 'tnved_codes',
    'supplier': 'part_suppliers',
    'suppliers': 'part_suppliers',
    'client': 'clients',
    'client_order': 'client_orders',
    'orders': 'client_orders',
    'order_items': 'client_order_items',
    'client_order_item': 'client_order_items',
    'offers': 'client_order_offers',
    'client_order_offer': 'client_order_offers',
    'original_part_alt_groups': 'original_part_alt',
    'original_part_alt_items': 'original_part_alt',
    'logistics_route': 'logistics_routes',
}

ENTITY_TAB_PATHS = {
    # /clients
    'clients': '/clients',
    'client_billing_addresses': '/clients',
    'client_shipping_addresses': '/clients',
    'client_bank_details': '/clients',
    'client_contacts': '/clients',

    # /suppliers
    'part_suppliers': '/suppliers',
    'supplier_addresses': '/suppliers',
    'supplier_contacts': '/suppliers',
    'supplier_bank_details': '/suppliers',

    # /supplier-parts
    'supplier_parts': '/supplier-parts',
    'supplier_part_prices': '/supplier-parts',
    'supplier_part_originals': '/supplier-parts',
    'supplier_part_materials': '/supplier-parts',
    'supplier_bundles': '/supplier-parts',
    'supplier_bundle_items': '/supplier-parts',
    'supplier_bundle_item_links': '/supplier-parts',

    # /original-parts
    'original_parts': '/original-parts',
    'original_part_bom': '/original-parts',
    'original_part_groups': '/original-parts',
    'original_part_substitutions': '/original-parts',
    'original_part_documents': '/original-parts',
    'original_part_alt': '/original-parts',
    'materials': '/original-parts',
    'equipment_models': '/original-parts',
    'equipment_manufacturers': '/original-parts',

    # /tnved-codes
    'tnved_codes': '/tnved-codes',

    # /client-orders
    'client_orders': '/client-orders',
    'client_order_items': '/client-orders',
    'client_order_offers': '/client-orders',
    'order_events': '/client-orders',

    # /logistics-routes
    'logistics_routes': '/logistics-routes',
}

_SEPARATORS = re.compile(r'[\s\-/]+')


@dataclass(frozen=True)
class EntityTab:
    canonical_entity: object
    tab_path: Optional[str]


def canonical_entity(name: str) -> str:
    """Normalize a name or path ('/client-orders/') to a canonical entity name."""
    key = _SEPARATORS.sub('_', name.strip().lower()).strip('_')
    return ENTITY_ALIASES.get(key, key)


def resolve(entity_or_path) -> EntityTab:
    """Resolve an entity name (or tab-like path) to the governing tab.

    Never raises: anything unrecognized comes back with tab_path=None.
    """
    if not isinstance(entity_or_path, str):
        return EntityTab(entity_or_path, None)
    trimmed = entity_or_path.strip()
    if not trimmed:
        return EntityTab(entity_or_path, None)

    canonical = canonical_entity(trimmed)
    tab_path = ENTITY_TAB_PATHS.get(canonical)
    if tab_path is None:
        return EntityTab(trimmed, None)
    return EntityTab(canonical, tab_path)
