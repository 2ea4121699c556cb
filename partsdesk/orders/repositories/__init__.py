"""Client order repositories package."""
from .order_repository import OrderRepository
from .item_repository import ItemRepository
from .offer_repository import OfferRepository
from .logistics_route_repository import LogisticsRouteRepository

__all__ = ['OrderRepository', 'ItemRepository', 'OfferRepository', 'LogisticsRouteRepository']
