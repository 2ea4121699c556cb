"""Logistics route lookup used by offer pricing."""
from typing import Optional

from core.base_repository import BaseRepository


class LogisticsRouteRepository(BaseRepository):

    def get_route_terms(self, route_id: int, cursor=None) -> Optional[dict]:
        """{cost, eta_days, currency} of an active route, or None."""
        return self.query_one('''
            SELECT fixed_cost AS cost, eta_days, currency
            FROM logistics_routes
            WHERE id = %s AND is_active = TRUE
        ''', (route_id,), cursor=cursor)
