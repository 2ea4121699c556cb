"""Audit repositories package."""
from .activity_repository import ActivityRepository
from .order_event_repository import OrderEventRepository

__all__ = ['ActivityRepository', 'OrderEventRepository']
