"""Client orders domain: orders, items, supplier offers and decisions."""
from flask import Blueprint

orders_bp = Blueprint('orders', __name__)

from . import routes  # noqa: E402, F401
