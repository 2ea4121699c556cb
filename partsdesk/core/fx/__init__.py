"""partsdesk FX module: exchange-rate lookups for pricing."""
from flask import Blueprint

fx_bp = Blueprint('fx', __name__)

from . import routes  # noqa: E402, F401
