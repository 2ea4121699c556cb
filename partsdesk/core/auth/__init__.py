"""partsdesk identity module.

Verifies request credentials and exposes the current caller.
"""
from flask import Blueprint

auth_bp = Blueprint('auth', __name__)

from . import routes  # noqa: E402, F401
