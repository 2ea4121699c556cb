"""partsdesk access module.

Tab-based RBAC: principals, the policy evaluator, entity-to-tab resolution
and the tab / role-permission admin API.
"""
from flask import Blueprint

access_bp = Blueprint('access', __name__)

from . import routes  # noqa: E402, F401
