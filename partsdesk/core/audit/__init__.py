"""partsdesk audit module.

Activity logs and order events: the write-side AuditTrail and the
read/manual-entry API.
"""
from flask import Blueprint

audit_bp = Blueprint('audit', __name__)

from . import routes  # noqa: E402, F401
