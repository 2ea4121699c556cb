"""Identity routes."""
from flask import jsonify
from flask_login import current_user

from . import auth_bp
from core.utils.api_helpers import api_login_required


@auth_bp.route('/api/auth/current-user')
@api_login_required
def api_current_user():
    """Current caller as seen by the access layer."""
    return jsonify({'authenticated': True, 'user': current_user.to_dict()})
