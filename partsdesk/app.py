import sys
import os
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask, request, jsonify

# Structured logging
from core.config import config
from core.utils.logging_config import setup_logging, get_logger
logger = setup_logging(level=config.LOG_LEVEL)
app_logger = get_logger('partsdesk.app')
app_logger.info('partsdesk app module loading...')
from flask_compress import Compress
from flask_login import LoginManager
from core.auth.identity import load_user_from_request
from core.access.decorators import admin_prefix_guard
from database import ping_db, init_db


app = Flask(__name__)
app.config['TESTING'] = config.TESTING

# Secret key signs the bearer tokens; dev fallback only when FLASK_DEBUG=true
_secret_key = config.SECRET_KEY
if not _secret_key:
    if config.DEBUG or config.TESTING:
        _secret_key = 'dev-secret-key-for-local-only'
        app_logger.warning('Using development secret key, set FLASK_SECRET_KEY for production')
    else:
        raise RuntimeError('FLASK_SECRET_KEY environment variable is required')
app.secret_key = _secret_key

compress = Compress()
compress.init_app(app)

# Flask-Login: stateless, every request carries its own bearer token
login_manager = LoginManager()
login_manager.init_app(app)
login_manager.request_loader(load_user_from_request)

# Admin-only path prefixes are refused before any view runs
app.before_request(admin_prefix_guard)

# ============== Blueprint Registrations ==============

from core.auth import auth_bp
app.register_blueprint(auth_bp)

from core.access import access_bp
app.register_blueprint(access_bp)

from core.audit import audit_bp
app.register_blueprint(audit_bp)

# One rate service per process, shared by the FX routes and the scheduler
from core.fx import fx_bp
from core.fx.routes import FX_SERVICE_KEY
from core.services import FxRateService
fx_service = FxRateService()
app.extensions[FX_SERVICE_KEY] = fx_service
app.register_blueprint(fx_bp)

from orders import orders_bp
app.register_blueprint(orders_bp)

app_logger.info(f'partsdesk startup complete, {len(app.url_map._rules)} routes registered')

# ============== Global Error Handlers ==============

@app.errorhandler(404)
def handle_404(e):
    return jsonify({'success': False, 'error': 'Not found'}), 404

@app.errorhandler(405)
def handle_405(e):
    return jsonify({'success': False, 'error': 'Method not allowed'}), 405

@app.errorhandler(500)
def handle_500(e):
    app_logger.exception(f'Unhandled 500 error on {request.path}')
    return jsonify({'success': False, 'error': 'An internal error occurred'}), 500

# ============== Schema + Background Scheduler ==============

if not config.TESTING:
    init_db()
    try:
        from tasks.scheduler import start_scheduler
        start_scheduler(fx_service)
    except Exception as e:
        app_logger.warning(f'Failed to start background scheduler: {e}')


# ============== Health Check ==============

@app.route('/health')
def health_check():
    """Liveness check for the orchestrator. Only checks DB connectivity."""
    checks = {}

    try:
        checks['database'] = ping_db()
    except Exception as e:
        checks['database'] = False
        app_logger.error(f'Health check - database failed: {e}')

    status = 'healthy' if checks.get('database') else 'unhealthy'
    http_code = 200 if status == 'healthy' else 503

    return jsonify({
        'status': status,
        'checks': checks,
        'service': 'partsdesk',
    }), http_code


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=config.DEBUG, host='0.0.0.0', port=port)
