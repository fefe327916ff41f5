"""
Home-chef marketplace - Flask backend

Application factory, middleware, error mapping and CLI commands.
Run with ``flask --app homechef.flask_server run`` or ``python -m homechef.flask_server``.
"""

import json
import logging

import click
from flask import Flask, current_app, request
from flask_cors import CORS
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from .auth import auth_bp
from .config import Config, is_production
from .errors import ApiError
from .extensions import ensure_indexes, get_db, mongo
from .favorites import favorites_bp
from .helpers import json_response, utcnow
from .meals import meals_bp
from .orders import orders_bp
from .payments import StripeGateway, payments_bp
from .reviews import reviews_bp
from .seed import seed_meals
from .stats import stats_bp
from .users import users_bp

logger = logging.getLogger(__name__)

DEV_SECRET = 'dev-only-secret-change-me'
HIDDEN_FIELDS = ('password', 'currentPassword', 'newPassword')

BLUEPRINTS = (
    auth_bp,
    users_bp,
    stats_bp,
    meals_bp,
    reviews_bp,
    favorites_bp,
    orders_bp,
    payments_bp,
)


def create_app(config=None, db=None, payment_gateway=None):
    """Build the app

    ``db`` and ``payment_gateway`` default to the configured MongoDB database
    and Stripe; tests pass their own.
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config:
        app.config.update(config)

    configure_logging(app)
    _check_secret(app)

    CORS(app, origins=app.config['CORS_ORIGINS'], supports_credentials=True)

    if db is None:
        mongo.init_app(app)
        db = mongo.db
        if db is None:
            raise RuntimeError('MONGO_URI must name a database')
    app.extensions['homechef.db'] = db
    app.extensions['homechef.payment_gateway'] = (
        payment_gateway or StripeGateway(app.config['STRIPE_SECRET_KEY'])
    )

    if app.config['MONGO_ENSURE_INDEXES']:
        ensure_indexes(db)

    for blueprint in BLUEPRINTS:
        app.register_blueprint(blueprint)

    register_middleware(app)
    register_error_handlers(app)
    register_commands(app)
    register_root_routes(app)

    logger.info('✅ App ready (env=%s, db=%s)', app.config['APP_ENV'], db.name)
    return app


def configure_logging(app):
    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger('homechef').setLevel(level)
    app.logger.setLevel(level)


def _check_secret(app):
    if app.config.get('ACCESS_TOKEN_SECRET'):
        return
    if is_production(app.config):
        raise RuntimeError('ACCESS_TOKEN_SECRET missing in environment')
    logger.warning('⚠️ ACCESS_TOKEN_SECRET not set; using a development secret')
    app.config['ACCESS_TOKEN_SECRET'] = DEV_SECRET


# ==================== REQUEST LOGGING MIDDLEWARE ====================

def register_middleware(app):

    @app.before_request
    def log_request():
        """Log incoming requests"""
        if not logger.isEnabledFor(logging.DEBUG):
            return

        logger.debug('📥 %s %s', request.method, request.path)
        if request.args:
            logger.debug('📋 Query Params: %s', dict(request.args))

        body = request.get_json(silent=True)
        if isinstance(body, dict) and body:
            body_to_log = {
                k: ('***hidden***' if k in HIDDEN_FIELDS else v) for k, v in body.items()
            }
            logger.debug('📤 Request Body: %s', json.dumps(body_to_log, default=str))


# ==================== ERROR HANDLERS ====================

def register_error_handlers(app):

    @app.errorhandler(ApiError)
    def api_error(e):
        if e.status_code >= 500:
            logger.error('❌ %s %s failed: %s', request.method, request.path, e.message)
        return json_response(e.to_dict(), e.status_code)

    @app.errorhandler(404)
    def not_found(e):
        return json_response({'message': 'Route not found'}, 404)

    @app.errorhandler(HTTPException)
    def http_error(e):
        return json_response({'success': False, 'message': e.description}, e.code)

    @app.errorhandler(PyMongoError)
    def database_error(e):
        logger.exception('❌ Database error on %s %s', request.method, request.path)
        return json_response({'success': False, 'message': 'Server error'}, 500)

    @app.errorhandler(Exception)
    def server_error(e):
        logger.exception('❌ Unhandled error on %s %s', request.method, request.path)
        return json_response({'success': False, 'message': 'Internal server error'}, 500)


# ==================== CLI ====================

def register_commands(app):

    @app.cli.command('seed-meals')
    def seed_meals_command():
        """Replace the meals collection with sample data."""
        count = seed_meals(get_db())
        click.echo(f'Inserted {count} meals')

    @app.cli.command('init-db')
    def init_db_command():
        """Create the MongoDB indexes."""
        ensure_indexes(get_db())
        click.echo('Indexes created')


# ==================== ROOT ROUTES ====================

def register_root_routes(app):

    @app.route('/')
    def root():
        """Root route"""
        return json_response({
            'success': True,
            'message': 'Home-chef marketplace API',
            'version': '1.0.0'
        })

    @app.route('/health')
    def health():
        """Health check endpoint"""
        return json_response({
            'success': True,
            'message': 'Backend is running',
            'environment': current_app.config['APP_ENV'],
            'timestamp': utcnow().isoformat()
        })


# ==================== RUN SERVER ====================

if __name__ == '__main__':
    application = create_app()
    logger.info('🚀 Server running on http://localhost:%s', application.config['PORT'])
    application.run(host='0.0.0.0', port=application.config['PORT'], debug=application.config['DEBUG'])
