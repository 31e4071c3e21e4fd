from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from flask import Flask, request, jsonify, g, current_app, has_app_context
import uuid
import logging
from http import HTTPStatus

import click
from flask_cors import CORS
from flask_socketio import SocketIO
from marshmallow import ValidationError
from pythonjsonlogger import jsonlogger
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException as WerkzeugHTTPException

from feed_be.config import Config
from feed_be.config_validator import DEV_SERVICE_TOKEN
from feed_be.error_codes import ErrorCodes
from feed_be.exceptions import AppException
from feed_be.models import db
from feed_be.routes.admin import admin_bp
from feed_be.routes.images import images_bp
from feed_be.routes.transactions import transactions_bp
from feed_be.services.feed_generator import FeedGenerator, get_feed_generator
from feed_be.services.feed_loop import get_feed_loop, persist_transaction_sink
from feed_be.services.websocket_manager import websocket_manager
from feed_be.utils.game_config_cache import get_game_config_cache, initialize_game_configs


# Custom Logging Filter for Request ID
class RequestIdFilter(logging.Filter):
    def filter(self, record):
        # The feed loop logs from background threads with no app context
        record.request_id = g.get('request_id', 'N/A') if has_app_context() else 'N/A'
        return True


def configure_logging(app):
    """JSON logs for the app logger and the feed_be package loggers outside debug mode."""
    if app.debug:
        if not app.logger.handlers:
            logging.basicConfig(level=logging.DEBUG)
        return

    handler = logging.StreamHandler()
    formatter = jsonlogger.JsonFormatter(
        '%(asctime)s %(levelname)s %(request_id)s %(name)s %(funcName)s %(lineno)d %(message)s'
    )
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())
    for logger in (app.logger, logging.getLogger('feed_be')):
        if logger.hasHandlers():
            logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    logging.getLogger('feed_be').propagate = False


HTTP_ERROR_CODES = {
    401: ErrorCodes.UNAUTHENTICATED,
    403: ErrorCodes.FORBIDDEN,
    404: ErrorCodes.NOT_FOUND,
    405: ErrorCodes.METHOD_NOT_ALLOWED,
}


def _request_id():
    return g.get('request_id', 'N/A')


def error_response(error_code, status_message, status_code, details=None):
    """Uniform JSON error body shared by every error handler."""
    return jsonify({
        'request_id': _request_id(),
        'status': False,
        'error_code': error_code,
        'status_message': status_message,
        'details': details or {},
    }), status_code


def start_feed(app):
    """Create tables, seed the catalog, fill the config cache and start the emission loop."""
    with app.app_context():
        db.create_all()
        initialize_game_configs()
        get_game_config_cache().refresh()

    generator = get_feed_generator()
    generator.currency = app.config['FEED_CURRENCY']

    feed_loop = get_feed_loop()
    feed_loop.generator = generator
    feed_loop.interval_ms = app.config['FEED_INTERVAL_MS']
    feed_loop.workers = app.config.get('FEED_SINK_WORKERS', 2)
    feed_loop.sinks = [websocket_manager.broadcast_transaction, persist_transaction_sink(app)]
    feed_loop.start()
    return feed_loop


def create_app(config_class=Config):
    """Application factory for the live activity feed service."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # --- CORS Setup ---
    allowed_origins = []
    if app.debug:
        allowed_origins.extend([
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ])
    if getattr(config_class, 'CORS_ORIGINS_LIST', None):
        allowed_origins.extend(config_class.CORS_ORIGINS_LIST)

    if allowed_origins:
        CORS(app,
             origins=allowed_origins,
             methods=['GET', 'POST', 'PUT', 'OPTIONS'],
             allow_headers=['Content-Type', 'X-Service-Token', 'X-Actor'],
             max_age=86400)
        app.logger.info(f"CORS configured for origins: {allowed_origins}")
    else:
        app.logger.warning("No CORS origins configured - API will reject cross-origin requests")

    # --- Logging Configuration ---
    configure_logging(app)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())

    # --- Production Warnings ---
    log_production_warnings(app)

    # --- Database Setup ---
    db.init_app(app)

    # --- WebSocket Setup ---
    socketio = SocketIO(app,
                        cors_allowed_origins=allowed_origins,
                        async_mode='threading',
                        logger=app.logger,
                        engineio_logger=app.logger)
    websocket_manager.socketio = socketio
    websocket_manager.init_app(app)

    app.socketio = socketio
    app.feed_loop = get_feed_loop()

    # --- Blueprints ---
    app.register_blueprint(transactions_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(images_bp)

    # --- Error Handlers ---
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        current_app.logger.warning(f"Request ID: {_request_id()} - Rejected input: {e.messages}")
        return error_response(ErrorCodes.VALIDATION_ERROR, 'Input validation failed.',
                              HTTPStatus.UNPROCESSABLE_ENTITY, {'errors': e.messages})

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        db.session.rollback()
        current_app.logger.error(f"Request ID: {_request_id()} - Database failure", exc_info=True)
        return error_response(ErrorCodes.INTERNAL_SERVER_ERROR, 'Storage is unavailable, try again later.',
                              HTTPStatus.INTERNAL_SERVER_ERROR)

    @app.errorhandler(AppException)
    def handle_app_exception(e):
        log = current_app.logger.error if e.status_code >= 500 else current_app.logger.warning
        log(f"Request ID: {_request_id()} - {e.error_code} {e.status_message} {e.details or ''}".rstrip(),
            exc_info=e.status_code >= 500)
        return error_response(e.error_code, e.status_message, e.status_code, e.details)

    @app.errorhandler(WerkzeugHTTPException)
    def handle_http_exception(e):
        error_code = HTTP_ERROR_CODES.get(e.code, ErrorCodes.GENERIC_ERROR)
        if e.code >= 500:
            error_code = ErrorCodes.INTERNAL_SERVER_ERROR
        current_app.logger.warning(f"Request ID: {_request_id()} - HTTP {e.code} on {request.path}")
        return error_response(error_code, e.description or e.name, e.code, {'path': request.path})

    @app.errorhandler(Exception)
    def handle_unexpected_exception(e):
        current_app.logger.error(f"Request ID: {_request_id()} - Unhandled exception: {e}", exc_info=True)
        return error_response(ErrorCodes.INTERNAL_SERVER_ERROR, 'An unexpected internal server error occurred.',
                              HTTPStatus.INTERNAL_SERVER_ERROR)

    # --- CLI Commands ---
    @app.cli.command('seed-games')
    def seed_games_command():
        """Create tables and seed the default game catalog into empty storage."""
        db.create_all()
        if initialize_game_configs():
            click.echo("Default game catalog seeded.")
        else:
            click.echo("Game catalog already present, nothing seeded.")

    @app.cli.command('refresh-feed')
    def refresh_feed_command():
        """Rebuild the feed config cache from storage and report the result."""
        snapshot = get_game_config_cache().refresh()
        weights = ', '.join(f"{provider}={weight}" for provider, weight in snapshot.provider_weights)
        click.echo(f"{len(snapshot.games)} active games; provider weights: {weights or 'none'}")

    @app.cli.command('feed-sample')
    @click.option('--count', default=10, show_default=True, type=click.IntRange(1, 1000),
                  help='Number of transactions to generate.')
    def feed_sample_command(count):
        """Print generated transactions without persisting or broadcasting them."""
        cache = get_game_config_cache()
        cache.refresh()
        # Separate state so sampling never shifts the live feed's pacing
        generator = FeedGenerator(config_cache=cache, currency=app.config['FEED_CURRENCY'])
        for _ in range(count):
            transaction = generator.tick()
            if transaction is None:
                click.echo("No active games.")
                return
            click.echo(transaction)

    # --- Feed autostart ---
    if app.config.get('FEED_AUTOSTART') and not app.config.get('TESTING', False):
        start_feed(app)

    return app, socketio


def log_production_warnings(app):
    if app.debug:
        return
    if app.config.get('SERVICE_API_TOKEN') == DEV_SERVICE_TOKEN:
        app.logger.critical(
            "CRITICAL SECURITY WARNING: Default SERVICE_API_TOKEN is used in a production environment. "
            "Please set a strong, unique SERVICE_API_TOKEN environment variable for admin routes."
        )
    if str(app.config.get('SQLALCHEMY_DATABASE_URI', '')).startswith('sqlite'):
        app.logger.warning(
            "SQLite database configured outside debug mode. Use PostgreSQL for persistent deployments."
        )


if __name__ == '__main__':
    app, socketio = create_app()
    socketio.run(app, host='0.0.0.0', port=5000, debug=app.debug, allow_unsafe_werkzeug=True)
