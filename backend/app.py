"""
Satellite Catalog Sync Backend Application
Flask application entry point with database initialization and API routes.
"""
import os
import atexit
import logging
from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate

from config import config
from models import db

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def create_app(config_name=None, http_session=None):
    """
    Application factory function.

    Args:
        config_name: Configuration name ('development', 'production', 'testing' or 'default')
        http_session: requests-compatible session for upstream fetches (plain requests if None)

    Returns:
        Flask application instance
    """
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'default')

    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Set dynamic engine options based on database type
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = config[config_name].get_engine_options()

    # Initialize extensions
    db.init_app(app)
    Migrate(app, db)

    # Enable SQLite WAL mode for better concurrency (file databases only)
    db_uri = app.config['SQLALCHEMY_DATABASE_URI']
    if db_uri.startswith('sqlite:///') and ':memory:' not in db_uri:
        with app.app_context():
            from sqlalchemy import text
            try:
                db.session.execute(text('PRAGMA journal_mode=WAL'))
                db.session.execute(text('PRAGMA busy_timeout=30000'))
                db.session.commit()
                app.logger.info('SQLite WAL mode enabled for better concurrency')
            except Exception as e:
                app.logger.warning(f'Could not enable WAL mode: {e}')

    # Enable CORS
    CORS(app, resources={
        r"/api/*": {
            "origins": "*",
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": ["Content-Type", "Authorization"]
        }
    })

    # Store handle and sync services, built once per application
    from services.batch_writer import BatchWriter
    from services.catalog_store import CatalogStore
    from services.scheduler_service import SyncScheduler
    from services.sync_orchestrator import SyncOrchestrator

    store = CatalogStore(db.session, BatchWriter(db.session, app.config['WRITE_CHUNK_SIZE']))
    app.extensions['catalog_sync'] = SyncOrchestrator.from_config(store, app.config,
                                                                  http_session=http_session)
    app.extensions['sync_scheduler'] = SyncScheduler(app)

    # Register blueprints
    from routes.sync_routes import sync_bp
    from routes.scheduler_routes import scheduler_bp

    app.register_blueprint(sync_bp)
    app.register_blueprint(scheduler_bp)

    # Health check endpoint
    @app.route('/api/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring."""
        return jsonify({
            'status': 'ok',
            'message': 'Satellite catalog sync is running',
            'version': '1.0.0',
            'data_sources': ['CelesTrak', 'SatNOGS DB'],
        })

    # Error handlers
    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

    return app


def init_database(app):
    """Initialize database and create tables."""
    with app.app_context():
        db.create_all()
        app.logger.info('[Database] Tables created successfully')


def start_scheduler(app):
    """Start the background sync scheduler if enabled."""
    if not app.config['SYNC_SCHEDULER_ENABLED']:
        app.logger.info('[Scheduler] Disabled (SYNC_SCHEDULER_ENABLED=false)')
        return

    sync_scheduler = app.extensions['sync_scheduler']
    sync_scheduler.start()
    atexit.register(sync_scheduler.shutdown)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    app = create_app()

    # Initialize database
    init_database(app)

    # Start background scheduler
    start_scheduler(app)

    port = int(os.environ.get('PORT', 6359))
    app.logger.info(f'Catalog sync API running at http://localhost:{port}')

    app.run(
        host='0.0.0.0',
        port=port,
        debug=False,
        use_reloader=False
    )
