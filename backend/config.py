"""
Configuration management for the catalog sync backend.
"""
import os


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY', 'catalog-sync-secret-key')

    # Database - SQLite by default (easy setup), PostgreSQL for production
    # To use PostgreSQL, set DATABASE_URL environment variable
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL',
        'sqlite:///satellite_catalog.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Engine options - different for SQLite vs PostgreSQL
    @classmethod
    def get_engine_options(cls):
        db_uri = cls.SQLALCHEMY_DATABASE_URI
        if db_uri.startswith('sqlite'):
            return {
                'connect_args': {
                    'timeout': 30,  # Wait up to 30 seconds for lock
                    'check_same_thread': False,
                },
                'pool_pre_ping': True,
            }
        else:
            # PostgreSQL / other databases
            return {
                'pool_size': 10,
                'pool_recycle': 300,
                'pool_pre_ping': True,
            }

    SQLALCHEMY_ENGINE_OPTIONS = None  # Will be set dynamically

    # Shared secret for the cron trigger endpoints (Authorization: Bearer <secret>)
    # Leaving it unset rejects every trigger.
    CRON_SECRET = os.environ.get('CRON_SECRET')

    # ===== Upstream sources =====
    # CelesTrak serves one object per CATNR query, 2 or 3 lines of plain text
    CELESTRAK_TLE_URL = os.environ.get(
        'CELESTRAK_TLE_URL',
        'https://celestrak.org/NORAD/elements/gp.php?CATNR={norad_id}&FORMAT=tle'
    )
    # SatNOGS DB returns a bare array or a {"results": [...]} page
    SATNOGS_TRANSMITTERS_URL = os.environ.get(
        'SATNOGS_TRANSMITTERS_URL',
        'https://db.satnogs.org/api/transmitters/?satellite__norad_cat_id={norad_id}'
    )
    TLE_SOURCE = 'celestrak'
    HTTP_USER_AGENT = os.environ.get('HTTP_USER_AGENT', 'satellite-catalog-sync/1.0')

    # ===== Reconciliation tuning =====
    # Satellites processed concurrently per group. Caps in-flight requests
    # against CelesTrak / SatNOGS rate limits.
    SYNC_GROUP_SIZE = int(os.environ.get('SYNC_GROUP_SIZE', 30))
    FETCH_ATTEMPTS = int(os.environ.get('FETCH_ATTEMPTS', 3))
    FETCH_TIMEOUT = float(os.environ.get('FETCH_TIMEOUT', 5.0))    # seconds per attempt
    FETCH_BACKOFF = float(os.environ.get('FETCH_BACKOFF', 0.5))    # seconds, multiplied by attempt number
    WRITE_CHUNK_SIZE = int(os.environ.get('WRITE_CHUNK_SIZE', 100))

    # ===== Scheduler settings =====
    # Avoid :00 and :30, upstream peak times
    SYNC_SCHEDULER_ENABLED = os.environ.get('SYNC_SCHEDULER_ENABLED', 'false').lower() == 'true'
    TLE_SYNC_HOURS = os.environ.get('TLE_SYNC_HOURS', '3,9,15,21')
    TLE_SYNC_MINUTE = int(os.environ.get('TLE_SYNC_MINUTE', 17))
    TRANSMITTER_SYNC_HOURS = os.environ.get('TRANSMITTER_SYNC_HOURS', '4')
    TRANSMITTER_SYNC_MINUTE = int(os.environ.get('TRANSMITTER_SYNC_MINUTE', 42))


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    SYNC_SCHEDULER_ENABLED = os.environ.get('SYNC_SCHEDULER_ENABLED', 'true').lower() == 'true'


class TestingConfig(Config):
    """Testing configuration: in-memory database, no backoff, no scheduler."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    CRON_SECRET = 'test-secret'
    FETCH_BACKOFF = 0.0
    SYNC_SCHEDULER_ENABLED = False

    @classmethod
    def get_engine_options(cls):
        return {}


# Configuration mapping
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}
