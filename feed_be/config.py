"""
Configuration module with fail-fast validation.

All configuration values are validated at startup. Production environments
must provide all required environment variables.
"""
from feed_be.config_validator import validate_production_config

class Config:
    """Application configuration backed by validated environment values."""

    _validated_config = validate_production_config()

    SECRET_KEY = _validated_config['SECRET_KEY']

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = _validated_config['SQLALCHEMY_DATABASE_URI']
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    DEBUG = _validated_config['DEBUG']

    # Admin routes are protected by this token (X-Service-Token header)
    SERVICE_API_TOKEN = _validated_config['SERVICE_API_TOKEN']

    CORS_ORIGINS_LIST = _validated_config['CORS_ORIGINS']

    # Feed cadence is fixed for the lifetime of the process
    FEED_INTERVAL_MS = _validated_config['FEED_INTERVAL_MS']
    FEED_CURRENCY = _validated_config['FEED_CURRENCY']
    FEED_AUTOSTART = _validated_config['FEED_AUTOSTART']

    # Worker threads handing finished transactions to storage and broadcast
    FEED_SINK_WORKERS = 2

    # Admin image uploads; relative paths resolve against the package directory
    GAME_IMAGE_DIR = _validated_config['GAME_IMAGE_DIR']
    GAME_IMAGE_MAX_BYTES = 5 * 1024 * 1024


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///./test_feed_be_isolated.db' # File-based for test isolation
    DATABASE_FILE_PATH = SQLALCHEMY_DATABASE_URI.replace('sqlite:///', '')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SERVICE_API_TOKEN = 'test-service-token'
    FEED_AUTOSTART = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
